import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from gacha_media.codec import encode_data_url, mime_type_for
from gacha_media.compression import COMPRESSED_MIME_TYPE, compress_image
from gacha_media.dependencies import close_asset_repository, get_asset_repository
from gacha_media.exceptions import AssetNotFoundError, DecodeError
from gacha_media.repositories import AssetRepository
from gacha_media.schemas import (
    AssetRecord,
    AssetTag,
    ImageDataResponse,
    ImageImportRequest,
    OperationResult,
)
from gacha_media.storage.base import StorageError
from config import get_settings

# Get settings and configure logging before anything else
settings = get_settings()
settings.configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Data root: {settings.data_root}")

    settings.data_root.mkdir(parents=True, exist_ok=True)

    yield

    logger.info("Shutting down application")
    await close_asset_repository()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Simple health-check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.app_version,
    }


@app.get("/config")
def get_config() -> dict[str, Any]:
    """Get current configuration (non-sensitive values only)."""
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "library_dir": settings.library_dir,
        "log_level": settings.log_level,
        "log_json": settings.log_json,
        "max_upload_size": settings.max_upload_size,
        "compress_uploads": settings.compress_uploads,
    }


@app.get("/images", response_model=List[AssetRecord], tags=["images"])
async def list_images(
    tag: Optional[AssetTag] = None,
    repository: AssetRepository = Depends(get_asset_repository),
) -> List[AssetRecord]:
    """List library images, most recent first.

    Args:
        tag: Only return images carrying this tag.
        repository: Asset repository.
    """
    try:
        records = await repository.list()
    except StorageError as e:
        logger.error(f"Failed to list images: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list images: {e}")

    if tag is not None:
        records = [record for record in records if record.tags and tag in record.tags]

    logger.info(f"Listing {len(records)} images.")
    return records


async def _save(
    repository: AssetRepository,
    data_url: str,
    original_name: Optional[str],
    tags: Optional[List[AssetTag]],
) -> AssetRecord:
    try:
        return await repository.save(data_url, original_name, tags)
    except DecodeError as e:
        logger.warning(f"Rejected image {original_name!r}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except StorageError as e:
        logger.error(f"Failed to save image {original_name!r}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save image: {e}")


@app.post("/images", response_model=AssetRecord, status_code=201, tags=["images"])
async def import_image(
    request: ImageImportRequest,
    repository: AssetRepository = Depends(get_asset_repository),
) -> AssetRecord:
    """Import an image given as a data URL.

    Raises:
        HTTPException: 422 if the data URL cannot be decoded, 500 if it cannot be stored.
    """
    return await _save(repository, request.data_url, request.original_name, request.tags)


@app.post("/images/upload", response_model=AssetRecord, status_code=201, tags=["images"])
async def upload_image(
    file: UploadFile = File(...),
    tags: Optional[List[AssetTag]] = Form(None),
    repository: AssetRepository = Depends(get_asset_repository),
) -> AssetRecord:
    """Upload an image file.

    The file is compressed first when ``compress_uploads`` is enabled.

    Raises:
        HTTPException: If the file is empty, too large, not an image, or cannot be saved.
    """
    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail="File cannot be empty")
    if len(content) > settings.max_upload_size:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds maximum upload size of {settings.max_upload_size} bytes",
        )

    logger.info(f"Processing upload: {file.filename}, content length: {len(content)}")

    if settings.compress_uploads:
        try:
            content = compress_image(
                content,
                max_dimension=settings.compress_max_dimension,
                jpeg_quality=settings.compress_jpeg_quality,
            )
        except DecodeError as e:
            raise HTTPException(status_code=422, detail=str(e))
        mime_type = COMPRESSED_MIME_TYPE
    elif file.content_type and file.content_type.startswith("image/"):
        mime_type = file.content_type
    else:
        mime_type = mime_type_for(file.filename or "")

    return await _save(repository, encode_data_url(content, mime_type), file.filename, tags)


@app.get("/images/{image_id}", response_model=ImageDataResponse, tags=["images"])
async def get_image(
    image_id: str,
    repository: AssetRepository = Depends(get_asset_repository),
) -> ImageDataResponse:
    """Get an image as a data URL.

    Raises:
        HTTPException: If the image file is not found
    """
    try:
        data_url = await repository.load(image_id)
    except AssetNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")

    return ImageDataResponse(id=image_id, data_url=data_url)


@app.get("/images/{image_id}/raw", tags=["images"])
async def get_image_raw(
    image_id: str,
    repository: AssetRepository = Depends(get_asset_repository),
) -> Response:
    """Get an image's raw bytes with a MIME type inferred from its extension."""
    try:
        content, mime_type = await repository.load_bytes(image_id)
    except AssetNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")

    return Response(content=content, media_type=mime_type)


@app.delete("/images/{image_id}", response_model=OperationResult, tags=["images"])
async def delete_image(
    image_id: str,
    repository: AssetRepository = Depends(get_asset_repository),
) -> OperationResult:
    """Delete an image.

    Deleting an image whose file is already gone succeeds. Callers are
    responsible for clearing their own references to the ID.
    """
    try:
        return await repository.delete(image_id)
    except StorageError as e:
        logger.error(f"Failed to delete image {image_id}: {e}")
        raise HTTPException(
            status_code=500,
            detail=OperationResult.from_exception(e).model_dump(mode="json"),
        )


@app.delete("/images", response_model=OperationResult, tags=["images"])
async def clear_images(
    repository: AssetRepository = Depends(get_asset_repository),
) -> OperationResult:
    """Delete every image in the library."""
    try:
        return await repository.clear()
    except StorageError as e:
        logger.error(f"Failed to clear image library: {e}")
        raise HTTPException(
            status_code=500,
            detail=OperationResult.from_exception(e).model_dump(mode="json"),
        )
