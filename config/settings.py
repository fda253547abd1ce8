"""Application settings and configuration."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(
        default="Gacha Media Store",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    environment: Literal["local", "dev", "stage", "prod"] = Field(
        default="local",
        description="Deployment environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # API Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Storage Configuration
    data_root: Path = Field(
        default=Path("data"),
        description="Application-private data root holding every store directory"
    )
    library_dir: str = Field(
        default="image_library",
        description="Directory (under data_root) holding the image library files"
    )
    library_index_file: str = Field(
        default="image_library_index.json",
        description="Index document name inside library_dir"
    )
    library_file_prefix: str = Field(
        default="img",
        description="Prefix for newly allocated library file names"
    )
    legacy_dir: str = Field(
        default="film_images",
        description="Directory (under data_root) of the legacy film image store"
    )
    legacy_index_file: str = Field(
        default="film_images_index.json",
        description="Legacy index document name inside legacy_dir"
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def resolve_data_root(cls, v: str | Path) -> Path:
        """Ensure data root is a Path object."""
        if isinstance(v, str):
            return Path(v)
        return v

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Path to log file (if None, logs to stdout only)"
    )

    # Upload Configuration
    max_upload_size: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Maximum file upload size in bytes"
    )
    compress_uploads: bool = Field(
        default=True,
        description="Downscale and re-encode multipart uploads as JPEG"
    )
    compress_max_dimension: int = Field(
        default=1920,
        gt=0,
        description="Longest allowed side (pixels) of a compressed upload"
    )
    compress_jpeg_quality: int = Field(
        default=82,
        ge=1,
        le=95,
        description="JPEG quality used for compressed uploads"
    )

    @property
    def log_level_numeric(self) -> int:
        """Get numeric log level."""
        return getattr(logging, self.log_level)

    def configure_logging(self) -> None:
        """Configure logging based on settings."""
        import sys

        handlers: list[logging.Handler] = []

        console_handler = logging.StreamHandler(sys.stdout)
        handlers.append(console_handler)

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file)
            handlers.append(file_handler)

        if self.log_json:
            # JSON formatter for structured logging
            import json

            class JSONFormatter(logging.Formatter):
                def format(self, record: logging.LogRecord) -> str:
                    log_obj = {
                        "timestamp": self.formatTime(record),
                        "level": record.levelname,
                        "logger": record.name,
                        "message": record.getMessage(),
                        "module": record.module,
                        "function": record.funcName,
                        "line": record.lineno,
                    }
                    if record.exc_info:
                        log_obj["exception"] = self.formatException(record.exc_info)
                    return json.dumps(log_obj)

            formatter = JSONFormatter()
        else:
            formatter = logging.Formatter(self.log_format)

        for handler in handlers:
            handler.setFormatter(formatter)

        logging.basicConfig(
            level=self.log_level_numeric,
            handlers=handlers,
            force=True,
        )

        if self.debug:
            logging.getLogger("gacha_media").setLevel(logging.DEBUG)
        else:
            # Reduce noise from third-party libraries
            logging.getLogger("PIL").setLevel(logging.WARNING)
            logging.getLogger("httpx").setLevel(logging.WARNING)

    def get_storage_path(self, *paths: str) -> Path:
        """Get a path relative to the data root."""
        full_path = self.data_root
        for path in paths:
            full_path = full_path / path
        return full_path


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
