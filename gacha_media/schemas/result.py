"""Outcome of store operations with best-effort steps."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class OperationStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"


class OperationResult(BaseModel):
    """Result of an operation that may absorb non-fatal cleanup failures.

    ``ok`` means every step succeeded; ``warning`` means the load-bearing
    steps succeeded but at least one best-effort step did not (see
    ``warnings``); ``failed`` means a load-bearing step failed.
    """

    status: OperationStatus = Field(
        OperationStatus.OK,
        description="Overall outcome"
    )

    affected: List[str] = Field(
        default_factory=list,
        description="Asset IDs touched by the operation"
    )

    warnings: List[str] = Field(
        default_factory=list,
        description="Absorbed failures of best-effort steps"
    )

    error: Optional[str] = Field(
        None,
        description="Failure message when status is 'failed'"
    )

    @property
    def ok(self) -> bool:
        return self.status == OperationStatus.OK

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
        if self.status == OperationStatus.OK:
            self.status = OperationStatus.WARNING

    @classmethod
    def from_exception(cls, exc: BaseException) -> "OperationResult":
        return cls(status=OperationStatus.FAILED, error=str(exc))
