# src/sitealign/model.py
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RunProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_files: int = Field(default=0, alias="totalFiles")
    files_changed: int = Field(default=0, alias="filesChanged")
    total_fixes: int = Field(default=0, alias="totalFixes")
    warnings: int = 0


class RunRecord(BaseModel):
    """
    One command's section of the shared run log.
    Serialized with camelCase keys (`durationMs`, `totalFiles`, ...).
    """
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=utc_timestamp)
    duration_ms: int = Field(default=0, alias="durationMs")
    progress: RunProgress = Field(default_factory=RunProgress)
    changes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.warnings or self.errors else 0

    def to_log(self) -> dict:
        return self.model_dump(by_alias=True)
