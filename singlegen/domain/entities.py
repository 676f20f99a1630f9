"""
Domain entities for singlegen.
File entries flowing through the pipeline, run settings and run results.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_OUTPUT = "combined_output.txt"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def default_worker_count() -> int:
    """One worker per available processing unit."""
    return os.cpu_count() or 1


@dataclass(frozen=True)
class FileEntry:
    """One file slated for inclusion, or the error hit while reading it."""

    path: str
    relative_path: str
    content: bytes = b""
    size: Optional[int] = None
    modified: Optional[datetime] = None
    error: Optional[Exception] = None

    @classmethod
    def failed(cls, path: str, relative_path: str, error: Exception) -> "FileEntry":
        """Build an entry that carries only an error."""
        return cls(path=path, relative_path=relative_path, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def modified_label(self) -> str:
        if self.modified is None:
            return ""
        return self.modified.strftime(TIMESTAMP_FORMAT)


class CombinerSettings(BaseModel):
    """Settings for one combine run."""

    model_config = ConfigDict(extra="forbid")

    directory: str = Field(default=".", description="Directory to scan")
    output: str = Field(default=DEFAULT_OUTPUT, description="Output file path")
    workers: int = Field(default_factory=default_worker_count, ge=1)
    sequential: bool = Field(default=False, description="Single-threaded pipeline")
    verbose: bool = Field(default=False)

    @property
    def root_path(self) -> Path:
        return Path(self.directory)

    @property
    def output_path(self) -> Path:
        return Path(self.output)


class CombineResult(BaseModel):
    """Result of a combine run."""

    output_file: Path
    source_directory: str
    files_written: List[str] = Field(default_factory=list)
    files_failed: int = 0
    total_bytes: int = 0
    execution_time_seconds: float = 0.0

    @property
    def total_files(self) -> int:
        return len(self.files_written)

    def get_summary(self) -> str:
        """Get a human-readable summary of the results."""
        summary = (
            f"Combined {self.total_files} files "
            f"({self.total_bytes} bytes) "
            f"in {self.execution_time_seconds:.2f}s"
        )
        if self.files_failed:
            summary += f", {self.files_failed} failed"
        return summary
