"""
Output writing infrastructure.
Formats the combined file: one preamble, then a header block per entry.
"""

import logging
from datetime import datetime
from typing import BinaryIO, Optional

from ..domain.entities import TIMESTAMP_FORMAT, FileEntry
from ..domain.errors import OutputWriteError


logger = logging.getLogger(__name__)


def format_preamble(source_directory: str, generated: datetime) -> str:
    return (
        "# Combined File Contents\n"
        f"# Generated: {generated.strftime(TIMESTAMP_FORMAT)}\n"
        f"# Source Directory: {source_directory}\n\n"
    )


def format_entry_header(entry: FileEntry) -> str:
    return (
        f"\n### File: {entry.path}\n"
        f"### Size: {entry.size} bytes\n"
        f"### Last Modified: {entry.modified_label}\n\n"
    )


def _encode(text: str) -> bytes:
    # Undecodable file names come back from the OS as surrogate escapes
    return text.encode("utf-8", "surrogateescape")


class OutputWriter:
    """Sole owner of the output stream; appends entries in the order given."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.entries_written = 0
        self.entries_failed = 0
        self.bytes_written = 0

    def write_preamble(self, source_directory: str, generated: Optional[datetime] = None) -> None:
        """Write the top-level metadata header; a failure here aborts the run."""
        try:
            self.stream.write(_encode(format_preamble(source_directory, generated or datetime.now())))
            self.stream.flush()
        except OSError as e:
            raise OutputWriteError(f"Error writing header: {e}") from e

    def write_entry(self, entry: FileEntry) -> bool:
        """Append one entry; errors are reported and skipped."""
        if not entry.ok:
            logger.error("Error processing %s: %s", entry.path, entry.error)
            self.entries_failed += 1
            return False

        try:
            self.stream.write(_encode(format_entry_header(entry)))
            self.stream.write(entry.content)
            self.stream.write(b"\n")
            # Write failures must surface on this entry, not at close
            self.stream.flush()
        except OSError as e:
            logger.error("Error writing %s: %s", entry.path, e)
            self.entries_failed += 1
            return False

        self.entries_written += 1
        self.bytes_written += len(entry.content)
        return True
