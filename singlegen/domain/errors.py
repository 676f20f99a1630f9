"""
Error types for singlegen.
Fatal setup and traversal failures are raised; per-file failures travel on FileEntry.
"""


class SinglegenError(Exception):
    """Base class for errors that abort a run."""
    pass


class ConfigurationError(SinglegenError):
    """Raised when there's an error loading or parsing configuration."""
    pass


class OutputFileError(SinglegenError):
    """Raised when the output file cannot be created."""
    pass


class TraversalError(SinglegenError):
    """Raised when the directory tree cannot be enumerated."""
    pass


class IgnoreFileError(SinglegenError):
    """Raised when a present ignore file cannot be read or parsed."""

    def __init__(self, path, reason):
        super().__init__(f"error loading {path}: {reason}")
        self.path = path
        self.reason = reason


class OutputWriteError(SinglegenError):
    """Raised when the output file cannot be written or closed."""
    pass
