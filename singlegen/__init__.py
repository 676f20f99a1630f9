"""
singlegen

Combines every file under a directory tree into a single annotated file,
honouring .gitignore and .singlegenignore patterns.
"""

__version__ = "1.0.0"
__description__ = (
    "Concatenate a directory tree into one file with gitignore-aware filtering"
)

# Public API exports
from .application.combine_files import CombineFilesUseCase
from .domain.entities import (
    CombineResult,
    CombinerSettings,
    FileEntry,
)
from .domain.errors import (
    ConfigurationError,
    IgnoreFileError,
    OutputFileError,
    SinglegenError,
    TraversalError,
)
from .infrastructure.config_loader import YamlConfigLoader, load_settings
from .infrastructure.file_discovery import FileContentReader, TreeWalker
from .infrastructure.ignore_rules import IgnoreMatcher

__all__ = [
    "CombineFilesUseCase",
    "CombineResult",
    "CombinerSettings",
    "FileEntry",
    "IgnoreMatcher",
    "TreeWalker",
    "FileContentReader",
    "load_settings",
    "YamlConfigLoader",
    "SinglegenError",
    "ConfigurationError",
    "IgnoreFileError",
    "OutputFileError",
    "TraversalError",
]
