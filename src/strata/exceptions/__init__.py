"""Exception hierarchy for strata."""

from .analysis import (
    AnalysisError,
    FileAccessError,
    ParsingError,
    ScannerError,
)
from .base import StrataError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)
from .persistence import BaselineError, PersistenceError

__all__ = [
    "StrataError",
    "AnalysisError",
    "FileAccessError",
    "ParsingError",
    "ScannerError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "PersistenceError",
    "BaselineError",
]
