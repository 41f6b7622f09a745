"""Analysis-related exceptions: file access, parsing, scanner failures."""

from pathlib import Path
from typing import Union

from .base import StrataError


class AnalysisError(StrataError):
    """Base class for analysis-related errors."""
    pass


class FileAccessError(AnalysisError):
    """Raised when a file cannot be accessed or read."""

    def __init__(self, filepath: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ParsingError(AnalysisError):
    """Raised when file content cannot be parsed."""

    def __init__(self, filepath: Union[str, Path], language: str, reason: str):
        super().__init__(
            f"Failed to parse {language} file: {filepath}",
            details={"filepath": str(filepath), "language": language, "reason": reason},
        )
        self.filepath = filepath
        self.language = language
        self.reason = reason


class ScannerError(AnalysisError):
    """Raised when a dependency scanner fails on a single file."""

    def __init__(self, scanner_id: str, filepath: Union[str, Path], reason: str):
        super().__init__(
            f"Scanner {scanner_id} failed for {filepath}",
            details={"scanner": scanner_id, "filepath": str(filepath), "reason": reason},
        )
        self.scanner_id = scanner_id
        self.filepath = filepath
        self.reason = reason
