"""Persistence exceptions: baseline and report storage."""

from pathlib import Path
from typing import Union

from .base import StrataError


class PersistenceError(StrataError):
    """Base class for errors writing engine state to disk."""

    pass


class BaselineError(PersistenceError):
    """Raised when the baseline document cannot be written."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot write baseline: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason
