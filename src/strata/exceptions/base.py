"""Root of the strata exception hierarchy."""

from typing import Optional


class StrataError(Exception):
    """Base exception for all strata errors.

    Args:
        message: Human-readable summary
        details: Extra context (path, rule, reason) rendered after the
            message as ``key=value`` pairs
    """

    def __init__(self, message: str, details: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        rendered = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({rendered})"
