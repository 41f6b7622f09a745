"""Per-language dependency scanners.

Scanners run in registry order; a later scanner's node fields overwrite
an earlier one's when both report on the same file.
"""

from .base import CapabilityCollector, ProjectScanner, ScanContext
from .java import JavaFileIndex, JavaScanner
from .languages import EXTENSION_LANGUAGES, infer_language
from .python import PythonScanner
from .tsjs import TsJsScanner


def default_scanners() -> list[ProjectScanner]:
    """The ordered scanner registry."""
    return [TsJsScanner(), PythonScanner(), JavaScanner()]


__all__ = [
    "CapabilityCollector",
    "EXTENSION_LANGUAGES",
    "JavaFileIndex",
    "JavaScanner",
    "ProjectScanner",
    "PythonScanner",
    "ScanContext",
    "TsJsScanner",
    "default_scanners",
    "infer_language",
]
