"""Scanner contract and helpers shared by the language scanners."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from ..config import CapabilityPattern, PathAliasConfig
from ..exceptions import ScannerError
from ..logging_config import get_logger
from ..models import Capability, FileInfo, ProjectFileNode, ScanResult

if TYPE_CHECKING:
    from .java import JavaFileIndex

logger = get_logger(__name__)

IMPORT_CAPABILITY_CONFIDENCE = 0.95
LINE_CALL_CAPABILITY_CONFIDENCE = 0.85


@dataclass
class ScanContext:
    """Project-scoped inputs shared by every scanner during one build.

    Read-only once scanning starts.
    """

    project_root: Path
    capability_patterns: list[CapabilityPattern] = field(default_factory=list)
    path_aliases: Optional[PathAliasConfig] = None
    java_index: Optional["JavaFileIndex"] = None


class ProjectScanner(ABC):
    """Abstract base for per-language dependency scanners.

    ``scan`` must not raise: failures are logged and produce an empty
    result.
    """

    id: str = ""

    @abstractmethod
    def supports(self, file: FileInfo) -> bool:
        """Whether this scanner handles the file."""

    def scan(self, file: FileInfo, context: ScanContext) -> ScanResult:
        try:
            return self._scan(file, context)
        except Exception as e:
            logger.warning(str(ScannerError(self.id, file.path, str(e))))
            return ScanResult()

    @abstractmethod
    def _scan(self, file: FileInfo, context: ScanContext) -> ScanResult:
        """Language-specific scan; may raise."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"


class CapabilityCollector:
    """Accumulates capabilities for one file, first detection per key wins."""

    def __init__(self, patterns: Iterable[CapabilityPattern]):
        self.patterns = list(patterns)
        self._found: dict[tuple[str, str], Capability] = {}

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def add(self, capability: Capability) -> None:
        if capability.key not in self._found:
            self._found[capability.key] = capability

    def check_import(self, module: str, separator: str) -> None:
        """Match an imported module exactly or as a submodule of a pattern import."""
        for pattern in self.patterns:
            for pattern_import in pattern.imports:
                if module == pattern_import or module.startswith(pattern_import + separator):
                    self.add(
                        Capability(
                            type=pattern.type,
                            action=f"import:{pattern_import}",
                            confidence=IMPORT_CAPABILITY_CONFIDENCE,
                        )
                    )

    def check_lines(self, contents: str) -> None:
        """Substring search of call patterns, one source line at a time."""
        for lineno, line in enumerate(contents.split("\n"), start=1):
            stripped = line.strip()
            if not stripped:
                continue
            for pattern in self.patterns:
                for call in pattern.calls:
                    if call in stripped:
                        self.add(
                            Capability(
                                type=pattern.type,
                                action=call,
                                confidence=LINE_CALL_CAPABILITY_CONFIDENCE,
                                line=lineno,
                            )
                        )

    @property
    def capabilities(self) -> list[Capability]:
        return list(self._found.values())


def build_node_overlay(
    file: FileInfo, imports: list[str], capabilities: list[Capability]
) -> list[ProjectFileNode]:
    """Node overlay carrying external imports and capabilities, if any."""
    if not imports and not capabilities:
        return []
    return [
        ProjectFileNode(
            id=file.path,
            path=file.path,
            language=file.language,
            imports=list(imports) if imports else None,
            capabilities=list(capabilities) if capabilities else None,
        )
    ]
