"""Java import scanner (regex based) and the project class index."""

import os
import re
from pathlib import Path
from typing import Optional, Union

from ..logging_config import get_logger
from ..models import DependencyEdge, FileInfo, ScanResult
from ..paths import to_forward_slashes
from .base import CapabilityCollector, ProjectScanner, ScanContext, build_node_overlay

logger = get_logger(__name__)

SCANNER_ID = "java-import"
CONFIDENCE = 0.85

_IMPORT_RE = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+)\s*;", re.MULTILINE)

_SOURCE_DIRS = ("", "src/main/java", "src")
_SOURCE_ROOTS = ("src/main/java/", "src/test/java/", "src/")
_SKIP_DIRS = frozenset({"node_modules", ".git", "target", "build"})


def extract_imports(contents: str) -> list[str]:
    """Class names from ``import [static] a.b.C;`` lines.

    Wildcard imports (``a.b.*``) do not match.
    """
    return _IMPORT_RE.findall(contents)


def fqcn_for_path(relative_path: str) -> Optional[str]:
    """``src/main/java/com/acme/Foo.java`` -> ``com.acme.Foo``.

    The first known source root in the path is stripped; otherwise the
    whole path is used.
    """
    normalized = to_forward_slashes(relative_path)
    if not normalized.endswith(".java"):
        return None
    stem = normalized[: -len(".java")]

    for source_root in _SOURCE_ROOTS:
        if stem.startswith(source_root):
            return stem[len(source_root):].replace("/", ".")
        index = stem.find("/" + source_root)
        if index != -1:
            return stem[index + 1 + len(source_root):].replace("/", ".")

    return stem.replace("/", ".")


class JavaFileIndex:
    """Maps fully qualified class names to project-relative paths.

    Built once per build, before scanning starts; read-only afterwards.
    """

    def __init__(self, project_root: Union[str, Path], entries: Optional[dict[str, str]] = None):
        self.project_root = Path(project_root)
        self._entries: dict[str, str] = dict(entries or {})

    @classmethod
    def build(cls, project_root: Union[str, Path]) -> "JavaFileIndex":
        index = cls(project_root)
        root = str(index.project_root)
        for source_dir in _SOURCE_DIRS:
            base = os.path.join(root, source_dir) if source_dir else root
            if os.path.isdir(base):
                index._index_dir(base, root)
        logger.debug(f"Indexed {len(index)} Java classes under {root}")
        return index

    def _index_dir(self, base: str, root: str) -> None:
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for filename in sorted(filenames):
                if not filename.endswith(".java"):
                    continue
                relative = to_forward_slashes(os.path.relpath(os.path.join(dirpath, filename), root))
                fqcn = fqcn_for_path(relative)
                if fqcn:
                    self._entries[fqcn] = relative

    def resolve(self, class_name: str) -> Optional[str]:
        """Exact lookup; wildcard imports are never resolved."""
        if class_name.endswith(".*"):
            return None
        return self._entries.get(class_name)

    def __contains__(self, class_name: str) -> bool:
        return class_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class JavaScanner(ProjectScanner):
    id = SCANNER_ID

    def supports(self, file: FileInfo) -> bool:
        return file.language == "java"

    def _scan(self, file: FileInfo, context: ScanContext) -> ScanResult:
        index = context.java_index
        if index is None:
            index = JavaFileIndex.build(context.project_root)

        edges: list[DependencyEdge] = []
        external: list[str] = []
        for class_name in extract_imports(file.contents):
            target = index.resolve(class_name)
            if target is not None:
                edges.append(
                    DependencyEdge(from_=file.path, to=target, confidence=CONFIDENCE, source=SCANNER_ID)
                )
            elif class_name not in external:
                external.append(class_name)

        collector = CapabilityCollector(context.capability_patterns)
        if collector:
            for class_name in external:
                collector.check_import(class_name, ".")
            collector.check_lines(file.contents)

        return ScanResult(
            nodes=build_node_overlay(file, external, collector.capabilities),
            edges=edges,
        )
