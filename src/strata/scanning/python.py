"""Python import scanner (regex based)."""

import os
import re
from typing import Optional

from ..logging_config import get_logger
from ..models import DependencyEdge, FileInfo, ScanResult
from ..paths import to_forward_slashes
from .base import CapabilityCollector, ProjectScanner, ScanContext, build_node_overlay

logger = get_logger(__name__)

SCANNER_ID = "python-import"
CONFIDENCE = 0.9

_IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+)(?:\s+as\s+\w+)?", re.MULTILINE)
_FROM_IMPORT_RE = re.compile(r"^\s*from\s+([\w.]+)\s+import\s+", re.MULTILINE)


def extract_imports(contents: str) -> list[str]:
    """Module names from ``import x`` lines, then from ``from x import y`` lines."""
    modules = _IMPORT_RE.findall(contents)
    modules.extend(_FROM_IMPORT_RE.findall(contents))
    return modules


def _existing_relative(project_root: str, candidate: str) -> Optional[str]:
    if not os.path.isfile(candidate):
        return None
    relative = os.path.relpath(candidate, project_root)
    if os.path.isabs(relative) or relative.split(os.sep)[0] == "..":
        return None
    return to_forward_slashes(relative)


def _module_candidates(module_path: str) -> list[str]:
    return [f"{module_path}.py", os.path.join(module_path, "__init__.py")]


def _resolve_relative(module: str, from_file: str, project_root: str) -> Optional[str]:
    """``from .x import y`` style: one dot is the importing package."""
    level = len(module) - len(module.lstrip("."))
    rest = module[level:]
    base = os.path.dirname(os.path.join(project_root, from_file))
    for _ in range(level - 1):
        base = os.path.dirname(base)

    if not rest:
        return _existing_relative(project_root, os.path.join(base, "__init__.py"))
    module_path = os.path.join(base, *rest.split("."))
    for candidate in _module_candidates(module_path):
        resolved = _existing_relative(project_root, candidate)
        if resolved:
            return resolved
    return None


def resolve_python_import(module: str, from_file: str, project_root: str) -> Optional[str]:
    """Project-relative file for a module name; first existing candidate wins.

    Lookup order: ``a/b.py`` and ``a/b/__init__.py`` under the project
    root, the same two under the importing file's directory, then a
    bare ``<name>.py`` at the root for single-segment names.
    """
    if module.startswith("."):
        return _resolve_relative(module, from_file, project_root)

    parts = module.split(".")
    candidates = _module_candidates(os.path.join(*parts))

    for candidate in candidates:
        resolved = _existing_relative(project_root, os.path.join(project_root, candidate))
        if resolved:
            return resolved

    from_dir = os.path.dirname(os.path.join(project_root, from_file))
    for candidate in candidates:
        resolved = _existing_relative(project_root, os.path.join(from_dir, candidate))
        if resolved:
            return resolved

    if len(parts) == 1:
        return _existing_relative(project_root, os.path.join(project_root, f"{module}.py"))

    return None


class PythonScanner(ProjectScanner):
    id = SCANNER_ID

    def supports(self, file: FileInfo) -> bool:
        return file.language == "python"

    def _scan(self, file: FileInfo, context: ScanContext) -> ScanResult:
        root = str(context.project_root)
        edges: list[DependencyEdge] = []
        external: list[str] = []

        for module in extract_imports(file.contents):
            target = resolve_python_import(module, file.path, root)
            if target is not None:
                edges.append(
                    DependencyEdge(from_=file.path, to=target, confidence=CONFIDENCE, source=SCANNER_ID)
                )
            elif not module.startswith(".") and module not in external:
                external.append(module)

        collector = CapabilityCollector(context.capability_patterns)
        if collector:
            for module in external:
                collector.check_import(module, ".")
            collector.check_lines(file.contents)

        return ScanResult(
            nodes=build_node_overlay(file, external, collector.capabilities),
            edges=edges,
        )
