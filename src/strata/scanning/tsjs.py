"""TypeScript/JavaScript import scanner (tree-sitter based).

One pre-order traversal of the syntax tree collects every module
specifier (static imports, ``export ... from`` re-exports, dynamic
``import()`` and ``require()``) together with the call and member
expressions used for capability detection.
"""

import os
from dataclasses import dataclass
from typing import Optional

import tree_sitter

from ..config import PathAliasConfig
from ..logging_config import get_logger
from ..models import Capability, DependencyEdge, FileInfo, ScanResult
from ..paths import to_forward_slashes
from .base import CapabilityCollector, ProjectScanner, ScanContext, build_node_overlay
from .languages import TSJS_INDEX_FILES, TSJS_RESOLVE_EXTENSIONS
from .treesitter_parser import TreeSitterParser, grammar_for_path, node_text, walk

logger = get_logger(__name__)

SCANNER_ID = "ts-js-import"

STATIC_IMPORT_CONFIDENCE = 0.99
DYNAMIC_IMPORT_CONFIDENCE = 0.98
REQUIRE_CONFIDENCE = 0.98
CALL_CAPABILITY_CONFIDENCE = 0.9
MEMBER_CAPABILITY_CONFIDENCE = 0.85


@dataclass(frozen=True)
class ImportSite:
    """A string module specifier found in the source."""

    specifier: str
    kind: str  # "import" | "export" | "dynamic" | "require"
    line: int

    @property
    def confidence(self) -> float:
        if self.kind == "dynamic":
            return DYNAMIC_IMPORT_CONFIDENCE
        if self.kind == "require":
            return REQUIRE_CONFIDENCE
        return STATIC_IMPORT_CONFIDENCE


@dataclass
class _Extraction:
    imports: list[ImportSite]
    # ("call" | "member", text, line) in source order
    expressions: list[tuple[str, str, int]]


def _string_value(node: Optional[tree_sitter.Node]) -> Optional[str]:
    if node is None or node.type != "string":
        return None
    text = node_text(node)
    return text[1:-1] if len(text) >= 2 else None


def _first_argument(call: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    return arguments.named_children[0]


def _expression_text(node: Optional[tree_sitter.Node]) -> Optional[str]:
    """Dotted name of an identifier/member chain, e.g. ``fs.promises.readFile``."""
    if node is None:
        return None
    if node.type in ("identifier", "property_identifier"):
        return node_text(node)
    if node.type == "member_expression":
        prop = node_text(node.child_by_field_name("property"))
        obj = _expression_text(node.child_by_field_name("object"))
        return f"{obj}.{prop}" if obj else prop
    return None


def extract(tree: tree_sitter.Tree) -> _Extraction:
    imports: list[ImportSite] = []
    expressions: list[tuple[str, str, int]] = []

    for node in walk(tree.root_node):
        line = node.start_point[0] + 1
        if node.type == "import_statement":
            specifier = _string_value(node.child_by_field_name("source"))
            if specifier is not None:
                imports.append(ImportSite(specifier, "import", line))
        elif node.type == "export_statement":
            specifier = _string_value(node.child_by_field_name("source"))
            if specifier is not None:
                imports.append(ImportSite(specifier, "export", line))
        elif node.type == "call_expression":
            function = node.child_by_field_name("function")
            if function is not None and function.type == "import":
                specifier = _string_value(_first_argument(node))
                if specifier is not None:
                    imports.append(ImportSite(specifier, "dynamic", line))
            elif function is not None and function.type == "identifier" and node_text(function) == "require":
                specifier = _string_value(_first_argument(node))
                if specifier is not None:
                    imports.append(ImportSite(specifier, "require", line))
            call_text = _expression_text(function)
            if call_text:
                expressions.append(("call", call_text, line))
        elif node.type == "member_expression":
            member_text = _expression_text(node)
            if member_text:
                expressions.append(("member", member_text, line))

    return _Extraction(imports=imports, expressions=expressions)


# ── Resolution ─────────────────────────────────────────────────────


def try_resolve_file(base_path: str) -> Optional[str]:
    """Node/TypeScript lookup: exact file, known extensions, then directory index."""
    if os.path.isfile(base_path):
        return base_path
    for ext in TSJS_RESOLVE_EXTENSIONS:
        if os.path.isfile(base_path + ext):
            return base_path + ext
    if os.path.isdir(base_path):
        for index_file in TSJS_INDEX_FILES:
            index_path = os.path.join(base_path, index_file)
            if os.path.isfile(index_path):
                return index_path
    return None


def _project_relative(resolved: str, project_root: str) -> Optional[str]:
    relative = os.path.relpath(resolved, project_root)
    if os.path.isabs(relative) or relative.split(os.sep)[0] == "..":
        return None
    return to_forward_slashes(relative)


def resolve_alias(
    specifier: str, project_root: str, aliases: PathAliasConfig
) -> Optional[str]:
    """Resolve through ``paths`` aliases.

    Wildcard patterns (``@app/*``) match by prefix and substitute the
    remainder into each target; other patterns must match exactly.
    """
    base = os.path.join(project_root, aliases.base_url) if aliases.base_url else project_root

    for pattern, targets in aliases.paths.items():
        is_wildcard = pattern.endswith("*")
        if is_wildcard:
            prefix = pattern[:-1]
            if not specifier.startswith(prefix):
                continue
            suffix = specifier[len(prefix):]
        elif specifier != pattern:
            continue
        else:
            suffix = ""

        for target in targets:
            mapped = target.replace("*", suffix, 1) if is_wildcard else target
            resolved = try_resolve_file(os.path.normpath(os.path.join(base, mapped)))
            if resolved:
                relative = _project_relative(resolved, project_root)
                if relative:
                    return relative
    return None


def resolve_import(
    specifier: str,
    from_file: str,
    project_root: str,
    aliases: Optional[PathAliasConfig] = None,
) -> Optional[str]:
    """Project-relative target of a specifier, or None for external/unresolved."""
    if aliases is not None and aliases.paths:
        resolved_alias = resolve_alias(specifier, project_root, aliases)
        if resolved_alias:
            return resolved_alias

    if not is_local_specifier(specifier):
        return None

    if specifier.startswith("."):
        from_dir = os.path.dirname(os.path.join(project_root, from_file))
        candidate = os.path.normpath(os.path.join(from_dir, specifier))
    else:
        candidate = os.path.normpath(os.path.join(project_root, specifier.lstrip("/")))

    resolved = try_resolve_file(candidate)
    if resolved is None:
        return None
    return _project_relative(resolved, project_root)


def is_local_specifier(specifier: str) -> bool:
    return specifier.startswith(".") or specifier.startswith("/")


def extract_package_name(specifier: str) -> Optional[str]:
    """``react/jsx-runtime`` -> ``react``; ``@babel/core/lib`` -> ``@babel/core``."""
    if not specifier:
        return None
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return f"{parts[0]}/{parts[1]}"
    return parts[0] or None


# ── Scanner ────────────────────────────────────────────────────────


class TsJsScanner(ProjectScanner):
    id = SCANNER_ID

    def __init__(self, parser: Optional[TreeSitterParser] = None):
        self.parser = parser or TreeSitterParser()

    def supports(self, file: FileInfo) -> bool:
        return file.language in ("typescript", "javascript")

    def _scan(self, file: FileInfo, context: ScanContext) -> ScanResult:
        tree = self.parser.parse(file.contents.encode("utf-8"), grammar_for_path(file.path), file.path)
        found = extract(tree)
        root = str(context.project_root)

        edges: list[DependencyEdge] = []
        external: list[str] = []
        for site in found.imports:
            target = resolve_import(site.specifier, file.path, root, context.path_aliases)
            if target is not None:
                edges.append(
                    DependencyEdge(
                        from_=file.path,
                        to=target,
                        confidence=site.confidence,
                        source=SCANNER_ID,
                    )
                )
            elif not is_local_specifier(site.specifier):
                package = extract_package_name(site.specifier)
                if package and package not in external:
                    external.append(package)

        capabilities: list[Capability] = []
        collector = CapabilityCollector(context.capability_patterns)
        if collector:
            seen_modules: list[str] = []
            for site in found.imports:
                if site.kind in ("import", "require") and site.specifier not in seen_modules:
                    seen_modules.append(site.specifier)
            for module in seen_modules:
                collector.check_import(module, "/")
            self._check_expressions(collector, found)
            capabilities = collector.capabilities

        return ScanResult(nodes=build_node_overlay(file, external, capabilities), edges=edges)

    @staticmethod
    def _check_expressions(collector: CapabilityCollector, found: _Extraction) -> None:
        for kind, text, line in found.expressions:
            for pattern in collector.patterns:
                for call in pattern.calls:
                    if kind == "call" and call in text:
                        collector.add(Capability(pattern.type, call, CALL_CAPABILITY_CONFIDENCE, line))
                    elif kind == "member" and (text == call or text.startswith(call + ".")):
                        collector.add(Capability(pattern.type, call, MEMBER_CAPABILITY_CONFIDENCE, line))
