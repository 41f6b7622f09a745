"""Data models for the project dependency graph.

The graph is the shared currency of the engine:
  - scanners emit ``DependencyEdge`` lists and ``ProjectFileNode`` overlays
  - the graph builder merges them into a ``ProjectGraph``
  - the suggester and the external rule evaluator read the graph

Every model serialises to the camelCase JSON shape used by the cache and
by graph reports via ``to_dict()`` / ``from_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal, Optional

LanguageId = Literal["typescript", "javascript", "python", "java", "other"]
DependencyKind = Literal["import", "include", "other"]


@dataclass(frozen=True)
class Capability:
    """A detected use of a named capability (network, filesystem, ...)."""

    type: str
    action: str
    confidence: float
    line: Optional[int] = None

    @property
    def key(self) -> tuple[str, str]:
        """Deduplication key within one file scan."""
        return (self.type, self.action)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "action": self.action,
            "confidence": self.confidence,
        }
        if self.line is not None:
            data["line"] = self.line
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Capability":
        return cls(
            type=str(data["type"]),
            action=str(data["action"]),
            confidence=float(data["confidence"]),
            line=data.get("line"),
        )


@dataclass(frozen=True)
class ProjectFileNode:
    """One scanned source file.

    ``id`` and ``path`` are the project-relative, forward-slash path.
    ``layer`` comes from static configuration, never from inference.
    """

    id: str
    path: str
    language: Optional[str] = None
    layer: Optional[str] = None
    imports: Optional[list[str]] = None
    capabilities: Optional[list[Capability]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "path": self.path}
        if self.language is not None:
            data["language"] = self.language
        if self.layer is not None:
            data["layer"] = self.layer
        if self.imports is not None:
            data["imports"] = list(self.imports)
        if self.capabilities is not None:
            data["capabilities"] = [c.to_dict() for c in self.capabilities]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectFileNode":
        capabilities = data.get("capabilities")
        imports = data.get("imports")
        return cls(
            id=str(data["id"]),
            path=str(data.get("path", data["id"])),
            language=data.get("language"),
            layer=data.get("layer"),
            imports=list(imports) if imports is not None else None,
            capabilities=(
                [Capability.from_dict(c) for c in capabilities]
                if capabilities is not None
                else None
            ),
        )


@dataclass(frozen=True)
class DependencyEdge:
    """Directed dependency between two files.

    ``to`` may name a file outside the scanned set; consumers must not
    assume it resolves in ``ProjectGraph.files``.
    """

    from_: str
    to: str
    confidence: float
    source: str
    kind: DependencyKind = "import"

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_,
            "to": self.to,
            "kind": self.kind,
            "confidence": self.confidence,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DependencyEdge":
        return cls(
            from_=str(data["from"]),
            to=str(data["to"]),
            kind=data.get("kind", "import"),
            confidence=float(data["confidence"]),
            source=str(data["source"]),
        )


@dataclass
class ProjectGraph:
    """Complete project dependency graph: file nodes plus ordered edges."""

    files: dict[str, ProjectFileNode] = field(default_factory=dict)
    edges: list[DependencyEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": {file_id: node.to_dict() for file_id, node in self.files.items()},
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectGraph":
        return cls(
            files={
                file_id: ProjectFileNode.from_dict(node)
                for file_id, node in data.get("files", {}).items()
            },
            edges=[DependencyEdge.from_dict(edge) for edge in data.get("edges", [])],
        )


@dataclass(frozen=True)
class FileInfo:
    """A file handed to a scanner."""

    path: str
    contents: str
    language: Optional[str] = None


@dataclass
class ScanResult:
    """Output of one scanner (or of a whole file, when cached)."""

    nodes: list[ProjectFileNode] = field(default_factory=list)
    edges: list[DependencyEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanResult":
        return cls(
            nodes=[ProjectFileNode.from_dict(n) for n in data.get("nodes") or []],
            edges=[DependencyEdge.from_dict(e) for e in data.get("edges") or []],
        )


def merge_node(base: ProjectFileNode, overlay: ProjectFileNode) -> ProjectFileNode:
    """Shallow-merge a scanner's node overlay onto the base node.

    Field rules:
      - ``id`` and ``path`` always come from ``base``
      - every other field set (not ``None``) on ``overlay`` replaces the
        value on ``base``; later overlays win over earlier ones
      - ``None`` on ``overlay`` never clears a value from ``base``
    """
    if overlay.id != base.id:
        return base

    changes: dict[str, Any] = {}
    for f in fields(ProjectFileNode):
        if f.name in ("id", "path"):
            continue
        value = getattr(overlay, f.name)
        if value is not None:
            changes[f.name] = value

    return replace(base, **changes) if changes else base
