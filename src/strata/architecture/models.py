"""Data models for layer suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from ..config import ArchitectureConfig

LayerType = Literal["domain", "application", "infrastructure", "presentation", "shared", "unknown"]
EvidenceType = Literal["topology", "semantics", "dependencies"]


@dataclass
class DirectoryStats:
    """Dependency aggregate for one directory (direct parent of its files)."""

    path: str
    files: list[str] = field(default_factory=list)
    internal_dependencies: set[str] = field(default_factory=set)
    outgoing_dependencies: set[str] = field(default_factory=set)
    incoming_dependencies: set[str] = field(default_factory=set)
    # Insertion-ordered so reasons cite packages deterministically
    external_imports: dict[str, None] = field(default_factory=dict)

    @property
    def fan_in(self) -> int:
        return len(self.incoming_dependencies)

    @property
    def fan_out(self) -> int:
        return len(self.outgoing_dependencies)

    @property
    def instability(self) -> float:
        """Ce / (Ca + Ce); 0 when the directory has no cross-directory edges."""
        total = self.fan_in + self.fan_out
        return self.fan_out / total if total else 0.0


@dataclass(frozen=True)
class Evidence:
    type: EvidenceType
    score: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "score": self.score, "reason": self.reason}


@dataclass
class SuggestionStats:
    files: int = 0
    incoming_edges: int = 0
    outgoing_edges: int = 0
    instability: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": self.files,
            "incomingEdges": self.incoming_edges,
            "outgoingEdges": self.outgoing_edges,
            "instability": self.instability,
        }


@dataclass
class DirectorySuggestion:
    """A candidate layer for one directory, with the evidence behind it."""

    path: str
    suggested_layer: LayerType
    confidence: float
    evidence: list[Evidence] = field(default_factory=list)
    stats: SuggestionStats = field(default_factory=SuggestionStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "suggestedLayer": self.suggested_layer,
            "confidence": self.confidence,
            "evidence": [e.to_dict() for e in self.evidence],
            "stats": self.stats.to_dict(),
        }


@dataclass
class SuggestionResult:
    suggestions: list[DirectorySuggestion] = field(default_factory=list)
    proposed_config: Optional[ArchitectureConfig] = None

    def to_dict(self) -> dict[str, Any]:
        proposed: dict[str, Any] = {}
        if self.proposed_config is not None:
            proposed = {
                "layers": [
                    {"name": layer.name, "description": layer.description}
                    for layer in self.proposed_config.layers
                ],
                "layerMappings": [
                    {"layer": m.layer, "include": list(m.include)}
                    for m in self.proposed_config.layer_mappings
                ],
            }
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "proposedConfig": proposed,
        }
