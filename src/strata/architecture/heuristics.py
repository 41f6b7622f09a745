"""Heuristic layer inference from graph topology and naming.

Each directory collects votes per layer:

- **semantics**: the directory name contains a layer keyword
- **dependencies**: its files import libraries typical of a layer
- **fallback**: no external imports and highly stable votes ``domain``

Topology (instability) is reported as evidence but does not vote.
Repeated votes for the same layer raise its confidence; the highest
confidence wins per directory, earlier votes winning ties.
"""

import posixpath
from typing import Optional

from ..config import ArchitectureConfig, LayerConfig, LayerMapping
from ..logging_config import get_logger
from ..models import ProjectGraph
from .models import (
    DirectoryStats,
    DirectorySuggestion,
    Evidence,
    LayerType,
    SuggestionResult,
    SuggestionStats,
)

logger = get_logger(__name__)

# Substrings of the directory basename, checked in this layer order
SEMANTIC_PATTERNS: dict[LayerType, tuple[str, ...]] = {
    "domain": (
        "domain", "core", "model", "entity", "entities", "value-object",
        "business", "dto", "enums", "interfaces",
    ),
    "application": (
        "app", "application", "use-case", "service", "handler", "command", "query", "impl",
    ),
    "infrastructure": (
        "infra", "infrastructure", "data", "repo", "repository", "db", "database",
        "external", "adapter", "client", "config", "dao", "migrations",
    ),
    "presentation": (
        "present", "presentation", "ui", "view", "component", "page", "screen",
        "controller", "api", "route", "web", "cli", "serializers", "urls", "resources",
    ),
    "shared": (
        "common", "shared", "util", "lib", "helper", "constant", "type",
        "interface", "constants", "exceptions",
    ),
}

# Prefixes of external import names
DEPENDENCY_PATTERNS: dict[LayerType, tuple[str, ...]] = {
    "domain": ("zod", "uuid", "decimal.js", "javax.validation", "pydantic", "dataclasses"),
    "application": ("inversify", "tsyringe", "org.springframework.stereotype.Service", "celery"),
    "infrastructure": (
        "mongoose", "typeorm", "pg", "mysql", "redis", "aws-sdk", "axios", "node-fetch",
        "fs-extra", "jsonwebtoken", "bcrypt", "org.springframework.data", "javax.persistence",
        "sqlalchemy", "django.db", "pymongo", "boto3", "requests",
    ),
    "presentation": (
        "react", "vue", "angular", "express", "koa", "fastify", "nestjs", "graphql", "apollo",
        "commander", "inquirer", "chalk", "org.springframework.web", "javax.servlet", "flask",
        "django.urls", "fastapi",
    ),
    "shared": (
        "lodash", "ramda", "moment", "date-fns", "rxjs", "org.apache.commons",
        "com.google.common", "pandas", "numpy",
    ),
}

STABLE_THRESHOLD = 0.3
UNSTABLE_THRESHOLD = 0.7
HIGHLY_STABLE_THRESHOLD = 0.1

TOPOLOGY_HIGH_SCORE = 0.6
TOPOLOGY_LOW_SCORE = 0.4
SEMANTICS_SCORE = 0.8
DEPENDENCIES_SCORE = 0.7

MAX_CONFIDENCE = 0.99
CONFIDENCE_BOOST = 0.1

ROOT_DIR = "."


def parent_dir(file_id: str) -> str:
    return posixpath.dirname(file_id) or ROOT_DIR


def aggregate_directory_stats(graph: ProjectGraph) -> dict[str, DirectoryStats]:
    """Group files by parent directory and fold edges into directory edges."""
    stats: dict[str, DirectoryStats] = {}

    def entry(directory: str) -> DirectoryStats:
        if directory not in stats:
            stats[directory] = DirectoryStats(path=directory)
        return stats[directory]

    for node in graph.files.values():
        current = entry(parent_dir(node.id))
        current.files.append(node.id)
        for imported in node.imports or ():
            current.external_imports.setdefault(imported, None)

    for edge in graph.edges:
        from_dir = parent_dir(edge.from_)
        to_dir = parent_dir(edge.to)
        if from_dir == to_dir:
            entry(from_dir).internal_dependencies.add(edge.to)
        else:
            entry(from_dir).outgoing_dependencies.add(to_dir)
            entry(to_dir).incoming_dependencies.add(from_dir)

    return stats


class HeuristicStrategy:
    """Suggests a layer per directory of a built graph. Deterministic."""

    def analyze(self, graph: ProjectGraph) -> SuggestionResult:
        directory_stats = aggregate_directory_stats(graph)
        votes: list[DirectorySuggestion] = []
        topology: dict[str, Evidence] = {}

        for stats in directory_stats.values():
            if not stats.files:
                continue

            instability = stats.instability
            summary = SuggestionStats(
                files=len(stats.files),
                incoming_edges=stats.fan_in,
                outgoing_edges=stats.fan_out,
                instability=instability,
            )

            topo = self._topology_evidence(stats)
            if topo is not None:
                topology[stats.path] = topo

            dir_name = posixpath.basename(stats.path)
            for layer, keywords in SEMANTIC_PATTERNS.items():
                if any(keyword in dir_name for keyword in keywords):
                    self._vote(
                        votes, stats.path, layer, SEMANTICS_SCORE, summary,
                        Evidence("semantics", SEMANTICS_SCORE, f"Directory name matches pattern for {layer}"),
                    )

            external = list(stats.external_imports)
            for layer, packages in DEPENDENCY_PATTERNS.items():
                matches = [imp for imp in external if any(imp.startswith(pkg) for pkg in packages)]
                if matches:
                    self._vote(
                        votes, stats.path, layer, DEPENDENCIES_SCORE, summary,
                        Evidence(
                            "dependencies",
                            DEPENDENCIES_SCORE,
                            f"Imports typical {layer} libraries: {', '.join(matches[:3])}",
                        ),
                    )

            if not external and stats.fan_in > 0 and instability < HIGHLY_STABLE_THRESHOLD:
                self._vote(
                    votes, stats.path, "domain", TOPOLOGY_LOW_SCORE, summary,
                    Evidence("topology", TOPOLOGY_LOW_SCORE, "Zero external dependencies and highly stable"),
                )

        suggestions = self._resolve(votes)
        for suggestion in suggestions:
            topo = topology.get(suggestion.path)
            if topo is not None:
                suggestion.evidence.insert(0, topo)

        logger.debug(f"Suggested layers for {len(suggestions)} of {len(directory_stats)} directories")
        return SuggestionResult(suggestions=suggestions, proposed_config=propose_config(suggestions))

    @staticmethod
    def _topology_evidence(stats: DirectoryStats) -> Optional[Evidence]:
        instability = stats.instability
        if instability < STABLE_THRESHOLD and stats.fan_in > 0:
            return Evidence(
                "topology",
                TOPOLOGY_HIGH_SCORE,
                f"Stable component (Instability: {instability:.2f}). High reuse.",
            )
        if instability > UNSTABLE_THRESHOLD:
            return Evidence(
                "topology",
                TOPOLOGY_HIGH_SCORE,
                f"Unstable component (Instability: {instability:.2f}). Depends on many others.",
            )
        return None

    @staticmethod
    def _vote(
        votes: list[DirectorySuggestion],
        path: str,
        layer: LayerType,
        confidence: float,
        stats: SuggestionStats,
        evidence: Evidence,
    ) -> None:
        for existing in votes:
            if existing.path == path and existing.suggested_layer == layer:
                existing.confidence = min(
                    MAX_CONFIDENCE, max(existing.confidence, confidence) + CONFIDENCE_BOOST
                )
                existing.evidence.append(evidence)
                return
        votes.append(
            DirectorySuggestion(
                path=path,
                suggested_layer=layer,
                confidence=confidence,
                evidence=[evidence],
                stats=stats,
            )
        )

    @staticmethod
    def _resolve(votes: list[DirectorySuggestion]) -> list[DirectorySuggestion]:
        by_dir: dict[str, list[DirectorySuggestion]] = {}
        for vote in votes:
            by_dir.setdefault(vote.path, []).append(vote)

        winners = []
        for candidates in by_dir.values():
            # sorted() is stable: the earliest vote wins a tie
            winners.append(sorted(candidates, key=lambda s: s.confidence, reverse=True)[0])
        return sorted(winners, key=lambda s: s.path)


def propose_config(suggestions: list[DirectorySuggestion]) -> ArchitectureConfig:
    """Layer declarations and ``<dir>/**`` mappings for the winning suggestions."""
    layers: list[LayerConfig] = []
    mappings: list[LayerMapping] = []
    seen: set[str] = set()

    for suggestion in suggestions:
        layer = suggestion.suggested_layer
        if layer not in seen:
            seen.add(layer)
            layers.append(LayerConfig(name=layer, description=f"Suggested {layer} layer"))
        include = "**" if suggestion.path == ROOT_DIR else f"{suggestion.path}/**"
        mappings.append(LayerMapping(layer=layer, include=[include]))

    return ArchitectureConfig(name="suggested", layers=layers, layer_mappings=mappings)
