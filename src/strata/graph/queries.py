"""Read-only queries and reports over a ``ProjectGraph``."""

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Union

from ..logging_config import get_logger
from ..models import DependencyEdge, ProjectGraph

logger = get_logger(__name__)

TOP_N = 20


def get_graph_stats(graph: ProjectGraph) -> dict[str, Any]:
    """File/edge counts plus per-language and per-layer file counts."""
    language_counts: Counter = Counter()
    layer_counts: Counter = Counter()
    for node in graph.files.values():
        language_counts[node.language or "unknown"] += 1
        layer_counts[node.layer or "unmapped"] += 1

    return {
        "fileCount": len(graph.files),
        "edgeCount": len(graph.edges),
        "languageCounts": dict(language_counts),
        "layerCounts": dict(layer_counts),
    }


def get_file_dependencies(graph: ProjectGraph, file_path: str) -> list[DependencyEdge]:
    return [edge for edge in graph.edges if edge.from_ == file_path]


def get_file_dependents(graph: ProjectGraph, file_path: str) -> list[DependencyEdge]:
    return [edge for edge in graph.edges if edge.to == file_path]


def has_dependency_path(graph: ProjectGraph, source: str, target: str) -> bool:
    """True if ``target`` is reachable from ``source`` (or they are equal).

    Iterative DFS with a visited set; safe on cyclic graphs.
    """
    if source == target:
        return True

    adjacency: dict[str, list[str]] = {}
    for edge in graph.edges:
        adjacency.setdefault(edge.from_, []).append(edge.to)

    visited: set[str] = set()
    stack = [source]
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(n for n in adjacency.get(current, ()) if n not in visited)
    return False


def generate_graph_report(graph: ProjectGraph, project_name: str) -> dict[str, Any]:
    """Summary, most-connected files and the layer interaction matrix."""
    stats = get_graph_stats(graph)
    file_count = stats["fileCount"]
    edge_count = stats["edgeCount"]

    outgoing: Counter = Counter(edge.from_ for edge in graph.edges)
    incoming: Counter = Counter(edge.to for edge in graph.edges)

    def layer_of(file_id: str) -> str:
        node = graph.files.get(file_id)
        return (node.layer if node else None) or "unmapped"

    # Stable sort keeps first-seen order among equal counts
    top_dependencies = [
        {"file": f, "layer": layer_of(f), "dependencies": n}
        for f, n in sorted(outgoing.items(), key=lambda item: item[1], reverse=True)[:TOP_N]
    ]
    top_dependents = [
        {"file": f, "layer": layer_of(f), "dependents": n}
        for f, n in sorted(incoming.items(), key=lambda item: item[1], reverse=True)[:TOP_N]
    ]

    interactions: dict[str, dict[str, int]] = {}
    for edge in graph.edges:
        row = interactions.setdefault(layer_of(edge.from_), {})
        to_layer = layer_of(edge.to)
        row[to_layer] = row.get(to_layer, 0) + 1

    average = f"{edge_count / file_count:.2f}" if file_count else "0.00"

    return {
        "project": project_name,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "totalFiles": file_count,
            "totalDependencies": edge_count,
            "averageDependenciesPerFile": average,
            "languages": stats["languageCounts"],
            "layers": stats["layerCounts"],
        },
        "topDependencies": top_dependencies,
        "topDependents": top_dependents,
        "layerInteractions": interactions,
        "graph": graph.to_dict(),
    }


def save_graph_report(report: dict[str, Any], output_path: Union[str, Path]) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    logger.info(f"Graph report written to {path}")
