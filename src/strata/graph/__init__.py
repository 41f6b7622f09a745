"""Project dependency graph: construction and queries."""

from .builder import BuildStats, GraphBuilder, build_project_graph
from .queries import (
    generate_graph_report,
    get_file_dependencies,
    get_file_dependents,
    get_graph_stats,
    has_dependency_path,
    save_graph_report,
)

__all__ = [
    "BuildStats",
    "GraphBuilder",
    "build_project_graph",
    "generate_graph_report",
    "get_file_dependencies",
    "get_file_dependents",
    "get_graph_stats",
    "has_dependency_path",
    "save_graph_report",
]
