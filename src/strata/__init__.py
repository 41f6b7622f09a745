"""
strata - Architecture analysis engine

Builds a project-wide dependency graph across TypeScript/JavaScript,
Python and Java sources, suggests architectural layers from graph
topology and naming, and keeps fingerprinted violation baselines so CI
can fail on drift only.
"""

__version__ = "0.1.0"

from .architecture import HeuristicStrategy, SuggestionResult, resolve_layer_for_file
from .architecture.service import SuggestionService
from .baseline import Baseline, BaselineService, GraphStats, PositionRange, RuleViolation
from .config import ArchitectureConfig, EngineSettings, load_settings
from .graph import build_project_graph, get_graph_stats, has_dependency_path
from .models import Capability, DependencyEdge, ProjectFileNode, ProjectGraph

__all__ = [
    "build_project_graph",  # Main entry point
    "ArchitectureConfig",
    "EngineSettings",
    "load_settings",
    "ProjectGraph",
    "ProjectFileNode",
    "DependencyEdge",
    "Capability",
    "get_graph_stats",
    "has_dependency_path",
    "resolve_layer_for_file",
    "HeuristicStrategy",
    "SuggestionService",
    "SuggestionResult",
    "BaselineService",
    "Baseline",
    "GraphStats",
    "RuleViolation",
    "PositionRange",
]
