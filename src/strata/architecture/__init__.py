"""Architecture layers: static assignment and heuristic suggestion.

``SuggestionService`` lives in ``strata.architecture.service`` since it
depends on the graph builder, which itself imports the layer helpers.
"""

from .heuristics import HeuristicStrategy, aggregate_directory_stats, propose_config
from .layers import (
    UNMAPPED,
    get_files_for_layer,
    glob_match,
    group_files_by_layer,
    resolve_layer_for_file,
)
from .models import (
    DirectoryStats,
    DirectorySuggestion,
    Evidence,
    SuggestionResult,
    SuggestionStats,
)

__all__ = [
    "UNMAPPED",
    "DirectoryStats",
    "DirectorySuggestion",
    "Evidence",
    "HeuristicStrategy",
    "SuggestionResult",
    "SuggestionStats",
    "aggregate_directory_stats",
    "get_files_for_layer",
    "glob_match",
    "group_files_by_layer",
    "propose_config",
    "resolve_layer_for_file",
]
