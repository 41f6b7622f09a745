"""Layer suggestion entry point: build a fresh graph, then infer layers."""

from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence, Union

from ..config import ArchitectureConfig, EngineSettings
from ..graph.builder import GraphBuilder
from ..logging_config import get_logger
from .heuristics import HeuristicStrategy
from .models import SuggestionResult

logger = get_logger(__name__)


class SuggestionService:
    def __init__(
        self,
        strategy: Optional[HeuristicStrategy] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.strategy = strategy or HeuristicStrategy()
        self.settings = settings or EngineSettings()

    def suggest(
        self,
        project_root: Union[str, Path],
        files: Sequence[str],
        config: Optional[ArchitectureConfig] = None,
    ) -> SuggestionResult:
        """Suggest layers for ``files``; the scan cache is neither read nor written."""
        settings = replace(self.settings, cache_enabled=False)
        builder = GraphBuilder(project_root, config or ArchitectureConfig(), settings=settings)
        graph = builder.build(files)
        logger.info(f"Analyzing {len(graph.files)} files for layer suggestions")
        return self.strategy.analyze(graph)
