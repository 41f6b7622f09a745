"""Project dependency graph construction.

For every requested file the builder reads the content, consults the
scan cache, and on a miss runs each applicable scanner, merging their
node overlays onto a base node carrying language and static layer.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from ..architecture.layers import resolve_layer_for_file, sorted_mappings
from ..cache import ScanCache, compute_hash
from ..config import ArchitectureConfig, EngineSettings
from ..exceptions import FileAccessError, InvalidPathError
from ..logging_config import get_logger
from ..models import DependencyEdge, FileInfo, ProjectFileNode, ProjectGraph, ScanResult, merge_node
from ..paths import to_project_relative
from ..scanning import JavaFileIndex, ProjectScanner, ScanContext, default_scanners, infer_language

logger = get_logger(__name__)


@dataclass
class BuildStats:
    """Counters for the most recent build."""

    requested: int = 0
    cache_hits: int = 0
    scanned: int = 0
    skipped: int = 0
    scanned_files: list[str] = field(default_factory=list)


@dataclass
class _FileOutcome:
    path: str
    content_hash: str
    result: ScanResult
    from_cache: bool


class GraphBuilder:
    """Builds a ``ProjectGraph`` for one project root.

    Args:
        project_root: Project root directory
        config: Layer/capability/alias configuration
        settings: Engine settings (data dir, caching, workers)
        scanners: Scanner registry override (defaults to all languages)
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        config: ArchitectureConfig,
        settings: Optional[EngineSettings] = None,
        scanners: Optional[Sequence[ProjectScanner]] = None,
    ):
        root = Path(project_root)
        if not root.is_dir():
            raise InvalidPathError(project_root, "project root is not a directory")
        self.project_root = root.resolve()
        self.settings = settings or EngineSettings()
        self.config = config.with_tsconfig(self.project_root)
        self.scanners = list(scanners) if scanners is not None else default_scanners()
        self.stats = BuildStats()

        self._context_hash = self.config.context_fingerprint()
        self._mappings = sorted_mappings(self.config)

    def build(self, files: Sequence[str], use_cache: bool = True, workers: Optional[int] = None) -> ProjectGraph:
        """Scan ``files`` (project-relative) into a graph.

        Args:
            files: File paths, relative to the project root or absolute
                paths inside it
            use_cache: Read and write the scan cache; ``False`` clears it
                and bypasses it entirely
            workers: Parallel scanning threads (defaults to settings)

        Raises:
            InvalidPathError: If a requested path escapes the project root

        Returns:
            The project graph; edges appear in request order
        """
        requests = [to_project_relative(f, self.project_root) for f in files]
        self.stats = BuildStats(requested=len(requests))
        workers = workers or self.settings.workers

        cache = ScanCache(
            self.settings.cache_dir(self.project_root),
            enabled=self.settings.cache_enabled,
        )
        try:
            if not use_cache:
                cache.clear()
            active_cache = cache if use_cache else None

            context = ScanContext(
                project_root=self.project_root,
                capability_patterns=list(self.config.capabilities),
                path_aliases=self.config.path_aliases,
                java_index=self._java_index(requests),
            )

            if workers > 1 and len(requests) > 1:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    outcomes = list(
                        executor.map(lambda f: self._process_file(f, context, active_cache), requests)
                    )
            else:
                outcomes = [self._process_file(f, context, active_cache) for f in requests]

            graph = ProjectGraph()
            for outcome in outcomes:
                if outcome is None:
                    self.stats.skipped += 1
                    continue
                for node in outcome.result.nodes:
                    graph.files[node.id] = node
                graph.edges.extend(outcome.result.edges)

                if outcome.from_cache:
                    self.stats.cache_hits += 1
                else:
                    self.stats.scanned += 1
                    self.stats.scanned_files.append(outcome.path)
                    if active_cache is not None:
                        active_cache.set(outcome.path, outcome.content_hash, outcome.result)

            if active_cache is not None:
                active_cache.save()
        finally:
            cache.close()

        logger.info(
            f"Graph built: {len(graph.files)} files, {len(graph.edges)} edges "
            f"({self.stats.scanned} scanned, {self.stats.cache_hits} cached, "
            f"{self.stats.skipped} skipped)"
        )
        return graph

    def _java_index(self, files: Sequence[str]) -> Optional[JavaFileIndex]:
        if not any(infer_language(f) == "java" for f in files):
            return None
        return JavaFileIndex.build(self.project_root)

    def _read(self, file_id: str) -> tuple[str, str]:
        path = os.path.join(self.project_root, file_id)
        if not os.path.isfile(path):
            raise FileAccessError(path, "file not found")
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return path, f.read()
        except OSError as e:
            raise FileAccessError(path, f"Cannot read file: {e}")

    def _process_file(
        self, file_id: str, context: ScanContext, cache: Optional[ScanCache]
    ) -> Optional[_FileOutcome]:
        try:
            _, contents = self._read(file_id)
            content_hash = compute_hash(contents, self._context_hash)

            if cache is not None:
                cached = cache.get(file_id, content_hash)
                if cached is not None:
                    return _FileOutcome(file_id, content_hash, cached, from_cache=True)

            return _FileOutcome(
                file_id, content_hash, self._scan_file(file_id, contents, context), from_cache=False
            )
        except FileAccessError as e:
            logger.warning(f"Skipping {file_id}: {e.reason}")
        except Exception as e:
            logger.warning(f"Failed to process file {file_id}: {e}")
        return None

    def _scan_file(self, file_id: str, contents: str, context: ScanContext) -> ScanResult:
        language = infer_language(file_id)
        layer = resolve_layer_for_file(file_id, self.config, self._mappings)
        node = ProjectFileNode(id=file_id, path=file_id, language=language, layer=layer)
        info = FileInfo(path=file_id, contents=contents, language=language)

        edges: list[DependencyEdge] = []
        for scanner in self.scanners:
            if not scanner.supports(info):
                continue
            try:
                result = scanner.scan(info, context)
            except Exception as e:
                logger.warning(f"Scanner {scanner.id} failed for {file_id}: {e}")
                continue
            edges.extend(result.edges)
            for overlay in result.nodes:
                node = merge_node(node, overlay)

        return ScanResult(nodes=[node], edges=edges)


def build_project_graph(
    project_root: Union[str, Path],
    files: Sequence[str],
    config: ArchitectureConfig,
    use_cache: bool = True,
    settings: Optional[EngineSettings] = None,
    workers: Optional[int] = None,
) -> ProjectGraph:
    """Build the dependency graph for ``files`` under ``project_root``."""
    builder = GraphBuilder(project_root, config, settings=settings)
    return builder.build(files, use_cache=use_cache, workers=workers)
