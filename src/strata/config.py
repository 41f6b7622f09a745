"""Configuration objects for strata.

Two kinds of configuration live here:

``ArchitectureConfig``
    The project's layer/context description consumed by the engine:
    layers, glob-based layer mappings, capability patterns and path
    aliases. It is normally built by the host tool from its own config
    file via ``ArchitectureConfig.from_dict``.

``EngineSettings``
    How the engine itself runs (data directory, caching, history
    depth, worker count, verbosity). Sources are merged in priority
    order:
        1. Defaults (defined in EngineSettings)
        2. Project settings (./strata.toml)
        3. Explicit settings file (if given)
        4. Environment variables (STRATA_* prefix)
        5. Keyword overrides

Example:
    >>> settings = load_settings(verbose=True, workers=4)
    >>> settings.verbosity
    'verbose'
"""

from __future__ import annotations

import json
import os
import re
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .cache import compute_hash
from .exceptions import ConfigurationError, InvalidConfigError
from .logging_config import get_logger

logger = get_logger(__name__)

Verbosity = Literal["quiet", "normal", "verbose"]


@dataclass(frozen=True)
class CapabilityPattern:
    """User-defined rule for detecting a capability.

    ``imports`` match module names (exactly, or as the parent of an
    imported submodule); ``calls`` match call sites or property access.
    """

    type: str
    imports: list[str] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CapabilityPattern":
        if not data.get("type"):
            raise InvalidConfigError("capabilities.type", data, "capability pattern needs a type")
        return cls(
            type=str(data["type"]),
            imports=list(data.get("imports") or []),
            calls=list(data.get("calls") or []),
            description=str(data.get("description", "")),
        )


@dataclass(frozen=True)
class LayerConfig:
    """A conceptual layer (no file paths)."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class LayerMapping:
    """Glob patterns that place files into a layer.

    Higher ``priority`` wins when several mappings match; ``None`` is
    treated as 0 and ties keep declaration order.
    """

    layer: str
    include: list[str]
    exclude: list[str] = field(default_factory=list)
    priority: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LayerMapping":
        include = data.get("include")
        if not isinstance(include, list) or not include:
            raise InvalidConfigError(
                "layerMappings.include", include, "mapping needs at least one include pattern"
            )
        priority = data.get("priority")
        return cls(
            layer=str(data["layer"]),
            include=[str(p) for p in include],
            exclude=[str(p) for p in data.get("exclude") or []],
            priority=int(priority) if priority is not None else None,
        )


@dataclass(frozen=True)
class PathAliasConfig:
    """Module path aliases (``tsconfig`` ``paths`` style).

    ``paths`` maps a prefix such as ``"@app/*"`` to replacement
    directories such as ``["src/*"]``; ``base_url`` is relative to the
    project root.
    """

    paths: dict[str, list[str]] = field(default_factory=dict)
    base_url: Optional[str] = None


@dataclass(frozen=True)
class ArchitectureConfig:
    """The layer/context configuration consumed by the graph builder."""

    name: str = ""
    layers: list[LayerConfig] = field(default_factory=list)
    layer_mappings: list[LayerMapping] = field(default_factory=list)
    capabilities: list[CapabilityPattern] = field(default_factory=list)
    path_aliases: Optional[PathAliasConfig] = None

    def __post_init__(self) -> None:
        names = [layer.name for layer in self.layers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise InvalidConfigError("layers", ", ".join(duplicates), "layer names must be unique")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArchitectureConfig":
        """Build from the camelCase JSON shape of a project config."""
        try:
            layers = [
                LayerConfig(name=str(layer["name"]), description=str(layer.get("description", "")))
                for layer in data.get("layers") or []
            ]
            mappings = [LayerMapping.from_dict(m) for m in data.get("layerMappings") or []]
            capabilities = [CapabilityPattern.from_dict(c) for c in data.get("capabilities") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid architecture config: {e}")

        aliases = None
        raw_paths = data.get("paths")
        if raw_paths:
            aliases = PathAliasConfig(
                paths={str(k): [str(t) for t in v] for k, v in raw_paths.items()},
                base_url=data.get("baseUrl"),
            )

        return cls(
            name=str(data.get("name", "")),
            layers=layers,
            layer_mappings=mappings,
            capabilities=capabilities,
            path_aliases=aliases,
        )

    def with_tsconfig(self, project_root: str | Path) -> "ArchitectureConfig":
        """Return a copy whose path aliases come from ``tsconfig.json``.

        Explicitly configured aliases are kept as they are.
        """
        if self.path_aliases is not None:
            return self
        aliases = load_tsconfig_paths(project_root)
        if aliases is None:
            return self
        return ArchitectureConfig(
            name=self.name,
            layers=self.layers,
            layer_mappings=self.layer_mappings,
            capabilities=self.capabilities,
            path_aliases=aliases,
        )

    def context_fingerprint(self) -> str:
        """Hash of everything that affects scan output besides file content."""
        payload = {
            "layers": [asdict(layer) for layer in self.layers],
            "mappings": [asdict(m) for m in self.layer_mappings],
            "capabilities": [asdict(c) for c in self.capabilities],
            "tsPaths": self.path_aliases.paths if self.path_aliases else None,
            "tsBaseUrl": self.path_aliases.base_url if self.path_aliases else None,
        }
        return compute_hash(json.dumps(payload, sort_keys=True))


# ── tsconfig.json ──────────────────────────────────────────────────

_LINE_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*')
_BLOCK_COMMENT = re.compile(r'("(?:\\.|[^"\\])*")|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[}\]])')


def _strip_jsonc(text: str) -> str:
    """Remove comments and trailing commas, leaving string literals intact."""
    text = _BLOCK_COMMENT.sub(lambda m: m.group(1) or "", text)
    text = _LINE_COMMENT.sub(lambda m: m.group(1) or "", text)
    return _TRAILING_COMMA.sub(lambda m: m.group(1) or m.group(2), text)


def load_tsconfig_paths(project_root: str | Path) -> Optional[PathAliasConfig]:
    """Read ``compilerOptions.baseUrl`` and ``paths`` from ``tsconfig.json``.

    Returns None when the file is missing, unreadable or has no aliases.
    """
    tsconfig = Path(project_root) / "tsconfig.json"
    if not tsconfig.is_file():
        return None

    try:
        data = json.loads(_strip_jsonc(tsconfig.read_text(encoding="utf-8")))
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to parse {tsconfig}: {e}")
        return None

    options = data.get("compilerOptions") if isinstance(data, dict) else None
    if not isinstance(options, dict):
        return None

    paths = options.get("paths")
    base_url = options.get("baseUrl")
    if not isinstance(paths, dict) or not paths:
        return None

    return PathAliasConfig(
        paths={
            str(pattern): [str(t) for t in targets]
            for pattern, targets in paths.items()
            if isinstance(targets, list)
        },
        base_url=str(base_url) if base_url is not None else None,
    )


# ── Engine settings ────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for the analysis engine.

    Attributes:
        data_dir: Directory (relative to the project root) holding the
            scan cache and the baseline document
        cache_enabled: Reuse scan results of unchanged files
        baseline_max_history: Metrics snapshots kept in the baseline
        workers: Parallel scanning threads (1 = sequential)
        verbosity: Logging verbosity level
    """

    data_dir: str = ".strata"
    cache_enabled: bool = True
    baseline_max_history: int = 50
    workers: int = 1
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        if not self.data_dir:
            raise InvalidConfigError("data_dir", self.data_dir, "must not be empty")
        if self.baseline_max_history < 1:
            raise InvalidConfigError(
                "baseline_max_history", self.baseline_max_history, "must be at least 1"
            )
        if self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")

    def cache_dir(self, project_root: str | Path) -> Path:
        return Path(project_root) / self.data_dir / "cache"

    def baseline_path(self, project_root: str | Path) -> Path:
        return Path(project_root) / self.data_dir / "baseline.json"


def load_settings(config_file: Optional[Path] = None, **overrides) -> EngineSettings:
    """Load engine settings with auto-discovery and merging.

    Args:
        config_file: Optional explicit settings file path
        **overrides: Direct overrides (``verbose``/``quiet`` flags are
            folded into ``verbosity``)

    Returns:
        Validated EngineSettings instance

    Raises:
        ConfigurationError: If a settings file is invalid or missing
    """
    merged: dict = {}

    project_config = Path.cwd() / "strata.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update(overrides)

    try:
        return EngineSettings(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load settings from STRATA_* environment variables.

    Supported: STRATA_DATA_DIR, STRATA_CACHE_ENABLED, STRATA_WORKERS,
    STRATA_BASELINE_MAX_HISTORY, STRATA_VERBOSITY.
    """
    type_hints = get_type_hints(EngineSettings)
    result: dict[str, Any] = {}

    for field_name in EngineSettings.__dataclass_fields__:
        env_key = f"STRATA_{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type."""
    origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML settings file.

    Settings may sit at top level or under a ``[strata]`` table.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")

    section = data.get("strata")
    return dict(section) if isinstance(section, dict) else data
