"""Static layer assignment from configured glob mappings.

A file belongs to the layer of the highest-priority mapping whose
include globs match it and whose exclude globs do not. Only layers
declared in the configuration are eligible.
"""

import re
from collections import OrderedDict
from functools import lru_cache
from typing import Iterable, Optional

from ..config import ArchitectureConfig, LayerMapping
from ..logging_config import get_logger
from ..paths import normalize_relative

logger = get_logger(__name__)

UNMAPPED = "__unmapped__"


def _translate_segment(segment: str) -> str:
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "*":
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                out.append("\\[")
                continue
            body = segment[i:j].replace("\\", "\\\\")
            i = j + 1
            if body[0] in "!^":
                body = "^" + body[1:]
            out.append(f"[{body}]")
        else:
            out.append(re.escape(c))
    return "".join(out)


@lru_cache(maxsize=None)
def _compile_glob(pattern: str) -> "re.Pattern[str]":
    segments = pattern.split("/")
    regex = ""
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            if not last:
                regex += "(?:.*/)?"
            elif regex.endswith("/"):
                regex = regex[:-1] + "(?:/.*)?"
            else:
                regex += ".*"
            continue
        regex += _translate_segment(segment)
        if not last:
            regex += "/"
    return re.compile(regex)


def glob_match(path: str, pattern: str) -> bool:
    """Match a project-relative path against a layer glob.

    ``*`` and ``?`` stay within one path segment. ``**`` as a whole
    segment spans any number of directories, including none, so
    ``src/**/*.ts`` covers ``src/a.ts`` and ``src/domain/**`` covers
    ``src/domain`` itself. Dot files are matched like any other name.
    """
    return _compile_glob(pattern).fullmatch(path) is not None


def _matches(path: str, mapping: LayerMapping) -> bool:
    if not any(glob_match(path, p) for p in mapping.include):
        return False
    return not any(glob_match(path, p) for p in mapping.exclude)


def sorted_mappings(config: ArchitectureConfig) -> list[LayerMapping]:
    """Mappings for declared layers, highest priority first.

    Ties keep declaration order.
    """
    declared = {layer.name for layer in config.layers}
    eligible = []
    for mapping in config.layer_mappings:
        if mapping.layer not in declared:
            logger.warning(f"Layer mapping references undeclared layer '{mapping.layer}', skipping")
            continue
        eligible.append(mapping)
    return sorted(eligible, key=lambda m: m.priority or 0, reverse=True)


def resolve_layer_for_file(
    file_path: str,
    config: ArchitectureConfig,
    mappings: Optional[list[LayerMapping]] = None,
) -> Optional[str]:
    """Layer name for ``file_path``, or None if no mapping claims it.

    Args:
        file_path: Project-relative path
        config: Architecture configuration
        mappings: Pre-sorted mappings (from ``sorted_mappings``) to
            avoid re-sorting per file
    """
    path = normalize_relative(file_path)
    if mappings is None:
        mappings = sorted_mappings(config)
    for mapping in mappings:
        if _matches(path, mapping):
            return mapping.layer
    return None


def get_files_for_layer(
    files: Iterable[str], layer: str, config: ArchitectureConfig
) -> list[str]:
    mappings = sorted_mappings(config)
    return [f for f in files if resolve_layer_for_file(f, config, mappings) == layer]


def group_files_by_layer(files: Iterable[str], config: ArchitectureConfig) -> dict[str, list[str]]:
    """Group files by resolved layer; unmatched files go under ``__unmapped__``.

    Declared layers appear first in declaration order, even when empty.
    """
    mappings = sorted_mappings(config)
    groups: "OrderedDict[str, list[str]]" = OrderedDict(
        (layer.name, []) for layer in config.layers
    )
    groups[UNMAPPED] = []
    for file_path in files:
        layer = resolve_layer_for_file(file_path, config, mappings)
        groups.setdefault(layer or UNMAPPED, []).append(file_path)
    return dict(groups)
