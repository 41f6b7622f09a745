"""Path normalization helpers.

Graph ids, layer globs and baseline entries all use project-relative,
forward-slash paths; these helpers produce and check them.
"""

import os
import posixpath
from pathlib import Path
from typing import Union

from .exceptions import InvalidPathError

PathLike = Union[str, Path]


def to_forward_slashes(path: PathLike) -> str:
    """Convert native separators to ``/``."""
    return str(path).replace("\\", "/")


def normalize_relative(path: PathLike) -> str:
    """Forward-slash, ``.``-free form of a project-relative path."""
    normalized = posixpath.normpath(to_forward_slashes(path))
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def is_within_directory(path: PathLike, directory: PathLike) -> bool:
    """True if ``path`` resolves to ``directory`` itself or somewhere below it."""
    target = os.path.realpath(os.path.abspath(path))
    base = os.path.realpath(os.path.abspath(directory))
    if target == base:
        return True
    return target.startswith(base.rstrip(os.sep) + os.sep)


def to_project_relative(path: PathLike, project_root: PathLike, must_exist: bool = False) -> str:
    """Turn ``path`` (absolute, or relative to the root) into a project id.

    Raises:
        InvalidPathError: If the path escapes the project root, or
            ``must_exist`` is set and nothing exists there.
    """
    root = Path(project_root).resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root / candidate
    candidate = candidate.resolve()

    if not is_within_directory(candidate, root):
        raise InvalidPathError(path, f"outside project root {root}")
    if must_exist and not candidate.exists():
        raise InvalidPathError(path, "does not exist")

    relative = to_forward_slashes(candidate.relative_to(root))
    return "" if relative == "." else relative


def normalize_path_pattern(pattern: str, project_root: PathLike) -> str:
    """Turn a user-entered path into a layer glob.

    A plain directory becomes ``dir/**``; globs and file paths are
    returned forward-slashed with any leading ``./`` removed.
    """
    normalized = to_forward_slashes(pattern).strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if any(ch in normalized for ch in "*?["):
        return normalized

    normalized = normalized.rstrip("/")
    if normalized and (Path(project_root) / normalized).is_dir():
        return f"{normalized}/**"
    return normalized
