"""
Scan result cache for strata.

Uses diskcache for SQLite-based persistent caching. Entries are keyed by
the normalized project-relative path and carry the content hash they
were computed for, so a changed file (or a changed layer/alias
configuration, which is folded into the hash) misses automatically.

Writes are buffered in memory and flushed once per build by ``save()``.
"""

import hashlib
import time
from pathlib import Path
from typing import Any, Optional, Union

from diskcache import Cache

from .logging_config import get_logger
from .models import ScanResult

logger = get_logger(__name__)

CACHE_VERSION = "1.0.0"
_VERSION_KEY = "__strata_cache_version__"


class ScanCache:
    """
    Persistent cache of per-file scan results.

    Features:
    - Content-addressed entries (path + content/context hash)
    - Buffered writes flushed in a single transaction
    - Version-stamped store; a mismatched or unreadable store is
      treated as empty
    """

    def __init__(self, cache_dir: Union[str, Path], enabled: bool = True):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache storage
            enabled: Whether caching is enabled
        """
        self.enabled = enabled
        self.cache_dir = Path(cache_dir)
        self._pending: dict[str, dict[str, Any]] = {}
        self.cache: Optional[Cache] = None

        if self.enabled:
            self.cache = self._open()
        else:
            logger.debug("Scan cache disabled")

    def _open(self) -> Optional[Cache]:
        try:
            cache = Cache(str(self.cache_dir))
            stored_version = cache.get(_VERSION_KEY)
            if stored_version != CACHE_VERSION:
                if stored_version is not None:
                    logger.info(
                        f"Cache version mismatch ({stored_version} != {CACHE_VERSION}), discarding"
                    )
                cache.clear()
                cache.set(_VERSION_KEY, CACHE_VERSION)
            logger.debug(f"Scan cache opened at {self.cache_dir}")
            return cache
        except Exception as e:
            logger.warning(f"Cache unavailable at {self.cache_dir}, continuing without it: {e}")
            return None

    def get(self, file_path: str, content_hash: str) -> Optional[ScanResult]:
        """
        Get a cached scan result.

        Args:
            file_path: Normalized project-relative path
            content_hash: Hash of file content and context

        Returns:
            Cached ScanResult, or None on miss, stale hash or corrupt entry
        """
        if not self.enabled:
            return None

        entry = self._pending.get(file_path)
        if entry is None and self.cache is not None:
            try:
                entry = self.cache.get(file_path)
            except Exception as e:
                logger.warning(f"Cache get failed for {file_path}: {e}")
                return None

        if not isinstance(entry, dict) or entry.get("hash") != content_hash:
            return None

        try:
            result = ScanResult.from_dict(entry["result"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding corrupt cache entry for {file_path}: {e}")
            return None

        logger.debug(f"Cache hit: {file_path}")
        return result

    def set(self, file_path: str, content_hash: str, result: ScanResult) -> None:
        """
        Buffer a scan result; nothing reaches disk until ``save()``.

        Args:
            file_path: Normalized project-relative path
            content_hash: Hash of file content and context
            result: Scan result to cache
        """
        if not self.enabled:
            return

        self._pending[file_path] = {
            "hash": content_hash,
            "timestamp": time.time(),
            "result": result.to_dict(),
        }

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    def save(self) -> None:
        """Flush buffered entries to disk in one transaction."""
        if not self.enabled or self.cache is None or not self._pending:
            return

        try:
            with self.cache.transact():
                for file_path, entry in self._pending.items():
                    self.cache.set(file_path, entry)
            logger.debug(f"Flushed {len(self._pending)} cache entries")
            self._pending.clear()
        except Exception as e:
            logger.warning(f"Failed to save cache: {e}")

    def clear(self) -> None:
        """Clear all cache entries, buffered and persisted."""
        self._pending.clear()
        if self.cache is None:
            return

        try:
            self.cache.clear()
            self.cache.set(_VERSION_KEY, CACHE_VERSION)
            logger.info("Cache cleared")
        except Exception as e:
            logger.warning(f"Cache clear failed: {e}")

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        if not self.enabled or self.cache is None:
            return {"enabled": False}

        try:
            return {
                "enabled": True,
                # The version stamp is not a scan entry
                "size": max(len(self.cache) - 1, 0),
                "pending": len(self._pending),
                "directory": self.cache.directory,
                "volume": self.cache.volume(),
            }
        except Exception as e:
            logger.warning(f"Cache stats failed: {e}")
            return {"enabled": True, "error": str(e)}

    def close(self) -> None:
        """Close cache (cleanup)."""
        if self.cache is not None:
            self.cache.close()
            self.cache = None

    def __enter__(self) -> "ScanCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def compute_hash(content: str, extra_context: str = "") -> str:
    """
    MD5 of content plus an optional context string.

    Args:
        content: Primary content (file text, serialized config)
        extra_context: Secondary input folded into the digest

    Returns:
        Hex digest
    """
    digest = hashlib.md5()
    digest.update(content.encode("utf-8"))
    digest.update(extra_context.encode("utf-8"))
    return digest.hexdigest()
