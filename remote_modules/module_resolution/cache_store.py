"""Filesystem-backed module cache.

Existence on disk is the only record of what has been cached. Entries are
written once and trusted from then on: there is no manifest, TTL or eviction.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO
from typing import Protocol

from ..errors import CacheWriteError

logger = logging.getLogger(__name__)


class ByteStream(Protocol):
    """Readable binary source: an open file or a remote resource."""

    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...


class LocalCacheStore:
    """Module artifact cache rooted at a single directory."""

    def __init__(self, cache_root: Path):
        """Initialize cache store.

        Args:
            cache_root: Directory holding cached modules. Created lazily on first write.
        """
        self.cache_root = Path(cache_root)

    def path_for(self, relative_name: str) -> Path:
        """Absolute path of a cache entry."""
        return self.cache_root / relative_name

    def exists(self, relative_name: str) -> bool:
        return self.path_for(relative_name).is_file()

    def open(self, relative_name: str) -> BinaryIO:
        """Open a cached artifact for reading.

        Raises:
            FileNotFoundError: Entry is not cached
        """
        return self.path_for(relative_name).open("rb")

    def write(self, stream: ByteStream, relative_name: str) -> Path:
        """Persist the full content of ``stream`` as a cache entry.

        Content goes to a temporary file next to the target and is renamed into
        place, so a partially written entry is never visible. ``stream`` is
        closed whether or not the write succeeds.

        Args:
            stream: Readable binary stream (file object or remote resource)
            relative_name: Entry name relative to the cache root

        Returns:
            Path of the written entry

        Raises:
            CacheWriteError: Directory creation, read or write failed
        """
        target = self.path_for(relative_name)
        temp_path: Path | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Saving resource: {target}", extra={"event": "resource:save"})
            with tempfile.NamedTemporaryFile(
                mode="wb", dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as tmp_file:
                temp_path = Path(tmp_file.name)
                shutil.copyfileobj(stream, tmp_file)
                tmp_file.flush()

            # Atomic rename
            temp_path.replace(target)
            temp_path = None
            logger.debug(f"Resource saved: {target}", extra={"event": "resource:saved"})
            return target
        except OSError as e:
            raise CacheWriteError(target, e) from e
        finally:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            stream.close()

    def iter_modules(self, descriptor_name: str) -> list[Path]:
        """Directories below the cache root holding a descriptor, sorted."""
        if not self.cache_root.is_dir():
            return []
        return sorted(p.parent for p in self.cache_root.rglob(descriptor_name) if p.is_file())

    def __repr__(self) -> str:
        return f"LocalCacheStore({self.cache_root})"
