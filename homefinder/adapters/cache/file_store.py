# homefinder/adapters/cache/file_store.py
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from .base import CacheStore

log = logging.getLogger(__name__)


class FileCacheStore(CacheStore):
    """
    One JSON file per key: <root>/<namespace><key>.json

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a reader sees either the old entry or the new one.
    The directory is created on first write. Filesystem calls run in a worker
    thread to keep the event loop free.
    """

    SUFFIX = ".json"

    def __init__(self, root: str | os.PathLike[str], namespace: str) -> None:
        self.root = Path(root)
        self.namespace = namespace

    def _path(self, key: str) -> Path:
        return self.root / f"{self.namespace}{key}{self.SUFFIX}"

    def _read_sync(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Unreadable cache file %s: %s", path, e)
            return None

    def _write_sync(self, key: str, blob: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
            os.replace(tmp, target)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def _delete_sync(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def _files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(
            p
            for p in self.root.iterdir()
            if p.is_file() and p.name.startswith(self.namespace) and p.name.endswith(self.SUFFIX)
        )

    def _clear_sync(self) -> int:
        count = 0
        for p in self._files():
            try:
                p.unlink()
                count += 1
            except FileNotFoundError:
                continue
        return count

    def _keys_sync(self) -> list[str]:
        start = len(self.namespace)
        end = -len(self.SUFFIX)
        return [p.name[start:end] for p in self._files()]

    async def read(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, blob: str) -> None:
        await asyncio.to_thread(self._write_sync, key, blob)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def clear(self) -> int:
        return await asyncio.to_thread(self._clear_sync)

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys_sync)
