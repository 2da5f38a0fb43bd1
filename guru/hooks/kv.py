"""Flat key-value storage — the middle tier of the fallback chain.

JsonFileStore keeps every key in one JSON object on disk and rewrites the
whole file on each write (via a temp file + rename, so a crash never
leaves a half-written file). KeyValueProgressBackend stores one
serialized MasteryProgress blob under a fixed key: the simple store
serves a single local player.

Tier 2 service module: imports from guru.hooks.interfaces (Tier 1)
and guru.schemas (Tier 1).

Usage:
    from guru.hooks.kv import JsonFileStore, KeyValueProgressBackend

    kv = JsonFileStore("data/guru-kv.json")
    backend = KeyValueProgressBackend(kv)
"""

import asyncio
import json
import logging
import os
from pathlib import Path

from guru.hooks.interfaces import KeyValueStore, ProgressBackend
from guru.schemas import MasteryProgress

logger = logging.getLogger("guru.hooks.kv")

MASTERY_PROGRESS_KEY = "guru-mastery-progress-v1"


class JsonFileStore(KeyValueStore):
    """Key-value store persisted as a single JSON object file.

    A missing file reads as empty. A corrupt file is logged and also reads
    as empty; the next write replaces it.

    Args:
        path: Location of the JSON file. Parent directories are created
            on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Key-value file %s is corrupt, treating as empty", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Key-value file %s is not an object, treating as empty", self._path)
            return {}
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write_all, data)


class KeyValueProgressBackend(ProgressBackend):
    """Stores one MasteryProgress blob under a fixed key.

    A blob belonging to a different player reads as None, so a stale
    local record never leaks into another player's state.

    Args:
        kv: The underlying key-value store.
        key: Storage key for the serialized record.
    """

    name = "key-value"

    def __init__(self, kv: KeyValueStore, key: str = MASTERY_PROGRESS_KEY) -> None:
        self._kv = kv
        self._key = key

    async def load_progress(self, player_id: str) -> MasteryProgress | None:
        raw = await self._kv.get(self._key)
        if raw is None:
            return None
        progress = MasteryProgress.model_validate_json(raw)
        if progress.player_id != player_id:
            return None
        return progress

    async def save_progress(self, progress: MasteryProgress) -> None:
        await self._kv.set(self._key, progress.model_dump_json())
