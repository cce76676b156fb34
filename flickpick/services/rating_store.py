# flickpick/services/rating_store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import anyio

from flickpick.core.settings import Settings
from flickpick.infra import cache

logger = logging.getLogger(__name__)

RATINGS_HASH_KEY = "flickpick:ratings"


class RatingStore:
    """Durable backing for the ratings cache: a flat "<title>-<year>" -> entry mapping."""

    async def load(self) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    async def save(self, entries: Dict[str, Dict[str, Any]]) -> None:
        raise NotImplementedError


class FileRatingStore(RatingStore):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # unique temp name per write, then an atomic swap
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(entries, fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def load(self) -> Dict[str, Dict[str, Any]]:
        return await anyio.to_thread.run_sync(self._read)

    async def save(self, entries: Dict[str, Dict[str, Any]]) -> None:
        await anyio.to_thread.run_sync(self._write, entries)


class RedisRatingStore(RatingStore):
    def __init__(self, key: str = RATINGS_HASH_KEY) -> None:
        self.key = key

    async def load(self) -> Dict[str, Dict[str, Any]]:
        return await cache.get_hash_json(self.key)

    async def save(self, entries: Dict[str, Dict[str, Any]]) -> None:
        await cache.set_hash_json(self.key, entries)


def build_store(cfg: Settings) -> RatingStore:
    if cfg.redis_url:
        cache.init(cfg.redis_url)
        logger.info("Ratings cache persisted to Redis hash %s", RATINGS_HASH_KEY)
        return RedisRatingStore()
    logger.info("Ratings cache persisted to %s", cfg.ratings_cache_file)
    return FileRatingStore(cfg.ratings_cache_file)
