# flickpick/services/rating_cache.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from flickpick.core.settings import CACHE_FLUSH_EVERY
from flickpick.schemas import TMDB_FACET_FIELDS, RatingEntry
from flickpick.services.enrichment import RatingProvider
from flickpick.services.rating_store import RatingStore

logger = logging.getLogger(__name__)

_LIST_FIELDS = {"cast", "keywords"}


def cache_key(title: str, year: int | str) -> str:
    return f"{title}-{year}"


def merge_entry(entry: RatingEntry, patch: Dict[str, Any], fill: Iterable[str] = ()) -> RatingEntry:
    """
    Apply `patch` on top of `entry` without ever replacing a known value with an
    empty one. Fields named in `fill` end up explicitly set even if the patch had
    nothing for them, so they are not treated as absent again.
    """
    data = entry.model_dump(exclude_unset=True)
    for name in fill:
        data.setdefault(name, [] if name in _LIST_FIELDS else None)
    for name, value in patch.items():
        if name not in RatingEntry.model_fields:
            continue
        if value is None or (name in _LIST_FIELDS and not value):
            data.setdefault(name, value)
            continue
        if data.get(name) in (None, []):
            data[name] = value
    return RatingEntry.model_validate(data)


class RatingCache:
    """
    title/year -> RatingEntry, in memory, backed by a RatingStore.

    The in-memory map is authoritative for the process. It is loaded from the
    store once and written back every CACHE_FLUSH_EVERY new entries. Entries
    changed by a read are written in the background so reads never wait on
    storage. If the store can't be read the cache keeps working in memory only.
    """

    def __init__(
        self,
        provider: RatingProvider,
        store: Optional[RatingStore] = None,
        flush_every: int = CACHE_FLUSH_EVERY,
    ) -> None:
        self.provider = provider
        self.store = store
        self.flush_every = flush_every
        self.durable = store is not None
        self._entries: Dict[str, RatingEntry] = {}
        self._loaded = False
        self._load_lock = asyncio.Lock()
        # one writer at a time; reads only mark the cache dirty
        self._flush_lock = asyncio.Lock()
        self._dirty = False
        self._flusher: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    async def load(self) -> None:
        async with self._load_lock:
            if self._loaded:
                return
            self._loaded = True
            if self.store is None:
                return
            try:
                raw = await self.store.load()
            except Exception:
                logger.exception("Failed to load ratings cache; continuing in memory only")
                self.durable = False
                return
            for key, value in raw.items():
                try:
                    self._entries[key] = RatingEntry.model_validate(value)
                except ValueError:
                    logger.warning("Dropping unreadable ratings cache entry %r", key)
            logger.info("Loaded %s cached ratings", len(self._entries))

    async def flush(self) -> None:
        if not self.durable or self.store is None:
            return
        async with self._flush_lock:
            self._dirty = False
            data = {k: e.model_dump(mode="json", by_alias=True, exclude_unset=True) for k, e in self._entries.items()}
            try:
                await self.store.save(data)
            except Exception:
                logger.exception("Failed to save ratings cache")

    def _flush_soon(self) -> None:
        """Persist in the background. Repeated calls while a flush runs coalesce into one more."""
        if not self.durable or self.store is None:
            return
        self._dirty = True
        if self._flusher is None or self._flusher.done():
            self._flusher = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while self._dirty and self.durable:
            await self.flush()

    async def idle(self) -> None:
        """Wait for any background flush to finish."""
        if self._flusher is not None:
            await self._flusher

    async def get(self, title: str, year: int) -> Optional[RatingEntry]:
        """
        Cached entry or None. On a hit this may call the provider once:
          - backfill TMDb fields an older entry never had;
          - retry OMDb when both IMDb rating and id are null (likely rate-limited before).
        """
        await self.load()
        key = cache_key(title, year)
        entry = self._entries.get(key)
        if entry is None:
            logger.info("Cache MISS for: %s (%s)", title, year)
            return None
        logger.debug("Cache HIT for: %s (%s)", title, year)

        changed = False
        missing = [f for f in TMDB_FACET_FIELDS if f not in entry.model_fields_set]
        if missing:
            logger.info("Backfilling %s for %s (%s)", ",".join(missing), title, year)
            patch = await self.provider.tmdb_facet(title, year)
            entry = merge_entry(entry, patch, fill=missing)
            changed = True

        if entry.imdb_rating is None and entry.imdb_id is None and {"imdb_rating", "imdb_id"} <= entry.model_fields_set:
            patch = await self.provider.primary(title, year)
            if patch.get("imdb_rating") is not None or patch.get("imdb_id") is not None:
                logger.info("Recovered OMDb ratings for %s (%s)", title, year)
                entry = merge_entry(entry, patch)
                changed = True

        if changed:
            self._entries[key] = entry
            self._flush_soon()
        return entry

    async def put(self, title: str, year: int, entry: RatingEntry) -> None:
        await self.load()
        key = cache_key(title, year)
        is_new = key not in self._entries
        self._entries[key] = entry
        if is_new and len(self._entries) % self.flush_every == 0:
            await self.flush()

    async def lookup(self, title: str, year: int) -> RatingEntry:
        """get() or, on a miss, a full provider lookup stored back into the cache."""
        entry = await self.get(title, year)
        if entry is not None:
            return entry
        entry = await self.provider.enrich(title, year)
        await self.put(title, year, entry)
        return entry
