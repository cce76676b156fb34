# flickpick/integrations/plex.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from flickpick.constants import RUNTIME_BLOCKS
from flickpick.core.settings import settings
from flickpick.schemas import LibrarySection, Movie

logger = logging.getLogger(__name__)


def decade_label(year: int) -> str:
    return f"{(year // 10) * 10}s"


def runtime_block(minutes: int) -> str:
    for block in RUNTIME_BLOCKS:
        if block["min"] <= minutes <= block["max"]:
            return block["label"]
    return RUNTIME_BLOCKS[-1]["label"]


class PlexClient:
    """Catalog provider backed by a Plex Media Server."""

    def __init__(self, base: str, token: str, timeout: float = 20.0):
        self.base = base.rstrip("/")
        self.token = token
        self.timeout = timeout

    async def _get(self, endpoint: str) -> Dict[str, Any]:
        headers = {"X-Plex-Token": self.token, "Accept": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base}{endpoint}", headers=headers)
            r.raise_for_status()
            return r.json()

    def _poster_url(self, thumb: Optional[str]) -> Optional[str]:
        if not thumb:
            return None
        return f"{self.base}{thumb}?X-Plex-Token={self.token}"

    def _map_movie(self, item: Dict[str, Any]) -> Movie:
        minutes = round((item.get("duration") or 0) / 60000)
        year = int(item.get("year") or date.today().year)
        return Movie(
            id=str(item["ratingKey"]),
            title=item.get("title") or "Untitled",
            year=year,
            decade=decade_label(year),
            genres=[g["tag"] for g in item.get("Genre") or [] if g.get("tag")],
            runtime=minutes,
            runtime_block=runtime_block(minutes),
            watched=(item.get("viewCount") or 0) > 0,
            poster=self._poster_url(item.get("thumb")),
            summary=item.get("summary") or None,
        )

    async def list_sections(self) -> List[LibrarySection]:
        data = await self._get("/library/sections")
        dirs = (data.get("MediaContainer") or {}).get("Directory") or []
        return [
            LibrarySection(key=str(d["key"]), title=d.get("title") or "")
            for d in dirs
            if d.get("type") == "movie"
        ]

    async def _section_keys(self, section_key: Optional[str]) -> List[str]:
        if section_key:
            return [section_key]
        return [s.key for s in await self.list_sections()]

    async def list_catalog(self, section_key: Optional[str] = None) -> List[Movie]:
        movies: List[Movie] = []
        for key in await self._section_keys(section_key):
            data = await self._get(f"/library/sections/{key}/all?type=1")
            items = (data.get("MediaContainer") or {}).get("Metadata") or []
            for item in items:
                if not item.get("ratingKey"):
                    continue
                movies.append(self._map_movie(item))
        logger.info("Loaded %s movies from Plex (section=%s)", len(movies), section_key or "all")
        return movies

    async def list_genres(self, section_key: Optional[str] = None) -> List[str]:
        genres: set[str] = set()
        for key in await self._section_keys(section_key):
            data = await self._get(f"/library/sections/{key}/genre")
            for d in (data.get("MediaContainer") or {}).get("Directory") or []:
                if d.get("title"):
                    genres.add(d["title"])
        return sorted(genres)


plex_client = PlexClient(settings.plex_url, settings.plex_token, timeout=settings.http_timeout)
