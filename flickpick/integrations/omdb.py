# flickpick/integrations/omdb.py
from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from flickpick.core.settings import settings

OMDB_BASE = "http://www.omdbapi.com/"
RT_AUDIENCE_BASE = "https://rotten-tomatoes-api.ue.r.appspot.com/movie"


class OMDbClient:
    def __init__(self, api_key: str, base: str = OMDB_BASE, timeout: float = 15):
        self.api_key = api_key
        self.base = base
        self.timeout = timeout

    async def by_title(self, title: str, year: Optional[int] = None) -> Dict[str, Any]:
        """Raw OMDb payload. A miss or a quota error comes back as {"Response": "False", "Error": ...}."""
        params: Dict[str, Any] = {"t": title, "apikey": self.api_key}
        if year:
            params["y"] = year
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(self.base, params=params)
            r.raise_for_status()
            return r.json()


class RottenTomatoesClient:
    """Unofficial, keyless audience-score API."""

    def __init__(self, base: str = RT_AUDIENCE_BASE, timeout: float = 15):
        self.base = base
        self.timeout = timeout

    async def audience_score(self, title: str) -> Optional[int]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base}/{quote(title, safe='')}")
            if r.status_code != 200:
                return None
            score = r.json().get("audienceScore")
        return int(score) if score is not None else None


omdb_client = OMDbClient(api_key=settings.omdb_api_key or "", timeout=settings.http_timeout)
rt_client = RottenTomatoesClient(timeout=settings.http_timeout)
