import httpx
from typing import Any, Dict, List, Optional
from flickpick.core.settings import settings

IMG_BASE = "https://image.tmdb.org/t/p"


def image_url(path: Optional[str], size: str = "w500") -> Optional[str]:
    if not path:
        return None
    return f"{IMG_BASE}/{size}{path}"


class TMDBClient:
    def __init__(self, api_key: str, base: str = "https://api.themoviedb.org/3", timeout: float = 15):
        self.api_key = api_key
        self.base = base
        self.timeout = timeout

    async def search_movie(self, q: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"query": q, "api_key": self.api_key, "include_adult": "false"}
        if year:
            params["year"] = year
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base}/search/movie", params=params)
            r.raise_for_status()
            return r.json().get("results", [])

    async def movie_detail(self, movie_id: int, append: Optional[List[str]] = None) -> Dict[str, Any]:
        params = {"api_key": self.api_key}
        if append:
            params["append_to_response"] = ",".join(append)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base}/movie/{movie_id}", params=params)
            r.raise_for_status()
            return r.json()

    async def search_person(self, name: str) -> List[Dict[str, Any]]:
        params = {"query": name, "api_key": self.api_key}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base}/search/person", params=params)
            r.raise_for_status()
            return r.json().get("results", [])


tmdb_client = TMDBClient(api_key=settings.tmdb_api_key or "", timeout=settings.http_timeout)
