# flickpick/tests/conftest.py
import random
from typing import Any, Dict, List, Optional

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from flickpick.schemas import Movie, RatingEntry
from flickpick.services.enrichment import RatingProvider
from flickpick.services.rating_cache import RatingCache
from flickpick.services.session_store import InMemorySessionStore
from flickpick.services.sessions import SessionEngine


@pytest.fixture(autouse=True)
async def fake_app_cache(monkeypatch):
    """
    Ensure flickpick.infra.cache uses a FakeRedis client in tests.
    Works whether code accesses flickpick.infra.cache._redis directly
    or calls cache.init(...) which uses redis.asyncio.from_url().
    """
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)

    import flickpick.infra.cache as app_cache
    monkeypatch.setattr(app_cache, "_redis", fake, raising=True)

    import redis.asyncio as redis_asyncio
    monkeypatch.setattr(redis_asyncio, "from_url", lambda *a, **k: fake, raising=True)

    try:
        yield fake
    finally:
        await fake.aclose()


def movie(
    id: str,
    title: Optional[str] = None,
    *,
    year: int = 2000,
    genres: Optional[List[str]] = None,
    runtime: int = 100,
    watched: bool = False,
) -> Movie:
    return Movie(
        id=id,
        title=title or f"Movie {id}",
        year=year,
        decade=f"{(year // 10) * 10}s",
        genres=genres if genres is not None else ["Comedy"],
        runtime=runtime,
        runtime_block="90-120 min",
        watched=watched,
    )


class FakeCatalog:
    def __init__(self, movies: List[Movie], genres: Optional[List[str]] = None):
        self.movies = movies
        self.genres = genres or sorted({g for m in movies for g in m.genres})
        self.catalog_calls = 0
        self.fail = False

    async def list_catalog(self, section_key: Optional[str] = None) -> List[Movie]:
        self.catalog_calls += 1
        if self.fail:
            raise RuntimeError("plex down")
        return list(self.movies)

    async def list_genres(self, section_key: Optional[str] = None) -> List[str]:
        return list(self.genres)


class FakeProvider(RatingProvider):
    """RatingProvider with canned facet results and a call log instead of HTTP."""

    def __init__(self) -> None:
        super().__init__()
        self.full: Dict[str, Dict[str, Any]] = {}
        self.tmdb: Dict[str, Dict[str, Any]] = {}
        self.omdb: Dict[str, Dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.calls: List[tuple] = []

    async def enrich(self, title: str, year: int) -> RatingEntry:
        self.calls.append(("enrich", title))
        if title in self.failing:
            raise RuntimeError("ratings upstream down")
        data: Dict[str, Any] = {name: None for name in RatingEntry.model_fields}
        data.update(cast=[], keywords=[])
        data.update(self.full.get(title, {}))
        return RatingEntry.model_validate(data)

    async def tmdb_facet(self, title: str, year: int) -> Dict[str, Any]:
        self.calls.append(("tmdb", title))
        return dict(self.tmdb.get(title, {}))

    async def primary(self, title: str, year: int) -> Dict[str, Any]:
        self.calls.append(("primary", title))
        return dict(self.omdb.get(title, {}))


@pytest.fixture
def make_movie():
    return movie


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def ratings(provider) -> RatingCache:
    return RatingCache(provider, store=None)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog([
        movie("1", "Airplane!", year=1980, genres=["Comedy"], runtime=88),
        movie("2", "Alien", year=1979, genres=["Horror", "Sci-Fi"], runtime=117),
        movie("3", "Scream", year=1996, genres=["Horror", "Comedy"], runtime=111),
        movie("4", "Heat", year=1995, genres=["Crime", "Drama"], runtime=170),
        movie("5", "Up", year=2009, genres=["Animation", "Comedy"], runtime=96, watched=True),
    ])


@pytest.fixture
def engine(catalog, ratings) -> SessionEngine:
    return SessionEngine(InMemorySessionStore(), catalog, ratings, rng=random.Random(7))


@pytest.fixture
async def client(engine, catalog):
    from flickpick.deps import get_catalog, get_engine, get_rating_cache
    from flickpick.main import app

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_rating_cache] = lambda: engine.ratings
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
