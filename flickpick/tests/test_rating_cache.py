import asyncio
import json

import pytest

from flickpick.schemas import RatingEntry
from flickpick.services.rating_cache import RatingCache, cache_key, merge_entry
from flickpick.services.rating_store import FileRatingStore, RedisRatingStore, RATINGS_HASH_KEY


class BrokenStore(FileRatingStore):
    def __init__(self):
        super().__init__("/nonexistent/ratings.json")
        self.saves = 0

    async def load(self):
        raise OSError("disk gone")

    async def save(self, entries):
        self.saves += 1


class CountingStore(FileRatingStore):
    def __init__(self, path):
        super().__init__(path)
        self.saves = 0

    async def save(self, entries):
        self.saves += 1
        await super().save(entries)


def _full(**fields):
    data = {name: None for name in RatingEntry.model_fields}
    data.update(cast=[], keywords=[])
    data.update(fields)
    return RatingEntry.model_validate(data)


def test_cache_key_is_exact_title_and_year():
    assert cache_key("Up", 2009) == "Up-2009"
    assert cache_key("up", "2009") == "up-2009"


def test_merge_never_erases_known_values():
    entry = RatingEntry.model_validate({"imdbRating": 8.2, "imdbId": "tt1", "director": "Pete Docter"})
    merged = merge_entry(entry, {"imdb_rating": None, "director": None, "rt_critic_rating": 98})

    assert merged.imdb_rating == 8.2
    assert merged.director == "Pete Docter"
    assert merged.rt_critic_rating == 98


@pytest.mark.asyncio
async def test_miss_runs_full_lookup_then_hits(ratings, provider):
    provider.full["Alien"] = {"imdb_rating": 8.5}

    first = await ratings.lookup("Alien", 1979)
    second = await ratings.lookup("Alien", 1979)

    assert first.imdb_rating == 8.5
    assert second == first
    assert provider.calls == [("enrich", "Alien")]


@pytest.mark.asyncio
async def test_legacy_entry_is_backfilled_and_persisted(tmp_path, provider):
    path = tmp_path / "ratings-cache.json"
    legacy = {"imdbRating": 8.3, "rtCriticRating": 98, "rtAudienceRating": 90, "imdbId": "tt1049413",
              "contentRating": "PG", "director": "Pete Docter", "directorImage": None, "cast": []}
    path.write_text(json.dumps({"Up-2009": legacy}))
    provider.tmdb["Up"] = {"tmdb_rating": 7.9, "tmdb_vote_count": 20000, "keywords": ["balloon"]}

    cache = RatingCache(provider, FileRatingStore(path))
    entry = await cache.get("Up", 2009)

    assert ("tmdb", "Up") in provider.calls
    assert entry.imdb_rating == 8.3
    assert entry.tmdb_rating == 7.9
    assert entry.keywords == ["balloon"]
    assert {"tmdb_rating", "backdrop", "collection"} <= entry.model_fields_set

    await cache.idle()
    saved = json.loads(path.read_text())["Up-2009"]
    assert saved["tmdbRating"] == 7.9
    assert "backdrop" in saved and saved["backdrop"] is None
    assert saved["director"] == "Pete Docter"

    # second read: nothing left to backfill
    provider.calls.clear()
    await cache.get("Up", 2009)
    assert provider.calls == []


@pytest.mark.asyncio
async def test_backfill_with_nothing_found_still_marks_fields_present(tmp_path, provider):
    path = tmp_path / "ratings-cache.json"
    path.write_text(json.dumps({"Up-2009": {"imdbRating": 8.3, "imdbId": "tt1049413"}}))

    cache = RatingCache(provider, FileRatingStore(path))
    entry = await cache.get("Up", 2009)

    assert entry.tmdb_rating is None
    assert "tmdb_rating" in entry.model_fields_set
    await cache.idle()
    assert "tmdbRating" in json.loads(path.read_text())["Up-2009"]


@pytest.mark.asyncio
async def test_null_primary_ratings_retry_once_per_read(ratings, provider):
    await ratings.put("Heat", 1995, _full())

    await ratings.get("Heat", 1995)
    assert provider.calls == [("primary", "Heat")]

    provider.omdb["Heat"] = {"imdb_rating": 8.3, "imdb_id": "tt0113277"}
    healed = await ratings.get("Heat", 1995)
    assert healed.imdb_rating == 8.3
    assert provider.calls.count(("primary", "Heat")) == 2

    await ratings.get("Heat", 1995)
    assert provider.calls.count(("primary", "Heat")) == 2


@pytest.mark.asyncio
async def test_flushes_every_tenth_new_entry(tmp_path, provider):
    store = CountingStore(tmp_path / "ratings-cache.json")
    cache = RatingCache(provider, store)

    for i in range(9):
        await cache.put(f"Movie {i}", 2000, _full(imdb_rating=7.0, imdb_id=f"tt{i}"))
    assert store.saves == 0

    await cache.put("Movie 9", 2000, _full(imdb_rating=7.0, imdb_id="tt9"))
    assert store.saves == 1
    assert len(json.loads((tmp_path / "ratings-cache.json").read_text())) == 10

    # overwriting an existing key is not a new entry
    await cache.put("Movie 9", 2000, _full(imdb_rating=7.1, imdb_id="tt9"))
    assert store.saves == 1


@pytest.mark.asyncio
async def test_unreadable_store_degrades_to_memory(provider):
    store = BrokenStore()
    cache = RatingCache(provider, store, flush_every=1)
    provider.full["Alien"] = {"imdb_rating": 8.5}

    entry = await cache.lookup("Alien", 1979)

    assert entry.imdb_rating == 8.5
    assert cache.durable is False
    assert store.saves == 0
    assert "Alien-1979" in cache


@pytest.mark.asyncio
async def test_redis_store_round_trip(fake_app_cache, provider):
    cache = RatingCache(provider, RedisRatingStore(), flush_every=1)
    await cache.put("Alien", 1979, _full(imdb_rating=8.5, imdb_id="tt0078748"))

    raw = await fake_app_cache.hget(RATINGS_HASH_KEY, "Alien-1979")
    assert json.loads(raw)["imdbRating"] == 8.5

    reloaded = RatingCache(provider, RedisRatingStore())
    entry = await reloaded.get("Alien", 1979)
    assert entry.imdb_id == "tt0078748"


class GatedStore(CountingStore):
    """Saves block until the test opens the gate."""

    def __init__(self, path):
        super().__init__(path)
        self.gate = asyncio.Event()

    async def save(self, entries):
        await self.gate.wait()
        await super().save(entries)


def _legacy_file(path, count):
    legacy = {f"T{i}-2000": {"imdbRating": 7.0, "imdbId": f"tt{i}", "director": f"D{i}"} for i in range(count)}
    path.write_text(json.dumps(legacy))


@pytest.mark.asyncio
async def test_concurrent_backfills_keep_the_file_readable(tmp_path, provider):
    path = tmp_path / "ratings-cache.json"
    _legacy_file(path, 200)
    for i in range(40):
        provider.tmdb[f"T{i}"] = {"tmdb_rating": 6.0 + i / 100, "keywords": ["k"]}
    cache = RatingCache(provider, FileRatingStore(path))

    entries = await asyncio.gather(*[cache.get(f"T{i}", 2000) for i in range(40)])
    await cache.idle()

    assert all(e.tmdb_rating is not None for e in entries)
    saved = json.loads(path.read_text())
    assert len(saved) == 200
    assert all("tmdbRating" in saved[f"T{i}-2000"] for i in range(40))
    assert not list(tmp_path.glob("*.tmp"))

    # a fresh process loads what was written
    reloaded = RatingCache(provider, FileRatingStore(path))
    await reloaded.load()
    assert reloaded.durable and len(reloaded) == 200


@pytest.mark.asyncio
async def test_reads_do_not_wait_for_storage(tmp_path, provider):
    path = tmp_path / "ratings-cache.json"
    _legacy_file(path, 3)
    store = GatedStore(path)
    cache = RatingCache(provider, store)

    await asyncio.wait_for(asyncio.gather(*[cache.get(f"T{i}", 2000) for i in range(3)]), timeout=1)
    assert store.saves == 0

    store.gate.set()
    await cache.idle()
    # three dirty reads coalesce into at most two writes
    assert 1 <= store.saves <= 2
    assert all("tmdbRating" in v for v in json.loads(path.read_text()).values())


@pytest.mark.asyncio
async def test_flush_cadence_holds_under_concurrent_lookups(tmp_path, provider):
    store = CountingStore(tmp_path / "ratings-cache.json")
    cache = RatingCache(provider, store)

    await asyncio.gather(*[cache.lookup(f"Movie {i}", 2000) for i in range(25)])

    assert store.saves == 2
    assert len(cache) == 25
    assert len(json.loads((tmp_path / "ratings-cache.json").read_text())) >= 20
