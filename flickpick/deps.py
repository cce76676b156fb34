# flickpick/deps.py
from __future__ import annotations

from datetime import timedelta

from flickpick.core.settings import settings
from flickpick.integrations.plex import PlexClient, plex_client
from flickpick.services.enrichment import rating_provider
from flickpick.services.rating_cache import RatingCache
from flickpick.services.rating_store import build_store
from flickpick.services.session_store import InMemorySessionStore
from flickpick.services.sessions import SessionEngine

# Process-wide singletons. Tests swap them via app.dependency_overrides.
rating_cache = RatingCache(rating_provider, build_store(settings))
session_store = InMemorySessionStore()
engine = SessionEngine(
    session_store,
    plex_client,
    rating_cache,
    max_age=timedelta(hours=settings.session_max_age_hours),
    default_movie_count=settings.default_movie_count,
    enrich_concurrency=settings.enrich_concurrency,
)


def get_engine() -> SessionEngine:
    return engine


def get_catalog() -> PlexClient:
    return plex_client


def get_rating_cache() -> RatingCache:
    return rating_cache
