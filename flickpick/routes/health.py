# flickpick/routes/health.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from flickpick.deps import get_engine, get_rating_cache
from flickpick.services.rating_cache import RatingCache
from flickpick.services.sessions import SessionEngine

router = APIRouter(tags=["Health"])


@router.get("/health", summary="Liveness")
async def health():
    # super cheap liveness (no external deps)
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    engine: SessionEngine = Depends(get_engine),
    ratings: RatingCache = Depends(get_rating_cache),
):
    return {
        "status": "ok",
        "sessions": len(engine.store.sessions()),
        "cachedRatings": len(ratings),
        "ratingsDurable": ratings.durable,
    }
