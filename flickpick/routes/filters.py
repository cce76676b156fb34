# flickpick/routes/filters.py
from __future__ import annotations

import logging
import time
from typing import Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException

from flickpick.constants import DECADES, MOODS, RUNTIME_BLOCKS
from flickpick.deps import get_catalog
from flickpick.integrations.plex import PlexClient
from flickpick.schemas import FilterOptions, LibrarySection

router = APIRouter(tags=["filters"])
logger = logging.getLogger(__name__)

# ---- simple in-process cache for the genre vocabulary ----
GENRES_CACHE_TTL_SECONDS = 300  # 5 minutes
_GENRES_CACHE: Dict[str, Tuple[float, List[str]]] = {}


async def _genres(catalog: PlexClient) -> List[str]:
    now = time.monotonic()
    cached = _GENRES_CACHE.get("all")
    if cached is not None and now - cached[0] < GENRES_CACHE_TTL_SECONDS:
        return cached[1]
    genres = await catalog.list_genres()
    _GENRES_CACHE["all"] = (now, genres)
    return genres


@router.get("/filters", response_model=FilterOptions)
async def get_filters(catalog: PlexClient = Depends(get_catalog)) -> FilterOptions:
    try:
        genres = await _genres(catalog)
    except Exception as e:
        logger.exception("Failed to get filters")
        raise HTTPException(status_code=500, detail="Failed to fetch filter options") from e
    return FilterOptions(
        genres=genres,
        runtime_blocks=[b["label"] for b in RUNTIME_BLOCKS],
        decades=list(DECADES),
        moods=list(MOODS),
        mood_genre_map=MOODS,
    )


@router.get("/libraries")
async def get_libraries(catalog: PlexClient = Depends(get_catalog)) -> Dict[str, List[LibrarySection]]:
    try:
        sections = await catalog.list_sections()
    except Exception as e:
        logger.exception("Failed to get libraries")
        raise HTTPException(status_code=500, detail="Failed to fetch libraries") from e
    return {"sections": sections}
