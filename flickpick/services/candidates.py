# flickpick/services/candidates.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import List, Optional, Sequence

from flickpick.schemas import Movie, RatingEntry
from flickpick.services.preferences import CombinedConstraint
from flickpick.services.rating_cache import RatingCache

logger = logging.getLogger(__name__)


def matches_constraint(movie: Movie, combined: CombinedConstraint) -> bool:
    """Catalog-only checks (no ratings needed)."""
    if not combined.include_watched and movie.watched:
        return False
    # must hit each user's own genre picks, not just the union
    for genres in combined.genre_sets:
        if not any(g in genres for g in movie.genres):
            return False
    if combined.year_range and not combined.year_range.contains(movie.year):
        return False
    if combined.runtime_range and not combined.runtime_range.contains(movie.runtime):
        return False
    return True


def meets_rating_thresholds(movie: Movie, combined: CombinedConstraint) -> bool:
    """Unknown ratings never disqualify a movie."""
    checks = (
        (combined.min_imdb_rating, movie.imdb_rating),
        (combined.min_rt_critic_rating, movie.rt_critic_rating),
        (combined.min_rt_audience_rating, movie.rt_audience_rating),
    )
    for threshold, value in checks:
        if threshold and value is not None and value < threshold:
            return False
    return True


def shuffled(items: Sequence[Movie], rng: Optional[random.Random] = None) -> List[Movie]:
    out = list(items)
    (rng or random).shuffle(out)
    return out


async def enrich_movie(movie: Movie, ratings: RatingCache) -> Movie:
    """Copy of `movie` with rating fields attached. Any failure leaves them null."""
    try:
        entry = await ratings.lookup(movie.title, movie.year)
    except Exception:
        logger.exception("Enrichment failed for %s (%s)", movie.title, movie.year)
        entry = RatingEntry()
    update = {name: getattr(entry, name) for name in RatingEntry.model_fields}
    update["enriched"] = True
    return movie.model_copy(update=update)


async def select_candidates(
    catalog: Sequence[Movie],
    combined: CombinedConstraint,
    budget: int,
    ratings: RatingCache,
    *,
    rng: Optional[random.Random] = None,
    concurrency: int = 8,
) -> List[Movie]:
    """
    filter -> shuffle -> enrich the first `budget` -> rating filter -> shuffle again.

    Shuffling before enrichment picks a random sample when more movies match than
    the budget allows; the second shuffle keeps enrichment order out of the result.
    """
    filtered = [m for m in catalog if matches_constraint(m, combined)]
    picked = shuffled(filtered, rng)[: max(0, budget)]
    logger.info("Catalog %s -> %s matching, enriching %s", len(catalog), len(filtered), len(picked))

    sem = asyncio.Semaphore(max(1, concurrency))

    async def _guarded(m: Movie) -> Movie:
        async with sem:
            return await enrich_movie(m, ratings)

    enriched = await asyncio.gather(*[_guarded(m) for m in picked])
    survivors = [m for m in enriched if meets_rating_thresholds(m, combined)]
    return shuffled(survivors, rng)
