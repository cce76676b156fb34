# flickpick/services/preferences.py
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from flickpick.schemas import MatchedCriteria, Range, UserPreferences


class CombinedConstraint(BaseModel):
    """
    Merged constraints of everyone in a session.

    `genre_sets` keeps each user's own non-empty genre selection: a movie must
    hit every one of them, which is stricter than hitting the union in `genres`.
    A range that came out inverted is kept as-is and matches nothing.
    """
    genres: List[str] = []
    genre_sets: List[List[str]] = []
    runtime_range: Optional[Range] = None
    year_range: Optional[Range] = None
    min_imdb_rating: Optional[float] = None
    min_rt_critic_rating: Optional[float] = None
    min_rt_audience_rating: Optional[float] = None
    include_watched: bool = False

    model_config = ConfigDict(frozen=True)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def overlap(ranges: Sequence[Optional[Range]]) -> Optional[Range]:
    """[max(mins), min(maxes)] of the ranges that were given; None if none were."""
    present = [r for r in ranges if r is not None]
    if not present:
        return None
    return Range(min=max(r.min for r in present), max=min(r.max for r in present))


def strictest(thresholds: Sequence[Optional[float]]) -> Optional[float]:
    value = max((t or 0) for t in thresholds)
    return value or None


def combine(
    first: UserPreferences,
    second: Optional[UserPreferences] = None,
) -> Tuple[CombinedConstraint, MatchedCriteria]:
    """
    Merge one (solo) or two (duo) users' preferences.

    Pure function: same inputs always give the same constraint and criteria.
    """
    prefs = [p for p in (first, second) if p is not None]

    genres = _unique(g for p in prefs for g in p.genres)
    combined = CombinedConstraint(
        genres=genres,
        genre_sets=[list(p.genres) for p in prefs if p.genres],
        runtime_range=overlap([p.runtime_range for p in prefs]),
        year_range=overlap([p.year_range for p in prefs]),
        min_imdb_rating=strictest([p.min_imdb_rating for p in prefs]),
        min_rt_critic_rating=strictest([p.min_rt_critic_rating for p in prefs]),
        min_rt_audience_rating=strictest([p.min_rt_audience_rating for p in prefs]),
        include_watched=all(p.include_watched for p in prefs),
    )

    # display only: genres everyone picked, else the union
    common = [g for g in prefs[0].genres if all(g in p.genres for p in prefs[1:])]

    criteria = MatchedCriteria(
        genres=_unique(common) or genres,
        genres_skipped=all(not p.genres for p in prefs),
        year_range=combined.year_range,
        year_skipped=all(p.year_range is None for p in prefs),
        runtime_range=combined.runtime_range,
        runtime_skipped=all(p.runtime_range is None for p in prefs),
        min_imdb_rating=combined.min_imdb_rating,
        rating_skipped=all(not p.min_imdb_rating for p in prefs),
    )
    return combined, criteria
