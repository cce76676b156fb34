from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """All wire payloads use camelCase keys; python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# Movies
# =========================

class Range(CamelModel):
    """Inclusive numeric range. An inverted range (min > max) matches nothing."""
    min: int
    max: int

    model_config = ConfigDict(frozen=True)

    @property
    def empty(self) -> bool:
        return self.min > self.max

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


class CastMember(CamelModel):
    name: str
    image: Optional[str] = None


class Movie(CamelModel):
    """
    One catalog movie. Catalog fields come from Plex; the rating fields start
    empty and are filled once per session when the movie is picked as a candidate.
    """
    id: str
    title: str
    year: int
    decade: str
    genres: List[str] = []
    runtime: int
    runtime_block: str
    watched: bool = False
    poster: Optional[str] = None
    summary: Optional[str] = None

    # enrichment
    enriched: bool = False
    imdb_rating: Optional[float] = None
    rt_critic_rating: Optional[float] = None
    rt_audience_rating: Optional[float] = None
    tmdb_rating: Optional[float] = None
    tmdb_vote_count: Optional[int] = None
    imdb_id: Optional[str] = None
    backdrop: Optional[str] = None
    content_rating: Optional[str] = None
    director: Optional[str] = None
    director_image: Optional[str] = None
    cast: List[CastMember] = []
    keywords: List[str] = []
    collection: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class RatingEntry(CamelModel):
    """
    Rating-cache record for one title/year.

    Stored with camelCase keys. Entries written before the TMDb facet existed
    lack those keys entirely; `model_fields_set` tells "absent" apart from an
    explicit null, which is what drives the one-time backfill.
    """
    imdb_rating: Optional[float] = None
    rt_critic_rating: Optional[float] = None
    rt_audience_rating: Optional[float] = None
    imdb_id: Optional[str] = None
    content_rating: Optional[str] = None
    director: Optional[str] = None
    director_image: Optional[str] = None
    cast: List[CastMember] = []

    # TMDb facet (added later, may be absent in old cache files)
    tmdb_rating: Optional[float] = None
    tmdb_vote_count: Optional[int] = None
    backdrop: Optional[str] = None
    keywords: List[str] = []
    collection: Optional[str] = None


TMDB_FACET_FIELDS = ("tmdb_rating", "tmdb_vote_count", "backdrop", "keywords", "collection")


# =========================
# Preferences
# =========================

class UserPreferences(CamelModel):
    genres: List[str] = []
    min_imdb_rating: Optional[float] = None
    min_rt_critic_rating: Optional[float] = None
    min_rt_audience_rating: Optional[float] = None
    runtime_range: Optional[Range] = None
    year_range: Optional[Range] = None
    include_watched: bool = False

    model_config = ConfigDict(frozen=True)


class MatchedCriteria(CamelModel):
    """What the session matched on, for "why this movie" explanations."""
    genres: List[str]
    genres_skipped: bool
    year_range: Optional[Range] = None
    year_skipped: bool
    runtime_range: Optional[Range] = None
    runtime_skipped: bool
    min_imdb_rating: Optional[float] = None
    rating_skipped: bool


# =========================
# Request payloads
# =========================

class SessionCreateIn(CamelModel):
    movie_count: Optional[int] = None


class JoinIn(CamelModel):
    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=64)


class PreferencesIn(CamelModel):
    user_id: str = Field(min_length=1)
    preferences: UserPreferences


class VoteIn(CamelModel):
    user_id: str = Field(min_length=1)
    movie_id: str = Field(min_length=1)
    vote: bool


# =========================
# Responses
# =========================

class SessionCreated(CamelModel):
    code: str
    movie_count: int


class Joined(CamelModel):
    code: str
    joined: bool = True


class Submitted(CamelModel):
    submitted: bool = True
    all_submitted: bool


class SessionUserOut(CamelModel):
    id: str
    name: str
    has_submitted: bool
    voting_complete: bool
    votes_count: int


class SessionSummary(CamelModel):
    code: str
    state: str
    user_count: int
    submitted_count: int
    voting_complete_count: int
    movie_count: int
    total_movies: int
    all_voting_complete: bool
    users: List[SessionUserOut]
    has_result: bool


class MatchResult(CamelModel):
    result: Optional[Movie] = None
    total_matches: int
    current_index: int
    is_last: bool
    matched_criteria: Optional[MatchedCriteria] = None
    movies: List[Movie] = []


class Navigation(CamelModel):
    result: Optional[Movie] = None
    is_last: bool
    is_first: bool


class VoteOut(CamelModel):
    recorded: bool
    votes_count: int
    total_movies: int
    voting_complete: bool
    all_voting_complete: bool


class VotingPosition(CamelModel):
    position: int


class UserRef(CamelModel):
    id: str
    name: str


class VotingResults(CamelModel):
    both_yes: List[Movie] = []
    user1_no: List[Movie] = []
    user2_no: List[Movie] = []
    both_no: List[Movie] = []
    users: List[UserRef] = []


class LibrarySection(CamelModel):
    key: str
    title: str


class FilterOptions(CamelModel):
    genres: List[str]
    runtime_blocks: List[str]
    decades: List[str]
    moods: List[str]
    mood_genre_map: Dict[str, List[str]]
