# flickpick/models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from flickpick.schemas import MatchedCriteria, Movie, UserPreferences


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserState(BaseModel):
    name: str
    preferences: Optional[UserPreferences] = None
    joined_at: datetime = Field(default_factory=utcnow)
    # movie id -> True (yes) / False (no)
    votes: Dict[str, bool] = {}
    voting_complete: bool = False

    @property
    def has_submitted(self) -> bool:
        return self.preferences is not None


class Session(BaseModel):
    """
    One matching room. Lives only in the session store, for at most
    SESSION_MAX_AGE_HOURS after creation.
    """
    code: str
    created_at: datetime = Field(default_factory=utcnow)
    movie_count: int
    # insertion order matters: first joined user is "user 1" in the tally
    users: Dict[str, UserState] = {}
    # None until the match has been computed; then fixed for the session's life
    candidates: Optional[List[Movie]] = None
    current_index: int = 0
    result: Optional[Movie] = None
    matched_criteria: Optional[MatchedCriteria] = None

    @property
    def matched(self) -> bool:
        return self.candidates is not None

    @property
    def movies(self) -> List[Movie]:
        return self.candidates or []

    @property
    def submitted_count(self) -> int:
        return sum(1 for u in self.users.values() if u.has_submitted)

    @property
    def voting_complete_count(self) -> int:
        return sum(1 for u in self.users.values() if u.voting_complete)

    @property
    def all_submitted(self) -> bool:
        return 1 <= len(self.users) <= 2 and self.submitted_count == len(self.users)

    @property
    def all_voting_complete(self) -> bool:
        return len(self.users) >= 1 and self.voting_complete_count == len(self.users)

    @property
    def state(self) -> str:
        """Lifecycle stage, derived from user/submission/vote counts."""
        if not self.users:
            return "created"
        if self.all_voting_complete:
            return "all_voting_complete"
        if any(u.votes for u in self.users.values()):
            return "voting"
        if self.matched:
            return "matched"
        if len(self.users) == 1 and self.submitted_count == 0:
            return "awaiting_users"
        return "awaiting_preferences"

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or utcnow()) - self.created_at).total_seconds()
