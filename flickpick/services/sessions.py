# flickpick/services/sessions.py
from __future__ import annotations

import asyncio
import logging
import random
import secrets
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol, Tuple

from flickpick.constants import MAX_USERS_PER_SESSION, SESSION_CODE_ALPHABET, SESSION_CODE_LENGTH
from flickpick.core.settings import MAX_MOVIE_COUNT, MIN_MOVIE_COUNT
from flickpick.errors import (
    CatalogUnavailable,
    MatchNotReady,
    NotAllSubmitted,
    SessionFull,
    SessionNotFound,
    UserNotInSession,
    VotingIncomplete,
)
from flickpick.models import Session, UserState, utcnow
from flickpick.schemas import (
    MatchedCriteria,
    Movie,
    Navigation,
    SessionSummary,
    SessionUserOut,
    UserPreferences,
    UserRef,
    VoteOut,
    VotingResults,
)
from flickpick.services.candidates import select_candidates
from flickpick.services.preferences import combine
from flickpick.services.rating_cache import RatingCache
from flickpick.services.session_store import SessionStore
from flickpick.services.tally import tally

logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    async def list_catalog(self, section_key: Optional[str] = None) -> List[Movie]: ...

    async def list_genres(self, section_key: Optional[str] = None) -> List[str]: ...


def clamp_movie_count(value: Optional[int], default: int) -> int:
    n = default if value is None else int(value)
    return max(MIN_MOVIE_COUNT, min(MAX_MOVIE_COUNT, n))


def generate_code() -> str:
    return "".join(secrets.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))


class SessionEngine:
    """
    Session lifecycle: create -> join (1-2 users) -> submit preferences ->
    match (computed once) -> browse or vote -> tally.

    Every mutation runs under the store's per-session lock. The match
    computation itself runs outside the lock; concurrent callers share it.
    """

    def __init__(
        self,
        store: SessionStore,
        catalog: CatalogProvider,
        ratings: RatingCache,
        *,
        max_age: timedelta = timedelta(hours=24),
        default_movie_count: int = 50,
        enrich_concurrency: int = 8,
        section_key: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.ratings = ratings
        self.max_age = max_age
        self.default_movie_count = default_movie_count
        self.enrich_concurrency = enrich_concurrency
        self.section_key = section_key
        self.rng = rng
        self._pending: Dict[str, asyncio.Task] = {}

    # ---------- lookups ----------

    def _require(self, code: str) -> Session:
        session = self.store.get(code)
        if session is None:
            raise SessionNotFound()
        return session

    @staticmethod
    def _require_user(session: Session, user_id: str) -> UserState:
        user = session.users.get(user_id)
        if user is None:
            raise UserNotInSession()
        return user

    def _lock(self, code: str) -> asyncio.Lock:
        """Guard for an existing session; unknown codes fail before any lock is made."""
        self._require(code)
        return self.store.lock(code)

    def get_session(self, code: str) -> Session:
        return self._require(code)

    def summary(self, code: str) -> SessionSummary:
        s = self._require(code)
        return SessionSummary(
            code=s.code,
            state=s.state,
            user_count=len(s.users),
            submitted_count=s.submitted_count,
            voting_complete_count=s.voting_complete_count,
            movie_count=s.movie_count,
            total_movies=len(s.movies),
            all_voting_complete=s.all_voting_complete,
            users=[
                SessionUserOut(
                    id=uid,
                    name=u.name,
                    has_submitted=u.has_submitted,
                    voting_complete=u.voting_complete,
                    votes_count=len(u.votes),
                )
                for uid, u in s.users.items()
            ],
            has_result=s.result is not None,
        )

    # ---------- lifecycle ----------

    def create_session(self, movie_count: Optional[int] = None) -> Session:
        code = generate_code()
        while code in self.store:
            code = generate_code()
        session = Session(code=code, movie_count=clamp_movie_count(movie_count, self.default_movie_count))
        self.store.put(session)
        logger.info("Created session %s (movie_count=%s)", code, session.movie_count)
        return session

    async def join(self, code: str, user_id: str, name: str) -> Session:
        async with self._lock(code):
            session = self._require(code)
            if user_id in session.users:
                return session
            if len(session.users) >= MAX_USERS_PER_SESSION:
                raise SessionFull()
            session.users[user_id] = UserState(name=name)
            logger.info("User %s joined session %s (%s/%s)", user_id, session.code, len(session.users), MAX_USERS_PER_SESSION)
            return session

    async def submit_preferences(self, code: str, user_id: str, preferences: UserPreferences) -> Session:
        async with self._lock(code):
            session = self._require(code)
            user = self._require_user(session, user_id)
            user.preferences = preferences
            return session

    # ---------- matching ----------

    async def _run_match(self, budget: int, prefs: List[UserPreferences]) -> Tuple[List[Movie], MatchedCriteria]:
        combined, criteria = combine(prefs[0], prefs[1] if len(prefs) > 1 else None)
        try:
            catalog = await self.catalog.list_catalog(self.section_key)
        except Exception as e:
            logger.exception("Catalog fetch failed")
            raise CatalogUnavailable() from e
        candidates = await select_candidates(
            catalog,
            combined,
            budget,
            self.ratings,
            rng=self.rng,
            concurrency=self.enrich_concurrency,
        )
        return candidates, criteria

    async def compute_match(self, code: str) -> Session:
        """
        Candidate list for the session, computed on the first call and returned
        unchanged afterwards. Callers arriving mid-computation wait for the same run.
        """
        lock = self._lock(code)
        async with lock:
            session = self._require(code)
            if not session.all_submitted:
                raise NotAllSubmitted()
            if session.matched:
                logger.info("Using cached result for session %s", session.code)
                return session
            task = self._pending.get(session.code)
            if task is None:
                logger.info("Calculating match for session %s", session.code)
                prefs = [u.preferences for u in session.users.values() if u.preferences is not None]
                task = asyncio.create_task(self._run_match(session.movie_count, prefs))
                self._pending[session.code] = task

        try:
            # shielded: a caller going away must not cancel the shared run
            candidates, criteria = await asyncio.shield(task)
        finally:
            if task.done() and self._pending.get(session.code) is task:
                self._pending.pop(session.code, None)

        async with lock:
            session = self._require(code)
            if not session.matched:
                session.candidates = candidates
                session.matched_criteria = criteria
                session.current_index = 0
                session.result = candidates[0] if candidates else None
                logger.info("Session %s matched %s movies", session.code, len(candidates))
            return session

    # ---------- browsing ----------

    async def _move(self, code: str, step: int) -> Navigation:
        async with self._lock(code):
            session = self._require(code)
            movies = session.movies
            if not movies:
                raise MatchNotReady()
            last = len(movies) - 1
            target = session.current_index + step
            if 0 <= target <= last:
                session.current_index = target
                session.result = movies[target]
            return Navigation(
                result=session.result,
                is_last=session.current_index >= last,
                is_first=session.current_index == 0,
            )

    async def reroll(self, code: str) -> Navigation:
        return await self._move(code, 1)

    async def previous(self, code: str) -> Navigation:
        return await self._move(code, -1)

    # ---------- voting ----------

    async def vote(self, code: str, user_id: str, movie_id: str, value: bool) -> VoteOut:
        async with self._lock(code):
            session = self._require(code)
            user = self._require_user(session, user_id)
            if not session.matched:
                raise MatchNotReady()

            total = len(session.movies)
            recorded = any(m.id == movie_id for m in session.movies)
            if recorded:
                user.votes[movie_id] = bool(value)
            else:
                logger.info("Ignoring vote for unknown movie %s in session %s", movie_id, session.code)
            if total and len(user.votes) >= total:
                user.voting_complete = True

            return VoteOut(
                recorded=recorded,
                votes_count=len(user.votes),
                total_movies=total,
                voting_complete=user.voting_complete,
                all_voting_complete=session.all_voting_complete,
            )

    def voting_position(self, code: str, user_id: str) -> int:
        """Index of the first candidate this user hasn't voted on."""
        session = self._require(code)
        user = self._require_user(session, user_id)
        for i, m in enumerate(session.movies):
            if m.id not in user.votes:
                return i
        return len(session.movies)

    def voting_results(self, code: str) -> VotingResults:
        session = self._require(code)
        if not session.all_voting_complete:
            raise VotingIncomplete()
        out = tally(session.movies, [u.votes for u in session.users.values()])
        out.users = [UserRef(id=uid, name=u.name) for uid, u in session.users.items()]
        return out

    # ---------- expiry ----------

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        limit = self.max_age.total_seconds()
        removed = 0
        for session in self.store.sessions():
            if session.age_seconds(now) <= limit or self.store.get(session.code) is not session:
                continue
            async with self.store.lock(session.code):
                if self.store.get(session.code) is session:
                    self.store.delete(session.code)
                    removed += 1
        if removed:
            logger.info("Swept %s expired sessions", removed)
        return removed
