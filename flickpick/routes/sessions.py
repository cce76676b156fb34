# flickpick/routes/sessions.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Path

from flickpick.deps import get_engine
from flickpick.schemas import (
    Joined,
    JoinIn,
    MatchResult,
    Navigation,
    PreferencesIn,
    SessionCreated,
    SessionCreateIn,
    SessionSummary,
    Submitted,
    VoteIn,
    VoteOut,
    VotingPosition,
    VotingResults,
)
from flickpick.services.sessions import SessionEngine

router = APIRouter(prefix="/session", tags=["session"])


@router.post("", response_model=SessionCreated)
async def create_session(
    payload: Optional[SessionCreateIn] = Body(default=None),
    engine: SessionEngine = Depends(get_engine),
):
    session = engine.create_session(payload.movie_count if payload else None)
    return SessionCreated(code=session.code, movie_count=session.movie_count)


@router.get("/{code}", response_model=SessionSummary)
async def get_session(code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    return engine.summary(code)


@router.post("/{code}/join", response_model=Joined)
async def join_session(payload: JoinIn, code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    session = await engine.join(code, payload.user_id, payload.name)
    return Joined(code=session.code)


@router.post("/{code}/preferences", response_model=Submitted)
async def submit_preferences(
    payload: PreferencesIn,
    code: str = Path(..., min_length=1, max_length=16),
    engine: SessionEngine = Depends(get_engine),
):
    session = await engine.submit_preferences(code, payload.user_id, payload.preferences)
    return Submitted(all_submitted=session.all_submitted)


@router.get("/{code}/result", response_model=MatchResult)
async def get_result(code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    """Compute the match on first call; later calls (any user) get the same list back."""
    session = await engine.compute_match(code)
    return MatchResult(
        result=session.result,
        total_matches=len(session.movies),
        current_index=session.current_index,
        is_last=session.current_index >= len(session.movies) - 1,
        matched_criteria=session.matched_criteria,
        movies=session.movies,
    )


@router.post("/{code}/reroll", response_model=Navigation)
async def reroll(code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    return await engine.reroll(code)


@router.post("/{code}/previous", response_model=Navigation)
async def previous(code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    return await engine.previous(code)


@router.post("/{code}/vote", response_model=VoteOut)
async def vote(payload: VoteIn, code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    return await engine.vote(code, payload.user_id, payload.movie_id, payload.vote)


@router.get("/{code}/voting-position/{user_id}", response_model=VotingPosition)
async def voting_position(
    code: str = Path(..., min_length=1, max_length=16),
    user_id: str = Path(..., min_length=1),
    engine: SessionEngine = Depends(get_engine),
):
    return VotingPosition(position=engine.voting_position(code, user_id))


@router.get("/{code}/voting-results", response_model=VotingResults)
async def voting_results(code: str = Path(..., min_length=1, max_length=16), engine: SessionEngine = Depends(get_engine)):
    return engine.voting_results(code)
