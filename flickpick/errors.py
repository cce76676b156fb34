# flickpick/errors.py
from __future__ import annotations


class SessionError(Exception):
    """A request the session engine refuses. Routes turn these into JSON errors."""

    status_code = 400
    reason = "bad_request"
    message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class SessionNotFound(SessionError):
    status_code = 404
    reason = "not_found"
    message = "Session not found"


class UserNotInSession(SessionError):
    status_code = 404
    reason = "user_not_found"
    message = "User not in session"


class SessionFull(SessionError):
    status_code = 409
    reason = "full"
    message = "Session is full"


class NotAllSubmitted(SessionError):
    reason = "not_all_submitted"
    message = "Not all users have submitted preferences"


class MatchNotReady(SessionError):
    reason = "no_match"
    message = "No matched movies for this session yet"


class VotingIncomplete(SessionError):
    reason = "voting_incomplete"
    message = "Not all users have finished voting"


class CatalogUnavailable(SessionError):
    status_code = 502
    reason = "catalog_unavailable"
    message = "Failed to fetch the movie catalog"
