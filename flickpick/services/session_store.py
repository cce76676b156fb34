# flickpick/services/session_store.py
from __future__ import annotations

import asyncio
from typing import Dict, Iterator, List, Optional

from flickpick.models import Session


class SessionStore:
    """
    Where sessions live. Codes are case-insensitive; implementations normalise
    them. `lock(code)` is the per-session guard every mutation runs under; it
    exists from `put` until `delete` and raises KeyError for unknown codes.
    """

    def get(self, code: str) -> Optional[Session]:
        raise NotImplementedError

    def put(self, session: Session) -> None:
        raise NotImplementedError

    def delete(self, code: str) -> bool:
        raise NotImplementedError

    def sessions(self) -> List[Session]:
        raise NotImplementedError

    def lock(self, code: str) -> asyncio.Lock:
        raise NotImplementedError

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def _key(code: str) -> str:
        return (code or "").strip().upper()

    def get(self, code: str) -> Optional[Session]:
        return self._sessions.get(self._key(code))

    def put(self, session: Session) -> None:
        key = self._key(session.code)
        self._sessions[key] = session
        self._locks.setdefault(key, asyncio.Lock())

    def delete(self, code: str) -> bool:
        key = self._key(code)
        self._locks.pop(key, None)
        return self._sessions.pop(key, None) is not None

    def sessions(self) -> List[Session]:
        # snapshot, safe to iterate while deleting
        return list(self._sessions.values())

    def lock(self, code: str) -> asyncio.Lock:
        # only stored sessions have a lock; unknown codes never allocate one
        return self._locks[self._key(code)]

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(self.sessions())
