"""User sessions and the cookie jar that maps cookies to them."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class Session:
    """Data kept for one browser between requests."""

    used_time: float = field(default_factory=time.time)
    contents: dict[str, Any] = field(default_factory=dict)
    static_objects: dict[str, Any] = field(default_factory=dict)

    def touch(self, now: float | None = None) -> None:
        """Record that the session was used."""
        self.used_time = time.time() if now is None else now

    def abandon(self) -> None:
        """Mark the session as long unused so it is removed."""
        self.used_time = 0

    def expired(self, now: float, timeout_minutes: int) -> bool:
        """Whether the session has been idle longer than the timeout."""
        return self.used_time + 60 * timeout_minutes < now


class CookieJar:
    """Thread-safe store of the sessions handed out to browsers."""

    def __init__(self, server_index: int = 0, cookie_index: int = 0) -> None:
        self.server_index = server_index
        self.cookie_index = cookie_index
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def issue(self, session: Session) -> str:
        """Store a session under a fresh cookie and return the cookie."""
        with self._lock:
            cookie = (
                f"{self.server_index & 0xFFFFFFFF:08X}="
                f"{self.cookie_index & 0xFFFFFFFFFFFFFFFF:016X}"
            )
            self.cookie_index = (self.cookie_index + 1) & 0xFFFFFFFFFFFFFFFF
            self._sessions[cookie] = session
        return cookie

    def lookup(self, cookie: str | None, now: float | None = None) -> Session | None:
        """Find the session for a cookie, marking it used; None if unknown."""
        if cookie is None:
            return None
        with self._lock:
            session = self._sessions.get(cookie)
            if session is not None:
                session.touch(now)
        return session

    def sweep(self, now: float, timeout_minutes: int) -> list[Session]:
        """Remove and return the sessions idle longer than the timeout."""
        with self._lock:
            stale = [
                cookie
                for cookie, session in self._sessions.items()
                if session.expired(now, timeout_minutes)
            ]
            return [self._sessions.pop(cookie) for cookie in stale]

    def discard(self, session: Session) -> bool:
        """Remove a session wherever it is stored; True if it was found."""
        with self._lock:
            cookies = [c for c, s in self._sessions.items() if s is session]
            for cookie in cookies:
                del self._sessions[cookie]
        return bool(cookies)

    def clear(self) -> None:
        """Drop every stored session."""
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)