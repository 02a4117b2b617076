from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from secrets import token_urlsafe
from threading import Lock
from typing import Optional

import jwt

from backend.app.models import utc_now


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: str
    created_at_utc: datetime
    expires_at_utc: datetime


class SessionRegistry:
    """
    Server-side sessions for a single API instance. The cookie only carries a
    signed reference (``sid``) to a record held here, so revoking the record
    invalidates every copy of the token.
    """

    def __init__(
        self,
        *,
        secret: str,
        ttl_seconds: int,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._lock = Lock()
        self._sessions: dict[str, SessionRecord] = {}
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def start(self, user_id: str) -> str:
        now = self._clock()
        record = SessionRecord(
            session_id=token_urlsafe(24),
            user_id=user_id,
            created_at_utc=now,
            expires_at_utc=now + self._ttl,
        )
        with self._lock:
            self._purge_expired(now)
            self._sessions[record.session_id] = record
        return jwt.encode(
            {
                "sid": record.session_id,
                "sub": user_id,
                "iat": int(now.timestamp()),
                "exp": int(record.expires_at_utc.timestamp()),
            },
            self._secret,
            algorithm=self._algorithm,
        )

    def resolve(self, token: str) -> Optional[SessionRecord]:
        session_id, subject = self._decode(token)
        if not session_id:
            return None
        with self._lock:
            record = self._sessions.get(session_id)
            if not record:
                return None
            if record.expires_at_utc <= self._clock():
                del self._sessions[session_id]
                return None
        if record.user_id != subject:
            return None
        return record

    def revoke(self, token: str) -> bool:
        session_id, _ = self._decode(token)
        if not session_id:
            return False
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def active_count(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._sessions)

    def _decode(self, token: str) -> tuple[Optional[str], Optional[str]]:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError:
            return None, None
        session_id = payload.get("sid")
        subject = payload.get("sub")
        if not isinstance(session_id, str) or not isinstance(subject, str):
            return None, None
        return session_id, subject

    def _purge_expired(self, now: datetime) -> None:
        expired = [
            session_id
            for session_id, record in self._sessions.items()
            if record.expires_at_utc <= now
        ]
        for session_id in expired:
            del self._sessions[session_id]
