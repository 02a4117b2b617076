from __future__ import annotations

from datetime import timedelta

import jwt

from backend.app.models import utc_now
from backend.app.sessions import SessionRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = utc_now()

    def __call__(self):
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def test_started_session_resolves_to_user() -> None:
    sessions = SessionRegistry(secret="test-secret", ttl_seconds=3600)
    token = sessions.start("user-1")

    record = sessions.resolve(token)

    assert record is not None
    assert record.user_id == "user-1"
    assert sessions.active_count() == 1


def test_session_expires_after_ttl() -> None:
    clock = FakeClock()
    sessions = SessionRegistry(secret="test-secret", ttl_seconds=60, clock=clock)
    token = sessions.start("user-1")

    clock.advance(59)
    assert sessions.resolve(token) is not None

    clock.advance(1)
    assert sessions.resolve(token) is None
    assert sessions.active_count() == 0


def test_revoked_session_no_longer_resolves() -> None:
    sessions = SessionRegistry(secret="test-secret", ttl_seconds=3600)
    token = sessions.start("user-1")

    assert sessions.revoke(token) is True
    assert sessions.resolve(token) is None
    assert sessions.revoke(token) is False


def test_token_signed_with_other_secret_is_rejected() -> None:
    sessions = SessionRegistry(secret="test-secret", ttl_seconds=3600)
    token = sessions.start("user-1")
    claims = jwt.decode(token, "test-secret", algorithms=["HS256"])

    forged = jwt.encode(claims, "attacker-secret", algorithm="HS256")

    assert sessions.resolve(forged) is None
    assert sessions.resolve("not-a-token") is None


def test_subject_must_match_session_owner() -> None:
    sessions = SessionRegistry(secret="test-secret", ttl_seconds=3600)
    token = sessions.start("user-1")
    claims = jwt.decode(token, "test-secret", algorithms=["HS256"])
    claims["sub"] = "user-2"

    swapped = jwt.encode(claims, "test-secret", algorithm="HS256")

    assert sessions.resolve(swapped) is None
