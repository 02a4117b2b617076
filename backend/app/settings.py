from __future__ import annotations

import os
from dataclasses import dataclass

TOTAL_LEADS_SOURCES = {"contacts", "campaigns"}
DEV_SESSION_SECRET = "dev-only-secret-change-in-prod"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _list_env(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_env: str
    database_url: str
    seed_demo_data: bool
    session_secret: str
    session_cookie_name: str
    session_cookie_secure: bool
    session_ttl_seconds: int
    bcrypt_rounds: int
    cors_origins: tuple[str, ...]
    warm_lead_threshold: int
    total_leads_source: str
    activity_feed_limit: int

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.database_url)


def load_settings() -> Settings:
    total_leads_source = os.getenv("TOTAL_LEADS_SOURCE", "contacts").strip().lower()
    if total_leads_source not in TOTAL_LEADS_SOURCES:
        total_leads_source = "contacts"
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        database_url=os.getenv("DATABASE_URL", "").strip(),
        seed_demo_data=_bool_env("SEED_DEMO_DATA", True),
        session_secret=os.getenv("SESSION_SECRET", DEV_SESSION_SECRET).strip(),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "campaignforge_session").strip(),
        session_cookie_secure=_bool_env("SESSION_COOKIE_SECURE", False),
        session_ttl_seconds=max(60, _int_env("SESSION_TTL_SECONDS", 7 * 24 * 60 * 60)),
        bcrypt_rounds=max(4, min(15, _int_env("BCRYPT_ROUNDS", 12))),
        cors_origins=_list_env(
            "CORS_ORIGINS",
            "http://localhost:5173,http://localhost:5174,http://localhost:5175",
        ),
        warm_lead_threshold=max(0, min(80, _int_env("WARM_LEAD_THRESHOLD", 60))),
        total_leads_source=total_leads_source,
        activity_feed_limit=max(1, min(200, _int_env("ACTIVITY_FEED_LIMIT", 20))),
    )
