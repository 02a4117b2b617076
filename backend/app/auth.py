from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.app.models import UserRecord
from backend.app.sessions import SessionRecord, SessionRegistry
from backend.app.settings import Settings
from backend.app.storage import Storage

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    user: UserRecord
    session: SessionRecord

    @property
    def user_id(self) -> str:
        return self.user.id


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    settings = get_settings(request)
    cookie_token = request.cookies.get(settings.session_cookie_name)
    if cookie_token:
        return cookie_token
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


def get_auth_context(
    request: Request,
    token: Optional[str] = Depends(get_session_token),
) -> AuthContext:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="not authenticated",
        )
    session = get_sessions(request).resolve(token)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="session expired or revoked",
        )
    storage: Storage = request.app.state.storage
    user = storage.get_user(session.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="session user no longer exists",
        )
    return AuthContext(user=user, session=session)


def issue_session_cookie(response: Response, *, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response, *, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
