"""
Session credentials and caller resolution.

A session token is an HS256 JWT carrying the local user id, the external
identity and the role (``"none"`` until onboarding). Tokens expire after
``JWT_EXPIRES_DAYS`` days. Route dependencies below verify the token on every
protected call and re-derive the caller's owning profile from the database,
so no client-supplied id is ever used as a scoping key.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .errors import Forbidden, Unauthorized
from .models import Enterprise, Individual, User, UserRole
from .services import users as user_service
from .settings import Settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ROLE_NONE = "none"


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    open_id: str
    role: str | None


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET missing")
    return settings.jwt_secret


def create_token(settings: Settings, user: User, now: datetime | None = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "openId": user.open_id,
        "role": user.role or ROLE_NONE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(days=settings.jwt_expires_days)).timestamp()),
    }
    return jwt.encode(payload, _secret(settings), algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> SessionClaims:
    try:
        payload = jwt.decode(token, _secret(settings), algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except JWTError:
        raise Unauthorized("Invalid token")
    try:
        user_id = int(payload["sub"])
        open_id = str(payload["openId"])
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token")
    role = payload.get("role")
    return SessionClaims(user_id=user_id, open_id=open_id, role=None if role in (None, ROLE_NONE) else role)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


async def get_current_user(
    session: SessionDep,
    settings: SettingsDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials:
        raise Unauthorized("Not authenticated")
    claims = decode_token(settings, credentials.credentials)
    user = await user_service.get_user(session, claims.user_id)
    if user is None or user.open_id != claims.open_id:
        raise Unauthorized("Invalid token")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_enterprise(session: SessionDep, user: CurrentUser) -> Enterprise:
    enterprise = await user_service.get_enterprise_by_user_id(session, user.id)
    if enterprise is None:
        raise Forbidden("Enterprise profile not found")
    return enterprise


async def require_individual(session: SessionDep, user: CurrentUser) -> Individual:
    individual = await user_service.get_individual_by_user_id(session, user.id)
    if individual is None:
        raise Forbidden("Individual profile not found")
    return individual


async def require_admin(user: CurrentUser) -> User:
    if user.role != UserRole.admin.value:
        raise Forbidden("Admin role required")
    return user


CurrentEnterprise = Annotated[Enterprise, Depends(require_enterprise)]
CurrentIndividual = Annotated[Individual, Depends(require_individual)]
CurrentAdmin = Annotated[User, Depends(require_admin)]
