"""
WeChat mini-program login, role onboarding and session introspection.

Tokens are stateless JWTs; ``logout`` only acknowledges, clients drop the token.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from .errors import NotFound
from .integrations.wechat_api import WechatClient, get_identity_provider
from .schemas import (
    ApiResponse,
    DevLoginRequest,
    LoginResult,
    MeRead,
    Message,
    RoleResult,
    SetRoleRequest,
    UserRead,
    WechatLoginRequest,
)
from .security import CurrentUser, SessionDep, SettingsDep, create_token
from .services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/wechat-login", response_model=ApiResponse[LoginResult])
async def wechat_login(
    data: WechatLoginRequest,
    session: SessionDep,
    settings: SettingsDep,
    wechat: WechatClient = Depends(get_identity_provider),
):
    identity = await wechat.code2session(data.code)
    info = data.user_info
    user = await user_service.upsert_user(
        session,
        identity.open_id,
        owner_open_id=settings.owner_open_id,
        union_id=identity.union_id,
        name=info.nick_name if info else None,
        avatar_url=info.avatar_url if info else None,
        login_method="wechat",
    )
    logger.info(f"[auth] wechat login user {user.id}")
    token = create_token(settings, user)
    return ApiResponse(data=LoginResult(token=token, user=UserRead.model_validate(user)))


@router.post("/dev-login", response_model=ApiResponse[LoginResult])
async def dev_login(data: DevLoginRequest, session: SessionDep, settings: SettingsDep):
    """Local identities for development; disabled unless DEV_LOGIN_ENABLED."""
    if not settings.dev_login_enabled:
        raise NotFound("Not Found")
    user = await user_service.upsert_user(
        session,
        data.open_id,
        owner_open_id=settings.owner_open_id,
        name=data.name,
        avatar_url=data.avatar_url,
        login_method="dev",
    )
    logger.info(f"[auth] dev login user {user.id}")
    token = create_token(settings, user)
    return ApiResponse(data=LoginResult(token=token, user=UserRead.model_validate(user)))


@router.post("/set-role", response_model=ApiResponse[RoleResult])
async def set_role(data: SetRoleRequest, user: CurrentUser, session: SessionDep, settings: SettingsDep):
    user = await user_service.select_role(session, user, data.role)
    return ApiResponse(data=RoleResult(role=user.role, token=create_token(settings, user)))


@router.get("/me", response_model=ApiResponse[MeRead])
async def me(user: CurrentUser, session: SessionDep):
    enterprise = await user_service.get_enterprise_by_user_id(session, user.id)
    individual = await user_service.get_individual_by_user_id(session, user.id)
    data = MeRead.model_validate(user)
    data.enterprise_id = enterprise.id if enterprise else None
    data.individual_id = individual.id if individual else None
    return ApiResponse(data=data)


@router.post("/logout", response_model=ApiResponse[Message])
async def logout(user: CurrentUser):
    return ApiResponse(data=Message(message="Logged out"))
