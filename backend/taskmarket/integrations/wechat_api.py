from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from taskmarket.errors import UpstreamFailure
from taskmarket.settings import Settings

logger = logging.getLogger(__name__)

SESSION_PATH = "/sns/jscode2session"


@dataclass(frozen=True)
class WechatIdentity:
    open_id: str
    union_id: str | None = None


class WechatClient:
    """Mini-program login: exchanges a one-time ``js_code`` for the user's openid."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.appid = settings.wechat_appid
        self.secret = settings.wechat_secret
        self.base_url = settings.wechat_api_base_url.rstrip("/")
        self.timeout = settings.wechat_timeout_sec
        self.transport = transport

    async def code2session(self, code: str) -> WechatIdentity:
        if not self.appid or not self.secret:
            raise UpstreamFailure("WECHAT_APPID and WECHAT_SECRET are not configured")
        params = {
            "appid": self.appid,
            "secret": self.secret,
            "js_code": code,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"{self.base_url}{SESSION_PATH}", params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[wechat] code2session request failed: {exc}")
            raise UpstreamFailure(f"WeChat API request failed: {exc}")

        if data.get("errcode"):
            logger.warning(f"[wechat] code2session error {data.get('errcode')}: {data.get('errmsg')}")
            raise UpstreamFailure(f"WeChat API error: {data.get('errmsg')} ({data.get('errcode')})")
        open_id = data.get("openid")
        if not open_id:
            raise UpstreamFailure("WeChat API response is missing openid")
        return WechatIdentity(open_id=open_id, union_id=data.get("unionid"))


def get_identity_provider(request: Request) -> WechatClient:
    return request.app.state.wechat
