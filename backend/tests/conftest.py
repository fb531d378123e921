from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from taskmarket import schemas
from taskmarket.db import Database
from taskmarket.integrations.wechat_api import WechatClient
from taskmarket.main import create_app
from taskmarket.models import TaskType
from taskmarket.services import ledger
from taskmarket.services import tasks as task_service
from taskmarket.services import users as user_service
from taskmarket.settings import Settings

OWNER_OPEN_ID = "owner-openid"


def wechat_handler(request: httpx.Request) -> httpx.Response:
    code = request.url.params.get("js_code")
    if code == "bad-code":
        return httpx.Response(200, json={"errcode": 40029, "errmsg": "invalid code"})
    return httpx.Response(200, json={"openid": f"wx-{code}", "session_key": "sk", "unionid": f"union-{code}"})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'market.db'}",
        JWT_SECRET="test-secret",
        WECHAT_APPID="wx-app",
        WECHAT_SECRET="wx-secret",
        OWNER_OPEN_ID=OWNER_OPEN_ID,
        DEV_LOGIN_ENABLED=True,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.async_database_url)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.sessionmaker() as s:
        yield s


@pytest.fixture
def app(settings, database):
    application = create_app(settings)
    application.state.database = database
    application.state.wechat = WechatClient(settings, transport=httpx.MockTransport(wechat_handler))
    return application


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login(client):
    """Dev-login an identity and optionally pick a role; returns the latest token."""

    async def _login(open_id: str, role: str | None = None, name: str | None = None) -> str:
        resp = await client.post("/api/auth/dev-login", json={"openId": open_id, "name": name or open_id})
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["token"]
        if role:
            resp = await client.post("/api/auth/set-role", json={"role": role}, headers=bearer(token))
            assert resp.status_code == 200, resp.text
            token = resp.json()["data"]["token"]
        return token

    return _login


def task_payload(**overrides) -> dict:
    payload = {
        "type": "report",
        "subType": "data_analysis",
        "title": "Quarterly sales analysis",
        "description": "Analyse Q3 sales data and summarise trends",
        "requirements": "PDF, at least 10 pages",
        "budget": "500.00",
        "deadline": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_enterprise(session):
    async def _make(open_id: str = "ent-1", company_name: str | None = "Acme Analytics", funds: str | None = None):
        user = await user_service.upsert_user(session, open_id, name=f"{open_id} owner")
        await user_service.select_role(session, user, "enterprise")
        enterprise = await user_service.get_enterprise_by_user_id(session, user.id)
        if company_name:
            enterprise = await user_service.update_enterprise_profile(session, enterprise, company_name=company_name)
        if funds:
            await ledger.recharge(session, enterprise, Decimal(funds))
            await session.refresh(enterprise)
        return enterprise

    return _make


@pytest.fixture
def make_individual(session):
    async def _make(open_id: str = "worker-1", real_name: str | None = None):
        user = await user_service.upsert_user(session, open_id, name=f"{open_id} nick")
        await user_service.select_role(session, user, "individual")
        individual = await user_service.get_individual_by_user_id(session, user.id)
        if real_name:
            individual = await user_service.update_individual_profile(session, individual, real_name=real_name)
        return individual

    return _make


@pytest.fixture
def make_task(session):
    async def _make(enterprise, **overrides):
        fields = {
            "type": TaskType.report,
            "sub_type": "data_analysis",
            "title": "Quarterly sales analysis",
            "description": "Analyse Q3 sales data",
            "budget": Decimal("500.00"),
            "deadline": datetime.now(timezone.utc) + timedelta(days=7),
        }
        fields.update(overrides)
        return await task_service.create_task(session, enterprise, schemas.TaskCreate(**fields))

    return _make
