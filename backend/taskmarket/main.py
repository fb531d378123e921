from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import Database
from .errors import install_error_handlers
from .integrations.wechat_api import WechatClient
from .routes_admin import router as admin_router
from .routes_auth import router as auth_router
from .routes_enterprise import router as enterprise_router
from .routes_worker import router as worker_router
from .settings import Settings, get_settings
from .task_types import catalog

logger = logging.getLogger("taskmarket")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.async_database_url)
        app.state.database = database
        if settings.create_schema_on_startup:
            await database.create_schema()
        logger.info(f"[app] started ({settings.environment})")
        try:
            yield
        finally:
            await database.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.wechat = WechatClient(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    @app.get("/api/task-types")
    async def task_types():
        return {"success": True, "data": catalog()}

    app.include_router(auth_router)
    app.include_router(enterprise_router)
    app.include_router(worker_router)
    app.include_router(admin_router)
    return app


app = create_app()
