"""FastAPI server for the Zeabur monitor."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zeabur_monitor.accounts import AccountCatalog, parse_env_accounts
from zeabur_monitor.api.auth_routes import auth_router
from zeabur_monitor.api.health_routes import health_router
from zeabur_monitor.api.routes import router
from zeabur_monitor.api.service_routes import service_router
from zeabur_monitor.auth import AdminPassword, AuthGate, SessionStore
from zeabur_monitor.config import Settings, settings as default_settings
from zeabur_monitor.errors import MonitorError
from zeabur_monitor.storage import ACCOUNTS_FILE, PASSWORD_FILE, SESSIONS_FILE, JsonDocument
from zeabur_monitor.upstream import UpstreamClient
from zeabur_monitor.usage import UsageAggregator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Restore persisted sessions on startup, close the upstream client on shutdown."""
    app.state.sessions.load()

    password: AdminPassword = app.state.admin_password
    if password.from_environment:
        logger.info("Admin password configured via ADMIN_PASSWORD")
    elif password.is_configured():
        logger.info("Admin password loaded from file")
    else:
        logger.warning("No admin password set; it must be set on first visit")

    catalog: AccountCatalog = app.state.catalog
    logger.info(
        "Accounts loaded: %d from environment, %d saved",
        len(catalog.env_accounts),
        len(catalog.persisted()),
    )

    yield

    await app.state.upstream.close()


# ── Error envelopes ──────────────────────────────────────────────────────────


async def _monitor_error(request: Request, exc: MonitorError) -> JSONResponse:
    content = {"success": False, "error": exc.message}
    if exc.details is not None:
        content["details"] = jsonable_encoder(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request body",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": f"{request.url.path} server error: {exc}"},
    )


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(
    config: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app and its injectable stores.

    ``transport`` replaces the network layer of the upstream client (tests).
    """
    config = config or default_settings
    config_dir = config.config_path

    app = FastAPI(
        title="Zeabur Monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    sessions = SessionStore(JsonDocument(config_dir / SESSIONS_FILE))
    admin_password = AdminPassword(JsonDocument(config_dir / PASSWORD_FILE), config.admin_password)
    upstream = UpstreamClient(config.upstream_url, config.upstream_timeout, transport=transport)

    app.state.settings = config
    app.state.sessions = sessions
    app.state.admin_password = admin_password
    app.state.auth_gate = AuthGate(sessions, admin_password)
    app.state.catalog = AccountCatalog(
        JsonDocument(config_dir / ACCOUNTS_FILE),
        parse_env_accounts(config.accounts),
    )
    app.state.upstream = upstream
    app.state.aggregator = UsageAggregator(upstream, Decimal(str(config.free_quota_limit)))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-admin-password"],
    )

    app.add_exception_handler(MonitorError, _monitor_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _invalid_body)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected)

    app.include_router(auth_router, prefix="/api")
    app.include_router(router, prefix="/api")
    app.include_router(service_router, prefix="/api")
    app.include_router(health_router)

    return app
