"""Password setup, login / logout and session probing.

Endpoints:
  GET  /api/check-password    {hasPassword}
  POST /api/set-password      first-run password setup
  POST /api/verify-password   check a password without logging in
  POST /api/login             create a session, set the sid cookie
  POST /api/logout            destroy the session, clear the cookie
  GET  /api/session           {authenticated}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel

from zeabur_monitor.auth import AdminPassword, AuthGate, SessionStore
from zeabur_monitor.auth.gate import SESSION_COOKIE
from zeabur_monitor.errors import AuthRequired, ValidationError

logger = logging.getLogger(__name__)

auth_router = APIRouter(tags=["auth"])


class PasswordBody(BaseModel):
    password: str = ""


def _password(request: Request) -> AdminPassword:
    return request.app.state.admin_password  # type: ignore[no-any-return]


def _require_configured(password: AdminPassword) -> None:
    if not password.is_configured():
        raise ValidationError("Set the admin password first")


@auth_router.get("/check-password")
def check_password(request: Request) -> dict[str, Any]:
    return {"hasPassword": _password(request).is_configured()}


@auth_router.post("/set-password")
def set_password(body: PasswordBody, request: Request) -> dict[str, Any]:
    _password(request).set_password(body.password)
    logger.info("Admin password set")
    return {"success": True}


@auth_router.post("/verify-password")
def verify_password(body: PasswordBody, request: Request) -> dict[str, Any]:
    password = _password(request)
    _require_configured(password)
    if not password.verify(body.password):
        raise AuthRequired("Wrong password")
    return {"success": True}


@auth_router.post("/login")
def login(body: PasswordBody, request: Request, response: Response) -> dict[str, Any]:
    password = _password(request)
    _require_configured(password)
    if not password.verify(body.password):
        raise AuthRequired("Wrong password")

    sessions: SessionStore = request.app.state.sessions
    sid = sessions.create(body.password)
    response.set_cookie(SESSION_COOKIE, sid, httponly=True, samesite="lax", path="/")
    # sessionId is also returned for clients that cannot use cookies
    return {"success": True, "sessionId": sid}


@auth_router.post("/logout")
def logout(request: Request, response: Response) -> dict[str, Any]:
    gate: AuthGate = request.app.state.auth_gate
    identity = gate.session_identity(request)
    if identity is not None:
        request.app.state.sessions.destroy(identity.session_id)
    response.delete_cookie(SESSION_COOKIE, path="/", httponly=True)
    return {"success": True}


@auth_router.get("/session")
def session_status(request: Request) -> dict[str, Any]:
    gate: AuthGate = request.app.state.auth_gate
    authenticated = gate.session_identity(request) is not None
    logger.debug("Session probe: authenticated=%s", authenticated)
    return {"authenticated": authenticated}
