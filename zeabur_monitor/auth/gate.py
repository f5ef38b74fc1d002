"""Request authentication across the four credential channels.

Channels are evaluated in a fixed order and the first match wins:

1. ``sid`` cookie naming a known session
2. ``Authorization: Bearer <session id>``
3. ``x-admin-password`` header equal to the admin password
4. bootstrap: no admin password configured yet, everyone is let in so the
   client can discover it has to call ``/api/set-password``
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request

from zeabur_monitor.auth.passwords import AdminPassword
from zeabur_monitor.auth.sessions import SessionStore
from zeabur_monitor.errors import AuthRequired

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sid"
PASSWORD_HEADER = "x-admin-password"


@dataclass(frozen=True)
class Identity:
    """Who was let in, and through which channel."""

    channel: str  # cookie | bearer | header | bootstrap
    session_id: str | None = None


def cookie_session_id(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE) or None


def bearer_session_id(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


Extractor = Callable[[Request], "Identity | None"]


class AuthGate:
    """Classifies requests as authenticated or not."""

    def __init__(self, sessions: SessionStore, password: AdminPassword) -> None:
        self._sessions = sessions
        self._password = password
        self.extractors: tuple[Extractor, ...] = (
            self._from_cookie,
            self._from_bearer,
            self._from_password_header,
            self._from_bootstrap,
        )

    def _from_cookie(self, request: Request) -> Identity | None:
        sid = cookie_session_id(request)
        if sid and self._sessions.get(sid) is not None:
            return Identity(channel="cookie", session_id=sid)
        return None

    def _from_bearer(self, request: Request) -> Identity | None:
        sid = bearer_session_id(request)
        if sid and self._sessions.get(sid) is not None:
            return Identity(channel="bearer", session_id=sid)
        return None

    def _from_password_header(self, request: Request) -> Identity | None:
        provided = request.headers.get(PASSWORD_HEADER)
        if provided is not None and self._password.verify(provided):
            return Identity(channel="header")
        return None

    def _from_bootstrap(self, request: Request) -> Identity | None:
        if not self._password.is_configured():
            return Identity(channel="bootstrap")
        return None

    def authenticate(self, request: Request) -> Identity | None:
        for extract in self.extractors:
            identity = extract(request)
            if identity is not None:
                logger.debug("Authenticated via %s", identity.channel)
                return identity
        return None

    def session_identity(self, request: Request) -> Identity | None:
        """Only the session-carrying channels (cookie, then bearer)."""
        return self._from_cookie(request) or self._from_bearer(request)

    def require(self, request: Request) -> Identity:
        identity = self.authenticate(request)
        if identity is None:
            logger.info("Rejected unauthenticated request to %s", request.url.path)
            raise AuthRequired("Not authenticated, please log in again")
        return identity


def require_auth(request: Request) -> Identity:
    """FastAPI dependency guarding the data and control endpoints."""
    gate: AuthGate = request.app.state.auth_gate
    return gate.require(request)
