"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from zeabur_monitor.api.server import create_app
from zeabur_monitor.config import Settings
from zeabur_monitor.upstream.client import UpstreamClient
from zeabur_monitor.usage import UsageAggregator


class FakeZeabur:
    """In-memory stand-in for the Zeabur GraphQL API, served via MockTransport.

    ``accounts`` maps an API token to the data that token can see. Unknown
    tokens get a GraphQL error envelope, tokens in ``offline`` raise a
    connection error.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.offline: set[str] = set()
        self.usage_broken: set[str] = set()
        self.mutations: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def add_account(
        self,
        token: str,
        user_id: str = "u1",
        username: str = "alice",
        projects: list[dict[str, Any]] | None = None,
        usage: list[dict[str, Any]] | None = None,
        aihub: dict[str, Any] | None = None,
    ) -> None:
        self.accounts[token] = {
            "user": {"_id": user_id, "username": username, "email": f"{username}@example.com", "credit": 0},
            "projects": projects or [],
            "usage": usage or [],
            "aihub": aihub or {"balance": 0, "keys": []},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        token = request.headers["authorization"].removeprefix("Bearer ")
        body = json.loads(request.content)
        self.calls.append((token, body))

        if token in self.offline:
            raise httpx.ConnectError("connection refused", request=request)

        query = body["query"]
        for name, result in self.mutations.items():
            if name in query:
                return httpx.Response(200, json={"data": {name: result}})

        account = self.accounts.get(token)
        if account is None:
            return httpx.Response(
                200,
                json={"data": {"me": None}, "errors": [{"message": "Unauthorized"}]},
            )

        if "serviceCostsThisMonth" in query:
            data: dict[str, Any] = {"me": {"serviceCostsThisMonth": 1.5}}
        elif "usages(" in query:
            if token in self.usage_broken:
                return httpx.Response(502, text="<html>Bad Gateway</html>")
            data = {"usages": {"categories": [], "data": account["usage"]}}
        elif "aihubTenant" in query:
            data = {"aihubTenant": account["aihub"]}
        elif "projects {" in query:
            data = {"projects": {"edges": [{"node": p} for p in account["projects"]]}}
        else:
            data = {"me": account["user"]}
        return httpx.Response(200, json={"data": data})

    def queries_for(self, token: str) -> list[dict[str, Any]]:
        return [body for t, body in self.calls if t == token]


@pytest.fixture
def fake_zeabur() -> FakeZeabur:
    return FakeZeabur()


@pytest.fixture
def upstream(fake_zeabur: FakeZeabur) -> UpstreamClient:
    return UpstreamClient(transport=httpx.MockTransport(fake_zeabur.handler))


@pytest.fixture
def aggregator(upstream: UpstreamClient) -> UsageAggregator:
    return UsageAggregator(upstream, today=lambda: date(2025, 3, 14))


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Settings isolated from the real environment and .env file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "admin_password": "",
            "accounts": "",
            "config_dir": str(tmp_path / "config"),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def make_client(
    make_settings: Callable[..., Settings], fake_zeabur: FakeZeabur
) -> Callable[..., TestClient]:
    """Build a TestClient for an app wired to the fake Zeabur API."""

    def _make(**overrides: Any) -> TestClient:
        app = create_app(make_settings(**overrides), transport=httpx.MockTransport(fake_zeabur.handler))
        return TestClient(app)

    return _make
