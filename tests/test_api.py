"""Tests for the FastAPI routes."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

USAGE = [
    {"id": "p1", "name": "web", "usageOfEntity": [0.071]},
    {"id": "p2", "name": "db", "usageOfEntity": [0.034]},
]
PROJECTS = [
    {"_id": "p1", "name": "web", "region": {"name": "Tokyo"}, "environments": [], "services": []},
    {"_id": "p2", "name": "db", "region": {"name": "Tokyo"}, "environments": [], "services": []},
]


@pytest.fixture
def client(make_client) -> TestClient:
    """App with an admin password from the environment."""
    return make_client(admin_password="admin-pw")


@pytest.fixture
def open_client(make_client) -> TestClient:
    """App with no admin password anywhere (first run)."""
    return make_client()


AUTH = {"x-admin-password": "admin-pw"}


class TestPasswordEndpoints:
    def test_check_password_first_run(self, open_client: TestClient) -> None:
        assert open_client.get("/api/check-password").json() == {"hasPassword": False}

    def test_check_password_env(self, client: TestClient) -> None:
        assert client.get("/api/check-password").json() == {"hasPassword": True}

    def test_set_password_flow(self, open_client: TestClient, tmp_path: Path) -> None:
        resp = open_client.post("/api/set-password", json={"password": "secret1"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert open_client.get("/api/check-password").json() == {"hasPassword": True}
        assert (tmp_path / "config" / "password.json").is_file()

        again = open_client.post("/api/set-password", json={"password": "secret2"})
        assert again.status_code == 400

    def test_set_password_too_short(self, open_client: TestClient) -> None:
        resp = open_client.post("/api/set-password", json={"password": "12345"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_set_password_blocked_by_env(self, client: TestClient) -> None:
        resp = client.post("/api/set-password", json={"password": "long-enough"})
        assert resp.status_code == 400

    def test_verify_password(self, client: TestClient) -> None:
        assert client.post("/api/verify-password", json={"password": "admin-pw"}).json() == {"success": True}
        wrong = client.post("/api/verify-password", json={"password": "nope"})
        assert wrong.status_code == 401
        assert "sid" not in wrong.cookies

    def test_verify_password_before_setup(self, open_client: TestClient) -> None:
        assert open_client.post("/api/verify-password", json={"password": "x"}).status_code == 400


class TestSessionEndpoints:
    def test_login_sets_cookie(self, client: TestClient) -> None:
        resp = client.post("/api/login", json={"password": "admin-pw"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert resp.cookies["sid"] == body["sessionId"]
        cookie_header = resp.headers["set-cookie"].lower()
        assert "httponly" in cookie_header
        assert "samesite=lax" in cookie_header

    def test_login_wrong_password(self, client: TestClient) -> None:
        resp = client.post("/api/login", json={"password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_login_before_setup(self, open_client: TestClient) -> None:
        assert open_client.post("/api/login", json={"password": "x"}).status_code == 400

    def test_session_probe(self, client: TestClient) -> None:
        assert client.get("/api/session").json() == {"authenticated": False}
        client.post("/api/login", json={"password": "admin-pw"})
        assert client.get("/api/session").json() == {"authenticated": True}

    def test_bearer_session_probe(self, client: TestClient) -> None:
        sid = client.post("/api/login", json={"password": "admin-pw"}).json()["sessionId"]
        client.cookies.clear()
        resp = client.get("/api/session", headers={"Authorization": f"Bearer {sid}"})
        assert resp.json() == {"authenticated": True}

    def test_logout(self, client: TestClient) -> None:
        sid = client.post("/api/login", json={"password": "admin-pw"}).json()["sessionId"]
        resp = client.post("/api/logout")
        assert resp.json() == {"success": True}
        assert sid not in client.app.state.sessions
        assert client.get("/api/session").json() == {"authenticated": False}

    def test_session_survives_restart(self, make_client) -> None:
        first = make_client(admin_password="admin-pw")
        sid = first.post("/api/login", json={"password": "admin-pw"}).json()["sessionId"]

        with make_client(admin_password="admin-pw") as restarted:
            resp = restarted.get("/api/server-accounts", headers={"Authorization": f"Bearer {sid}"})
            assert resp.status_code == 200


class TestAuthGuard:
    def test_data_endpoint_requires_auth(self, client: TestClient) -> None:
        resp = client.get("/api/server-accounts")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Not authenticated, please log in again"}

    def test_cookie_session_grants_access(self, client: TestClient) -> None:
        client.post("/api/login", json={"password": "admin-pw"})
        assert client.get("/api/server-accounts").status_code == 200

    def test_password_header_grants_access(self, client: TestClient) -> None:
        assert client.get("/api/server-accounts", headers=AUTH).status_code == 200

    def test_bootstrap_grants_access(self, open_client: TestClient) -> None:
        assert open_client.get("/api/server-accounts").status_code == 200

    def test_health_is_public(self, client: TestClient) -> None:
        body = client.get("/health", headers={"Origin": "http://localhost:3000"}).json()
        assert body["ok"] is True
        assert body["origin"] == "http://localhost:3000"


class TestServerAccounts:
    def test_merge_env_and_saved(self, make_client) -> None:
        client = make_client(admin_password="admin-pw", accounts="env1:tok-e")
        save = client.post(
            "/api/server-accounts",
            headers=AUTH,
            json={"accounts": [{"name": "saved1", "token": "tok-s"}]},
        )
        assert save.json()["success"] is True

        listed = client.get("/api/server-accounts", headers=AUTH).json()
        assert listed == [
            {"name": "env1", "token": "tok-e"},
            {"name": "saved1", "token": "tok-s"},
        ]

    def test_delete_by_index(self, client: TestClient) -> None:
        client.post(
            "/api/server-accounts",
            headers=AUTH,
            json={"accounts": [{"name": "a", "token": "1"}, {"name": "b", "token": "2"}]},
        )
        assert client.delete("/api/server-accounts/0", headers=AUTH).json()["success"] is True
        assert client.get("/api/server-accounts", headers=AUTH).json() == [{"name": "b", "token": "2"}]

    def test_delete_missing(self, client: TestClient) -> None:
        assert client.delete("/api/server-accounts/5", headers=AUTH).status_code == 404

    def test_invalid_account_list(self, client: TestClient) -> None:
        resp = client.post("/api/server-accounts", headers=AUTH, json={"accounts": "nope"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_unexpected_error_is_json_500(self, client: TestClient) -> None:
        lenient = TestClient(client.app, raise_server_exceptions=False)
        with patch.object(client.app.state.catalog, "all", side_effect=RuntimeError("boom")):
            resp = lenient.get("/api/server-accounts", headers=AUTH)
        assert resp.status_code == 500
        assert resp.headers["content-type"] == "application/json"
        assert resp.json() == {"success": False, "error": "/api/server-accounts server error: boom"}


class TestUsageEndpoints:
    def test_temp_accounts_batch(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", usage=USAGE)
        resp = client.post(
            "/api/temp-accounts",
            headers=AUTH,
            json={"accounts": [{"name": "A", "token": "tok-a"}, {"name": "B", "token": "bad"}]},
        )
        assert resp.status_code == 200
        a, b = resp.json()
        assert a["name"] == "A"
        assert a["success"] is True
        assert a["data"]["totalUsage"] == pytest.approx(0.105)
        assert a["data"]["credit"] == 490
        assert a["data"]["freeQuotaLimit"] == 5
        assert b == {"name": "B", "success": False, "error": "Unauthorized"}

    def test_temp_accounts_over_quota(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", usage=[{"id": "p1", "usageOfEntity": [3.25, 2.25]}])
        resp = client.post("/api/temp-accounts", headers=AUTH, json={"accounts": [{"name": "A", "token": "tok-a"}]})
        data = resp.json()[0]["data"]
        assert data["totalUsage"] == 5.5
        assert data["credit"] == -50

    def test_temp_accounts_rejects_missing_list(self, client: TestClient) -> None:
        assert client.post("/api/temp-accounts", headers=AUTH, json={}).status_code == 400

    def test_incomplete_entry_fails_alone(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", usage=USAGE)
        for path in ("/api/temp-accounts", "/api/temp-projects"):
            resp = client.post(
                path,
                headers=AUTH,
                json={"accounts": [{"name": "B"}, {"name": "A", "token": "tok-a"}, "junk"]},
            )
            assert resp.status_code == 200
            b, a, junk = resp.json()
            assert b == {"name": "B", "success": False, "error": "Account name and API token are required"}
            assert a["name"] == "A"
            assert a["success"] is True
            assert junk["success"] is False
            assert junk["name"] == ""

    def test_temp_projects(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", projects=PROJECTS, usage=USAGE)
        resp = client.post("/api/temp-projects", headers=AUTH, json={"accounts": [{"name": "A", "token": "tok-a"}]})
        listing = resp.json()[0]
        assert listing["success"] is True
        costs = {p["_id"]: p["cost"] for p in listing["projects"]}
        assert costs == {"p1": 0.08, "p2": 0.04}

    def test_saved_account_endpoints(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", projects=PROJECTS, usage=USAGE)
        client.post("/api/server-accounts", headers=AUTH, json={"accounts": [{"name": "A", "token": "tok-a"}]})

        summaries = client.get("/api/accounts", headers=AUTH).json()
        assert [s["name"] for s in summaries] == ["A"]
        projects = client.get("/api/projects", headers=AUTH).json()
        assert len(projects[0]["projects"]) == 2

    def test_validate_account(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.add_account("tok-a", user_id="u1")
        resp = client.post("/api/validate-account", headers=AUTH, json={"accountName": "A", "apiToken": "tok-a"})
        body = resp.json()
        assert body["success"] is True
        assert body["userData"]["_id"] == "u1"
        assert body["accountName"] == "A"

    def test_validate_account_bad_token(self, client: TestClient) -> None:
        resp = client.post("/api/validate-account", headers=AUTH, json={"accountName": "A", "apiToken": "bad"})
        assert resp.status_code == 400
        assert "Unauthorized" in resp.json()["error"]

    def test_validate_account_missing_fields(self, client: TestClient) -> None:
        resp = client.post("/api/validate-account", headers=AUTH, json={"accountName": "A"})
        assert resp.status_code == 400


class TestControlEndpoints:
    def test_pause(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.mutations["suspendService"] = True
        resp = client.post(
            "/api/service/pause",
            headers=AUTH,
            json={"token": "t", "serviceId": "s1", "environmentId": "e1"},
        )
        assert resp.json() == {"success": True, "message": "Service paused"}

    def test_restart_rejected(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.mutations["restartService"] = False
        resp = client.post(
            "/api/service/restart",
            headers=AUTH,
            json={"token": "t", "serviceId": "s1", "environmentId": "e1"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Restart failed"
        assert body["details"] == {"data": {"restartService": False}}

    def test_missing_parameters(self, client: TestClient) -> None:
        resp = client.post("/api/service/pause", headers=AUTH, json={"token": "t"})
        assert resp.status_code == 400

    def test_upstream_failure_is_500(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.offline.add("t")
        resp = client.post(
            "/api/project/rename",
            headers=AUTH,
            json={"token": "t", "projectId": "p1", "newName": "new"},
        )
        assert resp.status_code == 500
        assert resp.json()["error"].startswith("Failed to rename project")

    def test_rename(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.mutations["renameProject"] = True
        resp = client.post(
            "/api/project/rename",
            headers=AUTH,
            json={"token": "t", "projectId": "p1", "newName": "new"},
        )
        assert resp.json() == {"success": True, "message": "Project renamed"}

    def test_logs_sorted_and_limited(self, client: TestClient, fake_zeabur) -> None:
        fake_zeabur.mutations["runtimeLogs"] = [
            {"message": "c", "timestamp": "2025-03-01T00:00:03Z"},
            {"message": "a", "timestamp": "2025-03-01T00:00:01Z"},
            {"message": "b", "timestamp": "2025-03-01T00:00:02Z"},
        ]
        resp = client.post(
            "/api/service/logs",
            headers=AUTH,
            json={"token": "t", "serviceId": "s1", "environmentId": "e1", "projectId": "p1", "limit": 2},
        )
        body = resp.json()
        assert [log["message"] for log in body["logs"]] == ["b", "c"]
        assert body["count"] == 2
        assert body["totalCount"] == 3

    def test_control_requires_auth(self, client: TestClient) -> None:
        resp = client.post("/api/service/pause", json={"token": "t", "serviceId": "s", "environmentId": "e"})
        assert resp.status_code == 401
