"""Control endpoints that forward a single GraphQL operation to Zeabur.

Endpoints:
  POST /api/project/rename    rename a project
  POST /api/service/pause     suspend a service
  POST /api/service/restart   restart a service
  POST /api/service/logs      recent runtime logs of a service
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from zeabur_monitor.auth import require_auth
from zeabur_monitor.errors import MonitorError, ValidationError
from zeabur_monitor.upstream import UpstreamClient, UpstreamError, UpstreamRejected, queries
from zeabur_monitor.upstream.models import as_list, dig

logger = logging.getLogger(__name__)

service_router = APIRouter(dependencies=[Depends(require_auth)], tags=["control"])


# ── Request models ───────────────────────────────────────────────────────────


class ServiceBody(BaseModel):
    token: str = ""
    serviceId: str = ""
    environmentId: str = ""


class LogsBody(ServiceBody):
    projectId: str = ""
    limit: int = 200


class RenameBody(BaseModel):
    token: str = ""
    projectId: str = ""
    newName: str = ""


# ── Helpers ──────────────────────────────────────────────────────────────────


def _require(*values: str) -> None:
    if not all(values):
        raise ValidationError("Missing required parameters")


async def _forward(request: Request, token: str, query: str, action: str) -> Any:
    """Execute ``query``; upstream failures become 500s prefixed with ``action``."""
    client: UpstreamClient = request.app.state.upstream
    try:
        return await client.execute(token, query)
    except UpstreamError as exc:
        raise MonitorError(f"Failed to {action}: {exc.message}") from exc


def _log_sort_key(entry: Any) -> datetime:
    raw = entry.get("timestamp") if isinstance(entry, dict) else None
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


# ── Endpoints ────────────────────────────────────────────────────────────────


@service_router.post("/project/rename")
async def rename_project(body: RenameBody, request: Request) -> dict[str, Any]:
    _require(body.token, body.projectId, body.newName)
    logger.info("Renaming project %s", body.projectId)

    result = await _forward(
        request, body.token, queries.rename_project(body.projectId, body.newName), "rename project"
    )
    if not dig(result, "data", "renameProject"):
        logger.warning("Rename of project %s rejected: %s", body.projectId, result)
        raise UpstreamRejected("Rename failed", details=result)
    return {"success": True, "message": "Project renamed"}


@service_router.post("/service/pause")
async def pause_service(body: ServiceBody, request: Request) -> dict[str, Any]:
    _require(body.token, body.serviceId, body.environmentId)

    result = await _forward(
        request, body.token, queries.suspend_service(body.serviceId, body.environmentId), "pause service"
    )
    if not dig(result, "data", "suspendService"):
        raise UpstreamRejected("Pause failed", details=result)
    logger.info("Paused service %s", body.serviceId)
    return {"success": True, "message": "Service paused"}


@service_router.post("/service/restart")
async def restart_service(body: ServiceBody, request: Request) -> dict[str, Any]:
    _require(body.token, body.serviceId, body.environmentId)

    result = await _forward(
        request, body.token, queries.restart_service(body.serviceId, body.environmentId), "restart service"
    )
    if not dig(result, "data", "restartService"):
        raise UpstreamRejected("Restart failed", details=result)
    logger.info("Restarted service %s", body.serviceId)
    return {"success": True, "message": "Service restarted"}


@service_router.post("/service/logs")
async def service_logs(body: LogsBody, request: Request) -> dict[str, Any]:
    """Oldest-first runtime logs, trimmed to the newest ``limit`` entries."""
    _require(body.token, body.serviceId, body.environmentId, body.projectId)

    result = await _forward(
        request,
        body.token,
        queries.runtime_logs(body.projectId, body.serviceId, body.environmentId),
        "fetch logs",
    )
    raw_logs = dig(result, "data", "runtimeLogs")
    if raw_logs is None:
        raise UpstreamRejected("Failed to fetch logs", details=result)

    entries = sorted(as_list(raw_logs), key=_log_sort_key)
    logs = entries[-body.limit:] if body.limit > 0 else []
    return {
        "success": True,
        "logs": logs,
        "count": len(logs),
        "totalCount": len(entries),
    }
