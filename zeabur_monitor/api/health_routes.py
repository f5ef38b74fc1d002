"""Unauthenticated liveness probe."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
def health(request: Request) -> dict[str, Any]:
    return {
        "ok": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "origin": request.headers.get("origin"),
    }
