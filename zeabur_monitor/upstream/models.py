"""Normalized views over Zeabur GraphQL responses.

Responses for partially failed queries still come back with ``data: null``
or missing branches, so everything here defaults to empty structures and
nothing past this module assumes a field is present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any


def dig(payload: Any, *path: str) -> Any:
    """Walk nested dicts, returning ``None`` as soon as a level is missing."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def graphql_error(payload: Any) -> str | None:
    """First message of a GraphQL ``errors`` envelope, if any."""
    errors = dig(payload, "errors")
    if not isinstance(errors, list) or not errors:
        return None
    first = errors[0]
    message = first.get("message") if isinstance(first, dict) else None
    return str(message) if message else "GraphQL error"


def as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def to_decimal(value: Any) -> Decimal:
    """Coerce a JSON number into a Decimal without binary float noise."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return result if result.is_finite() else Decimal(0)


@dataclass
class AccountData:
    """Result of the four-way fan-out for one account."""

    user: dict[str, Any] = field(default_factory=dict)
    projects: list[dict[str, Any]] = field(default_factory=list)
    aihub: dict[str, Any] = field(default_factory=dict)
    service_costs: Decimal = Decimal(0)

    @property
    def user_id(self) -> str | None:
        user_id = self.user.get("_id")
        return str(user_id) if user_id else None

    @classmethod
    def from_responses(
        cls,
        user_resp: Any,
        projects_resp: Any,
        aihub_resp: Any,
        service_costs_resp: Any,
    ) -> "AccountData":
        edges = as_list(dig(projects_resp, "data", "projects", "edges"))
        projects = [as_dict(dig(edge, "node")) for edge in edges]
        return cls(
            user=as_dict(dig(user_resp, "data", "me")),
            projects=[p for p in projects if p],
            aihub=as_dict(dig(aihub_resp, "data", "aihubTenant")),
            service_costs=to_decimal(dig(service_costs_resp, "data", "me", "serviceCostsThisMonth")),
        )


@dataclass
class UsageEntry:
    """Daily usage series for one project."""

    id: str
    name: str = ""
    daily: list[Decimal] = field(default_factory=list)

    @property
    def raw_total(self) -> Decimal:
        return sum(self.daily, Decimal(0))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageEntry":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            daily=[to_decimal(v) for v in as_list(data.get("usageOfEntity"))],
        )


def usage_entries(resp: Any) -> list[UsageEntry]:
    return [
        UsageEntry.from_dict(item)
        for item in as_list(dig(resp, "data", "usages", "data"))
        if isinstance(item, dict)
    ]


def project_id(project: dict[str, Any]) -> str:
    """The project's id under either spelling, unwrapping ``{"$oid": ...}``."""
    raw = project.get("_id")
    if isinstance(raw, dict):
        raw = raw.get("$oid")
    if not raw:
        raw = project.get("id")
    return str(raw) if raw else ""
