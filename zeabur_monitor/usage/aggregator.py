"""Per-account usage aggregation over the Zeabur API.

For each account four queries run concurrently (identity, projects, AI Hub
balance, month-to-date service costs). When the identity resolves, a fifth
query fetches this month's usage per project per day, from which the
per-project display costs and the account totals are computed.

Money is handled as :class:`~decimal.Decimal` and only turned into floats
when rendered to JSON.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import Any, Union

from zeabur_monitor.accounts.catalog import Account
from zeabur_monitor.upstream import queries
from zeabur_monitor.upstream.client import UpstreamClient, UpstreamRejected
from zeabur_monitor.upstream.models import (
    AccountData,
    UsageEntry,
    as_list,
    dig,
    graphql_error,
    project_id,
    usage_entries,
)

logger = logging.getLogger(__name__)

FREE_QUOTA_LIMIT = Decimal("5.00")
CENT = Decimal("0.01")


# ── Usage math ───────────────────────────────────────────────────────────────


def display_cost(raw: Decimal) -> Decimal:
    """Round a project's raw monthly sum up to the cent, as Zeabur displays it."""
    if raw <= 0:
        return Decimal(0)
    return raw.quantize(CENT, rounding=ROUND_CEILING)


def usage_window(today: date) -> tuple[str, str]:
    """First of the month through tomorrow (the upstream ``to`` is exclusive)."""
    first = today.replace(day=1)
    tomorrow = today + timedelta(days=1)
    return first.isoformat(), tomorrow.isoformat()


@dataclass
class UsageSnapshot:
    """Derived monthly usage figures for one account."""

    per_project_cost: dict[str, Decimal] = field(default_factory=dict)
    total_usage: Decimal = Decimal(0)
    free_quota_limit: Decimal = FREE_QUOTA_LIMIT

    @property
    def free_quota_remaining(self) -> Decimal:
        # Negative once the allowance is exceeded; not clamped.
        return self.free_quota_limit - self.total_usage

    @property
    def credit_cents(self) -> int:
        # Halves round toward +infinity: -50.5 -> -50
        cents = self.free_quota_remaining * 100 + Decimal("0.5")
        return int(cents.to_integral_value(rounding=ROUND_FLOOR))

    @classmethod
    def empty(cls, free_quota_limit: Decimal = FREE_QUOTA_LIMIT) -> "UsageSnapshot":
        return cls(free_quota_limit=free_quota_limit)


def compute_usage_snapshot(
    entries: Iterable[UsageEntry],
    free_quota_limit: Decimal = FREE_QUOTA_LIMIT,
) -> UsageSnapshot:
    """Per-project display costs plus the unrounded account total."""
    per_project: dict[str, Decimal] = {}
    total = Decimal(0)
    for entry in entries:
        raw = entry.raw_total
        per_project[entry.id] = display_cost(raw)
        total += raw
    return UsageSnapshot(
        per_project_cost=per_project,
        total_usage=total,
        free_quota_limit=free_quota_limit,
    )


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass
class AccountSummary:
    """Successful usage summary for one account."""

    name: str
    user: dict[str, Any]
    usage: UsageSnapshot
    aihub: dict[str, Any]
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        total = float(self.usage.total_usage)
        return {
            "name": self.name,
            "success": True,
            "data": {
                **self.user,
                "credit": self.usage.credit_cents,
                "totalUsage": total,
                "totalCost": total,
                "freeQuotaLimit": float(self.usage.free_quota_limit),
            },
            "aihub": self.aihub,
        }


@dataclass
class ProjectListing:
    """Successful project listing, each project annotated with its cost."""

    name: str
    projects: list[dict[str, Any]]
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "success": True, "projects": self.projects}


@dataclass
class AccountFailure:
    name: str
    error: str
    success: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "success": False, "error": self.error}


AccountResult = Union[AccountSummary, AccountFailure]
ProjectsResult = Union[ProjectListing, AccountFailure]


def annotate_project(project: dict[str, Any], costs: dict[str, Decimal]) -> dict[str, Any]:
    """Shape one project for the dashboard and attach its display cost."""
    pid = project_id(project)
    cost = costs.get(pid) if pid else None
    if cost is None and project.get("id") is not None:
        cost = costs.get(str(project["id"]))
    value = float(cost) if cost is not None else 0.0
    region = project.get("region")
    return {
        "_id": pid,
        "name": project.get("name") or "",
        "region": (region.get("name") if isinstance(region, dict) else None) or "Unknown",
        "environments": as_list(project.get("environments")),
        "services": as_list(project.get("services")),
        "cost": value,
        "hasCostData": value > 0,
    }


# ── Aggregator ───────────────────────────────────────────────────────────────


class UsageAggregator:
    """Fetches and summarizes account data, one isolated pipeline per account."""

    def __init__(
        self,
        client: UpstreamClient,
        free_quota_limit: Decimal = FREE_QUOTA_LIMIT,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._limit = Decimal(str(free_quota_limit))
        self._today = today

    async def fetch_account_data(self, token: str) -> AccountData:
        """Run the four account queries concurrently and normalize them.

        All four are awaited before anything is raised; the first failure in
        query order propagates.
        """
        responses = await asyncio.gather(
            self._client.execute(token, queries.USER_QUERY),
            self._client.execute(token, queries.PROJECTS_QUERY),
            self._client.execute(token, queries.AIHUB_QUERY),
            self._client.execute(token, queries.SERVICE_COSTS_QUERY),
            return_exceptions=True,
        )
        for resp in responses:
            if isinstance(resp, BaseException):
                raise resp

        # An identity query answered only with errors (bad token) fails the account
        user_resp = responses[0]
        if not dig(user_resp, "data", "me"):
            error = graphql_error(user_resp)
            if error:
                raise UpstreamRejected(error, details=user_resp)
        return AccountData.from_responses(*responses)

    async def fetch_usage(self, token: str, user_id: str) -> UsageSnapshot:
        from_date, to_date = usage_window(self._today())
        resp = await self._client.execute(
            token,
            queries.MONTHLY_USAGE_QUERY,
            variables=queries.monthly_usage_variables(user_id, from_date, to_date),
            operation_name=queries.MONTHLY_USAGE_OPERATION,
        )
        return compute_usage_snapshot(usage_entries(resp), self._limit)

    async def _usage_or_empty(self, name: str, token: str, user_id: str | None) -> UsageSnapshot:
        if not user_id:
            return UsageSnapshot.empty(self._limit)
        try:
            return await self.fetch_usage(token, user_id)
        except Exception as exc:
            logger.warning("[%s] usage lookup failed: %s", name, exc)
            return UsageSnapshot.empty(self._limit)

    async def summarize_account(self, account: Account) -> AccountSummary:
        data = await self.fetch_account_data(account.token)
        usage = await self._usage_or_empty(account.name, account.token, data.user_id)
        logger.info(
            "[%s] usage $%.2f, remaining $%.2f",
            account.name,
            usage.total_usage,
            usage.free_quota_remaining,
        )
        return AccountSummary(name=account.name, user=data.user, usage=usage, aihub=data.aihub)

    async def list_projects(self, account: Account) -> ProjectListing:
        data = await self.fetch_account_data(account.token)
        usage = await self._usage_or_empty(account.name, account.token, data.user_id)
        projects = [annotate_project(p, usage.per_project_cost) for p in data.projects]
        logger.info("[%s] found %d projects", account.name, len(projects))
        return ProjectListing(name=account.name, projects=projects)

    async def validate_token(self, token: str) -> dict[str, Any] | None:
        """The user record behind ``token``, or None when it has no identity."""
        data = await self.fetch_account_data(token)
        return data.user if data.user_id else None

    # ── Batches ──────────────────────────────────────────────────────────

    async def _isolated(self, account: Account, pipeline: Callable[[Account], Any]) -> Any:
        try:
            return await pipeline(account)
        except Exception as exc:
            logger.error("[%s] %s", account.name, exc)
            return AccountFailure(name=account.name, error=str(exc) or type(exc).__name__)

    async def summarize_batch(self, accounts: list[Account]) -> list[AccountResult]:
        """One result per account, in input order. Failures never escape."""
        return list(
            await asyncio.gather(*(self._isolated(a, self.summarize_account) for a in accounts))
        )

    async def projects_batch(self, accounts: list[Account]) -> list[ProjectsResult]:
        return list(
            await asyncio.gather(*(self._isolated(a, self.list_projects) for a in accounts))
        )
