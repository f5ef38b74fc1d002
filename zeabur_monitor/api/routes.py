"""Account data endpoints.

Batches report each account's outcome inline; one account failing never
turns the whole response into an error.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from zeabur_monitor.accounts import Account, AccountCatalog
from zeabur_monitor.auth import require_auth
from zeabur_monitor.errors import ValidationError
from zeabur_monitor.upstream import UpstreamError
from zeabur_monitor.usage import AccountFailure, UsageAggregator

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_auth)])


# -- Request models ------------------------------------------------------------


class AccountsBody(BaseModel):
    accounts: list[Account]


class BatchBody(BaseModel):
    """Batch request; entries are checked one by one so a bad entry only fails itself."""

    accounts: list[Any]


class ValidateAccountBody(BaseModel):
    accountName: str = ""
    apiToken: str = ""


# -- Helpers -------------------------------------------------------------------


def _aggregator(request: Request) -> UsageAggregator:
    return request.app.state.aggregator  # type: ignore[no-any-return]


def _catalog(request: Request) -> AccountCatalog:
    return request.app.state.catalog  # type: ignore[no-any-return]


async def _run_batch(
    entries: list[Any],
    batch: Callable[[list[Account]], Awaitable[list[Any]]],
) -> list[dict[str, Any]]:
    """Run ``batch`` over the usable entries, keeping a failure in place of each unusable one."""
    slots: list[Account | AccountFailure] = []
    for entry in entries:
        try:
            account = Account.model_validate(entry)
        except PydanticValidationError:
            account = None
        if account is None or not account.name or not account.token:
            name = entry.get("name") if isinstance(entry, dict) else None
            slots.append(
                AccountFailure(
                    name=name if isinstance(name, str) else "",
                    error="Account name and API token are required",
                )
            )
            continue
        slots.append(account)

    results = iter(await batch([s for s in slots if isinstance(s, Account)]))
    return [(next(results) if isinstance(s, Account) else s).to_dict() for s in slots]


# -- Batch endpoints -----------------------------------------------------------


@router.post("/temp-accounts")
async def temp_accounts(body: BatchBody, request: Request) -> list[dict[str, Any]]:
    """Usage summary for every account in the request."""
    logger.info("Account summary requested for %d accounts", len(body.accounts))
    return await _run_batch(body.accounts, _aggregator(request).summarize_batch)


@router.post("/temp-projects")
async def temp_projects(body: BatchBody, request: Request) -> list[dict[str, Any]]:
    """Project listing with per-project cost for every account in the request."""
    logger.info("Project listing requested for %d accounts", len(body.accounts))
    return await _run_batch(body.accounts, _aggregator(request).projects_batch)


@router.get("/accounts")
async def saved_account_summaries(request: Request) -> list[dict[str, Any]]:
    """Usage summary for the saved accounts."""
    results = await _aggregator(request).summarize_batch(_catalog(request).persisted())
    return [r.to_dict() for r in results]


@router.get("/projects")
async def saved_account_projects(request: Request) -> list[dict[str, Any]]:
    results = await _aggregator(request).projects_batch(_catalog(request).persisted())
    return [r.to_dict() for r in results]


@router.post("/validate-account")
async def validate_account(body: ValidateAccountBody, request: Request) -> dict[str, Any]:
    """Check that an API token resolves to a Zeabur user."""
    if not body.accountName or not body.apiToken:
        raise ValidationError("Account name and API token are required")

    try:
        user = await _aggregator(request).validate_token(body.apiToken)
    except UpstreamError as exc:
        raise ValidationError(f"API token validation failed: {exc.message}") from exc

    if user is None:
        raise ValidationError("API token is invalid or lacks permission")

    return {
        "success": True,
        "message": "Account validated",
        "userData": user,
        "accountName": body.accountName,
        "apiToken": body.apiToken,
    }


# -- Saved accounts ------------------------------------------------------------


@router.get("/server-accounts")
def list_server_accounts(request: Request) -> list[dict[str, Any]]:
    """Environment accounts first, then saved ones."""
    catalog = _catalog(request)
    accounts = catalog.all()
    logger.info(
        "Returning %d accounts (env: %d)", len(accounts), len(catalog.env_accounts)
    )
    return [a.model_dump() for a in accounts]


@router.post("/server-accounts")
def save_server_accounts(body: AccountsBody, request: Request) -> dict[str, Any]:
    _catalog(request).replace(body.accounts)
    return {"success": True, "message": "Accounts saved to server"}


@router.delete("/server-accounts/{index}")
def delete_server_account(index: int, request: Request) -> dict[str, Any]:
    """Delete a saved account by its position among the saved accounts."""
    _catalog(request).delete(index)
    return {"success": True, "message": "Account deleted"}
