"""Account catalog: environment-configured accounts followed by saved ones."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from zeabur_monitor.errors import NotFound
from zeabur_monitor.storage import JsonDocument

logger = logging.getLogger(__name__)


class Account(BaseModel):
    """A named Zeabur API token."""

    name: str
    token: str


def parse_env_accounts(raw: str) -> list[Account]:
    """Parse ``"name1:token1,name2:token2"``. Incomplete entries are skipped."""
    accounts: list[Account] = []
    for item in raw.split(","):
        if not item.strip():
            continue
        name, _, token = item.partition(":")
        name, token = name.strip(), token.strip()
        if not name or not token:
            logger.warning("Skipping malformed ACCOUNTS entry %r", name or item[:8])
            continue
        accounts.append(Account(name=name, token=token))
    return accounts


class AccountCatalog:
    """Merged view over env accounts and the persisted ``accounts.json``.

    No de-duplication by name is done; the same name may appear in both.
    """

    def __init__(self, document: JsonDocument, env_accounts: list[Account] | None = None) -> None:
        self._document = document
        self._env_accounts = list(env_accounts or [])

    @property
    def env_accounts(self) -> list[Account]:
        return list(self._env_accounts)

    def persisted(self) -> list[Account]:
        raw = self._document.load(default=[])
        if not isinstance(raw, list):
            logger.error("Ignoring malformed account list in %s", self._document.path)
            return []
        accounts: list[Account] = []
        for item in raw:
            try:
                accounts.append(Account.model_validate(item))
            except PydanticValidationError:
                logger.warning("Skipping malformed saved account: %r", _describe(item))
        return accounts

    def all(self) -> list[Account]:
        return self.env_accounts + self.persisted()

    def replace(self, accounts: list[Account]) -> None:
        """Replace the persisted subset wholesale."""
        self._document.save([a.model_dump() for a in accounts])
        logger.info("Saved %d accounts", len(accounts))

    def delete(self, index: int) -> Account:
        """Remove the persisted account at ``index`` (env accounts excluded)."""
        accounts = self.persisted()
        if not 0 <= index < len(accounts):
            raise NotFound("Account not found")
        removed = accounts.pop(index)
        self.replace(accounts)
        logger.info("Deleted account %s", removed.name)
        return removed


def _describe(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("name", "<unnamed>")
    return type(item).__name__
