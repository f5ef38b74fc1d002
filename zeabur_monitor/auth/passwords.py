"""Admin password setup and verification.

The password comes from ``ADMIN_PASSWORD`` when set, otherwise from
``password.json``. It is compared in plaintext.
"""

from __future__ import annotations

import logging

from zeabur_monitor.errors import ValidationError
from zeabur_monitor.storage import JsonDocument

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AdminPassword:
    """Resolves, sets and checks the single admin password."""

    def __init__(self, document: JsonDocument, env_password: str = "") -> None:
        self._document = document
        self._env_password = env_password

    @property
    def from_environment(self) -> bool:
        return bool(self._env_password)

    def stored(self) -> str | None:
        """Password saved in ``password.json``, if any."""
        data = self._document.load(default=None)
        if not isinstance(data, dict):
            return None
        password = data.get("password")
        return str(password) if password else None

    def configured(self) -> str | None:
        """The effective admin password. The environment always wins."""
        if self._env_password:
            return self._env_password
        return self.stored()

    def is_configured(self) -> bool:
        return self.configured() is not None

    def set_password(self, candidate: str | None) -> None:
        """First-run setup. Raises :class:`ValidationError` when not allowed."""
        if self._env_password:
            raise ValidationError("Password is set via ADMIN_PASSWORD and cannot be changed")
        if self.stored() is not None:
            raise ValidationError("Password is already set")
        if not candidate or len(candidate) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        self._document.save({"password": candidate})
        logger.info("Admin password saved to %s", self._document.path)

    def verify(self, candidate: str | None) -> bool:
        configured = self.configured()
        return configured is not None and candidate == configured
