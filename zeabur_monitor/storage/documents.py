"""JSON document persistence for sessions, accounts and the admin password.

Each concern lives in its own small JSON file. Writes go through a temp file
in the same directory followed by ``os.replace`` so readers only ever see a
complete document.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from zeabur_monitor.errors import PersistenceError

logger = logging.getLogger(__name__)

SESSIONS_FILE = "sessions.json"
ACCOUNTS_FILE = "accounts.json"
PASSWORD_FILE = "password.json"


class JsonDocument:
    """A single JSON document on disk with atomic, whole-document writes."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _heal(self) -> None:
        """Remove a directory sitting where the document should be."""
        if self._path.is_dir():
            logger.warning("%s is a directory, removing it", self._path)
            shutil.rmtree(self._path)

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self, default: Any = None) -> Any:
        """Return the parsed document, or ``default`` when missing or unreadable."""
        try:
            self._heal()
        except OSError as exc:
            logger.error("Failed to remove directory at %s: %s", self._path, exc)
            return default

        if not self._path.exists():
            return default

        try:
            with self._path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read %s: %s", self._path, exc)
            return default

    def save(self, data: Any) -> None:
        """Atomically replace the document with ``data``.

        Raises :class:`PersistenceError` if anything on the way fails.
        """
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self._heal()
        except OSError as exc:
            logger.error("Failed to prepare %s: %s", self._path, exc)
            raise PersistenceError(f"Failed to save {self._path.name}: {exc}") from exc

        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self._path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error("Failed to save %s: %s", self._path, exc)
            raise PersistenceError(f"Failed to save {self._path.name}: {exc}") from exc
