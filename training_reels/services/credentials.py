"""Persistence helpers for the API bearer token."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from ..config import AppConfig


LOGGER = logging.getLogger(__name__)


@dataclass
class StoredCredentials:
    """Container for persisted authentication state."""

    token: Optional[str] = None


class CredentialStore:
    """Load and store the bearer token alongside other local state."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._path = config.credentials_file

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredCredentials:
        if not self._path.exists():
            return StoredCredentials()

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring unreadable credentials file at %s", self._path)
            return StoredCredentials()
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring malformed credentials file at %s", self._path)
            return StoredCredentials()

        credentials = StoredCredentials()
        for field, value in payload.items():
            if hasattr(credentials, field):
                setattr(credentials, field, value)
        return credentials

    def save(self, credentials: StoredCredentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(credentials)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def load_token(self) -> Optional[str]:
        token = self.load().token
        return token.strip() if token and token.strip() else None

    def save_token(self, token: str) -> None:
        self.save(StoredCredentials(token=token.strip()))

    def clear(self) -> None:
        """Forget the stored token."""

        if self._path.exists():
            self._path.unlink()
            LOGGER.info("Cleared stored credentials at %s", self._path)


__all__ = ["CredentialStore", "StoredCredentials"]
