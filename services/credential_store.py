"""
Credential store for the CRM connection.

Holds the connection parameters (base URL, schema, username, password) and
persists them to a small JSON key-value file so they survive restarts. The
"remember me" flag decides whether credentials are written to disk at all;
without it they only live for the lifetime of the process.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from models.credentials import ApiCredentials
from services.notifications import NotificationCenter

logger = logging.getLogger(__name__)

CREDENTIALS_KEY = "crmApiCredentials"
REMEMBER_ME_KEY = "crm-remember-me"

CredentialsListener = Callable[[Optional[ApiCredentials]], None]


class CredentialStore:
    """Get/set access to the CRM credentials with durable storage."""

    def __init__(
        self,
        path: str | Path,
        notifications: Optional[NotificationCenter] = None,
    ) -> None:
        self._path = Path(path)
        self._notifications = notifications
        self._listeners: list[CredentialsListener] = []
        self._credentials: Optional[ApiCredentials] = None
        self._remember_me: bool = False
        self._load()

    @property
    def remember_me(self) -> bool:
        return self._remember_me

    def get(self) -> Optional[ApiCredentials]:
        """Last-set or last-loaded credentials, or None."""
        return self._credentials

    def set(self, credentials: ApiCredentials, remember: bool = True) -> None:
        """Store credentials and notify observers.

        No shape validation happens here; the connectivity probe is the
        place to find out whether the URL and schema actually work.
        """
        self._credentials = credentials
        self._remember_me = remember

        data = self._read_storage()
        if remember:
            data[CREDENTIALS_KEY] = credentials.to_dict()
            data[REMEMBER_ME_KEY] = True
        else:
            data.pop(CREDENTIALS_KEY, None)
            data.pop(REMEMBER_ME_KEY, None)
        self._write_storage(data)

        logger.info(
            "Saved API credentials",
            extra={"api_url": credentials.api_url, "remember_me": remember},
        )
        if self._notifications is not None:
            self._notifications.success("API-inställningar har sparats!")
        self._emit()

    def clear(self) -> None:
        """Forget credentials in memory and on disk."""
        self._credentials = None
        self._remember_me = False
        data = self._read_storage()
        data.pop(CREDENTIALS_KEY, None)
        data.pop(REMEMBER_ME_KEY, None)
        self._write_storage(data)
        logger.info("Cleared API credentials")
        self._emit()

    def add_listener(self, listener: CredentialsListener) -> Callable[[], None]:
        """Register a change observer; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._credentials)
            except Exception:
                logger.exception("Credentials listener failed")

    def _load(self) -> None:
        data = self._read_storage()
        raw = data.get(CREDENTIALS_KEY)
        if raw is None:
            return

        try:
            self._credentials = ApiCredentials.model_validate(raw)
        except ValidationError as exc:
            logger.error("Failed to parse saved credentials: %s", exc)
            data.pop(CREDENTIALS_KEY, None)
            self._write_storage(data)
            return

        self._remember_me = bool(data.get(REMEMBER_ME_KEY, True))
        logger.info(
            "Restored API credentials from storage",
            extra={"api_url": self._credentials.api_url},
        )

    def _read_storage(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read credential storage %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_storage(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
