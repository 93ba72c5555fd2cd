"""On-disk cache of the signed-in customer's token and profile."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("autohub.client.storage")

TOKEN_KEY = "autoHubToken"
USER_KEY = "autoHubUser"


class CredentialStore:
    """Persist the bearer token and user profile under fixed keys.

    Values are stored as strings, the user profile as serialised JSON, so the file
    mirrors what the storefront keeps in browser local storage.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._token: Optional[str] = None
        self._user: Optional[Dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return dict(self._user) if self._user is not None else None

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token) and self._user is not None

    def load(self) -> "CredentialStore":
        """Read saved credentials, discarding them if the profile is unreadable."""

        entries = self._read_entries()
        saved_token = entries.get(TOKEN_KEY)
        saved_user = entries.get(USER_KEY)
        if not saved_token or not saved_user:
            self._token = None
            self._user = None
            return self

        try:
            user = json.loads(saved_user)
        except (TypeError, ValueError) as exc:
            logger.error("Error parsing saved user data: %s", exc)
            self.clear()
            return self

        if not isinstance(user, dict):
            logger.error("Saved user data is not an object; clearing credentials")
            self.clear()
            return self

        self._token = str(saved_token)
        self._user = user
        return self

    def save(self, token: str, user: Dict[str, Any]) -> None:
        self._token = token
        self._user = dict(user)
        self._write_entries({TOKEN_KEY: token, USER_KEY: json.dumps(user)})

    def clear(self) -> None:
        self._token = None
        self._user = None
        entries = self._read_entries()
        if TOKEN_KEY in entries or USER_KEY in entries:
            entries.pop(TOKEN_KEY, None)
            entries.pop(USER_KEY, None)
            self._write_entries(entries)

    def _read_entries(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            entries = json.loads(raw)
        except ValueError:
            logger.error("Credential file %s is corrupt; ignoring it", self._path)
            return {}
        return entries if isinstance(entries, dict) else {}

    def _write_entries(self, entries: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(entries, indent=2), encoding="utf-8")


__all__ = ["CredentialStore", "TOKEN_KEY", "USER_KEY"]
