"""
Client-side key-value storage.

All keys live in one JSON document. ``KeyringStorage`` keeps that document in
the OS keyring; ``MemoryStorage`` keeps it in a dict.
"""

import json
import time
from typing import Any, Dict, Iterable, Optional

import keyring
from keyring.errors import KeyringError

from hh_apply.errors import HHApplyError
from hh_apply.utils import LogEvent, LogRecord, error, warning

ACCESS_TOKEN = "accessToken"
REFRESH_TOKEN = "refreshToken"
TOKEN_EXPIRATION = "tokenExpiration"
USER = "user"
STATE = "state"
JOB_FILTER = "jobFilter"

SESSION_KEYS = (ACCESS_TOKEN, REFRESH_TOKEN, TOKEN_EXPIRATION, USER)


class ClientStorage:
    """Key-value interface the auth flow and CLI depend on."""

    def _load(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _save(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def update(self, values: Dict[str, Any]) -> None:
        data = self._load()
        data.update(values)
        self._save(data)

    def delete(self, *keys: str) -> None:
        data = self._load()
        if any(key in data for key in keys):
            for key in keys:
                data.pop(key, None)
            self._save(data)

    def pop(self, key: str, default: Any = None) -> Any:
        """Read and delete in one step."""
        data = self._load()
        if key not in data:
            return default
        value = data.pop(key)
        self._save(data)
        return value

    def clear(self, keys: Optional[Iterable[str]] = None) -> None:
        if keys is None:
            self._save({})
        else:
            self.delete(*keys)


class MemoryStorage(ClientStorage):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def _load(self) -> Dict[str, Any]:
        return dict(self._data)

    def _save(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)


class KeyringStorage(ClientStorage):
    """Persists the document under ``(service_name, username)`` in the system keyring."""

    def __init__(self, service_name: str = "hh-apply", username: str = "client_state"):
        self.service_name = service_name
        self.username = username

    def _load(self) -> Dict[str, Any]:
        try:
            stored = keyring.get_password(self.service_name, self.username)
        except KeyringError as e:
            error(LogRecord(
                event=LogEvent.CLIENT_STORAGE_LOAD_FAILED.value,
                message=f"Failed to read client state from keyring: {e}",
            ), exc=e)
            raise HHApplyError("Cannot read client state from the system keyring", description=str(e)) from e

        if not stored:
            return {}
        try:
            document = json.loads(stored)
        except json.JSONDecodeError as e:
            warning(LogRecord(
                event=LogEvent.CLIENT_STORAGE_LOAD_FAILED.value,
                message="Client state in keyring is corrupted, starting empty",
            ), exc=e)
            return {}
        return document.get("data", {}) if isinstance(document, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        document = {
            "data": data,
            "metadata": {"saved_at": int(time.time()), "version": "1.0"},
        }
        try:
            keyring.set_password(self.service_name, self.username, json.dumps(document))
        except KeyringError as e:
            error(LogRecord(
                event=LogEvent.CLIENT_STORAGE_SAVE_FAILED.value,
                message=f"Failed to save client state to keyring: {e}",
            ), exc=e)
            raise HHApplyError("Cannot write client state to the system keyring", description=str(e)) from e
