from __future__ import annotations

import logging
import threading
from typing import Optional

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import CredentialStoreError
from .models import Credentials


logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "mealswipe_sync"
USERNAME_KEY = "fhu_username"
PASSWORD_KEY = "fhu_credentials"


class CredentialStore:
    """
    Username/password persistence in the OS secure store (Keychain, Credential Locker, Secret Service)
    via `keyring`. Values are encrypted at rest by the platform; nothing is written to disk by us.

    Two entries live under one service name: the username and the password. `load()` only returns a
    pair when both entries exist, and `save()` writes the username last, so a save that dies halfway
    reads back as "no credentials" rather than a mismatched pair.
    """

    def __init__(
        self,
        *,
        service_name: str = DEFAULT_SERVICE_NAME,
        backend: Optional[KeyringBackend] = None,
    ) -> None:
        self.service_name = service_name
        self._backend = backend
        self._lock = threading.Lock()

    @property
    def backend(self) -> KeyringBackend:
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    def save(self, creds: Credentials) -> None:
        with self._lock:
            try:
                self._delete(USERNAME_KEY)
                self.backend.set_password(self.service_name, PASSWORD_KEY, creds.password)
                self.backend.set_password(self.service_name, USERNAME_KEY, creds.username)
            except KeyringError as e:
                raise CredentialStoreError(f"Failed to save credentials: {e}") from e
        logger.info("Saved credentials for %s (service=%s)", creds.username, self.service_name)

    def load(self) -> Optional[Credentials]:
        with self._lock:
            try:
                username = self.backend.get_password(self.service_name, USERNAME_KEY)
                password = self.backend.get_password(self.service_name, PASSWORD_KEY)
            except KeyringError as e:
                raise CredentialStoreError(f"Failed to load credentials: {e}") from e
        if not username or not password:
            return None
        return Credentials(username=username, password=password)

    def clear(self) -> None:
        with self._lock:
            try:
                self._delete(USERNAME_KEY)
                self._delete(PASSWORD_KEY)
            except KeyringError as e:
                raise CredentialStoreError(f"Failed to clear credentials: {e}") from e
        logger.info("Cleared stored credentials (service=%s)", self.service_name)

    def _delete(self, key: str) -> None:
        try:
            self.backend.delete_password(self.service_name, key)
        except PasswordDeleteError:
            # Already gone.
            pass
