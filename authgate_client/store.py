from __future__ import annotations

import json
import logging
import os

from msal_extensions import FilePersistence, build_encrypted_persistence
from msal_extensions.persistence import BasePersistence, PersistenceNotFound

from authgate_client.config import AppSettings

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"


class CredentialStoreError(RuntimeError):
    pass


class CredentialStore:
    """Single bearer token kept in platform encrypted storage.

    The persisted blob is a JSON object holding one entry under ``auth_token``.
    ``save`` replaces it, ``clear`` empties it, and an empty or missing blob
    reads back as no token.
    """

    def __init__(self, persistence: BasePersistence):
        self._persistence = persistence

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "CredentialStore":
        return cls(
            cls._build_persistence(
                settings.token_store_path,
                allow_plaintext_fallback=settings.allow_plaintext_fallback,
            )
        )

    @staticmethod
    def _build_persistence(path: str, allow_plaintext_fallback: bool = True) -> BasePersistence:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            return build_encrypted_persistence(path)
        except Exception as exc:
            if not allow_plaintext_fallback:
                raise CredentialStoreError(
                    f"Encrypted token storage is unavailable on this platform: {exc}"
                ) from exc
            logger.warning(
                "Encrypted token storage unavailable (%s); falling back to plain file at %s",
                exc,
                path,
            )
            return FilePersistence(path)

    @property
    def location(self) -> str:
        return self._persistence.get_location()

    def save(self, token: str) -> None:
        self._write(json.dumps({TOKEN_KEY: token}))
        logger.debug("Stored credential in %s", self.location)

    def get(self) -> str | None:
        try:
            raw = self._persistence.load()
        except PersistenceNotFound:
            return None
        except Exception as exc:
            raise CredentialStoreError(f"Failed to read stored credential: {exc}") from exc

        if not raw or not raw.strip():
            return None

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CredentialStoreError("Stored credential is unreadable") from exc

        if not isinstance(data, dict):
            raise CredentialStoreError("Stored credential is unreadable")

        value = data.get(TOKEN_KEY)
        if value is None:
            return None
        return str(value)

    def clear(self) -> None:
        self._write("")
        logger.debug("Cleared credential in %s", self.location)

    def _write(self, content: str) -> None:
        try:
            self._persistence.save(content)
        except Exception as exc:
            raise CredentialStoreError(f"Failed to write stored credential: {exc}") from exc
