from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable

import requests

from authgate_client.config import AppSettings
from authgate_client.http import ApiHttpError, HttpClient
from authgate_client.interceptor import BearerTokenAuth
from authgate_client.logging_utils import mask_token
from authgate_client.models import AuthState
from authgate_client.store import CredentialStore

logger = logging.getLogger(__name__)


class AuthenticationError(RuntimeError):
    pass


@dataclass(frozen=True)
class SessionContext:
    """Everything that touches the signed-in session, passed explicitly to its users."""

    settings: AppSettings
    store: CredentialStore
    auth: BearerTokenAuth
    http_client: HttpClient


def build_session_context(
    settings: AppSettings,
    store: CredentialStore | None = None,
    session: requests.Session | None = None,
    on_auth_failure: Callable[[requests.Response], None] | None = None,
) -> SessionContext:
    store = store or CredentialStore.from_settings(settings)
    auth = BearerTokenAuth(store, on_auth_failure=on_auth_failure)
    http_client = HttpClient(settings, auth, session=session)
    return SessionContext(settings=settings, store=store, auth=auth, http_client=http_client)


class AuthService:
    def __init__(self, context: SessionContext):
        self._context = context

    @property
    def request_timeout_seconds(self) -> int:
        return self._context.settings.timeout_seconds

    def auth_state(self) -> AuthState:
        token = self._context.store.get()
        if not token:
            return AuthState(is_signed_in=False)
        return AuthState(is_signed_in=True, token_hint=mask_token(token))

    def sign_in(self, username: str, password: str) -> AuthState:
        username = username.strip()
        if not username or not password:
            raise AuthenticationError("Username and password are required")

        settings = self._context.settings
        try:
            result = self._context.http_client.post_json(
                settings.login_path,
                {"username": username, "password": password},
                authenticated=False,
            )
        except ApiHttpError as exc:
            if exc.status_code in (400, 401, 403):
                raise AuthenticationError(f"Sign in rejected: {exc}") from exc
            raise AuthenticationError(f"Sign in failed: {exc}") from exc
        except requests.RequestException as exc:
            raise AuthenticationError(f"Sign in failed: {exc}") from exc

        if not isinstance(result, dict):
            raise AuthenticationError("Sign in response was not a JSON object")

        token = self._extract_token(result, settings.token_field)
        if not token:
            raise AuthenticationError(
                f"Sign in response did not contain a '{settings.token_field}' value"
            )

        self._context.store.save(token)
        logger.info("Signed in as %s", username)
        return self.auth_state()

    def sign_out(self) -> None:
        self._context.store.clear()
        logger.info("Signed out")

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._context.http_client.get_json(path, params=params)

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._context.http_client.post_json(path, payload)

    @staticmethod
    def _extract_token(result: dict[str, Any], token_field: str) -> str | None:
        value = result.get(token_field)
        if value is None:
            value = result.get("token")
        if value is None:
            return None
        return str(value).strip() or None
