from __future__ import annotations

import json
from typing import Any

import pytest
import requests
from requests.adapters import BaseAdapter
from msal_extensions import FilePersistence

from authgate_client.config import AppSettings
from authgate_client.services import build_session_context
from authgate_client.store import CredentialStore

BASE_URL = "https://api.example.test"


class StubAdapter(BaseAdapter):
    """Transport adapter that answers from a queue and records what was sent."""

    def __init__(self):
        super().__init__()
        self.sent: list[requests.PreparedRequest] = []
        self._responses: list[tuple[int, Any]] = []

    def queue(self, status_code: int, body: Any = None) -> None:
        self._responses.append((status_code, body))

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        status_code, body = self._responses.pop(0) if self._responses else (200, {})

        response = requests.Response()
        response.status_code = status_code
        response.reason = "stub"
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        response.headers["Content-Type"] = "application/json"
        if body is None:
            response._content = b""
        elif isinstance(body, (bytes, str)):
            response._content = body.encode("utf-8") if isinstance(body, str) else body
        else:
            response._content = json.dumps(body).encode("utf-8")
        return response

    def close(self):
        pass


def make_settings(**overrides: Any) -> AppSettings:
    values: dict[str, Any] = {
        "base_url": BASE_URL,
        "login_path": "/auth/login",
        "validate_path": "/auth/me",
        "token_field": "access_token",
        "timeout_seconds": 5,
        "retry_attempts": 0,
        "token_store_path": "unused",
        "verify_on_startup": False,
        "allow_plaintext_fallback": True,
        "log_level": "INFO",
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def store(tmp_path):
    return CredentialStore(FilePersistence(str(tmp_path / "token_store.bin")))


@pytest.fixture
def adapter():
    return StubAdapter()


@pytest.fixture
def http_session(adapter):
    session = requests.Session()
    session.trust_env = False
    session.mount("https://", adapter)
    return session


@pytest.fixture
def context(store, http_session):
    return build_session_context(make_settings(), store=store, session=http_session)
