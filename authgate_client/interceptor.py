from __future__ import annotations

import logging
from typing import Any, Callable

import requests
from requests.auth import AuthBase

from authgate_client.store import CredentialStore

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = frozenset({401, 403})


class BearerTokenAuth(AuthBase):
    """Attach the stored token to requests and drop it when the backend rejects it.

    ``requests`` runs ``__call__`` while preparing a request and the registered
    response hook after the transport returns. The hook never alters or retries
    the response; it only clears the store and notifies ``on_auth_failure``.
    """

    def __init__(
        self,
        store: CredentialStore,
        on_auth_failure: Callable[[requests.Response], None] | None = None,
    ):
        self._store = store
        self._on_auth_failure = on_auth_failure

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        token = self._store.get()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        request.register_hook("response", self.handle_response)
        return request

    def handle_response(self, response: requests.Response, *args: Any, **kwargs: Any) -> requests.Response:
        if response.status_code not in AUTH_FAILURE_STATUSES:
            return response

        method = response.request.method if response.request is not None else "?"
        logger.warning(
            "Backend rejected credential (HTTP %s on %s %s); clearing stored token",
            response.status_code,
            method,
            response.url,
        )
        self._store.clear()
        if self._on_auth_failure is not None:
            self._on_auth_failure(response)
        return response
