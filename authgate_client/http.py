from __future__ import annotations

import logging
import time
from typing import Any

import requests

from authgate_client.config import AppSettings
from authgate_client.interceptor import AUTH_FAILURE_STATUSES, BearerTokenAuth

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


class ApiHttpError(RuntimeError):
    def __init__(
        self,
        status_code: int,
        message: str,
        response: requests.Response | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class SessionExpiredError(ApiHttpError):
    """The backend rejected the stored credential, which has already been cleared."""


class HttpClient:
    def __init__(
        self,
        settings: AppSettings,
        auth: BearerTokenAuth,
        session: requests.Session | None = None,
    ):
        self._settings = settings
        self._auth = auth
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def session(self) -> requests.Session:
        return self._session

    def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        retry: bool = True,
    ) -> dict[str, Any]:
        return self.request_json(
            "GET", path, params=params, authenticated=authenticated, retry=retry
        )

    def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        authenticated: bool = True,
    ) -> dict[str, Any]:
        return self.request_json("POST", path, payload=payload, authenticated=authenticated)

    def request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        retry: bool = True,
    ) -> dict[str, Any]:
        url = f"{self._settings.base_url}{path}"
        auth = self._auth if authenticated else None

        last_error: ApiHttpError | None = None
        attempts = self._settings.retry_attempts + 1 if retry else 1
        for attempt in range(1, attempts + 1):
            response = self._session.request(
                method,
                url,
                json=payload,
                params=params,
                auth=auth,
                timeout=self._settings.timeout_seconds,
            )

            if response.ok:
                if not response.content:
                    return {}
                return response.json()

            message = f"HTTP {response.status_code}: {response.text[:500]}"
            if authenticated and response.status_code in AUTH_FAILURE_STATUSES:
                raise SessionExpiredError(
                    status_code=response.status_code,
                    message=message,
                    response=response,
                )

            last_error = ApiHttpError(
                status_code=response.status_code,
                message=message,
                response=response,
            )
            if response.status_code in RETRYABLE_STATUSES and attempt < attempts:
                logger.info(
                    "%s %s returned %s, retrying (%s/%s)",
                    method,
                    path,
                    response.status_code,
                    attempt,
                    attempts - 1,
                )
                time.sleep(1.5 * attempt)
                continue
            raise last_error

        if last_error is None:
            raise ApiHttpError(status_code=0, message="Request failed")
        raise last_error
