from __future__ import annotations

import logging

import requests

from authgate_client.http import ApiHttpError
from authgate_client.models import Route
from authgate_client.services import SessionContext

logger = logging.getLogger(__name__)


class StartupGate:
    """Pick the first screen from whatever token the store holds right now."""

    def __init__(self, context: SessionContext, verify_with_backend: bool | None = None):
        self._context = context
        if verify_with_backend is None:
            verify_with_backend = context.settings.verify_on_startup
        self._verify_with_backend = verify_with_backend

    def resolve_initial_route(self) -> Route:
        token = self._context.store.get()
        if not token:
            logger.info("No stored credential; routing to %s", Route.LOGIN.value)
            return Route.LOGIN

        if self._verify_with_backend and not self._credential_is_live():
            return Route.LOGIN

        logger.info("Stored credential found; routing to %s", Route.HOME.value)
        return Route.HOME

    def _credential_is_live(self) -> bool:
        path = self._context.settings.validate_path
        try:
            self._context.http_client.get_json(path, retry=False)
        except ApiHttpError as exc:
            logger.warning("Credential check against %s failed: %s", path, exc)
            return False
        except requests.RequestException as exc:
            logger.warning("Credential check against %s could not reach the backend: %s", path, exc)
            return False
        return True
