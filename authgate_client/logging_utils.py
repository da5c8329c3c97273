from __future__ import annotations

import logging
import os
import sys

_PACKAGE_LOGGER = "authgate_client"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a single stderr handler to the package logger.

    Calling this more than once only updates the level.
    """
    resolved = (level or os.getenv("AUTHGATE_LOG_LEVEL", "INFO")).strip().upper()
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, resolved, logging.INFO))

    if not any(getattr(handler, "_authgate_handler", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._authgate_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger


def mask_token(token: str | None) -> str:
    if not token:
        return "<none>"
    value = token.strip()
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"
