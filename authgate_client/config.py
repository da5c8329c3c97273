from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    pass


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class AppSettings:
    base_url: str
    login_path: str
    validate_path: str
    token_field: str
    timeout_seconds: int
    retry_attempts: int
    token_store_path: str
    verify_on_startup: bool
    allow_plaintext_fallback: bool
    log_level: str

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        base_url = os.getenv("AUTHGATE_BASE_URL", "").strip().rstrip("/")
        login_path = os.getenv("AUTHGATE_LOGIN_PATH", "/auth/login").strip()
        validate_path = os.getenv("AUTHGATE_VALIDATE_PATH", "/auth/me").strip()
        token_field = os.getenv("AUTHGATE_TOKEN_FIELD", "access_token").strip()

        timeout_seconds = _parse_int_env("AUTHGATE_TIMEOUT_SECONDS", "30")
        retry_attempts = _parse_int_env("AUTHGATE_RETRY_ATTEMPTS", "2")

        default_store_path = os.path.join(
            os.getenv("LOCALAPPDATA", os.getcwd()),
            "AuthGateClient",
            "token_store.bin",
        )
        token_store_path = os.getenv("AUTHGATE_TOKEN_STORE_PATH", default_store_path).strip()

        settings = AppSettings(
            base_url=base_url,
            login_path=login_path,
            validate_path=validate_path,
            token_field=token_field,
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            token_store_path=token_store_path,
            verify_on_startup=_parse_bool_env("AUTHGATE_VERIFY_ON_STARTUP", False),
            allow_plaintext_fallback=_parse_bool_env("AUTHGATE_ALLOW_PLAINTEXT_FALLBACK", True),
            log_level=os.getenv("AUTHGATE_LOG_LEVEL", "INFO").strip().upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        missing = []
        if not self.base_url:
            missing.append("AUTHGATE_BASE_URL")
        if not self.token_field:
            missing.append("AUTHGATE_TOKEN_FIELD")
        if not self.token_store_path:
            missing.append("AUTHGATE_TOKEN_STORE_PATH")

        if missing:
            raise ConfigurationError(
                "Missing required settings: " + ", ".join(missing)
            )

        if urlparse(self.base_url).scheme not in ("http", "https"):
            raise ConfigurationError("AUTHGATE_BASE_URL must be an http or https URL")

        path_fields = {
            "AUTHGATE_LOGIN_PATH": self.login_path,
            "AUTHGATE_VALIDATE_PATH": self.validate_path,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Endpoint paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.timeout_seconds <= 0:
            raise ConfigurationError("AUTHGATE_TIMEOUT_SECONDS must be greater than 0")

        if self.retry_attempts < 0:
            raise ConfigurationError("AUTHGATE_RETRY_ATTEMPTS must be 0 or greater")

        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                "AUTHGATE_LOG_LEVEL must be one of: " + ", ".join(sorted(_LOG_LEVELS))
            )


def _parse_int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got {raw!r}")


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    """Fill unset AUTHGATE_* variables from dotenv files.

    ``AUTHGATE_ENV_FILE`` is read first and must be readable if it exists.
    The working directory and the checkout root are optional extras.
    """
    explicit = os.getenv("AUTHGATE_ENV_FILE", "").strip()
    if explicit:
        path = Path(explicit).expanduser()
        if path.exists():
            try:
                _apply_env_lines(path.read_text(encoding="utf-8").splitlines())
            except (OSError, UnicodeDecodeError) as exc:
                raise ConfigurationError(
                    f"AUTHGATE_ENV_FILE {path} could not be read: {exc}"
                ) from exc

    for path in _implicit_env_files(file_name):
        try:
            _apply_env_lines(path.read_text(encoding="utf-8").splitlines())
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable env file %s: %s", path, exc)


def _implicit_env_files(file_name: str) -> list[Path]:
    candidates = [Path.cwd() / file_name, Path(__file__).resolve().parent.parent / file_name]
    found: list[Path] = []
    for path in candidates:
        if path.is_file() and path.resolve() not in [seen.resolve() for seen in found]:
            found.append(path)
    return found


def _apply_env_lines(lines: list[str]) -> None:
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        value = value.strip().strip('"').strip("'")

        if key and key not in os.environ:
            os.environ[key] = value
