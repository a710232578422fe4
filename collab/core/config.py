from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    max_milestones: int
    # PEM public key of the token issuer; dev/test fall back to an ephemeral pair
    jwt_public_key: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive (got {value})")
    return value


def _parse_pem(raw: str) -> str | None:
    # Single-line env values carry PEM newlines as a literal backslash-n
    return raw.replace("\\n", "\n") or None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=_parse_positive_int("PORT", _getenv("PORT", "8000")),
        database_url=_getenv("DATABASE_URL", "") or None,
        max_milestones=_parse_positive_int(
            "MAX_MILESTONES", _getenv("MAX_MILESTONES", "5")
        ),
        jwt_public_key=_parse_pem(_getenv("JWT_PUBLIC_KEY", "")),
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
