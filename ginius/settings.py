from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping

from dotenv import dotenv_values


DEFAULT_ENV_FILE = ".env"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

# dotted config key -> environment variable
KEYS: dict[str, str] = {
    "app.name": "APP_NAME",
    "server.host": "SERVER_HOST",
    "server.port": "SERVER_PORT",
    "database.url": "DATABASE_URL",
    "database.echo": "DATABASE_ECHO",
    "log.level": "LOG_LEVEL",
    "log.requests": "LOG_REQUESTS",
    "log.request_body": "LOG_REQUEST_BODY",
}


class ConfigError(RuntimeError):
    pass


def _env(values: Mapping[str, str | None], key: str, default: str | None = None) -> str | None:
    val = values.get(key)
    return val if val not in (None, "") else default


def _flag(values: Mapping[str, str | None], key: str, default: bool) -> bool:
    raw = _env(values, key)
    if raw is None:
        return default
    s = raw.strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")


def _port(raw: str) -> str:
    s = raw.strip()
    if not s.isdigit() or not 0 < int(s) < 65536:
        raise ConfigError(f"SERVER_PORT must be an integer in 1..65535, got {raw!r}")
    return s


def _log_level(raw: str) -> str:
    s = raw.strip().upper()
    if s not in _LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {raw!r}")
    return s


@dataclass(frozen=True)
class Settings:
    # App
    app_name: str = "ginius"

    # Server. host is optional; the bind address falls back to loopback.
    server_host: str | None = None
    server_port: str = "8080"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/app.db"
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_requests: bool = True
    log_request_body: bool = False

    @classmethod
    def from_values(cls, values: Mapping[str, str | None]) -> Settings:
        """
        Build settings from a flat mapping of environment-style keys
        (SERVER_HOST, SERVER_PORT, ...). Empty strings count as unset.
        """
        defaults = cls()
        return cls(
            app_name=_env(values, "APP_NAME", defaults.app_name) or defaults.app_name,
            server_host=_env(values, "SERVER_HOST", None),
            server_port=_port(_env(values, "SERVER_PORT", defaults.server_port) or defaults.server_port),
            database_url=_env(values, "DATABASE_URL", defaults.database_url) or defaults.database_url,
            database_echo=_flag(values, "DATABASE_ECHO", defaults.database_echo),
            log_level=_log_level(_env(values, "LOG_LEVEL", defaults.log_level) or defaults.log_level),
            log_requests=_flag(values, "LOG_REQUESTS", defaults.log_requests),
            log_request_body=_flag(values, "LOG_REQUEST_BODY", defaults.log_request_body),
        )

    def get(self, key: str) -> str:
        """Look up a dotted config key (``server.host``); unknown or unset keys give ``""``."""
        env_key = KEYS.get(key)
        if env_key is None:
            return ""
        for f in fields(self):
            if f.name.upper() == env_key:
                val = getattr(self, f.name)
                if val is None:
                    return ""
                if isinstance(val, bool):
                    return "true" if val else "false"
                return str(val)
        return ""


def setup(
    env_file: str | os.PathLike[str] | None = DEFAULT_ENV_FILE,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, str | None] | None = None,
) -> Settings:
    """
    Load settings once at startup.

    Precedence: overrides (command-line flags) > process environment > .env file > defaults.
    A missing .env file is fine; invalid values raise ConfigError.
    """
    values: dict[str, str | None] = {}
    if env_file is not None and os.path.isfile(env_file):
        try:
            values.update(dotenv_values(env_file))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"cannot read {env_file}: {e}") from e
    # an empty exported variable does not erase a .env value
    values.update({k: v for k, v in (os.environ if environ is None else environ).items() if v != ""})
    for k, v in (overrides or {}).items():
        if v is not None:
            values[k] = v
    return Settings.from_values(values)
