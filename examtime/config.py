"""Store settings for examtime runs.

Reads REDIS_* connection vars (and optional hash-name overrides) from the
environment, after loading a `.env` file from the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379

# Hash names used by the exam platform
DEFAULT_LOGIN_HASH = "student-login-new"
DEFAULT_EXAMS_HASH = "studentsss-new"
DEFAULT_ATTEMPTS_HASH = "student-exams-new"


class ConfigError(ValueError):
    """Raised when an environment value cannot be used."""


@dataclass(frozen=True)
class StoreSettings:
    """Connection and schema settings for the Redis store."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str = ""
    login_hash: str = DEFAULT_LOGIN_HASH
    exams_hash: str = DEFAULT_EXAMS_HASH
    attempts_hash: str = DEFAULT_ATTEMPTS_HASH

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def override(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
    ) -> StoreSettings:
        """Return a copy with any non-None CLI overrides applied."""
        changes = {}
        if host is not None:
            changes["host"] = host
        if port is not None:
            changes["port"] = port
        if password is not None:
            changes["password"] = password
        return replace(self, **changes) if changes else self


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"REDIS_PORT must be an integer, got {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"REDIS_PORT out of range: {port}")
    return port


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> StoreSettings:
    """Build StoreSettings from the environment.

    Args:
        env: Mapping to read instead of os.environ. When given, no .env file
            is loaded.
        dotenv_path: Explicit .env file. Defaults to ./.env if present.

    Empty values fall back to the defaults, except REDIS_PASSWORD where
    empty means no AUTH.
    """
    if env is None:
        load_dotenv(dotenv_path or Path.cwd() / ".env", override=False)
        env = os.environ

    port_raw = env.get("REDIS_PORT") or str(DEFAULT_PORT)
    return StoreSettings(
        host=env.get("REDIS_HOST") or DEFAULT_HOST,
        port=_parse_port(port_raw),
        password=env.get("REDIS_PASSWORD", ""),
        login_hash=env.get("EXAMTIME_LOGIN_HASH") or DEFAULT_LOGIN_HASH,
        exams_hash=env.get("EXAMTIME_EXAMS_HASH") or DEFAULT_EXAMS_HASH,
        attempts_hash=env.get("EXAMTIME_ATTEMPTS_HASH") or DEFAULT_ATTEMPTS_HASH,
    )
