from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from endpoints import DEFAULT_ENDPOINTS_FILE
from errors import ConfigError, EnvFileError

DEFAULT_ENV_FILE = ".env"
DEFAULT_LOG_LEVEL = "INFO"


def _getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(f"timeout must be a number of seconds, got {raw!r}") from None
    if timeout < 0:
        raise ConfigError(f"timeout must not be negative, got {raw!r}")
    return timeout


@dataclass(frozen=True)
class Settings:
    endpoints_file: str = DEFAULT_ENDPOINTS_FILE
    timeout: Optional[float] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            endpoints_file=_getenv("POKER_ENDPOINTS_FILE", DEFAULT_ENDPOINTS_FILE),
            timeout=_parse_timeout(_getenv("POKER_TIMEOUT")),
            log_level=_getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )

    def override(self, **changes) -> "Settings":
        """Copy with the given fields replaced; None values are ignored."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if "timeout" in changes:
            changes["timeout"] = _parse_timeout(str(changes["timeout"]))
        return replace(self, **changes)


def env_file_from_env() -> Optional[str]:
    return _getenv("POKER_ENV_FILE")


def load_env_file(path: Optional[str] = None) -> bool:
    """Load KEY=value pairs into os.environ without overriding what is set.

    With no path the default .env is loaded if it exists. An explicit
    path that is missing is an error.
    """
    if path is None:
        envfile = Path(DEFAULT_ENV_FILE)
        if not envfile.is_file():
            return False
    else:
        envfile = Path(path)
        if not envfile.is_file():
            raise EnvFileError(f"env file {envfile} does not exist")

    try:
        return load_dotenv(envfile, override=False)
    except (OSError, UnicodeDecodeError) as e:
        raise EnvFileError(f"cannot load env file {envfile}: {e}") from e
