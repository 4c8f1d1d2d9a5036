"""Environment driven configuration for the relying party client."""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

__all__ = [
    "ClientSettings",
    "LOG_FORMAT",
    "configure_logging",
    "load_settings",
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

BASE_URL_ENV = "RELYING_PARTY_BASE_URL"
TIMEOUT_ENV = "RELYING_PARTY_TIMEOUT"
VERIFY_TLS_ENV = "RELYING_PARTY_VERIFY_TLS"
LOG_LEVEL_ENV = "RELYING_PARTY_LOG_LEVEL"


@dataclass(frozen=True)
class ClientSettings:
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    verify_tls: bool = True
    log_level: str = "INFO"

    def require_base_url(self) -> str:
        if not self.base_url:
            raise ValueError(f"{BASE_URL_ENV} is not configured")
        return self.base_url


def _env_flag(environ: Mapping[str, str], name: str) -> Optional[bool]:
    """Return ``True`` or ``False`` when the named env var is explicitly set."""

    raw_value = environ.get(name)
    if raw_value is None:
        return None

    normalised = raw_value.strip().lower()
    if normalised in {"", "0", "false", "off", "no"}:
        return False
    return True


def _env_timeout(environ: Mapping[str, str]) -> Optional[float]:
    raw_value = environ.get(TIMEOUT_ENV)
    if raw_value is None or not raw_value.strip():
        return None

    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{TIMEOUT_ENV} must be a number of seconds, got {raw_value!r}") from exc
    if timeout <= 0:
        raise ValueError(f"{TIMEOUT_ENV} must be positive, got {raw_value!r}")
    return timeout


def _env_log_level(environ: Mapping[str, str]) -> str:
    level = (environ.get(LOG_LEVEL_ENV) or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{LOG_LEVEL_ENV} has unknown level {level!r}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ClientSettings:
    """Read :class:`ClientSettings` from ``environ`` (``os.environ`` by default)."""

    if environ is None:
        environ = os.environ

    base_url = (environ.get(BASE_URL_ENV) or "").strip() or None
    verify_tls = _env_flag(environ, VERIFY_TLS_ENV)

    return ClientSettings(
        base_url=base_url,
        timeout=_env_timeout(environ),
        verify_tls=True if verify_tls is None else verify_tls,
        log_level=_env_log_level(environ),
    )


def configure_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger = logging.getLogger("relying_party")
    logger.setLevel(level)
    return logger
