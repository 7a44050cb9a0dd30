"""Runtime configuration for the forwarding handlers.

Settings are read from the environment once per cold start and handed
to each handler at construction time.

Environment:
    GAS_API_URL               Backend webhook URL (required)
    API_SECRET                Shared secret sent to the backend
    API_SECRET_ARN            Secrets Manager ARN holding the shared
                              secret, used when API_SECRET is unset
    UPSTREAM_TIMEOUT_SECONDS  Outbound call deadline (default 8)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from dataclasses import field
from typing import Mapping
from typing import Optional
from urllib.parse import urlparse

from entrydesk.exceptions import ConfigurationError

DEFAULT_TIMEOUT_SECONDS = 8.0
RESPONSE_SNIPPET_LIMIT = 800
LOG_SNIPPET_LIMIT = 400


@dataclass(frozen=True)
class Settings:
    """Validated settings shared by the lookup and check-in handlers."""

    backend_url: str
    api_secret: str = field(repr=False)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    response_snippet_limit: int = RESPONSE_SNIPPET_LIMIT
    log_snippet_limit: int = LOG_SNIPPET_LIMIT

    def __post_init__(self) -> None:
        if not self.backend_url:
            raise ConfigurationError("GAS_API_URL")
        if not self.api_secret:
            raise ConfigurationError("API_SECRET")
        if not (math.isfinite(self.timeout_seconds) and self.timeout_seconds > 0):
            raise ConfigurationError(
                "UPSTREAM_TIMEOUT_SECONDS", reason="must be a positive number"
            )

    @property
    def backend_host(self) -> str:
        """Host part of the backend URL, safe to log."""
        return urlparse(self.backend_url).netloc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing or a
                value cannot be used.
        """
        env = os.environ if environ is None else environ

        backend_url = (env.get("GAS_API_URL") or "").strip()
        if not backend_url:
            raise ConfigurationError("GAS_API_URL")
        if urlparse(backend_url).scheme not in ("https", "http"):
            raise ConfigurationError(
                "GAS_API_URL", reason="must be an http(s) URL"
            )

        api_secret = env.get("API_SECRET") or ""
        secret_arn = (env.get("API_SECRET_ARN") or "").strip()
        if not api_secret and secret_arn:
            from entrydesk.services.secrets import get_shared_secret

            try:
                api_secret = get_shared_secret(secret_arn)
            except Exception as exc:
                raise ConfigurationError(
                    "API_SECRET_ARN", reason="secret could not be read"
                ) from exc
        if not api_secret:
            raise ConfigurationError("API_SECRET")

        return cls(
            backend_url=backend_url,
            api_secret=api_secret,
            timeout_seconds=_parse_timeout(env.get("UPSTREAM_TIMEOUT_SECONDS")),
        )


def _parse_timeout(value: Optional[str]) -> float:
    if value is None or value.strip() == "":
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ConfigurationError(
            "UPSTREAM_TIMEOUT_SECONDS", reason="must be a positive number"
        ) from exc
    if not (math.isfinite(timeout) and timeout > 0):
        raise ConfigurationError(
            "UPSTREAM_TIMEOUT_SECONDS", reason="must be a positive number"
        )
    return timeout


def config_presence(environ: Optional[Mapping[str, str]] = None) -> dict[str, bool]:
    """Report which settings are present, without revealing values."""
    env = os.environ if environ is None else environ
    return {
        "has_gas_url": bool(env.get("GAS_API_URL")),
        "has_secret": bool(env.get("API_SECRET") or env.get("API_SECRET_ARN")),
    }
