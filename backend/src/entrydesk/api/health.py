"""Health check endpoint for monitoring and alerting.

Reports whether the forwarding handlers have what they need to run.
No request is sent to the backend: calling it costs a spreadsheet
execution and requires the shared secret.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional

from entrydesk.config import Settings
from entrydesk.config import config_presence
from entrydesk.exceptions import ConfigurationError
from entrydesk.utils import get_http_method
from entrydesk.utils import json_response
from entrydesk.utils import preflight_response
from entrydesk.utils.logging import configure_logging
from entrydesk.utils.logging import get_logger

configure_logging()
logger = get_logger(__name__)


@dataclass
class HealthCheck:
    """Result of a single health check."""

    name: str
    healthy: bool
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "name": self.name,
            "healthy": self.healthy,
        }
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class HealthStatus:
    """Overall health status of the service."""

    healthy: bool
    checks: list[HealthCheck]
    version: str
    environment: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.healthy,
            "version": self.version,
            "environment": self.environment,
            "checks": [check.to_dict() for check in self.checks],
        }


def check_health(environ: Optional[Mapping[str, str]] = None) -> HealthStatus:
    """Perform all health checks and return overall status."""
    env = os.environ if environ is None else environ
    checks = [_check_configuration(env)]

    return HealthStatus(
        healthy=all(check.healthy for check in checks),
        checks=checks,
        version=env.get("APP_VERSION", "unknown"),
        environment=env.get("ENVIRONMENT", "unknown"),
    )


def _check_configuration(env: Mapping[str, str]) -> HealthCheck:
    """Check that required configuration is present and usable.

    Secrets Manager is not consulted; an ARN only counts as present.
    """
    presence = config_presence(env)
    if not env.get("API_SECRET") and env.get("API_SECRET_ARN"):
        env = {**env, "API_SECRET": "<from API_SECRET_ARN>"}

    try:
        settings = Settings.from_env(env)
    except ConfigurationError as exc:
        return HealthCheck(
            name="configuration",
            healthy=False,
            error=exc.message,
            details=presence,
        )

    return HealthCheck(
        name="configuration",
        healthy=True,
        details={**presence, "timeout_seconds": settings.timeout_seconds},
    )


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler for health check endpoint.

    Args:
        event: API Gateway event.
        context: Lambda context.

    Returns:
        API Gateway response with health status.
    """
    if get_http_method(event) == "OPTIONS":
        return preflight_response()

    status = check_health()

    # Return 200 for healthy, 503 for unhealthy
    status_code = 200 if status.healthy else 503
    if not status.healthy:
        logger.warning("Health check failed", extra={"context": status.to_dict()})

    return json_response(status_code, status.to_dict())
