"""Shared request pipeline for the forwarding endpoints.

Every endpoint runs the same steps: method gate, configuration gate,
body parsing, operation-specific field validation, the outbound call
under a deadline, and relay of the backend's JSON answer. Operations
only differ in their name and in how they turn the request body into
payload fields.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from entrydesk.api.schemas import BackendPayload
from entrydesk.api.schemas import ProxySuccess
from entrydesk.config import Settings
from entrydesk.config import config_presence
from entrydesk.exceptions import AppError
from entrydesk.exceptions import ConfigurationError
from entrydesk.exceptions import EmptyPhoneNotice
from entrydesk.exceptions import MethodNotAllowedError
from entrydesk.exceptions import UpstreamProtocolError
from entrydesk.services.backend import BackendClient
from entrydesk.services.deadline import Deadline
from entrydesk.utils import error_response
from entrydesk.utils import get_header
from entrydesk.utils import get_http_method
from entrydesk.utils import json_response
from entrydesk.utils import parse_json_body
from entrydesk.utils import preflight_response
from entrydesk.utils import truncate_snippet
from entrydesk.utils.logging import clear_request_context
from entrydesk.utils.logging import get_logger
from entrydesk.utils.logging import log_response
from entrydesk.utils.logging import mask_phone
from entrydesk.utils.logging import resolve_request_id
from entrydesk.utils.logging import set_request_context

ALLOWED_METHOD = "POST"
USER_AGENT_LOG_LIMIT = 80


@dataclass(frozen=True)
class ParsedRequest:
    """Validated request fields, ready to be forwarded."""

    phone: str
    qty: Optional[float] = None
    log_fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Operation:
    """A forwarded backend action.

    Attributes:
        name: The ``action`` discriminator sent to the backend.
        parse: Turns the decoded request body into a ParsedRequest,
            raising an AppError for unusable input.
    """

    name: str
    parse: Callable[[Mapping[str, Any]], ParsedRequest]


class GatewayHandler:
    """Base handler: method gating, request context and error mapping."""

    def __init__(self, operation: Operation) -> None:
        self.operation = operation
        self.logger = get_logger(__name__, operation=operation.name)

    def handle(self, event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        """Handle one API Gateway event and return the proxy response."""
        method = get_http_method(event)
        if method == "OPTIONS":
            return preflight_response()

        set_request_context(req_id=resolve_request_id(event, context))
        start_time = time.perf_counter()
        try:
            self._log_start(event)
            if method != ALLOWED_METHOD:
                raise MethodNotAllowedError(method, allowed=(ALLOWED_METHOD,))
            response = self.process(event)
        except EmptyPhoneNotice as exc:
            self.logger.info("Empty phone, nothing to look up")
            response = error_response(exc)
        except AppError as exc:
            self._log_error(exc)
            response = error_response(exc)
        except Exception:  # pragma: no cover - safety net
            self.logger.exception(f"Unexpected error in {self.operation.name}")
            response = json_response(
                500, {"ok": False, "message": "internal_error"}
            )

        log_response(
            self.logger,
            response["statusCode"],
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        clear_request_context()
        return response

    def process(self, event: Mapping[str, Any]) -> dict[str, Any]:
        """Build the response for an allowed request.

        Subclasses must override. Errors raised here are rendered by
        ``handle``.
        """
        raise NotImplementedError

    def _log_start(self, event: Mapping[str, Any]) -> None:
        user_agent = get_header(event, "user-agent") or ""
        self.logger.info(
            f"{self.operation.name} start",
            extra={
                "context": {
                    "method": get_http_method(event),
                    "ip": _client_ip(event),
                    "user_agent": user_agent[:USER_AGENT_LOG_LIMIT],
                }
            },
        )

    def _log_error(self, exc: AppError) -> None:
        context: dict[str, Any] = {
            "status_code": exc.status_code,
            "error": exc.message,
            "name": type(exc).__name__,
        }
        if exc.detail:
            context["detail"] = exc.detail
        if exc.status_code >= 500:
            self.logger.error(f"{self.operation.name} failed", extra={"context": context})
        else:
            self.logger.warning(
                f"{self.operation.name} rejected", extra={"context": context}
            )


class ForwardingHandler(GatewayHandler):
    """Forwards a validated request to the backend and relays its answer."""

    def __init__(
        self,
        operation: Operation,
        settings: Settings,
        client: Optional[BackendClient] = None,
    ) -> None:
        super().__init__(operation)
        self.settings = settings
        self.client = client or BackendClient(settings)

    def process(self, event: Mapping[str, Any]) -> dict[str, Any]:
        body = parse_json_body(event)
        request = self.operation.parse(body)
        self.logger.info(
            f"{self.operation.name} input",
            extra={
                "context": {
                    "phone_masked": mask_phone(request.phone),
                    "len": len(request.phone),
                    **request.log_fields,
                }
            },
        )

        payload = BackendPayload(
            action=self.operation.name,
            phone=request.phone,
            qty=request.qty,
            secret=self.settings.api_secret,
        )
        self.logger.info(
            "-> backend request",
            extra={
                "context": {
                    "host": self.settings.backend_host,
                    "payload": payload.to_log(),
                }
            },
        )

        with Deadline(self.settings.timeout_seconds) as deadline:
            result = self.client.post(self.operation.name, payload.to_wire(), deadline)

        self.logger.info(
            "<- backend response",
            extra={
                "context": {
                    "status": result.status,
                    "ok": result.ok,
                    "text_snippet": truncate_snippet(
                        result.body, self.settings.log_snippet_limit
                    ),
                }
            },
        )

        data = decode_backend_json(result.body, self.settings.response_snippet_limit)
        return json_response(200, ProxySuccess(gas=data))


class MisconfiguredHandler(GatewayHandler):
    """Stands in for a ForwardingHandler whose settings failed to load.

    Preflight and method gating still apply; every other request is
    answered with the configuration error and no network call is made.
    """

    def __init__(self, operation: Operation, error: ConfigurationError) -> None:
        super().__init__(operation)
        self.error = error

    def process(self, event: Mapping[str, Any]) -> dict[str, Any]:
        self.logger.error(
            f"{self.operation.name} env",
            extra={"context": config_presence()},
        )
        raise self.error


def decode_backend_json(text: str, snippet_limit: int) -> Any:
    """Parse the backend body as strict JSON.

    Raises:
        UpstreamProtocolError: If the body is not JSON. ``NaN`` and
            ``Infinity`` literals are rejected too.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise UpstreamProtocolError(truncate_snippet(text, snippet_limit)) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def _client_ip(event: Mapping[str, Any]) -> str:
    header_ip = get_header(event, "x-nf-client-connection-ip")
    if header_ip:
        return header_ip
    request_context = event.get("requestContext") or {}
    identity = request_context.get("identity") or {}
    http = request_context.get("http") or {}
    return str(identity.get("sourceIp") or http.get("sourceIp") or "")


def build_handler(
    operation: Operation,
    loader: Callable[[], Settings] = Settings.from_env,
) -> GatewayHandler:
    """Load settings and build the handler for ``operation``."""
    try:
        settings = loader()
    except ConfigurationError as exc:
        return MisconfiguredHandler(operation, exc)
    return ForwardingHandler(operation, settings)


class HandlerCache:
    """Builds a handler on first use and keeps it for warm invocations.

    A misconfigured handler is not kept, so a fixed environment or a
    transient secret read failure recovers on the next invocation.
    """

    def __init__(
        self,
        operation: Operation,
        loader: Callable[[], Settings] = Settings.from_env,
    ) -> None:
        self.operation = operation
        self.loader = loader
        self._handler: Optional[ForwardingHandler] = None

    def get(self) -> GatewayHandler:
        if self._handler is not None:
            return self._handler
        handler = build_handler(self.operation, self.loader)
        if isinstance(handler, ForwardingHandler):
            self._handler = handler
        return handler

    def clear(self) -> None:
        """Drop the cached handler (useful in tests)."""
        self._handler = None


