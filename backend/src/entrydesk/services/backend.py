"""HTTP client for the spreadsheet backend webhook.

The backend is a Google Apps Script web app. It is called with a JSON
``POST`` that carries the shared secret, and usually answers with a
redirect to the script content host, which ``urllib`` follows as a
``GET``. Non-2xx answers are returned like any other answer: the caller
decides what to make of the body.

Socket timeouts alone do not bound an exchange, since every byte a slow
server sends restarts them. Each connection is therefore opened with the
time the deadline has left and registers a hard stop that shuts its
socket down when the deadline passes.
"""

from __future__ import annotations

import http.client
import json
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from functools import partial
from typing import Any
from typing import Mapping

from entrydesk.config import Settings
from entrydesk.exceptions import UpstreamTimeoutError
from entrydesk.exceptions import UpstreamUnavailableError
from entrydesk.services.deadline import Deadline
from entrydesk.services.deadline import DeadlineExceeded

_CHUNK_SIZE = 16 * 1024
# urllib treats a zero timeout as non-blocking mode
_MIN_SOCKET_TIMEOUT = 0.001


@dataclass(frozen=True)
class ForwardResult:
    """Raw answer of the backend."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BackendClient:
    """Posts action payloads to the backend under a deadline."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def post(
        self,
        operation: str,
        payload: Mapping[str, Any],
        deadline: Deadline,
    ) -> ForwardResult:
        """Send ``payload`` to the backend and return its raw answer.

        Args:
            operation: Operation name used in failure messages.
            payload: JSON-serializable body, secret included.
            deadline: Bounds the whole exchange, redirects and body read
                included.

        Raises:
            UpstreamTimeoutError: The deadline expired before the answer
                was fully read.
            UpstreamUnavailableError: Any other transport failure.
        """
        request = urllib.request.Request(
            self._settings.backend_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            return self._exchange(request, deadline)
        except DeadlineExceeded as exc:
            raise UpstreamTimeoutError(operation, str(exc)) from exc
        except (OSError, http.client.HTTPException) as exc:
            reason = exc.reason if isinstance(exc, urllib.error.URLError) else exc
            if deadline.expired:
                detail = str(DeadlineExceeded(deadline.timeout))
                raise UpstreamTimeoutError(operation, detail) from exc
            if isinstance(reason, TimeoutError):
                raise UpstreamTimeoutError(operation, _describe(reason)) from exc
            raise UpstreamUnavailableError(operation, _describe(reason)) from exc

    def _exchange(
        self,
        request: urllib.request.Request,
        deadline: Deadline,
    ) -> ForwardResult:
        deadline.check()
        opener = urllib.request.build_opener(
            _DeadlineHTTPHandler(deadline),
            _DeadlineHTTPSHandler(deadline),
        )
        try:
            resp = opener.open(request, timeout=_socket_timeout(deadline))
        except urllib.error.HTTPError as exc:
            resp = exc
        with resp:
            return ForwardResult(
                status=resp.getcode(),
                body=_read_text(resp, deadline),
            )


class _DeadlineConnectionMixin:
    """Connection opened with the remaining time and stopped at expiry."""

    def __init__(self, *args: Any, deadline: Deadline, **kwargs: Any) -> None:
        # Redirected requests reuse the first timeout; use what is left.
        kwargs["timeout"] = _socket_timeout(deadline)
        super().__init__(*args, **kwargs)
        self._deadline = deadline

    def connect(self) -> None:
        super().connect()
        self._deadline.on_expire(self._abort)

    def _abort(self) -> None:
        sock = self.sock
        if sock is None:
            return
        try:
            # Base method: SSLSocket.shutdown would drop its SSL object
            # under a concurrent read.
            socket.socket.shutdown(sock, socket.SHUT_RDWR)
        except OSError:
            pass


class _DeadlineHTTPConnection(_DeadlineConnectionMixin, http.client.HTTPConnection):
    pass


class _DeadlineHTTPSConnection(_DeadlineConnectionMixin, http.client.HTTPSConnection):
    pass


class _DeadlineHTTPHandler(urllib.request.HTTPHandler):
    def __init__(self, deadline: Deadline) -> None:
        super().__init__()
        self._deadline = deadline

    def http_open(self, req: urllib.request.Request) -> Any:
        self._deadline.check()
        return self.do_open(
            partial(_DeadlineHTTPConnection, deadline=self._deadline), req
        )


class _DeadlineHTTPSHandler(urllib.request.HTTPSHandler):
    def __init__(self, deadline: Deadline) -> None:
        super().__init__()
        self._deadline = deadline

    def https_open(self, req: urllib.request.Request) -> Any:
        self._deadline.check()
        return self.do_open(
            partial(_DeadlineHTTPSConnection, deadline=self._deadline),
            req,
            context=self._context,
        )


def _socket_timeout(deadline: Deadline) -> float:
    return max(deadline.remaining(), _MIN_SOCKET_TIMEOUT)


def _read_text(resp: Any, deadline: Deadline) -> str:
    """Read a response body as it arrives, re-checking the deadline."""
    read = getattr(resp, "read1", resp.read)
    chunks: list[bytes] = []
    while True:
        deadline.check()
        chunk = read(_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    # A shut-down socket reads as a clean end of body.
    deadline.check()
    return b"".join(chunks).decode("utf-8", errors="replace")


def _describe(exc: Any) -> str:
    if isinstance(exc, BaseException):
        text = str(exc)
        return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
    return str(exc)
