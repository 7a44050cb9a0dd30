"""Pytest configuration and fixtures for backend tests.

This module provides shared fixtures for testing the forwarding
handlers, including gateway event factories, settings, a mocked backend
client and a real local HTTP server standing in for the backend.
"""

from __future__ import annotations

import json
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Generator
from typing import Optional
from uuid import uuid4

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

TEST_SECRET = 'test-shared-secret-5f2c'
TEST_BACKEND_URL = 'https://script.example.com/macros/s/TOKEN123/exec'


# --- Environment Fixtures ---


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Remove backend configuration inherited from the shell."""
    for name in (
        'GAS_API_URL',
        'API_SECRET',
        'API_SECRET_ARN',
        'UPSTREAM_TIMEOUT_SECONDS',
        'APP_VERSION',
        'ENVIRONMENT',
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def configured_env(monkeypatch) -> dict:
    """Environment with the required backend configuration set."""
    values = {'GAS_API_URL': TEST_BACKEND_URL, 'API_SECRET': TEST_SECRET}
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


@pytest.fixture(autouse=True)
def reset_caches() -> Generator:
    """Drop cached handlers, secrets and clients between tests."""
    yield
    from entrydesk.api import checkin
    from entrydesk.api import lookup
    from entrydesk.services.aws_clients import clear_client_cache
    from entrydesk.services.secrets import clear_secret_cache

    lookup.handler_cache.clear()
    checkin.handler_cache.clear()
    clear_secret_cache()
    clear_client_cache()


# --- Settings Fixtures ---


@pytest.fixture
def settings():
    """Settings pointing at a dummy backend."""
    from entrydesk.config import Settings

    return Settings(backend_url=TEST_BACKEND_URL, api_secret=TEST_SECRET)


@pytest.fixture
def mock_backend_client(mocker):
    """BackendClient double answering an empty JSON object."""
    from entrydesk.services.backend import BackendClient
    from entrydesk.services.backend import ForwardResult

    client = mocker.Mock(spec=BackendClient)
    client.post.return_value = ForwardResult(status=200, body='{"ok": true}')
    return client


# --- API Event Fixtures ---


@pytest.fixture
def make_event() -> Callable[..., dict]:
    """Factory for API Gateway proxy events."""

    def _make(
        method: str = 'POST',
        body: Any = None,
        headers: Optional[dict] = None,
    ) -> dict:
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return {
            'httpMethod': method,
            'path': '/api/lookup',
            'queryStringParameters': None,
            'headers': headers
            if headers is not None
            else {
                'Content-Type': 'application/json',
                'User-Agent': 'pytest',
            },
            'requestContext': {
                'requestId': str(uuid4()),
                'identity': {'sourceIp': '203.0.113.7'},
            },
            'body': body,
            'isBase64Encoded': False,
        }

    return _make


# --- Local Backend Server ---


class BackendBehaviour:
    """Mutable description of how the local backend answers."""

    def __init__(self) -> None:
        self.status = 200
        self.body = b'{"ok": true, "found": true}'
        self.delay = 0.0
        # Extra wait before answering the redirected GET
        self.get_delay = 0.0
        # Announce a large body, then send it one byte at a time
        self.trickle = False
        self.redirect_to: Optional[str] = None
        self.requests: list[dict] = []


def _make_handler(behaviour: BackendBehaviour) -> type:
    class _Handler(BaseHTTPRequestHandler):
        def _answer(self, body: Optional[bytes]) -> None:
            behaviour.requests.append(
                {
                    'method': self.command,
                    'path': self.path,
                    'headers': dict(self.headers),
                    'body': body,
                }
            )
            if behaviour.delay:
                time.sleep(behaviour.delay)
            if behaviour.redirect_to and self.command == 'POST':
                self.send_response(302)
                self.send_header('Location', behaviour.redirect_to)
                self.send_header('Content-Length', '0')
                self.end_headers()
                return
            if behaviour.get_delay and self.command == 'GET':
                time.sleep(behaviour.get_delay)
            if behaviour.trickle:
                self._trickle()
                return
            self.send_response(behaviour.status)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Content-Length', str(len(behaviour.body)))
            self.end_headers()
            try:
                self.wfile.write(behaviour.body)
            except OSError:
                pass

        def _trickle(self) -> None:
            self.send_response(200)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Content-Length', '100000')
            self.end_headers()
            try:
                for _ in range(100):
                    self.wfile.write(b' ')
                    self.wfile.flush()
                    time.sleep(0.1)
            except OSError:
                pass

        def do_POST(self) -> None:  # noqa: N802
            length = int(self.headers.get('Content-Length') or 0)
            self._answer(self.rfile.read(length))

        def do_GET(self) -> None:  # noqa: N802
            self._answer(None)

        def log_message(self, format: str, *args: Any) -> None:
            return

    return _Handler


@pytest.fixture
def backend_server() -> Generator:
    """Run a local HTTP server playing the backend.

    Yields ``(url, behaviour)``; tweak ``behaviour`` to change answers.
    """
    behaviour = BackendBehaviour()
    server = ThreadingHTTPServer(('127.0.0.1', 0), _make_handler(behaviour))
    server.daemon_threads = True
    server.block_on_close = False
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]

    yield f'http://{host}:{port}/exec', behaviour

    server.shutdown()
    server.server_close()
