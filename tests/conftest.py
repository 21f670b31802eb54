"""Pytest configuration and fixtures for OCV storage tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import pytest

from ocv.storage.factory import reset_storage_provider
from ocv.storage.models import (
    AWS_REGION_ENV,
    BUCKET_NAME_ENV,
    GCS_PROJECT_ID_ENV,
    GCS_SERVICE_ACCOUNT_KEY_PATH_ENV,
    STORAGE_PROVIDER_ENV,
)
from ocv.storage.tracing import OCV_OTEL_ENABLED_ENV

_ISOLATED_ENV = (
    STORAGE_PROVIDER_ENV,
    AWS_REGION_ENV,
    GCS_PROJECT_ID_ENV,
    GCS_SERVICE_ACCOUNT_KEY_PATH_ENV,
    BUCKET_NAME_ENV,
    OCV_OTEL_ENABLED_ENV,
)


@pytest.fixture(autouse=True)
def isolated_storage_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear storage env vars and the shared provider around every test.

    Keeps the developer's shell configuration and a provider built by an
    earlier test from leaking into the next one.
    """
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_storage_provider()
    yield
    reset_storage_provider()


class UnavailableEndpoint:
    """Local HTTP endpoint answering 503 to every request."""

    def __init__(self) -> None:
        self.requests: list[str] = []
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), self._handler_class())
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        seen = self.requests

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                seen.append(self.path)
                body = (
                    b"<Error><Code>ServiceUnavailable</Code>"
                    b"<Message>Please reduce your request rate.</Message></Error>"
                )
                self.send_response(503)
                self.send_header("Content-Type", "application/xml")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format: str, *args: Any) -> None:
                pass

        return Handler


@pytest.fixture
def unavailable_endpoint() -> Iterator[UnavailableEndpoint]:
    """Run an always-503 endpoint for the duration of one test."""
    endpoint = UnavailableEndpoint()
    endpoint.start()
    yield endpoint
    endpoint.stop()
