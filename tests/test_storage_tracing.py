"""Tests for OpenTelemetry spans around storage provider operations.

Spans are captured with the SDK's in-memory exporter. Raw object keys must
never appear in span attributes, only their SHA256 hash.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator

import httpx
import pytest

pytest.importorskip("opentelemetry.sdk.trace")

from opentelemetry import trace  # noqa: E402
from opentelemetry.sdk.trace import TracerProvider  # noqa: E402
from opentelemetry.sdk.trace.export import SimpleSpanProcessor  # noqa: E402
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (  # noqa: E402
    InMemorySpanExporter,
)

from ocv.storage.errors import ObjectNotFoundError  # noqa: E402
from ocv.storage.gcs import AnonymousAccess, GcsProvider  # noqa: E402
from ocv.storage.tracing import OCV_OTEL_ENABLED_ENV  # noqa: E402

BUCKET = "mina-staking-ledgers"


@pytest.fixture(scope="module")
def module_exporter() -> InMemorySpanExporter:
    """Install an in-memory exporter on the global tracer provider once."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return exporter


@pytest.fixture
def span_exporter(module_exporter: InMemorySpanExporter) -> Iterator[InMemorySpanExporter]:
    module_exporter.clear()
    yield module_exporter
    module_exporter.clear()


def _provider() -> GcsProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("alt") == "media":
            if request.url.path.endswith("/missing.json"):
                return httpx.Response(404)
            return httpx.Response(200, stream=httpx.ByteStream(b"0123456789"))
        return httpx.Response(200, json={"items": [{"name": "a"}, {"name": "b"}]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GcsProvider("mina-ledgers", access=AnonymousAccess(http_client=client))


class TestStorageSpans:
    def test_no_spans_when_disabled(self, span_exporter: InMemorySpanExporter) -> None:
        _provider().list_objects(BUCKET)
        assert span_exporter.get_finished_spans() == ()

    def test_list_objects_span(
        self, span_exporter: InMemorySpanExporter, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(OCV_OTEL_ENABLED_ENV, "1")

        _provider().list_objects(BUCKET)

        spans = [
            s for s in span_exporter.get_finished_spans()
            if s.name == "ocv.object_store.list_objects"
        ]
        assert len(spans) == 1
        attrs = dict(spans[0].attributes or {})
        assert attrs["storage.backend"] == "Google Cloud Storage"
        assert attrs["ocv.bucket"] == BUCKET
        assert attrs["ocv.access_mode"] == "anonymous"
        assert attrs["ocv.object_count"] == 2

    def test_get_object_span_hashes_key(
        self, span_exporter: InMemorySpanExporter, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(OCV_OTEL_ENABLED_ENV, "1")
        key = "ledgers/jx-secret.json"

        _provider().get_object(BUCKET, key)

        spans = [
            s for s in span_exporter.get_finished_spans()
            if s.name == "ocv.object_store.get_object"
        ]
        assert len(spans) == 1
        attrs = dict(spans[0].attributes or {})
        assert attrs["ocv.object_key_sha256"] == hashlib.sha256(key.encode("utf-8")).hexdigest()
        assert attrs["ocv.object_size_bytes"] == 10
        assert key not in [str(v) for v in attrs.values()]

    def test_error_is_recorded(
        self, span_exporter: InMemorySpanExporter, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(OCV_OTEL_ENABLED_ENV, "true")

        with pytest.raises(ObjectNotFoundError):
            _provider().get_object(BUCKET, "missing.json")

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        attrs = dict(spans[0].attributes or {})
        assert attrs["error"] is True
        assert attrs["error.type"] == "ObjectNotFoundError"
