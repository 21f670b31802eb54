"""OCV Object Storage OpenTelemetry tracing integration.

Provides a tracing decorator for storage provider operations. Spans are only
emitted when OCV_OTEL_ENABLED is set and opentelemetry is importable; exporter
setup belongs to the host process.

Security:
    - Raw object keys are never exported; only their SHA256 hash
    - No credentials or tokens in any span attribute
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
from collections.abc import Callable
from typing import Any, TypeVar, cast

logger = logging.getLogger(__name__)

OCV_OTEL_ENABLED_ENV = "OCV_OTEL_ENABLED"

F = TypeVar("F", bound=Callable[..., Any])


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no", ""):
        return default
    return default


def _is_otel_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool(OCV_OTEL_ENABLED_ENV, False)


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace storage provider operations with OpenTelemetry.

    The wrapped method must take the bucket as its first positional argument.
    For get_object the key is the second positional argument.

    Args:
        operation: Operation name (e.g., "list_objects", "get_object").

    Returns:
        Decorated function that emits OTel spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, bucket: str, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return func(self, bucket, *args, **kwargs)

            try:
                from opentelemetry import trace
            except ImportError:
                return func(self, bucket, *args, **kwargs)

            tracer = trace.get_tracer("ocv.object_store")
            span_name = f"ocv.object_store.{operation}"

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("storage.backend", getattr(self, "provider_name", "unknown"))
                span.set_attribute("ocv.bucket", bucket)
                access_mode = getattr(self, "access_mode", None)
                if access_mode is not None:
                    span.set_attribute("ocv.access_mode", str(access_mode))

                key = kwargs.get("key", args[0] if args else None)
                if operation == "get_object" and isinstance(key, str):
                    key_sha256 = hashlib.sha256(key.encode("utf-8")).hexdigest()
                    span.set_attribute("ocv.object_key_sha256", key_sha256)

                try:
                    result = func(self, bucket, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any) -> None:
    """Add result size attributes to span safely."""
    try:
        if isinstance(result, list):
            span.set_attribute("ocv.object_count", len(result))
        elif isinstance(result, bytes):
            span.set_attribute("ocv.object_size_bytes", len(result))
    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
