"""OCV Object Storage error types.

Typed exceptions for storage provider operations. Every error names the
bucket and/or key it concerns and the provider that raised it, so an operator
can act on the message alone.

Hierarchy:
    ObjectStorageError
    ├── StorageConfigurationError   bad/missing input, raised before any network call
    ├── StorageAccessDeniedError    authorization failure, carries remediation text
    ├── ObjectNotFoundError         bucket or object does not exist
    └── StorageTransportError       network/protocol failure unrelated to authorization
"""

from __future__ import annotations


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        bucket: Bucket associated with the operation (if applicable).
        key: Object key associated with the operation (if applicable).
        provider: Provider name that raised the error (if applicable).
        status_code: HTTP status of the remote response (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.bucket = bucket
        self.key = key
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.bucket:
            parts.append(f"bucket={self.bucket}")
        if self.key:
            parts.append(f"key={self.key}")
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return " ".join(parts)


class StorageConfigurationError(ObjectStorageError):
    """Raised when required configuration is missing or invalid.

    Detected before any network call. Not retryable: the configuration must
    be corrected.
    """


class StorageAccessDeniedError(ObjectStorageError):
    """Raised when the remote store rejects the caller's authorization.

    The remediation text names the configuration inputs that would resolve
    the failure and is appended to the message.
    """

    def __init__(
        self,
        message: str = "Access denied",
        *,
        bucket: str | None = None,
        key: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
        remediation: str | None = None,
    ) -> None:
        if remediation:
            message = f"{message}. {remediation}"
        super().__init__(
            message,
            bucket=bucket,
            key=key,
            provider=provider,
            status_code=status_code,
        )
        self.remediation = remediation


class ObjectNotFoundError(ObjectStorageError):
    """Raised when a bucket or object does not exist.

    Kept distinct from StorageAccessDeniedError so callers can decide between
    prompting for credentials and reporting "nothing there".
    """

    def __init__(
        self,
        message: str = "Object not found",
        *,
        bucket: str | None = None,
        key: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            bucket=bucket,
            key=key,
            provider=provider,
            status_code=status_code,
        )


class StorageTransportError(ObjectStorageError):
    """Raised when the remote call fails for reasons unrelated to authorization.

    Covers connection failures, server errors and malformed response bodies.
    """

    def __init__(
        self,
        message: str = "Storage transport error",
        *,
        bucket: str | None = None,
        key: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            bucket=bucket,
            key=key,
            provider=provider,
            status_code=status_code,
        )
        self.cause = cause
