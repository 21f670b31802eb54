"""OCV storage provider interface definition.

Provides the StorageProvider interface that all storage backends must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ocv.storage.errors import StorageConfigurationError


class StorageProvider(ABC):
    """Abstract base class for object storage backends.

    A provider is constructed once per process and shared read-only across
    concurrent callers. Operations never mutate provider state, never retry,
    and never cache across calls.

    Implementations:
    - AwsS3Provider: AWS S3 via boto3
    - GcsProvider: Google Cloud Storage, credentialed or anonymous
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return a static descriptive name for diagnostics.

        Returns:
            Provider name string (e.g., "AWS S3", "Google Cloud Storage").
        """
        ...

    @abstractmethod
    def list_objects(self, bucket: str, prefix: str | None = None) -> list[str]:
        """List all object keys in a bucket, optionally under a prefix.

        Pagination, where the backend has it, is exhausted internally.

        Args:
            bucket: Bucket name.
            prefix: Optional key prefix to filter by.

        Returns:
            Object keys in the order the backend reports them. Empty list if
            the bucket holds no matching objects.

        Raises:
            StorageConfigurationError: If bucket is empty.
            ObjectNotFoundError: If the bucket does not exist.
            StorageAccessDeniedError: If the caller is not authorized.
            StorageTransportError: On network or protocol failure.
        """
        ...

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> bytes:
        """Fetch the raw bytes of an object.

        Args:
            bucket: Bucket name.
            key: Object key.

        Returns:
            The object content, unmodified.

        Raises:
            StorageConfigurationError: If bucket is empty.
            ObjectNotFoundError: If the object does not exist.
            StorageAccessDeniedError: If the caller is not authorized.
            StorageTransportError: On network or protocol failure.
        """
        ...

    def close(self) -> None:  # noqa: B027
        """Release resources held by the provider. No-op by default."""

    def _require_bucket(self, bucket: str) -> None:
        """Reject an empty bucket name before any network call."""
        if not bucket:
            raise StorageConfigurationError(
                "Bucket name is empty; set BUCKET_NAME to the bucket holding the ledgers",
                provider=self.provider_name,
            )
