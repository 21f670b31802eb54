"""OCV storage provider factory.

Selects and constructs the configured storage backend and holds the
process-wide shared handle.
"""

from __future__ import annotations

import logging
import threading

from ocv.storage.aws_s3 import AwsS3Provider
from ocv.storage.errors import StorageConfigurationError
from ocv.storage.gcs import GcsProvider
from ocv.storage.models import (
    GCS_PROJECT_ID_ENV,
    SUPPORTED_PROVIDERS,
    ProviderConfig,
    StorageProviderKind,
)
from ocv.storage.provider import StorageProvider

logger = logging.getLogger(__name__)

_provider: StorageProvider | None = None
_provider_lock = threading.Lock()


def _resolve_kind(selector: str) -> StorageProviderKind:
    """Match the selector case-sensitively against the supported kinds.

    Raises:
        StorageConfigurationError: If the selector is not a supported kind.
    """
    try:
        return StorageProviderKind(selector)
    except ValueError:
        raise StorageConfigurationError(
            f"Unsupported storage provider: {selector}. "
            f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        ) from None


def create_storage_provider(config: ProviderConfig) -> StorageProvider:
    """Construct the storage provider selected by the configuration.

    Args:
        config: Provider configuration.

    Returns:
        A new StorageProvider for the selected backend.

    Raises:
        StorageConfigurationError: If the selector is unsupported, or GCS is
            selected without a project ID.
    """
    kind = _resolve_kind(config.storage_provider)

    if kind is StorageProviderKind.AWS:
        logger.info("Initializing AWS S3 storage provider with region: %s", config.aws_region)
        return AwsS3Provider(config.aws_region)

    project_id = (config.gcs_project_id or "").strip()
    if not project_id:
        raise StorageConfigurationError(
            f"{GCS_PROJECT_ID_ENV} required when using GCS provider"
        )
    logger.info("Initializing GCS storage provider with project: %s", project_id)
    return GcsProvider(project_id, config.gcs_service_account_key_path)


def get_storage_provider(config: ProviderConfig | None = None) -> StorageProvider:
    """Get or create the singleton storage provider.

    The first call constructs the provider; later calls return the same
    instance and ignore their config argument.

    Args:
        config: Provider configuration. If None, read from the environment.

    Returns:
        The shared StorageProvider instance.

    Raises:
        StorageConfigurationError: If configuration is invalid.
    """
    global _provider  # noqa: PLW0603

    with _provider_lock:
        if _provider is None:
            _provider = create_storage_provider(config or ProviderConfig.from_env())
        return _provider


def reset_storage_provider() -> None:
    """Close and drop the singleton storage provider if it exists."""
    global _provider  # noqa: PLW0603

    with _provider_lock:
        if _provider is not None:
            _provider.close()
            _provider = None
            logger.info("Storage provider closed")
