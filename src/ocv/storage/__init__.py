"""OCV Object Storage Abstraction.

Uniform read access to ledger-snapshot buckets across storage backends.

Backends:
- AwsS3Provider: AWS S3 via boto3
- GcsProvider: Google Cloud Storage, credentialed with anonymous fallback

Environment Variables:
    STORAGE_PROVIDER: "aws" or "gcs" (default: "gcs")
    AWS_REGION: Region for the S3 backend (default: "us-west-2")
    GCS_PROJECT_ID: Project ID, required for the GCS backend
    GCS_SERVICE_ACCOUNT_KEY_PATH: Service-account key path (optional)
    BUCKET_NAME: Bucket containing the ledger snapshots
"""

from ocv.storage.aws_s3 import AwsS3Provider
from ocv.storage.errors import (
    ObjectNotFoundError,
    ObjectStorageError,
    StorageAccessDeniedError,
    StorageConfigurationError,
    StorageTransportError,
)
from ocv.storage.factory import (
    create_storage_provider,
    get_storage_provider,
    reset_storage_provider,
)
from ocv.storage.gcs import AnonymousAccess, AuthenticatedAccess, GcsProvider
from ocv.storage.models import AccessMode, ProviderConfig, StorageProviderKind
from ocv.storage.provider import StorageProvider

__all__ = [
    "AccessMode",
    "AnonymousAccess",
    "AuthenticatedAccess",
    "AwsS3Provider",
    "GcsProvider",
    "ObjectNotFoundError",
    "ObjectStorageError",
    "ProviderConfig",
    "StorageAccessDeniedError",
    "StorageConfigurationError",
    "StorageProvider",
    "StorageProviderKind",
    "StorageTransportError",
    "create_storage_provider",
    "get_storage_provider",
    "reset_storage_provider",
]
