"""OCV Object Storage data models.

Provider selection, access mode and configuration types, plus the listing
page parsed from the public JSON listing endpoint.

Environment Variables:
    STORAGE_PROVIDER: Backend selector, "aws" or "gcs" (default: "gcs")
    AWS_REGION: Region for the S3 backend (default: "us-west-2")
    GCS_PROJECT_ID: Project ID, required for the GCS backend
    GCS_SERVICE_ACCOUNT_KEY_PATH: Service-account key file path (optional)
    BUCKET_NAME: Bucket containing the ledger snapshots
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

STORAGE_PROVIDER_ENV = "STORAGE_PROVIDER"
AWS_REGION_ENV = "AWS_REGION"
GCS_PROJECT_ID_ENV = "GCS_PROJECT_ID"
GCS_SERVICE_ACCOUNT_KEY_PATH_ENV = "GCS_SERVICE_ACCOUNT_KEY_PATH"
BUCKET_NAME_ENV = "BUCKET_NAME"

DEFAULT_STORAGE_PROVIDER = "gcs"
DEFAULT_AWS_REGION = "us-west-2"


class StorageProviderKind(StrEnum):
    """Supported storage backends. Lookup by value is case-sensitive."""

    AWS = "aws"
    GCS = "gcs"


SUPPORTED_PROVIDERS: tuple[str, ...] = tuple(kind.value for kind in StorageProviderKind)


class AccessMode(StrEnum):
    """Access mode of a GCS handle, fixed at construction."""

    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


def _get_env_optional(key: str) -> str | None:
    """Get a stripped environment value, treating blank as unset."""
    val = os.environ.get(key, "").strip()
    return val or None


class ProviderConfig(BaseModel):
    """Configuration for constructing a storage provider.

    The selector is kept as a raw string: validating it against the supported
    set is the factory's job, so an unrecognized value surfaces as a
    StorageConfigurationError rather than a model validation error.

    Attributes:
        storage_provider: Backend selector ("aws" or "gcs").
        aws_region: Region identifier for the S3 backend.
        gcs_project_id: Project identifier, required for the GCS backend.
        gcs_service_account_key_path: Optional credential file path. Accepted
            and recorded; credential discovery stays on the default chain.
        bucket_name: Bucket containing the ledger snapshots.
    """

    model_config = ConfigDict(frozen=True)

    storage_provider: str = DEFAULT_STORAGE_PROVIDER
    aws_region: str = DEFAULT_AWS_REGION
    gcs_project_id: str | None = None
    gcs_service_account_key_path: str | None = None
    bucket_name: str = ""

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Build configuration from environment variables."""
        return cls(
            storage_provider=os.environ.get(STORAGE_PROVIDER_ENV, DEFAULT_STORAGE_PROVIDER).strip(),
            aws_region=_get_env_optional(AWS_REGION_ENV) or DEFAULT_AWS_REGION,
            gcs_project_id=_get_env_optional(GCS_PROJECT_ID_ENV),
            gcs_service_account_key_path=_get_env_optional(GCS_SERVICE_ACCOUNT_KEY_PATH_ENV),
            bucket_name=os.environ.get(BUCKET_NAME_ENV, "").strip(),
        )


@dataclass(frozen=True)
class ListingPage:
    """One page of a JSON object listing.

    Attributes:
        names: Object names in response order.
        next_page_token: Continuation token, None on the last page.
    """

    names: list[str] = field(default_factory=list)
    next_page_token: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ListingPage:
        """Parse a listing body of shape {items?: [{name}], nextPageToken?}.

        Raises:
            ValueError: If the body does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Listing response must be a JSON object, got {type(data).__name__}")

        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValueError("Listing response 'items' must be a list")

        names: list[str] = []
        for item in items:
            name = item.get("name") if isinstance(item, dict) else None
            if not isinstance(name, str):
                raise ValueError(f"Listing item without a string 'name': {item!r}")
            names.append(name)

        token = data.get("nextPageToken")
        if token is not None and not isinstance(token, str):
            raise ValueError("Listing response 'nextPageToken' must be a string")

        return cls(names=names, next_page_token=token or None)
