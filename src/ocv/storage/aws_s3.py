"""OCV AWS S3 storage provider.

Thin adapter over the boto3 S3 client. Credentials come from the standard AWS
chain (environment, shared config, instance profile); there is no anonymous
fallback for this backend.

Environment Variables:
    AWS_REGION: Region the client is bound to (default: "us-west-2")
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ocv.storage.errors import (
    ObjectNotFoundError,
    StorageAccessDeniedError,
    StorageConfigurationError,
    StorageTransportError,
)
from ocv.storage.models import AWS_REGION_ENV
from ocv.storage.provider import StorageProvider
from ocv.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

AWS_PROVIDER_NAME = "AWS S3"

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})
_ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "AllAccessDisabled",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "ExpiredToken",
        "InvalidToken",
        "403",
        "401",
    }
)

_AWS_REMEDIATION = (
    f"Check {AWS_REGION_ENV} and the AWS credentials "
    "(AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY or AWS_PROFILE) "
    "grant s3:ListBucket and s3:GetObject on this bucket"
)

# One attempt per call; failures reach the caller without backoff.
S3_CLIENT_CONFIG = Config(retries={"total_max_attempts": 1, "mode": "standard"})


class AwsS3Provider(StorageProvider):
    """AWS S3 storage provider.

    Listing walks the list_objects_v2 paginator; fetch issues a single
    get_object call. Client retries are disabled. Client errors are wrapped
    with bucket/key context and classified into the storage error taxonomy.
    """

    def __init__(self, region: str, *, client: Any | None = None) -> None:
        """Initialize the S3 provider.

        No network call is made here; the client connects lazily.

        Args:
            region: AWS region identifier.
            client: Optional pre-built S3 client for dependency injection (testing).

        Raises:
            StorageConfigurationError: If region is empty.
        """
        if not region or not region.strip():
            raise StorageConfigurationError(
                f"AWS region is empty; set {AWS_REGION_ENV}",
                provider=AWS_PROVIDER_NAME,
            )

        self._region = region
        self._client = (
            client
            if client is not None
            else boto3.client("s3", region_name=region, config=S3_CLIENT_CONFIG)
        )
        logger.info("Initialized AWS S3 storage provider in region %s", region)

    @property
    def provider_name(self) -> str:
        return AWS_PROVIDER_NAME

    @property
    def region(self) -> str:
        """Region the client is bound to."""
        return self._region

    @traced_storage_operation("list_objects")
    def list_objects(self, bucket: str, prefix: str | None = None) -> list[str]:
        self._require_bucket(bucket)

        params: dict[str, str] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix

        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except (ClientError, BotoCoreError) as exc:
            raise _classify_error(exc, bucket=bucket, key=None, action="list objects") from exc

        logger.debug("Listed %d objects in s3://%s (prefix=%r)", len(keys), bucket, prefix)
        return keys

    @traced_storage_operation("get_object")
    def get_object(self, bucket: str, key: str) -> bytes:
        self._require_bucket(bucket)

        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body: bytes = response["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise _classify_error(exc, bucket=bucket, key=key, action="fetch object") from exc

        return body


def _classify_error(
    exc: ClientError | BotoCoreError,
    *,
    bucket: str,
    key: str | None,
    action: str,
) -> StorageAccessDeniedError | ObjectNotFoundError | StorageTransportError:
    """Map a botocore exception to the storage error taxonomy."""
    if isinstance(exc, NoCredentialsError):
        return StorageAccessDeniedError(
            f"No AWS credentials found; cannot {action}",
            bucket=bucket,
            key=key,
            provider=AWS_PROVIDER_NAME,
            remediation=_AWS_REMEDIATION,
        )

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in _NOT_FOUND_CODES or status == 404:
            what = "Bucket" if code == "NoSuchBucket" or key is None else "Object"
            return ObjectNotFoundError(
                f"{what} not found ({code or 'HTTP 404'}); cannot {action}",
                bucket=bucket,
                key=key,
                provider=AWS_PROVIDER_NAME,
                status_code=status,
            )

        if code in _ACCESS_DENIED_CODES or status in (401, 403):
            return StorageAccessDeniedError(
                f"Access denied ({code or f'HTTP {status}'}); cannot {action}",
                bucket=bucket,
                key=key,
                provider=AWS_PROVIDER_NAME,
                status_code=status,
                remediation=_AWS_REMEDIATION,
            )

        return StorageTransportError(
            f"S3 request failed ({code or 'unknown error'}); cannot {action}: {exc}",
            bucket=bucket,
            key=key,
            provider=AWS_PROVIDER_NAME,
            status_code=status,
            cause=exc,
        )

    return StorageTransportError(
        f"S3 transport failure; cannot {action}: {exc}",
        bucket=bucket,
        key=key,
        provider=AWS_PROVIDER_NAME,
        cause=exc,
    )
