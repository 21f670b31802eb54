"""OCV Google Cloud Storage provider.

Dual-mode access to GCS buckets:
- Authenticated: google-cloud-storage client built from Application Default
  Credentials discovery.
- Anonymous: plain httpx client against the public JSON API, used when
  credential discovery fails. Ledger buckets are usually publicly readable,
  so a missing credential degrades access instead of failing construction.

The mode is decided once in the constructor and never re-evaluated. Every
operation is a single attempt: the client library's retry policy is disabled
and failures surface to the caller immediately. Downloads return the object
bytes as stored, without gzip decoding.

Environment Variables:
    GCS_PROJECT_ID: Project owning the bucket (required)
    GCS_SERVICE_ACCOUNT_KEY_PATH: Service-account key path (accepted, recorded;
        discovery still goes through Application Default Credentials)
    GOOGLE_APPLICATION_CREDENTIALS: Standard ADC key file location
"""

from __future__ import annotations

import json
import logging
import re
import urllib.parse
from dataclasses import dataclass

import httpx
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from ocv.storage.errors import (
    ObjectNotFoundError,
    StorageAccessDeniedError,
    StorageConfigurationError,
    StorageTransportError,
)
from ocv.storage.models import (
    GCS_PROJECT_ID_ENV,
    GCS_SERVICE_ACCOUNT_KEY_PATH_ENV,
    AccessMode,
    ListingPage,
)
from ocv.storage.provider import StorageProvider
from ocv.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

GCS_PROVIDER_NAME = "Google Cloud Storage"
GCS_API_BASE_URL = "https://storage.googleapis.com/storage/v1"
GCS_USER_AGENT = "OCV/1.0"
GCS_LIST_PAGE_SIZE = 1000
MAX_LIST_PAGES = 10
DEFAULT_TIMEOUT_SECONDS = 30.0

GOOGLE_APPLICATION_CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"

_SUSPICIOUS_BUCKET_CHARS = re.compile(r"[ _A-Z]")


@dataclass(frozen=True)
class AuthenticatedAccess:
    """Credentialed access through the google-cloud-storage client."""

    client: storage.Client


@dataclass(frozen=True)
class AnonymousAccess:
    """Unauthenticated access through the public JSON API."""

    http_client: httpx.Client


GcsAccess = AuthenticatedAccess | AnonymousAccess


def _build_http_client(timeout_seconds: float) -> httpx.Client:
    return httpx.Client(
        timeout=timeout_seconds,
        headers={"User-Agent": GCS_USER_AGENT},
    )


def _status_of(exc: Exception) -> int | None:
    """HTTP status carried by a google-api-core error, if any."""
    code = getattr(exc, "code", None)
    return int(code) if isinstance(code, int) else None


def _discover_access(project_id: str, timeout_seconds: float) -> GcsAccess:
    """Build a credentialed client, falling back to anonymous HTTP access.

    Any failure of credential discovery selects anonymous mode; the reason
    is logged.
    """
    try:
        client = storage.Client(project=project_id)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "GCS credential discovery failed for project %s (%s: %s); "
            "using anonymous access, only public buckets will be readable",
            project_id,
            type(exc).__name__,
            exc,
        )
        return AnonymousAccess(http_client=_build_http_client(timeout_seconds))

    logger.info("GCS credential discovery succeeded for project %s", project_id)
    return AuthenticatedAccess(client=client)


class GcsProvider(StorageProvider):
    """Google Cloud Storage provider with authenticated/anonymous access modes.

    Listing in anonymous mode pages through the JSON API up to MAX_LIST_PAGES
    pages; reaching the cap logs a warning and returns the partial result.
    """

    def __init__(
        self,
        project_id: str,
        service_account_key_path: str | None = None,
        *,
        access: GcsAccess | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the GCS provider.

        Args:
            project_id: Project owning the bucket.
            service_account_key_path: Optional key file path. Recorded only;
                discovery uses Application Default Credentials.
            access: Optional pre-built access variant for dependency injection
                (testing). Skips credential discovery when given.
            timeout_seconds: Timeout for the anonymous HTTP client.

        Raises:
            StorageConfigurationError: If project_id is empty.
        """
        if not project_id or not project_id.strip():
            raise StorageConfigurationError(
                f"GCS project ID is empty; set {GCS_PROJECT_ID_ENV}",
                provider=GCS_PROVIDER_NAME,
            )

        self._project_id = project_id
        self._service_account_key_path = service_account_key_path

        if service_account_key_path:
            logger.info(
                "%s=%s is set; credentials are still resolved through "
                "Application Default Credentials (%s)",
                GCS_SERVICE_ACCOUNT_KEY_PATH_ENV,
                service_account_key_path,
                GOOGLE_APPLICATION_CREDENTIALS_ENV,
            )

        self._access: GcsAccess = (
            access if access is not None else _discover_access(project_id, timeout_seconds)
        )
        logger.info(
            "Initialized GCS storage provider for project %s (%s mode)",
            project_id,
            self.access_mode,
        )

    @property
    def provider_name(self) -> str:
        return GCS_PROVIDER_NAME

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def service_account_key_path(self) -> str | None:
        return self._service_account_key_path

    @property
    def access_mode(self) -> AccessMode:
        """Access mode fixed at construction."""
        if isinstance(self._access, AuthenticatedAccess):
            return AccessMode.AUTHENTICATED
        return AccessMode.ANONYMOUS

    def close(self) -> None:
        match self._access:
            case AuthenticatedAccess(client=client):
                client.close()
            case AnonymousAccess(http_client=http_client):
                http_client.close()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @traced_storage_operation("list_objects")
    def list_objects(self, bucket: str, prefix: str | None = None) -> list[str]:
        self._validate_bucket(bucket)

        match self._access:
            case AuthenticatedAccess(client=client):
                return self._list_authenticated(client, bucket, prefix)
            case AnonymousAccess(http_client=http_client):
                return self._list_anonymous(http_client, bucket, prefix)

    def _list_authenticated(
        self,
        client: storage.Client,
        bucket: str,
        prefix: str | None,
    ) -> list[str]:
        """List through the client; its iterator handles pagination."""
        try:
            return [
                blob.name for blob in client.list_blobs(bucket, prefix=prefix, retry=None)
            ]
        except google_exceptions.NotFound as exc:
            raise ObjectNotFoundError(
                f"Bucket not found in project {self._project_id}",
                bucket=bucket,
                provider=GCS_PROVIDER_NAME,
                status_code=404,
            ) from exc
        except (
            google_exceptions.Unauthorized,
            google_exceptions.Forbidden,
            auth_exceptions.RefreshError,
        ) as exc:
            raise StorageAccessDeniedError(
                f"Access denied listing objects ({type(exc).__name__})",
                bucket=bucket,
                provider=GCS_PROVIDER_NAME,
                status_code=_status_of(exc),
                remediation=self._listing_remediation(bucket),
            ) from exc
        except Exception as exc:
            raise StorageTransportError(
                f"GCS listing failed: {exc}",
                bucket=bucket,
                provider=GCS_PROVIDER_NAME,
                status_code=_status_of(exc),
                cause=exc,
            ) from exc

    def _list_anonymous(
        self,
        http_client: httpx.Client,
        bucket: str,
        prefix: str | None,
    ) -> list[str]:
        """Page through the public JSON listing endpoint, capped at MAX_LIST_PAGES."""
        url = f"{GCS_API_BASE_URL}/b/{urllib.parse.quote(bucket, safe='')}/o"
        names: list[str] = []
        page_token: str | None = None
        pages = 0

        while True:
            params: dict[str, str] = {"maxResults": str(GCS_LIST_PAGE_SIZE)}
            if prefix:
                params["prefix"] = prefix
            if page_token:
                params["pageToken"] = page_token

            body = self._get(http_client, url, params, bucket=bucket, key=None)
            page = self._parse_listing(body, bucket)
            names.extend(page.names)
            pages += 1
            page_token = page.next_page_token

            logger.debug(
                "Fetched listing page %d for gs://%s (%d items, more=%s)",
                pages,
                bucket,
                len(page.names),
                page_token is not None,
            )

            if page_token is None:
                break
            if pages >= MAX_LIST_PAGES:
                logger.warning(
                    "Listing gs://%s (prefix=%r) stopped after %d pages with more "
                    "results pending; returning %d objects, results may be incomplete",
                    bucket,
                    prefix,
                    MAX_LIST_PAGES,
                    len(names),
                )
                break

        return names

    @staticmethod
    def _parse_listing(body: bytes, bucket: str) -> ListingPage:
        try:
            return ListingPage.from_dict(json.loads(body))
        except ValueError as exc:
            raise StorageTransportError(
                f"Malformed listing response: {exc}",
                bucket=bucket,
                provider=GCS_PROVIDER_NAME,
                cause=exc,
            ) from exc

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    @traced_storage_operation("get_object")
    def get_object(self, bucket: str, key: str) -> bytes:
        self._validate_bucket(bucket)

        match self._access:
            case AuthenticatedAccess(client=client):
                return self._get_authenticated(client, bucket, key)
            case AnonymousAccess(http_client=http_client):
                return self._get_anonymous(http_client, bucket, key)

    def _get_authenticated(self, client: storage.Client, bucket: str, key: str) -> bytes:
        try:
            data: bytes = (
                client.bucket(bucket).blob(key).download_as_bytes(raw_download=True, retry=None)
            )
        except google_exceptions.NotFound as exc:
            raise ObjectNotFoundError(
                "Object not found",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=404,
            ) from exc
        except (
            google_exceptions.Unauthorized,
            google_exceptions.Forbidden,
            auth_exceptions.RefreshError,
        ) as exc:
            raise StorageAccessDeniedError(
                f"Access denied downloading object ({type(exc).__name__})",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=_status_of(exc),
                remediation=self._fetch_remediation(bucket, key),
            ) from exc
        except Exception as exc:
            raise StorageTransportError(
                f"GCS download failed: {exc}",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=_status_of(exc),
                cause=exc,
            ) from exc
        return data

    def _get_anonymous(self, http_client: httpx.Client, bucket: str, key: str) -> bytes:
        url = (
            f"{GCS_API_BASE_URL}/b/{urllib.parse.quote(bucket, safe='')}"
            f"/o/{urllib.parse.quote(key, safe='')}"
        )
        return self._get(http_client, url, {"alt": "media"}, bucket=bucket, key=key, raw=True)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _validate_bucket(self, bucket: str) -> None:
        """Reject empty names; warn on names GCS would not accept."""
        self._require_bucket(bucket)
        if _SUSPICIOUS_BUCKET_CHARS.search(bucket):
            logger.warning(
                "Bucket name %r contains spaces, underscores or uppercase letters "
                "and is probably invalid; check BUCKET_NAME",
                bucket,
            )

    def _get(
        self,
        http_client: httpx.Client,
        url: str,
        params: dict[str, str],
        *,
        bucket: str,
        key: str | None,
        raw: bool = False,
    ) -> bytes:
        """Issue one anonymous GET, classify the outcome and read the body.

        Args:
            http_client: Anonymous HTTP client.
            url: Request URL.
            params: Query parameters (URL-encoded by httpx).
            bucket: Bucket for error context.
            key: Object key for error context; None for listing requests.
            raw: Return the body exactly as sent, skipping Content-Encoding
                decoding. GCS serves gzip-encoded objects as stored only to
                clients that accept gzip.

        Returns:
            The response body.

        Raises:
            StorageAccessDeniedError: On 401/403 or any other 4xx.
            ObjectNotFoundError: On 404.
            StorageTransportError: On 5xx or transport failure.
        """
        headers = {"Accept-Encoding": "gzip"} if raw else None
        try:
            with http_client.stream("GET", url, params=params, headers=headers) as response:
                self._raise_for_status(response, bucket=bucket, key=key)
                if raw:
                    return b"".join(response.iter_raw())
                return response.read()
        except httpx.RequestError as exc:
            raise StorageTransportError(
                f"GCS request failed ({type(exc).__name__}): {exc}",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                cause=exc,
            ) from exc

    def _raise_for_status(
        self,
        response: httpx.Response,
        *,
        bucket: str,
        key: str | None,
    ) -> None:
        status = response.status_code
        if response.is_success:
            return

        if status in (401, 403):
            remediation = (
                self._listing_remediation(bucket)
                if key is None
                else self._fetch_remediation(bucket, key)
            )
            raise StorageAccessDeniedError(
                f"Anonymous access denied (HTTP {status})",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=status,
                remediation=remediation,
            )

        if status == 404:
            if key is None:
                message = f"Bucket not found in project {self._project_id}"
            else:
                message = "Object not found"
            raise ObjectNotFoundError(
                message,
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=status,
            )

        if response.is_client_error:
            raise StorageAccessDeniedError(
                f"GCS rejected the request (HTTP {status})",
                bucket=bucket,
                key=key,
                provider=GCS_PROVIDER_NAME,
                status_code=status,
            )

        raise StorageTransportError(
            f"GCS request failed (HTTP {status})",
            bucket=bucket,
            key=key,
            provider=GCS_PROVIDER_NAME,
            status_code=status,
        )

    def _listing_remediation(self, bucket: str) -> str:
        return (
            f"Bucket '{bucket}' is not readable with the current credentials. "
            f"Check {GCS_PROJECT_ID_ENV} (currently '{self._project_id}') names the "
            f"owning project and provide credentials through "
            f"{GOOGLE_APPLICATION_CREDENTIALS_ENV} or {GCS_SERVICE_ACCOUNT_KEY_PATH_ENV}"
        )

    def _fetch_remediation(self, bucket: str, key: str) -> str:
        return (
            f"Object '{key}' in bucket '{bucket}' is not readable with the current "
            f"credentials. Grant storage.objects.get on the bucket and provide "
            f"credentials through {GOOGLE_APPLICATION_CREDENTIALS_ENV} or "
            f"{GCS_SERVICE_ACCOUNT_KEY_PATH_ENV}; check {GCS_PROJECT_ID_ENV}"
        )
