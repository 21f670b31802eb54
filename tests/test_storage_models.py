"""Tests for listing page parsing and storage error formatting."""

from __future__ import annotations

import pytest

from ocv.storage.errors import (
    ObjectNotFoundError,
    ObjectStorageError,
    StorageAccessDeniedError,
    StorageConfigurationError,
    StorageTransportError,
)
from ocv.storage.models import ListingPage


class TestListingPage:
    def test_items_and_token(self) -> None:
        page = ListingPage.from_dict(
            {"items": [{"name": "a", "size": "12"}, {"name": "b"}], "nextPageToken": "t1"}
        )
        assert page.names == ["a", "b"]
        assert page.next_page_token == "t1"

    def test_last_page_has_no_token(self) -> None:
        page = ListingPage.from_dict({"items": [{"name": "a"}], "nextPageToken": None})
        assert page.next_page_token is None

    def test_empty_token_is_treated_as_last_page(self) -> None:
        assert ListingPage.from_dict({"nextPageToken": ""}).next_page_token is None

    def test_missing_items(self) -> None:
        page = ListingPage.from_dict({"kind": "storage#objects"})
        assert page.names == []
        assert page.next_page_token is None

    @pytest.mark.parametrize(
        "body",
        [
            [],
            "text",
            {"items": {"name": "a"}},
            {"items": [{"size": "1"}]},
            {"items": ["a"]},
            {"items": [], "nextPageToken": 7},
        ],
    )
    def test_malformed_bodies_rejected(self, body: object) -> None:
        with pytest.raises(ValueError):
            ListingPage.from_dict(body)


class TestErrorFormatting:
    def test_context_fields_appended(self) -> None:
        err = ObjectStorageError(
            "Request failed",
            bucket="ledgers",
            key="jx.json",
            provider="AWS S3",
            status_code=500,
        )
        assert str(err) == "Request failed bucket=ledgers key=jx.json provider=AWS S3 status=500"

    def test_unset_fields_omitted(self) -> None:
        assert str(ObjectStorageError("Boom")) == "Boom"

    def test_remediation_appended_to_message(self) -> None:
        err = StorageAccessDeniedError(
            "Access denied",
            bucket="ledgers",
            remediation="Set GCS_PROJECT_ID",
        )
        assert err.remediation == "Set GCS_PROJECT_ID"
        assert str(err).startswith("Access denied. Set GCS_PROJECT_ID")
        assert "bucket=ledgers" in str(err)

    def test_transport_error_keeps_cause(self) -> None:
        cause = OSError("reset")
        err = StorageTransportError(cause=cause)
        assert err.cause is cause
        assert err.message == "Storage transport error"

    @pytest.mark.parametrize(
        "error_cls",
        [
            StorageConfigurationError,
            StorageAccessDeniedError,
            ObjectNotFoundError,
            StorageTransportError,
        ],
    )
    def test_hierarchy(self, error_cls: type[ObjectStorageError]) -> None:
        assert issubclass(error_cls, ObjectStorageError)

    def test_classes_are_distinct(self) -> None:
        assert not issubclass(ObjectNotFoundError, StorageAccessDeniedError)
        assert not issubclass(StorageAccessDeniedError, StorageTransportError)
