"""Tests for the stored documents (Repository, AppSettings)."""

from datetime import datetime, timezone

import pydantic
import pytest

from vulnguard.models.repository import (
    ACTIONABLE_STATUSES,
    RepoStatus,
    Repository,
)
from vulnguard.models.settings import AppSettings


class TestRepository:
    def test_defaults(self):
        repo = Repository(url="https://github.com/org/app")
        assert repo.status == RepoStatus.UNKNOWN
        assert repo.last_report is None
        assert repo.grounding_links == []
        assert len(repo.id) == 32

    def test_ids_are_unique(self):
        assert Repository(url="u").id != Repository(url="u").id

    def test_document_is_camel_case(self):
        doc = Repository(
            url="u", last_scanned=datetime(2026, 2, 1, tzinfo=timezone.utc)
        ).to_document()
        assert set(doc) >= {"lastReport", "groundingLinks", "lastScanned", "fixDelegatedAt"}
        assert doc["lastScanned"].startswith("2026-02-01T00:00:00")
        assert doc["status"] == "unknown"

    def test_from_document_accepts_epoch_milliseconds(self):
        repo = Repository.from_document({"url": "u", "lastScanned": 1767225600000})
        assert repo.last_scanned == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_unknown_status_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            Repository.from_document({"url": "u", "status": "exploding"})

    def test_url_required(self):
        with pytest.raises(pydantic.ValidationError):
            Repository.from_document({"name": "no url"})

    def test_status_groups(self):
        assert ACTIONABLE_STATUSES == {RepoStatus.WARNING, RepoStatus.CRITICAL}


class TestAppSettings:
    def test_from_missing_document(self):
        assert AppSettings.from_document(None) == AppSettings()

    @pytest.mark.parametrize(
        "fields",
        [{"jules_api_key": "k"}, {"chat_webhook_url": "h"}, {"backend_url": "b"}],
    )
    def test_any_field_enables_remediation(self, fields):
        assert AppSettings(**fields).remediation_configured is True

    def test_empty_is_not_configured(self):
        assert AppSettings().remediation_configured is False

    def test_camel_case_round_trip(self):
        doc = {"julesApiKey": "k", "chatWebhookUrl": "h", "backendUrl": ""}
        assert AppSettings.from_document(doc).to_document() == doc
