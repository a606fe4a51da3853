"""Tests for the required documents checklist."""

from seischeck.documents import (
    REQUIRED_DOCUMENT_TYPES,
    completion_stats,
    is_ready_to_submit,
    missing_documents,
)
from seischeck.models import UploadedDocument


def upload_all(verified=False):
    return [UploadedDocument(document_type=t, is_verified=verified) for t in REQUIRED_DOCUMENT_TYPES]


class TestRequiredDocuments:
    def test_nine_required(self):
        assert len(REQUIRED_DOCUMENT_TYPES) == 9
        assert "authorisation_letter" in REQUIRED_DOCUMENT_TYPES

    def test_nothing_uploaded(self):
        assert not is_ready_to_submit([])
        assert len(missing_documents([])) == 9
        assert completion_stats([]) == {"uploaded": 0, "verified": 0, "total": 9}

    def test_all_uploaded(self):
        documents = upload_all()
        assert is_ready_to_submit(documents)
        assert missing_documents(documents) == []
        assert completion_stats(documents)["uploaded"] == 9

    def test_missing_one(self):
        documents = [d for d in upload_all() if d.document_type != "cover_letter"]
        assert not is_ready_to_submit(documents)
        assert [m.type for m in missing_documents(documents)] == ["cover_letter"]

    def test_duplicates_and_extras_count_once(self):
        documents = [
            UploadedDocument("business_plan", "v1.pdf", is_verified=True),
            UploadedDocument("business_plan", "v2.pdf", is_verified=False),
            UploadedDocument("pitch_deck", "deck.pdf", is_verified=True),
            UploadedDocument("accounts", "accounts.pdf", is_verified=True),
        ]
        # The later business plan upload replaces the verified one
        assert completion_stats(documents) == {"uploaded": 2, "verified": 1, "total": 9}
