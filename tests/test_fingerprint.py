"""
Unit Tests for Content Fingerprints and Record Metadata

The fingerprint is persisted as the vector id, so its exact layout is pinned
here against known digests.
"""

import hashlib
import json

import pytest

from proposal_rag.ingestion.fingerprint import TEXT_PREFIX_LENGTH, fingerprint, fingerprint_source
from proposal_rag.ingestion.records import UNCATEGORIZED, DocumentMetadata, Record


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def document():
    return DocumentMetadata(id="RFP-001", title="Q1 bids", upload_date="2024-01-01T00:00:00.000Z", category="General")


def make_record(text: str, category: str = "Pricing", sheet: str = "Sheet1") -> Record:
    return Record(category=category, sheet_name=sheet, text=text, original_data={"Category": category})


# ---------------------------------------------------------------------------
# FINGERPRINT TESTS
# ---------------------------------------------------------------------------


class TestFingerprint:
    """Test fingerprint layout and stability."""

    def test_source_layout(self, document):
        record = make_record("Category: Pricing\nPrice: 100")

        assert fingerprint_source(document, record) == "RFP-001-Sheet1-Pricing-Category: Pricing\nPrice: 100"

    def test_is_md5_of_source(self, document):
        record = make_record("Category: Pricing\nPrice: 100")
        expected = hashlib.md5("RFP-001-Sheet1-Pricing-Category: Pricing\nPrice: 100".encode()).hexdigest()

        assert fingerprint(document, record) == expected

    def test_is_32_hex_chars(self, document):
        value = fingerprint(document, make_record("x"))

        assert len(value) == 32
        int(value, 16)

    def test_deterministic(self, document):
        record = make_record("Category: Pricing")
        assert fingerprint(document, record) == fingerprint(document, make_record("Category: Pricing"))

    def test_only_first_50_characters_count(self, document):
        prefix = "a" * TEXT_PREFIX_LENGTH
        first = make_record(prefix + " first tail")
        second = make_record(prefix + " a different tail")

        assert fingerprint(document, first) == fingerprint(document, second)

    def test_difference_inside_prefix_changes_id(self, document):
        first = make_record("b" + "a" * 60)
        second = make_record("c" + "a" * 60)

        assert fingerprint(document, first) != fingerprint(document, second)

    @pytest.mark.parametrize("field,value", [
        ("sheet", "Sheet2"),
        ("category", "Legal"),
    ])
    def test_sheet_and_category_take_part(self, document, field, value):
        base = make_record("same text")
        other = make_record("same text", **{field: value})

        assert fingerprint(document, base) != fingerprint(document, other)

    def test_document_id_takes_part(self, document):
        other_doc = DocumentMetadata(id="RFP-002", title="Q1 bids")
        record = make_record("same text")

        assert fingerprint(document, record) != fingerprint(other_doc, record)

    def test_document_title_does_not_take_part(self, document):
        renamed = DocumentMetadata(id="RFP-001", title="Renamed")
        record = make_record("same text")

        assert fingerprint(document, record) == fingerprint(renamed, record)


# ---------------------------------------------------------------------------
# RECORD METADATA TESTS
# ---------------------------------------------------------------------------


class TestRecordMetadata:
    """Test the metadata stored with each vector."""

    def test_record_category_overrides_document_category(self, document):
        metadata = make_record("x", category="Pricing").to_metadata(document)

        assert metadata["category"] == "Pricing"

    def test_carries_document_fields(self, document):
        metadata = make_record("x").to_metadata(document)

        assert metadata["id"] == "RFP-001"
        assert metadata["title"] == "Q1 bids"
        assert metadata["uploadDate"] == "2024-01-01T00:00:00.000Z"
        assert metadata["sheetName"] == "Sheet1"
        assert metadata["text"] == "x"

    def test_original_data_is_json_string(self, document):
        record = Record(category="Pricing", sheet_name="S", text="t", original_data={"Price": "100"})

        metadata = record.to_metadata(document)

        assert isinstance(metadata["originalData"], str)
        assert json.loads(metadata["originalData"]) == {"Price": "100"}


class TestDocumentMetadata:
    """Test DocumentMetadata construction."""

    def test_from_dict_reads_camel_case(self):
        doc = DocumentMetadata.from_dict({
            "id": "RFP-9", "title": "T", "uploadDate": "2024-02-02T00:00:00.000Z", "category": "C",
        })

        assert doc == DocumentMetadata(id="RFP-9", title="T", upload_date="2024-02-02T00:00:00.000Z", category="C")

    def test_from_dict_defaults(self):
        doc = DocumentMetadata.from_dict({"id": "RFP-9"})

        assert doc.title == "RFP-9"
        assert doc.category == UNCATEGORIZED
        assert doc.upload_date.endswith("Z")

    def test_from_dict_requires_id(self):
        with pytest.raises(ValueError):
            DocumentMetadata.from_dict({"title": "no id"})

    def test_to_dict_round_trips_keys(self):
        doc = DocumentMetadata(id="a", title="b", upload_date="c", category="d")
        assert doc.to_dict() == {"id": "a", "title": "b", "uploadDate": "c", "category": "d"}
