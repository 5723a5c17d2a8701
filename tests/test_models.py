"""Tests for PDFStamp Pydantic models."""

import pytest
from pydantic import ValidationError

from pdfstamp.models import (
    AuditRecord,
    AuditStatus,
    BoundingBox,
    IntegrityReport,
)


class TestBoundingBox:

    def test_valid_box(self):
        b = BoundingBox(x=10, y=20, width=100, height=40)
        assert b.width == 100

    @pytest.mark.parametrize("width, height", [(0, 10), (10, 0), (-3, 10)])
    def test_non_positive_dimensions_rejected(self, width, height):
        with pytest.raises(ValidationError):
            BoundingBox(x=0, y=0, width=width, height=height)

    @pytest.mark.parametrize(
        "field", ["x", "y", "width", "height"],
    )
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_values_rejected(self, field, value):
        values = {"x": 0, "y": 0, "width": 10, "height": 10, field: value}
        with pytest.raises(ValidationError):
            BoundingBox(**values)

    def test_negative_origin_allowed(self):
        b = BoundingBox(x=-5, y=-5, width=1, height=1)
        assert b.x == -5


class TestAuditRecord:

    def test_defaults_to_pending(self):
        r = AuditRecord(document_id="abc", original_hash="0" * 64)
        assert r.status == AuditStatus.PENDING
        assert r.signed_hash is None
        assert r.placement is None
        assert r.timestamp.tzinfo is not None
        assert not r.is_signed

    def test_signed_record(self):
        r = AuditRecord(
            document_id="abc",
            original_hash="0" * 64,
            signed_hash="1" * 64,
            placement=BoundingBox(x=0, y=0, width=1, height=1),
            status=AuditStatus.SIGNED,
        )
        assert r.is_signed

    def test_signed_status_requires_hash(self):
        with pytest.raises(ValidationError, match="signed"):
            AuditRecord(
                document_id="abc",
                original_hash="0" * 64,
                status=AuditStatus.SIGNED,
            )

    def test_hash_and_placement_set_together(self):
        with pytest.raises(ValidationError, match="together"):
            AuditRecord(
                document_id="abc",
                original_hash="0" * 64,
                signed_hash="1" * 64,
                status=AuditStatus.SIGNED,
            )

    def test_pending_with_hash_rejected(self):
        with pytest.raises(ValidationError):
            AuditRecord(
                document_id="abc",
                original_hash="0" * 64,
                signed_hash="1" * 64,
                placement=BoundingBox(x=0, y=0, width=1, height=1),
            )

    def test_frozen(self):
        r = AuditRecord(document_id="abc", original_hash="0" * 64)
        with pytest.raises(ValidationError):
            r.status = AuditStatus.SIGNED

    def test_json_roundtrip(self):
        r = AuditRecord(
            document_id="abc",
            original_hash="0" * 64,
            signed_hash="1" * 64,
            placement=BoundingBox(x=1.5, y=2, width=3, height=4),
            status=AuditStatus.SIGNED,
        )
        restored = AuditRecord.model_validate_json(r.model_dump_json())
        assert restored == r


class TestIntegrityReport:

    def test_pending_document_intact(self):
        report = IntegrityReport(
            document_id="abc", status=AuditStatus.PENDING, original_intact=True
        )
        assert report.intact

    def test_modified_signed_copy(self):
        report = IntegrityReport(
            document_id="abc",
            status=AuditStatus.SIGNED,
            original_intact=True,
            signed_intact=False,
        )
        assert not report.intact
