"""Core data models for PDFStamp.

A document is just bytes on disk keyed by an opaque id; the audit record
is what ties the original upload to its signed copy. Coordinates are PDF
user-space points with the origin at the bottom-left of the page.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AuditStatus(str, Enum):
    """Lifecycle states for an audit record. ``signed`` is terminal."""

    PENDING = "pending"
    SIGNED = "signed"


class ImageFormat(str, Enum):
    """Raster formats a signature image can be embedded as."""

    PNG = "png"
    JPEG = "jpeg"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class BoundingBox(BaseModel):
    """Caller-specified rectangle the signature must fit inside.

    Attributes:
        x: Left edge in page points.
        y: Bottom edge in page points.
        width: Box width in points. Must be positive.
        height: Box height in points. Must be positive.

    All four values must be finite; NaN and infinity are rejected.
    """

    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)

    model_config = {"allow_inf_nan": False}


class DrawRect(BaseModel):
    """Aspect-correct rectangle the image is actually rendered into."""

    x: float
    y: float
    width: float
    height: float


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class DecodedImage(BaseModel):
    """Raw image bytes pulled out of a data URI."""

    data: bytes
    format: ImageFormat = ImageFormat.PNG


# ---------------------------------------------------------------------------
# Audit record
# ---------------------------------------------------------------------------

class AuditRecord(BaseModel):
    """Tamper-evidence record for one document.

    Records are immutable snapshots; the store produces a new snapshot
    when the record transitions to ``signed``.

    Attributes:
        document_id: Document identifier, shared with the file store.
        original_hash: SHA-256 of the uploaded bytes.
        signed_hash: SHA-256 of the signed bytes (set once, on signing).
        timestamp: When the record was created. Signing does not bump it.
        placement: Bounding box the caller asked for (set once, on signing).
        status: ``pending`` until signed.
    """

    document_id: str
    original_hash: str
    signed_hash: Optional[str] = None
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    placement: Optional[BoundingBox] = None
    status: AuditStatus = AuditStatus.PENDING

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_signed_fields(self) -> "AuditRecord":
        has_hash = self.signed_hash is not None
        has_placement = self.placement is not None
        if has_hash != has_placement:
            raise ValueError("signed_hash and placement must be set together")
        if (self.status == AuditStatus.SIGNED) != has_hash:
            raise ValueError("status must be 'signed' exactly when signed_hash is set")
        return self

    @property
    def is_signed(self) -> bool:
        return self.status == AuditStatus.SIGNED


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------

class UploadResult(BaseModel):
    """Outcome of registering a new PDF."""

    document_id: str
    original_hash: str


class SignResult(BaseModel):
    """Outcome of a successful signing.

    Attributes:
        document_id: The signed document.
        signed_filename: Name the signed PDF is served under.
        draw_rect: Where the image was actually rendered.
        audit: Snapshot of the record after the transition.
    """

    document_id: str
    signed_filename: str
    draw_rect: DrawRect
    audit: AuditRecord


class IntegrityReport(BaseModel):
    """Result of re-hashing stored bytes against the audit record.

    ``signed_intact`` is None while the document is still pending.
    """

    document_id: str
    status: AuditStatus
    original_intact: bool
    signed_intact: Optional[bool] = None

    @property
    def intact(self) -> bool:
        return self.original_intact and self.signed_intact is not False
