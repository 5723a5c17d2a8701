"""PDFStamp signing engine — overlay a signature image, keep the hashes.

Handles hashing, upload registration and the signing pipeline. The
engine owns no state of its own: bytes live in a :class:`FileStore`,
records in an :class:`AuditStore`, both handed in at construction.

Signing is a straight line of fallible steps. Any failure aborts the
whole run before the audit record is touched, so a pending document
can always be retried.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from .errors import (
    AlreadySignedError,
    DocumentNotFoundError,
    SigningFailedError,
    StampValidationError,
)
from .imaging import decode_data_uri
from .models import (
    AuditRecord,
    AuditStatus,
    BoundingBox,
    DecodedImage,
    DrawRect,
    IntegrityReport,
    SignResult,
    UploadResult,
)
from .pdf import PdfDocument
from .placement import fit_to_box
from .store import AuditStore, FileStore

logger = logging.getLogger("pdfstamp.engine")

# Multi-page placement is not supported; signatures always go on page one.
SIGNATURE_PAGE = 0

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class StampEngine:
    """Upload, sign and audit PDFs.

    Args:
        files: Store for original and signed PDF bytes.
        audits: Store for audit records.
        max_upload_bytes: Largest accepted upload.
    """

    def __init__(
        self,
        files: FileStore,
        audits: AuditStore,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self.files = files
        self.audits = audits
        self.max_upload_bytes = max_upload_bytes

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    @staticmethod
    def hash_file(path: Path) -> str:
        """Compute SHA-256 hash of a file.

        Args:
            path: Path to the file.

        Returns:
            Hex-encoded SHA-256 digest.

        Raises:
            FileNotFoundError: If the file doesn't exist.
        """
        h = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                h.update(chunk)
        return h.hexdigest()

    @staticmethod
    def hash_bytes(data: bytes) -> str:
        """Compute SHA-256 hash of raw bytes.

        Args:
            data: Bytes to hash.

        Returns:
            Hex-encoded SHA-256 digest.
        """
        return hashlib.sha256(data).hexdigest()

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload(self, pdf_data: bytes) -> UploadResult:
        """Register a new PDF.

        Stores the bytes, then creates a pending audit record carrying
        their hash.

        Args:
            pdf_data: Raw PDF bytes.

        Returns:
            The new document id and the original hash.

        Raises:
            StampValidationError: If the data is empty, too large, or not a PDF.
        """
        if not pdf_data:
            raise StampValidationError("No PDF file provided")
        if len(pdf_data) > self.max_upload_bytes:
            raise StampValidationError(
                f"PDF exceeds the {self.max_upload_bytes} byte upload limit"
            )
        if b"%PDF-" not in pdf_data[:1024]:
            raise StampValidationError("Uploaded file is not a PDF")

        document_id = secrets.token_hex(16)
        original_hash = self.hash_bytes(pdf_data)

        self.files.put_original(document_id, pdf_data)
        self.audits.create(document_id, original_hash)

        logger.info("Uploaded %s (%s...)", document_id[:8], original_hash[:16])
        return UploadResult(document_id=document_id, original_hash=original_hash)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(
        self,
        document_id: Optional[str],
        signature_image: Optional[str],
        coordinates: Union[BoundingBox, dict[str, Any], None],
    ) -> SignResult:
        """Overlay a signature image on page one and record the result.

        The image is scaled to fit ``coordinates`` without distortion.
        The signed PDF is stored under its own name; the original is
        never overwritten. The audit record is updated last and stores
        the box as requested, not the rectangle actually drawn.

        Args:
            document_id: Id returned by :meth:`upload`.
            signature_image: Data-URI encoded PNG or JPEG.
            coordinates: Bounding box ``{x, y, width, height}`` in points.

        Returns:
            The signed file name, draw rectangle and audit snapshot.

        Raises:
            StampValidationError: If a field is missing or malformed.
            DocumentNotFoundError: If no record exists for ``document_id``.
            AlreadySignedError: If the document was already signed.
            SigningFailedError: If loading, rendering or storing fails.
        """
        box = self._validate_request(document_id, signature_image, coordinates)

        record = self._load_record(document_id)
        if record.is_signed:
            raise AlreadySignedError(f"Document already signed: {document_id}")

        pdf_data = self._load_original(document_id)
        image = decode_data_uri(signature_image)

        try:
            signed_data, rect = self._render(pdf_data, image, box)
        except StampValidationError:
            raise
        except Exception as exc:
            logger.exception("Signing %s failed", document_id[:8])
            raise SigningFailedError("Failed to sign PDF", details=str(exc)) from exc
        signed_hash = self.hash_bytes(signed_data)

        filename, audit = self._commit(document_id, signed_data, signed_hash, box)

        logger.info(
            "Signed %s at (%.1f, %.1f) %.1fx%.1f -> %s...",
            document_id[:8],
            rect.x,
            rect.y,
            rect.width,
            rect.height,
            signed_hash[:16],
        )
        return SignResult(
            document_id=document_id,
            signed_filename=filename,
            draw_rect=rect,
            audit=audit,
        )

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def get_audit(self, document_id: str) -> AuditRecord:
        """Audit record snapshot for a document."""
        return self.audits.get(document_id)

    def list_audits(self, status: Optional[AuditStatus] = None) -> list[AuditRecord]:
        """All audit records, newest first."""
        return self.audits.list_records(status=status)

    def get_signed_pdf(self, document_id: str) -> bytes:
        """Signed PDF bytes for a document."""
        return self.files.get_signed(document_id)

    def check_integrity(self, document_id: str) -> IntegrityReport:
        """Re-hash stored bytes and compare against the audit record.

        A missing file counts as tampered.

        Raises:
            DocumentNotFoundError: If there is no record for this id.
        """
        record = self.audits.get(document_id)

        original_intact = self._matches(
            self.files.original_path(document_id), record.original_hash
        )
        signed_intact = None
        if record.is_signed:
            signed_intact = self._matches(
                self.files.signed_path(document_id), record.signed_hash
            )

        if not original_intact or signed_intact is False:
            logger.warning("Hash mismatch: %s has been modified since upload or signing", document_id[:8])

        return IntegrityReport(
            document_id=document_id,
            status=record.status,
            original_intact=original_intact,
            signed_intact=signed_intact,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_request(
        document_id: Optional[str],
        signature_image: Optional[str],
        coordinates: Union[BoundingBox, dict[str, Any], None],
    ) -> BoundingBox:
        """Check required fields are present and the box is well formed."""
        if not document_id or not signature_image or not coordinates:
            raise StampValidationError(
                "Missing required fields: pdfId, signatureImage, coordinates"
            )
        if isinstance(coordinates, BoundingBox):
            return coordinates
        try:
            return BoundingBox.model_validate(coordinates)
        except ValidationError as exc:
            raise StampValidationError(f"Invalid coordinates: {exc}") from exc

    def _load_record(self, document_id: str) -> AuditRecord:
        try:
            return self.audits.get(document_id)
        except (ValidationError, OSError) as exc:
            logger.error("Audit record for %s unreadable: %s", document_id[:8], exc)
            raise SigningFailedError("Audit record unreadable", details=str(exc)) from exc

    def _commit(
        self,
        document_id: str,
        signed_data: bytes,
        signed_hash: str,
        box: BoundingBox,
    ) -> tuple[str, AuditRecord]:
        """Persist signed bytes and mark the record signed as one step.

        Both writes happen under the audit store lock after re-checking
        that the record is still pending, so a request that lost the race
        never touches the winner's signed file.
        """
        try:
            with self.audits.pending_transition(document_id):
                filename = self.files.put_signed(document_id, signed_data)
                audit = self.audits.mark_signed(document_id, signed_hash, box)
        except (ValidationError, OSError) as exc:
            logger.exception("Persisting signed %s failed", document_id[:8])
            raise SigningFailedError("Failed to store signed PDF", details=str(exc)) from exc
        return filename, audit

    def _load_original(self, document_id: str) -> bytes:
        try:
            return self.files.get_original(document_id)
        except (DocumentNotFoundError, OSError) as exc:
            logger.error("Original bytes for %s unreadable: %s", document_id[:8], exc)
            raise SigningFailedError("Document unreadable", details=str(exc)) from exc

    @staticmethod
    def _render(
        pdf_data: bytes,
        image: DecodedImage,
        box: BoundingBox,
    ) -> tuple[bytes, DrawRect]:
        """Embed, place, draw and serialize. Returns the new bytes."""
        pdf = PdfDocument.load(pdf_data)
        embedded = pdf.embed_image(image)
        rect = fit_to_box(embedded.width, embedded.height, box)
        pdf.draw_image(SIGNATURE_PAGE, embedded, rect)
        return pdf.save(), rect

    def _matches(self, path: Path, expected: Optional[str]) -> bool:
        if not path.exists():
            return False
        return self.hash_file(path) == expected
