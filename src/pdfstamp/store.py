"""Filesystem-backed byte store and audit record store for PDFStamp.

Everything lives on disk under one data directory. No database required.

Directory layout::

    ~/.pdfstamp/
    ├── uploads/            # Original PDFs, never overwritten
    │   └── <doc-id>.pdf
    ├── signed-pdfs/        # Signed copies, served as static files
    │   └── <doc-id>-signed.pdf
    └── audit/              # One JSON record per document
        └── <doc-id>.json
"""

import logging
import os
import re
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from .errors import AlreadyExistsError, AlreadySignedError, DocumentNotFoundError
from .models import AuditRecord, AuditStatus, BoundingBox

logger = logging.getLogger("pdfstamp.store")

DEFAULT_PDFSTAMP_DIR = Path.home() / ".pdfstamp"

# Ids are generated as hex, but anything path-safe is accepted.
_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def _check_id(document_id: str) -> str:
    if not _ID_RE.match(document_id or ""):
        raise DocumentNotFoundError(f"Invalid document id: {document_id!r}")
    return document_id


def _atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temp file and rename."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class FileStore:
    """Raw PDF bytes keyed by document id.

    Args:
        base_dir: Root data directory.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base = base_dir or DEFAULT_PDFSTAMP_DIR
        self.uploads_dir = self.base / "uploads"
        self.signed_dir = self.base / "signed-pdfs"

        for d in (self.uploads_dir, self.signed_dir):
            d.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def signed_filename(document_id: str) -> str:
        """File name the signed copy of a document is stored and served under."""
        return f"{document_id}-signed.pdf"

    def original_path(self, document_id: str) -> Path:
        return self.uploads_dir / f"{_check_id(document_id)}.pdf"

    def signed_path(self, document_id: str) -> Path:
        return self.signed_dir / self.signed_filename(_check_id(document_id))

    def put_original(self, document_id: str, data: bytes) -> Path:
        """Persist the uploaded bytes.

        Returns:
            Path to the stored file.
        """
        path = self.original_path(document_id)
        _atomic_write(path, data)
        logger.info("Stored original %s (%d bytes)", document_id[:8], len(data))
        return path

    def get_original(self, document_id: str) -> bytes:
        """Read the uploaded bytes.

        Raises:
            DocumentNotFoundError: If nothing is stored for this id.
        """
        path = self.original_path(document_id)
        if not path.exists():
            raise DocumentNotFoundError(f"Original PDF not found: {document_id}")
        return path.read_bytes()

    def put_signed(self, document_id: str, data: bytes) -> str:
        """Persist the signed bytes next to (never over) the original.

        Returns:
            The signed file name.
        """
        path = self.signed_path(document_id)
        _atomic_write(path, data)
        logger.info("Stored signed copy %s (%d bytes)", document_id[:8], len(data))
        return path.name

    def get_signed(self, document_id: str) -> bytes:
        """Read the signed bytes.

        Raises:
            DocumentNotFoundError: If the document has no signed copy.
        """
        path = self.signed_path(document_id)
        if not path.exists():
            raise DocumentNotFoundError(f"Signed PDF not found: {document_id}")
        return path.read_bytes()


class AuditStore:
    """One JSON audit record per document.

    ``create`` and ``mark_signed`` run their check-and-write under a lock
    and replace the file atomically, so a reader always sees either the
    old record or the new one. :meth:`pending_transition` extends that
    lock over whatever the caller persists before the transition.

    Args:
        base_dir: Root data directory.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base = base_dir or DEFAULT_PDFSTAMP_DIR
        self._audit_dir = self.base / "audit"
        self._audit_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, document_id: str) -> Path:
        return self._audit_dir / f"{_check_id(document_id)}.json"

    def _write(self, record: AuditRecord) -> None:
        _atomic_write(
            self._path(record.document_id),
            record.model_dump_json(indent=2).encode("utf-8"),
        )

    def create(self, document_id: str, original_hash: str) -> AuditRecord:
        """Create a pending record.

        Raises:
            AlreadyExistsError: If a record with this id exists.
        """
        record = AuditRecord(document_id=document_id, original_hash=original_hash)
        with self._lock:
            if self._path(document_id).exists():
                raise AlreadyExistsError(f"Audit record already exists: {document_id}")
            self._write(record)
        logger.info("Created audit record %s", document_id[:8])
        return record

    def get(self, document_id: str) -> AuditRecord:
        """Load a record by id.

        Raises:
            DocumentNotFoundError: If there is no record for this id.
        """
        path = self._path(document_id)
        if not path.exists():
            raise DocumentNotFoundError(f"Audit record not found: {document_id}")
        return AuditRecord.model_validate_json(path.read_text(encoding="utf-8"))

    @contextmanager
    def pending_transition(self, document_id: str) -> Iterator[AuditRecord]:
        """Hold the store lock while a pending record is about to be signed.

        Re-reads the record under the lock, so a request that saw
        ``pending`` earlier cannot act on it after another one signed.

        Yields:
            The current (pending) record.

        Raises:
            DocumentNotFoundError: If there is no record for this id.
            AlreadySignedError: If the record is already signed.
        """
        with self._lock:
            current = self.get(document_id)
            if current.is_signed:
                raise AlreadySignedError(f"Document already signed: {document_id}")
            yield current

    def mark_signed(
        self,
        document_id: str,
        signed_hash: str,
        placement: BoundingBox,
    ) -> AuditRecord:
        """Transition a record from pending to signed.

        Args:
            document_id: Record to update.
            signed_hash: SHA-256 of the signed bytes.
            placement: Bounding box the caller requested.

        Returns:
            The signed snapshot.

        Raises:
            DocumentNotFoundError: If there is no record for this id.
            AlreadySignedError: If the record is already signed.
        """
        with self.pending_transition(document_id) as current:
            data = current.model_dump()
            data.update(
                signed_hash=signed_hash,
                placement=placement.model_dump(),
                status=AuditStatus.SIGNED,
            )
            record = AuditRecord.model_validate(data)
            self._write(record)
        logger.info("Marked %s signed (%s...)", document_id[:8], signed_hash[:16])
        return record

    def list_records(self, status: Optional[AuditStatus] = None) -> list[AuditRecord]:
        """List records, optionally filtered by status, newest first."""
        records = []
        for f in self._audit_dir.glob("*.json"):
            try:
                record = AuditRecord.model_validate_json(f.read_text(encoding="utf-8"))
            except Exception as exc:
                logger.warning("Skipping invalid audit record %s: %s", f.name, exc)
                continue
            if status is None or record.status == status:
                records.append(record)
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records
