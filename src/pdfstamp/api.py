"""PDFStamp REST API — FastAPI server for uploading and signing PDFs.

Routes and JSON field names (``pdfId``, ``signatureImage``,
``coordinates``) are kept stable for existing browser clients. Signed
PDFs are served as static files under ``/signed-pdfs``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .config import Settings
from .engine import StampEngine
from .errors import (
    AlreadySignedError,
    DocumentNotFoundError,
    SigningFailedError,
    StampValidationError,
)
from .models import AuditRecord, BoundingBox
from .store import AuditStore, FileStore

logger = logging.getLogger("pdfstamp.api")

__version__ = "0.1.0"


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = {"populate_by_name": True}


class SignRequest(_CamelModel):
    """Request body for signing a document.

    Fields are optional here so a missing one is reported by the engine
    as a validation error, not by FastAPI's schema check.
    """

    pdf_id: Optional[str] = Field(None, alias="pdfId")
    signature_image: Optional[str] = Field(None, alias="signatureImage")
    coordinates: Optional[dict] = None


class UploadResponse(_CamelModel):
    success: bool = True
    pdf_id: str = Field(alias="pdfId")
    original_hash: str = Field(alias="originalHash")
    message: str = "PDF uploaded successfully"


class AuditTrail(_CamelModel):
    """Audit snapshot returned after signing."""

    pdf_id: str = Field(alias="pdfId")
    original_hash: str = Field(alias="originalHash")
    signed_hash: Optional[str] = Field(None, alias="signedHash")
    timestamp: datetime
    coordinates: Optional[BoundingBox] = None

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditTrail":
        return cls(
            pdf_id=record.document_id,
            original_hash=record.original_hash,
            signed_hash=record.signed_hash,
            timestamp=record.timestamp,
            coordinates=record.placement,
        )


class AuditView(AuditTrail):
    """Audit snapshot returned by the lookup endpoint."""

    status: str

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditView":
        return cls(
            **AuditTrail.from_record(record).model_dump(),
            status=record.status.value,
        )


class SignResponse(_CamelModel):
    success: bool = True
    message: str = "PDF signed successfully"
    download_url: str = Field(alias="downloadUrl")
    audit_trail: AuditTrail = Field(alias="auditTrail")


class AuditResponse(_CamelModel):
    success: bool = True
    audit: AuditView


class IntegrityResponse(_CamelModel):
    pdf_id: str = Field(alias="pdfId")
    status: str
    original_intact: bool = Field(alias="originalIntact")
    signed_intact: Optional[bool] = Field(None, alias="signedIntact")
    intact: bool


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API with stores rooted at ``settings.data_dir``.

    The stores and engine are created once here and shared by every
    request through ``app.state``.
    """
    settings = settings or Settings()

    files = FileStore(settings.data_dir)
    audits = AuditStore(settings.data_dir)
    engine = StampEngine(files, audits, max_upload_bytes=settings.max_upload_bytes)

    app = FastAPI(
        title="PDFStamp",
        description="Overlay signature images on PDFs with a hash-based audit trail.",
        version=__version__,
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(
        "/signed-pdfs",
        StaticFiles(directory=files.signed_dir),
        name="signed-pdfs",
    )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    @app.post("/api/upload-pdf", response_model=UploadResponse, response_model_by_alias=True)
    async def upload_pdf(pdf: Optional[UploadFile] = File(None)) -> UploadResponse:
        """Upload and register a PDF."""
        if pdf is None:
            raise HTTPException(status_code=400, detail="No PDF file provided")

        pdf_data = await pdf.read()
        try:
            result = engine.upload(pdf_data)
        except StampValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except OSError:
            logger.exception("Upload failed")
            raise HTTPException(status_code=500, detail="Failed to upload PDF")

        return UploadResponse(pdf_id=result.document_id, original_hash=result.original_hash)

    # -----------------------------------------------------------------------
    # Sign
    # -----------------------------------------------------------------------

    @app.post("/api/sign-pdf", response_model=SignResponse, response_model_by_alias=True)
    async def sign_pdf(req: SignRequest, request: Request) -> SignResponse:
        """Overlay a signature image on page one of an uploaded PDF."""
        try:
            result = engine.sign(req.pdf_id, req.signature_image, req.coordinates)
        except StampValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except DocumentNotFoundError:
            raise HTTPException(status_code=404, detail="PDF not found")
        except AlreadySignedError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        except SigningFailedError as exc:
            raise HTTPException(
                status_code=500,
                detail={"error": str(exc), "details": exc.details},
            )

        download_url = str(request.url_for("signed-pdfs", path=result.signed_filename))
        return SignResponse(
            download_url=download_url,
            audit_trail=AuditTrail.from_record(result.audit),
        )

    # -----------------------------------------------------------------------
    # Audit
    # -----------------------------------------------------------------------

    @app.get("/api/audit/{pdf_id}", response_model=AuditResponse, response_model_by_alias=True)
    async def get_audit(pdf_id: str) -> AuditResponse:
        """Get the audit record for a PDF."""
        try:
            record = engine.get_audit(pdf_id)
        except DocumentNotFoundError:
            raise HTTPException(status_code=404, detail="Audit record not found")
        return AuditResponse(audit=AuditView.from_record(record))

    @app.get(
        "/api/audit/{pdf_id}/integrity",
        response_model=IntegrityResponse,
        response_model_by_alias=True,
    )
    async def check_integrity(pdf_id: str) -> IntegrityResponse:
        """Re-hash stored files and compare them with the audit record."""
        try:
            report = engine.check_integrity(pdf_id)
        except DocumentNotFoundError:
            raise HTTPException(status_code=404, detail="Audit record not found")
        return IntegrityResponse(
            pdf_id=report.document_id,
            status=report.status.value,
            original_intact=report.original_intact,
            signed_intact=report.signed_intact,
            intact=report.intact,
        )

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict:
        """Health check."""
        return {
            "status": "ok",
            "service": "pdfstamp",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
