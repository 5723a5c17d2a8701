"""Tests for the PDFStamp REST API."""

import pytest
from fastapi.testclient import TestClient

from pdfstamp.api import create_app
from pdfstamp.config import Settings
from pdfstamp.engine import StampEngine


@pytest.fixture
def client(tmp_path):
    app = create_app(Settings(data_dir=tmp_path))
    with TestClient(app) as c:
        yield c


def _upload(client, pdf: bytes) -> dict:
    resp = client.post("/api/upload-pdf", files={"pdf": ("contract.pdf", pdf, "application/pdf")})
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestUpload:

    def test_upload(self, client, sample_pdf):
        body = _upload(client, sample_pdf)
        assert body["success"] is True
        assert len(body["pdfId"]) == 32
        assert body["originalHash"] == StampEngine.hash_bytes(sample_pdf)

    def test_upload_without_file(self, client):
        resp = client.post("/api/upload-pdf")
        assert resp.status_code == 400

    def test_upload_non_pdf(self, client):
        resp = client.post("/api/upload-pdf", files={"pdf": ("notes.txt", b"hello", "text/plain")})
        assert resp.status_code == 400
        assert "not a PDF" in resp.json()["detail"]


class TestSign:

    def test_sign_and_download(self, client, sample_pdf, wide_png_uri, box):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        resp = client.post(
            "/api/sign-pdf",
            json={"pdfId": pdf_id, "signatureImage": wide_png_uri, "coordinates": box},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()

        assert body["success"] is True
        assert body["downloadUrl"].endswith(f"/signed-pdfs/{pdf_id}-signed.pdf")
        trail = body["auditTrail"]
        assert trail["pdfId"] == pdf_id
        assert trail["originalHash"] == StampEngine.hash_bytes(sample_pdf)
        assert trail["coordinates"] == {"x": 10.0, "y": 10.0, "width": 100.0, "height": 100.0}

        download = client.get(body["downloadUrl"])
        assert download.status_code == 200
        assert StampEngine.hash_bytes(download.content) == trail["signedHash"]

    def test_missing_fields(self, client):
        resp = client.post("/api/sign-pdf", json={"pdfId": "abc"})
        assert resp.status_code == 400
        assert "Missing required fields" in resp.json()["detail"]

    def test_bad_geometry(self, client, sample_pdf, wide_png_uri):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        resp = client.post(
            "/api/sign-pdf",
            json={
                "pdfId": pdf_id,
                "signatureImage": wide_png_uri,
                "coordinates": {"x": 0, "y": 0, "width": 0, "height": 10},
            },
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_geometry(self, client, sample_pdf, wide_png_uri, literal):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        body = (
            f'{{"pdfId": "{pdf_id}", "signatureImage": "{wide_png_uri}", '
            f'"coordinates": {{"x": {literal}, "y": 0, "width": 10, "height": 10}}}}'
        )
        resp = client.post(
            "/api/sign-pdf",
            content=body,
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert "Invalid coordinates" in resp.json()["detail"]
        assert client.get(f"/api/audit/{pdf_id}").json()["status"] == "pending"

    def test_unknown_pdf(self, client, wide_png_uri, box):
        resp = client.post(
            "/api/sign-pdf",
            json={"pdfId": "f" * 32, "signatureImage": wide_png_uri, "coordinates": box},
        )
        assert resp.status_code == 404

    def test_resign_conflict(self, client, sample_pdf, wide_png_uri, box):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        payload = {"pdfId": pdf_id, "signatureImage": wide_png_uri, "coordinates": box}
        assert client.post("/api/sign-pdf", json=payload).status_code == 200
        assert client.post("/api/sign-pdf", json=payload).status_code == 409

    def test_upstream_failure(self, client, sample_pdf, box):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        resp = client.post(
            "/api/sign-pdf",
            json={"pdfId": pdf_id, "signatureImage": "data:image/png;base64,AAAA", "coordinates": box},
        )
        assert resp.status_code == 500
        detail = resp.json()["detail"]
        assert detail["error"] == "Failed to sign PDF"
        assert detail["details"]

        audit = client.get(f"/api/audit/{pdf_id}").json()["audit"]
        assert audit["status"] == "pending"


class TestAudit:

    def test_pending_then_signed(self, client, sample_pdf, wide_png_uri, box):
        upload = _upload(client, sample_pdf)
        pdf_id = upload["pdfId"]

        audit = client.get(f"/api/audit/{pdf_id}").json()["audit"]
        assert audit["status"] == "pending"
        assert audit["signedHash"] is None
        assert audit["coordinates"] is None

        client.post(
            "/api/sign-pdf",
            json={"pdfId": pdf_id, "signatureImage": wide_png_uri, "coordinates": box},
        )
        signed = client.get(f"/api/audit/{pdf_id}").json()["audit"]
        assert signed["status"] == "signed"
        assert signed["originalHash"] == upload["originalHash"]
        assert signed["timestamp"] == audit["timestamp"]
        assert signed["signedHash"]

    def test_unknown_audit(self, client):
        assert client.get("/api/audit/nonexistent").status_code == 404

    def test_integrity(self, client, sample_pdf, wide_png_uri, box):
        pdf_id = _upload(client, sample_pdf)["pdfId"]
        client.post(
            "/api/sign-pdf",
            json={"pdfId": pdf_id, "signatureImage": wide_png_uri, "coordinates": box},
        )
        body = client.get(f"/api/audit/{pdf_id}/integrity").json()
        assert body == {
            "pdfId": pdf_id,
            "status": "signed",
            "originalIntact": True,
            "signedIntact": True,
            "intact": True,
        }


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["service"] == "pdfstamp"
