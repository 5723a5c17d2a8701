"""Shared fixtures for PDFStamp tests."""

from io import BytesIO

import pytest
from PIL import Image
from reportlab.pdfgen import canvas

from pdfstamp.imaging import encode_data_uri
from pdfstamp.models import ImageFormat


def _make_pdf(pages: int = 1, size: tuple[float, float] = (612, 792)) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=size)
    for i in range(pages):
        c.drawString(72, 720, f"Agreement page {i + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def _make_image(fmt: str, size: tuple[int, int]) -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, size, (20, 20, 120, 255) if mode == "RGBA" else (20, 20, 120))
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def tmp_files(tmp_path):
    """Create a temporary FileStore."""
    from pdfstamp.store import FileStore

    return FileStore(base_dir=tmp_path)


@pytest.fixture
def tmp_audits(tmp_path):
    """Create a temporary AuditStore."""
    from pdfstamp.store import AuditStore

    return AuditStore(base_dir=tmp_path)


@pytest.fixture
def engine(tmp_files, tmp_audits):
    """StampEngine wired to temporary stores."""
    from pdfstamp.engine import StampEngine

    return StampEngine(tmp_files, tmp_audits)


@pytest.fixture
def sample_pdf() -> bytes:
    """Single-page US Letter PDF."""
    return _make_pdf()


@pytest.fixture
def two_page_pdf() -> bytes:
    return _make_pdf(pages=2)


@pytest.fixture
def wide_png() -> bytes:
    """200x50 PNG (aspect 4:1)."""
    return _make_image("PNG", (200, 50))


@pytest.fixture
def wide_png_uri(wide_png) -> str:
    return encode_data_uri(wide_png, ImageFormat.PNG)


@pytest.fixture
def tall_jpeg_uri() -> str:
    """60x120 JPEG (aspect 1:2)."""
    return encode_data_uri(_make_image("JPEG", (60, 120)), ImageFormat.JPEG)


@pytest.fixture
def box() -> dict:
    return {"x": 10, "y": 10, "width": 100, "height": 100}
