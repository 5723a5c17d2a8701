"""PDF manipulation: parse, overlay a raster image, serialize.

pypdf does the page handling; reportlab renders the image onto a
one-page overlay of the same size which is then merged into the target
page. Pillow decodes the raster so we know its intrinsic pixel size.
"""

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .errors import PdfProcessingError
from .models import DecodedImage, DrawRect, ImageFormat

logger = logging.getLogger("pdfstamp.pdf")

_PIL_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.JPEG: "JPEG",
}


@dataclass
class EmbeddedImage:
    """A decoded raster ready to be drawn.

    Attributes:
        image: The Pillow image.
        width: Intrinsic width in pixels.
        height: Intrinsic height in pixels.
    """

    image: Image.Image
    width: int
    height: int


class PdfDocument:
    """An in-memory PDF open for editing.

    Use :meth:`load` to construct; every method raises
    :class:`PdfProcessingError` when the underlying library fails.
    """

    def __init__(self, writer: PdfWriter) -> None:
        self._writer = writer

    @classmethod
    def load(cls, data: bytes) -> "PdfDocument":
        """Parse PDF bytes.

        Raises:
            PdfProcessingError: If the bytes are not a readable PDF or
                contain no pages.
        """
        try:
            reader = PdfReader(BytesIO(data))
            writer = PdfWriter(clone_from=reader)
        except Exception as exc:
            raise PdfProcessingError(f"Could not parse PDF: {exc}") from exc

        if len(writer.pages) == 0:
            raise PdfProcessingError("PDF has no pages")
        return cls(writer)

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    def page_size(self, page_index: int = 0) -> tuple[float, float]:
        """Width and height of a page's media box in points."""
        box = self._page(page_index).mediabox
        return float(box.width), float(box.height)

    def embed_image(self, image: DecodedImage) -> EmbeddedImage:
        """Decode a signature image and report its intrinsic size.

        Raises:
            PdfProcessingError: If the bytes are not an image of the
                declared format.
        """
        try:
            pil = Image.open(BytesIO(image.data))
            pil.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise PdfProcessingError(f"Could not decode signature image: {exc}") from exc

        expected = _PIL_FORMATS[image.format]
        if pil.format != expected:
            raise PdfProcessingError(
                f"Signature image is not a valid {expected} (found {pil.format})"
            )

        if pil.mode not in ("RGB", "RGBA", "L"):
            pil = pil.convert("RGBA")

        width, height = pil.size
        return EmbeddedImage(image=pil, width=width, height=height)

    def draw_image(self, page_index: int, image: EmbeddedImage, rect: DrawRect) -> None:
        """Draw an embedded image on a page at ``rect``."""
        page = self._page(page_index)
        width, height = self.page_size(page_index)

        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))
        c.drawImage(
            ImageReader(image.image),
            rect.x,
            rect.y,
            width=rect.width,
            height=rect.height,
            mask="auto",
        )
        c.save()

        try:
            overlay = PdfReader(BytesIO(buf.getvalue())).pages[0]
            page.merge_page(overlay)
        except (PyPdfError, ValueError) as exc:
            raise PdfProcessingError(f"Could not draw on page {page_index}: {exc}") from exc

        logger.debug(
            "Drew %dx%d image on page %d at (%.2f, %.2f) %.2fx%.2f",
            image.width,
            image.height,
            page_index,
            rect.x,
            rect.y,
            rect.width,
            rect.height,
        )

    def save(self) -> bytes:
        """Serialize the document to bytes."""
        buf = BytesIO()
        try:
            self._writer.write(buf)
        except (PyPdfError, ValueError, OSError) as exc:
            raise PdfProcessingError(f"Could not serialize PDF: {exc}") from exc
        return buf.getvalue()

    def _page(self, page_index: int):
        if not 0 <= page_index < self.page_count:
            raise PdfProcessingError(
                f"Page {page_index} out of range (document has {self.page_count})"
            )
        return self._writer.pages[page_index]
