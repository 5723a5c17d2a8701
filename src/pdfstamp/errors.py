"""Exception hierarchy for PDFStamp.

Each class also derives from the builtin the rest of the code would
otherwise raise, so callers catching ``ValueError`` or ``RuntimeError``
keep working.
"""

from typing import Optional


class StampError(Exception):
    """Base class for all PDFStamp errors."""


class StampValidationError(StampError, ValueError):
    """A request field is missing or malformed. Raised before any side effect."""


class ImageDecodeError(StampValidationError):
    """The signature payload could not be decoded into image bytes."""


class PlacementError(StampValidationError):
    """Image or bounding-box geometry is degenerate."""


class DocumentNotFoundError(StampError, LookupError):
    """No document or audit record exists for the given id."""


class AlreadyExistsError(StampError):
    """An audit record with this id was already created."""


class AlreadySignedError(StampError):
    """The document has already been signed; re-signing is not supported."""


class PdfProcessingError(StampError, RuntimeError):
    """The PDF library could not parse, draw on, or serialize a document."""


class SigningFailedError(StampError, RuntimeError):
    """An upstream step failed while signing. The audit record is untouched.

    Attributes:
        details: Message of the underlying exception, for diagnostics.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details
