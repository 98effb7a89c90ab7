"""Text extraction from uploaded knowledge files."""

import fitz
import structlog

from ..errors import UnsupportedFileTypeError, ValidationError
from .chunking import html_to_text

logger = structlog.get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"

SUPPORTED_MIME_TYPES = (
    PDF_MIME_TYPE,
    "text/plain",
    "text/markdown",
    "text/html",
)

EXTENSION_MIME_TYPES = {
    ".pdf": PDF_MIME_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".html": "text/html",
    ".htm": "text/html",
}


def is_file_type_supported(mime_type: str) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


def guess_mime_type(file_name: str) -> str | None:
    """Mime type from a file extension, for CLI uploads."""
    lowered = file_name.lower()
    for extension, mime_type in EXTENSION_MIME_TYPES.items():
        if lowered.endswith(extension):
            return mime_type
    return None


def _extract_pdf_text(data: bytes, file_name: str) -> str:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (fitz.FileDataError, RuntimeError) as e:
        raise ValidationError(f"Could not open PDF {file_name}: {e}") from e

    with doc:
        if doc.is_encrypted:
            raise ValidationError(f"PDF {file_name} is password-protected")
        page_count = doc.page_count
        pages = [page.get_text() for page in doc]

    text = "\n\n".join(page.strip() for page in pages if page.strip())
    logger.debug("pdf_text_extracted", file_name=file_name, pages=page_count, chars=len(text))
    if not text:
        return (
            "[PDF document available for viewing. This PDF can be viewed directly in the "
            "viewer, but text content is not available for AI analysis. "
            f"File: {file_name}]"
        )
    return text


def extract_text_from_file(data: bytes, mime_type: str, file_name: str) -> str:
    """Extract plain text from a supported upload.

    Raises:
        UnsupportedFileTypeError: For mime types outside SUPPORTED_MIME_TYPES.
        ValidationError: For unreadable PDFs or text that is not UTF-8.
    """
    if not is_file_type_supported(mime_type):
        raise UnsupportedFileTypeError(
            f"File type {mime_type} is not supported for text extraction",
            {"file_name": file_name, "supported": list(SUPPORTED_MIME_TYPES)},
        )

    if mime_type == PDF_MIME_TYPE:
        return _extract_pdf_text(data, file_name)

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"{file_name} is not valid UTF-8 text") from e

    if mime_type == "text/html":
        return html_to_text(text)
    return text
