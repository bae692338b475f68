import io
import logging
from typing import Optional

import PyPDF2

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when no text can be recovered from an uploaded PDF."""


def is_pdf(filename: Optional[str], content_type: Optional[str]) -> bool:
    if content_type:
        return "pdf" in content_type.lower()
    return bool(filename) and filename.lower().endswith(".pdf")


def extract_text(data: bytes) -> str:
    """Returns the text of every page, in order, joined by newlines."""
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(data))
        if getattr(reader, "is_encrypted", False):
            reader.decrypt("")
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        logger.error(f"Failed to read PDF: {e}")
        raise ExtractionError("Could not read the PDF file.") from e

    if not pages:
        raise ExtractionError("The PDF has no pages.")

    text = "\n".join(pages)
    if not text.strip():
        raise ExtractionError("No text content found in PDF.")

    logger.info(f"Extracted {len(text)} characters from {len(pages)} pages")
    return text
