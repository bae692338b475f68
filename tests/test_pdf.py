"""
Tests for PDF validation and text extraction
"""
import io

import PyPDF2
import pytest

from flashdeck.pdf import ExtractionError, extract_text, is_pdf


def blank_pdf(pages=1):
    writer = PyPDF2.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestIsPdf:
    def test_mime_type_decides(self):
        assert is_pdf("notes.pdf", "application/pdf")
        assert is_pdf("scan.bin", "application/x-pdf")
        assert not is_pdf("notes.pdf", "text/plain")

    def test_extension_when_type_missing(self):
        assert is_pdf("Notes.PDF", None)
        assert not is_pdf("notes.txt", "")
        assert not is_pdf(None, None)


class TestExtractText:
    def test_garbage_bytes(self):
        with pytest.raises(ExtractionError):
            extract_text(b"this is not a pdf")

    def test_pdf_without_text(self):
        """Pages with no text count as a failed extraction"""
        with pytest.raises(ExtractionError):
            extract_text(blank_pdf(pages=2))
