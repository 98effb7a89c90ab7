"""Tests for upload text extraction."""

import fitz
import pytest

from hypertroq.errors import UnsupportedFileTypeError, ValidationError
from hypertroq.rag.file_processor import (
    extract_text_from_file,
    guess_mime_type,
    is_file_type_supported,
)


def _pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestMimeTypes:
    def test_supported(self):
        assert is_file_type_supported("application/pdf")
        assert is_file_type_supported("text/markdown")
        assert not is_file_type_supported("application/msword")

    def test_guess(self):
        assert guess_mime_type("Programs.PDF") == "application/pdf"
        assert guess_mime_type("notes.md") == "text/markdown"
        assert guess_mime_type("page.htm") == "text/html"
        assert guess_mime_type("photo.jpg") is None


class TestExtractText:
    """Tests for extract_text_from_file."""

    def test_plain_text(self):
        assert extract_text_from_file("Sets × reps".encode(), "text/plain", "a.txt") == "Sets × reps"

    def test_html(self):
        text = extract_text_from_file(b"<h1>Rest</h1><p>Two minutes.</p>", "text/html", "a.html")
        assert "Rest" in text
        assert "Two minutes." in text
        assert "<p>" not in text

    def test_invalid_utf8(self):
        with pytest.raises(ValidationError):
            extract_text_from_file(b"\xff\xfe", "text/plain", "bad.txt")

    def test_unsupported(self):
        with pytest.raises(UnsupportedFileTypeError):
            extract_text_from_file(b"...", "image/png", "photo.png")

    def test_pdf_pages_joined(self):
        text = extract_text_from_file(_pdf("Page one text", "Page two text"), "application/pdf", "p.pdf")
        assert text == "Page one text\n\nPage two text"

    def test_pdf_without_text(self):
        text = extract_text_from_file(_pdf(""), "application/pdf", "scan.pdf")
        assert text.startswith("[PDF document available for viewing")
        assert text.endswith("File: scan.pdf]")

    def test_corrupt_pdf(self):
        with pytest.raises(ValidationError):
            extract_text_from_file(b"not a pdf at all", "application/pdf", "broken.pdf")

    def test_pdf_closed_when_page_read_fails(self, monkeypatch):
        closed = []
        original_close = fitz.Document.close

        def tracking_close(self):
            closed.append(True)
            original_close(self)

        def failing_get_text(self, *args, **kwargs):
            raise RuntimeError("bad content stream")

        data = _pdf("Page one text")
        monkeypatch.setattr(fitz.Document, "close", tracking_close)
        monkeypatch.setattr(fitz.Page, "get_text", failing_get_text)
        with pytest.raises(RuntimeError, match="bad content stream"):
            extract_text_from_file(data, "application/pdf", "p.pdf")
        assert closed
