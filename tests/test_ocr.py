"""
Tests for OCR helpers. Tesseract itself is monkeypatched out.
"""

import io

import pytest
import pytesseract
from PIL import Image

import ocr
from ocr import OCRError, UnreadableFileError, extract_text, is_allowed_file


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (20, 10), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize("filename", ["report.pdf", "scan.JPG", "a.jpeg", "b.png", "c.webp"])
def test_allowed_files(filename):
    assert is_allowed_file(filename)


@pytest.mark.parametrize("filename", ["notes.txt", "report", "", None])
def test_rejected_files(filename):
    assert not is_allowed_file(filename)


def test_image(monkeypatch):
    calls = []

    def fake_ocr(image, lang):
        calls.append((image.size, lang))
        return "HAEMOGLOBIN 13.5"

    monkeypatch.setattr(ocr.pytesseract, "image_to_string", fake_ocr)

    assert extract_text("scan.png", png_bytes(), lang="eng") == "HAEMOGLOBIN 13.5"
    assert calls == [((20, 10), "eng")]


def test_pdf_pages_are_joined(monkeypatch):
    pages = [Image.new("RGB", (5, 5)), Image.new("RGB", (5, 5))]
    monkeypatch.setattr(ocr, "convert_from_bytes", lambda data: pages)
    texts = iter(["page one", "page two"])
    monkeypatch.setattr(ocr.pytesseract, "image_to_string", lambda image, lang: next(texts))

    assert extract_text("report.pdf", b"%PDF-1.4") == "page one\npage two"


def test_unreadable_image():
    with pytest.raises(UnreadableFileError):
        extract_text("scan.png", b"not an image")


def test_missing_tesseract(monkeypatch):
    def missing(image, lang):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(ocr.pytesseract, "image_to_string", missing)

    with pytest.raises(OCRError):
        extract_text("scan.png", png_bytes())


def test_configure_tesseract(monkeypatch):
    monkeypatch.setattr(ocr.pytesseract.pytesseract, "tesseract_cmd", "tesseract")

    ocr.configure_tesseract(None)
    assert ocr.pytesseract.pytesseract.tesseract_cmd == "tesseract"

    ocr.configure_tesseract("/opt/tesseract/bin/tesseract")
    assert ocr.pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract/bin/tesseract"
