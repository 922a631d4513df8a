"""
OCR for uploaded lab reports: images go straight to Tesseract, PDFs are
rasterised page by page first.
"""
import io
import logging
import os

import pytesseract
from PIL import Image, UnidentifiedImageError
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png", ".webp"}


class OCRError(Exception):
    """OCR could not run on the server (e.g. tesseract missing)"""


class UnreadableFileError(OCRError):
    """The uploaded file is not a readable image or PDF"""


def configure_tesseract(cmd):
    if cmd:
        pytesseract.pytesseract.tesseract_cmd = cmd
        logger.info("Using tesseract at %s", cmd)


def is_allowed_file(filename):
    if not filename:
        return False
    return os.path.splitext(filename)[1].lower() in ALLOWED_EXTENSIONS


def is_pdf(filename):
    return bool(filename) and filename.lower().endswith(".pdf")


def extract_text(filename, file_bytes, lang="eng"):
    """Run OCR on an uploaded file and return the recognized text"""
    try:
        if is_pdf(filename):
            pages = convert_from_bytes(file_bytes)
            logger.info("📄 OCR on %d PDF pages from %s", len(pages), filename)
            return "\n".join([pytesseract.image_to_string(p, lang=lang) for p in pages])

        img = Image.open(io.BytesIO(file_bytes))
        logger.info("🖼️ OCR on image %s", filename)
        return pytesseract.image_to_string(img, lang=lang)

    except PDFInfoNotInstalledError as e:
        raise OCRError("Poppler is not installed on the server, PDFs cannot be read") from e
    except pytesseract.TesseractNotFoundError as e:
        raise OCRError("Tesseract is not installed or not configured on the server") from e
    except (UnidentifiedImageError, PDFPageCountError, PDFSyntaxError) as e:
        raise UnreadableFileError(f"Could not read '{filename}' as an image or PDF") from e
