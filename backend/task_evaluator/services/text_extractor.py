import logging
import tempfile
from pathlib import Path

import pytesseract
from PIL import Image

from task_evaluator.core.errors import ExtractionFailure

logger = logging.getLogger(__name__)

class TextExtractor:
    """
    Runs Tesseract OCR over an uploaded screenshot.
    The bytes are staged in a temporary directory private to the call, which is
    removed before returning or raising.
    """

    def __init__(self, language: str = "eng"):
        self.language = language

    def extract(self, image_bytes: bytes, suffix: str = ".png") -> str:
        if not image_bytes:
            raise ExtractionFailure("OCR failed: the uploaded image is empty.")

        with tempfile.TemporaryDirectory(prefix="ocr-") as tmp:
            staged = Path(tmp) / f"upload{suffix}"
            try:
                staged.write_bytes(image_bytes)
                with Image.open(staged) as img:
                    text = pytesseract.image_to_string(img, lang=self.language)
            except (OSError, ValueError, Image.DecompressionBombError, pytesseract.TesseractError, RuntimeError) as e:
                logger.warning("OCR failed for %d-byte image: %s", len(image_bytes), e)
                raise ExtractionFailure(
                    f"OCR failed: {e}. Please ensure the image contains clear text."
                ) from e

        text = text.strip()
        logger.info("OCR extracted %d characters", len(text))
        return text
