import asyncio
import io
import logging
from dataclasses import dataclass

import fitz
import pytesseract
from PIL import Image, ImageOps

from petcare.exceptions import ExtractionError
from petcare.services.files import FileCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    warning: str | None = None


class TextExtractor:
    """Best-effort text extraction. Failures degrade to empty text."""

    category: FileCategory

    def extract(self, content: bytes) -> ExtractionResult:
        try:
            text = self._extract(content)
        except Exception as exc:
            logger.warning("%s text extraction failed: %s", self.category, exc)
            return ExtractionResult(text="", warning=f"Text extraction failed: {exc}")
        return ExtractionResult(text=text.strip())

    def _extract(self, content: bytes) -> str:
        raise NotImplementedError


class PdfTextExtractor(TextExtractor):
    """Reads the PDF text layer. Scanned PDFs without one yield ''."""

    category = FileCategory.PDF

    def _extract(self, content: bytes) -> str:
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(f"Could not open PDF: {exc}") from exc
        try:
            return "\n".join(page.get_text() for page in doc)
        finally:
            doc.close()


class ImageTextExtractor(TextExtractor):
    """Runs Tesseract OCR over a raster image."""

    category = FileCategory.IMAGE

    def __init__(self, language: str = "eng"):
        self._language = language

    def _extract(self, content: bytes) -> str:
        with Image.open(io.BytesIO(content)) as img:
            # Camera photos carry their rotation in EXIF
            upright = ImageOps.exif_transpose(img)
            if upright.mode not in ("RGB", "L"):
                upright = upright.convert("RGB")
            return pytesseract.image_to_string(upright, lang=self._language)


def extractor_for(category: FileCategory, ocr_language: str = "eng") -> TextExtractor:
    if category is FileCategory.PDF:
        return PdfTextExtractor()
    return ImageTextExtractor(language=ocr_language)


class ExtractionPool:
    """Runs extractors in worker threads with bounded concurrency."""

    def __init__(self, max_concurrency: int = 2, ocr_language: str = "eng"):
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._extractors = {
            category: extractor_for(category, ocr_language)
            for category in FileCategory
        }

    async def extract(self, content: bytes, category: FileCategory) -> ExtractionResult:
        extractor = self._extractors[category]
        async with self._semaphore:
            return await asyncio.to_thread(extractor.extract, content)
