"""
Document classification, OCR and OCR quality grading

OCR runs through Tesseract (pytesseract) with pdf2image for rendering PDF
pages; documents with a usable text layer are read directly by PDFService.
"""
import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import pytesseract
from pdf2image import convert_from_path
from PIL import Image

from ..config import settings
from ..exceptions import OcrError
from ..models.document import Document, OcrQuality, OcrQualityResult
from .pdf_service import PDFService, pdf_service
from .resilience import resilient

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100
MIN_KOREAN_RATIO = 0.1
MIN_ALNUM_FOR_NON_KOREAN = 50
MIN_DIGITS = 5
HIGH_QUALITY_LENGTH = 500
HIGH_QUALITY_KOREAN_RATIO = 0.3

EMPTY_TEXT_WARNING = "추출된 텍스트가 없습니다. 이미지 품질을 확인해주세요."
SHORT_TEXT_WARNING = "추출된 텍스트가 너무 짧습니다. 더 선명한 이미지를 사용해주세요."
UNRECOGNIZED_TEXT_WARNING = "텍스트 인식이 불완전합니다. 이미지가 흐리거나 해상도가 낮을 수 있습니다."
MISSING_DIGITS_WARNING = "자격 조건 숫자가 불완전할 수 있습니다. 결과를 확인해주세요."
PARTIAL_TEXT_WARNING = "일부 내용이 불완전할 수 있습니다. 결과를 확인해주세요."


class OcrClient(Protocol):
    """OCR capability"""

    async def has_text_layer(self, document: Document) -> bool:
        ...

    async def perform_ocr(self, document: Document) -> str:
        """Returns or raises within settings.ocr_timeout"""
        ...


class TesseractOcrClient:
    """OCR client backed by a local Tesseract installation"""

    def __init__(
        self,
        language: str = settings.ocr_language,
        dpi: int = settings.ocr_dpi,
        text_threshold: int = settings.ocr_text_threshold,
        timeout: float = settings.ocr_timeout,
        pdf: Optional[PDFService] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.language = language
        self.dpi = dpi
        self.text_threshold = text_threshold
        self.timeout = timeout
        self.pdf = pdf or pdf_service
        self._clock = clock

    async def has_text_layer(self, document: Document) -> bool:
        """Whether the document carries enough embedded text to skip OCR"""
        if document.is_image:
            return False
        content = await asyncio.to_thread(Path(document.file_path).read_bytes)
        chars_per_page = await asyncio.to_thread(self.pdf.text_chars_per_page, content)
        logger.debug(f"Document {document.id}: {chars_per_page:.1f} text chars per page")
        return chars_per_page >= self.text_threshold

    async def perform_ocr(self, document: Document) -> str:
        """Recognize text; an empty string means nothing was found"""
        try:
            return await asyncio.to_thread(self._recognize, document)
        except OcrError:
            raise
        except Exception as e:
            raise OcrError(f"OCR failed for document {document.id}: {e}")

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise OcrError(f"OCR exceeded its {self.timeout:.0f}s budget")
        return remaining

    def _recognize(self, document: Document) -> str:
        # poppler and tesseract subprocesses are killed once the budget is spent,
        # so this thread always finishes within self.timeout
        deadline = self._clock() + self.timeout

        if document.is_image:
            with Image.open(document.file_path) as image:
                return pytesseract.image_to_string(
                    image, lang=self.language, timeout=self._remaining(deadline)
                ).strip()

        pages: List[str] = []
        for image in convert_from_path(document.file_path, dpi=self.dpi, timeout=self._remaining(deadline)):
            text = pytesseract.image_to_string(image, lang=self.language, timeout=self._remaining(deadline))
            pages.append(text.strip())
        return "\n\n".join(page for page in pages if page)


def _assume_needs_ocr(error: BaseException, service, document: Document) -> bool:
    logger.warning(f"OCR detection failed for document {document.id}, assuming OCR is needed: {error}")
    return True


def count_korean(text: str) -> int:
    """Number of Hangul syllables (U+AC00 to U+D7A3)"""
    return sum(1 for ch in text if '가' <= ch <= '힣')


def count_ascii_alnum(text: str) -> int:
    return sum(1 for ch in text if ch.isascii() and ch.isalnum())


def count_digits(text: str) -> int:
    return sum(1 for ch in text if '0' <= ch <= '9')


class OcrService:
    """Decides whether OCR is needed, extracts text and grades OCR output"""

    def __init__(self, client: Optional[OcrClient] = None, pdf: Optional[PDFService] = None):
        self.client = client or TesseractOcrClient()
        self.pdf = pdf or pdf_service

    @resilient("ocr-detection", timeout=settings.ocr_timeout, fallback=_assume_needs_ocr)
    async def detect_needs_ocr(self, document: Document) -> bool:
        """True unless the document has a usable text layer; failures assume OCR"""
        has_text = await self.client.has_text_layer(document)
        return not has_text

    # No asyncio timeout: OcrClient.perform_ocr bounds its own run time
    @resilient("ocr")
    async def _perform_ocr(self, document: Document) -> str:
        return await self.client.perform_ocr(document)

    async def extract_text(self, document: Document, needs_ocr: bool) -> str:
        """
        Extract raw text from a document

        Args:
            document: Stored document
            needs_ocr: Result of detect_needs_ocr

        Returns:
            Extracted text; empty when OCR recognised nothing

        Raises:
            OcrError: when OCR itself fails
        """
        if needs_ocr:
            logger.info(f"Running OCR for document {document.id}")
            text = await self._perform_ocr(document)
            if not text or not text.strip():
                logger.warning(f"OCR found no text in document {document.id}")
                return ""
            return text

        logger.info(f"Reading text layer of document {document.id}")
        return await asyncio.to_thread(self.pdf.extract_text_from_file, document.file_path)

    @staticmethod
    def assess_quality(text: Optional[str]) -> OcrQualityResult:
        """Grade OCR output so the applicant knows how far to trust the result"""
        if not text or not text.strip():
            return OcrQualityResult(quality=OcrQuality.LOW, warning=EMPTY_TEXT_WARNING)

        length = len(text)
        if length < MIN_TEXT_LENGTH:
            return OcrQualityResult(quality=OcrQuality.LOW, warning=SHORT_TEXT_WARNING)

        korean_ratio = count_korean(text) / length
        if korean_ratio < MIN_KOREAN_RATIO and count_ascii_alnum(text) < MIN_ALNUM_FOR_NON_KOREAN:
            return OcrQualityResult(quality=OcrQuality.LOW, warning=UNRECOGNIZED_TEXT_WARNING)

        if count_digits(text) < MIN_DIGITS:
            return OcrQualityResult(quality=OcrQuality.MEDIUM, warning=MISSING_DIGITS_WARNING)

        if length > HIGH_QUALITY_LENGTH and korean_ratio > HIGH_QUALITY_KOREAN_RATIO:
            return OcrQualityResult(quality=OcrQuality.HIGH)

        return OcrQualityResult(quality=OcrQuality.MEDIUM, warning=PARTIAL_TEXT_WARNING)


# Global OCR service instance
ocr_service = OcrService()
