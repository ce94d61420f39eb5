"""
PDF service for reading the embedded text layer of announcement PDFs
"""
import fitz  # PyMuPDF
from pdfminer.high_level import extract_text as pdfminer_extract_text
from pdfminer.layout import LAParams
import logging
import re
from typing import List

logger = logging.getLogger(__name__)

# Announcement PDFs are mostly tables; a loose layout keeps cells on one line
ANNOUNCEMENT_LAPARAMS = LAParams(
    line_margin=0.3,
    word_margin=0.2,
    char_margin=3.0,
    detect_vertical=False
)

PAGE_FOOTER_PATTERNS = (
    re.compile(r'^[ \t]*-[ \t]*\d+[ \t]*-[ \t]*$', re.MULTILINE),    # - 3 -
    re.compile(r'^[ \t]*\d+[ \t]*/[ \t]*\d+[ \t]*$', re.MULTILINE),  # 3 / 12
)


class PDFService:
    """Reads text-layer PDFs; scanned pages go through OcrService instead"""

    def page_texts(self, file_path: str) -> List[str]:
        """Raw text of each page, read with PyMuPDF"""
        with fitz.open(file_path) as doc:
            return [page.get_text("text") for page in doc]

    def read_with_pdfminer(self, file_path: str) -> str:
        return pdfminer_extract_text(file_path, laparams=ANNOUNCEMENT_LAPARAMS)

    def extract_text_from_file(self, file_path: str) -> str:
        """
        Extract cleaned text from a PDF on disk

        Args:
            file_path: Stored document path

        Returns:
            Cleaned text with page breaks kept as blank lines

        Raises:
            RuntimeError: when neither PyMuPDF nor pdfminer can read the file
        """
        try:
            raw = "\n\n".join(self.page_texts(file_path))
            source = "PyMuPDF"
        except Exception as e:
            logger.warning(f"PyMuPDF could not read {file_path}, falling back to pdfminer: {e}")
            try:
                raw = self.read_with_pdfminer(file_path)
                source = "pdfminer"
            except Exception as e2:
                logger.error(f"pdfminer could not read {file_path}: {e2}")
                raise RuntimeError(f"PDF text extraction failed: {e2}")

        text = self.clean_text(raw)
        logger.info(f"Extracted {len(text)} characters from {file_path} using {source}")
        return text

    def text_chars_per_page(self, pdf_content: bytes) -> float:
        """Average number of non-whitespace text-layer characters per page"""
        with fitz.open(stream=pdf_content, filetype="pdf") as doc:
            counts = [len(re.sub(r'\s+', '', page.get_text("text"))) for page in doc]
        return sum(counts) / max(len(counts), 1)

    @staticmethod
    def clean_text(text: str) -> str:
        """Drop page furniture and collapse whitespace, keeping Korean, units and line structure"""
        if not text:
            return ""

        for pattern in PAGE_FOOTER_PATTERNS:
            text = pattern.sub('', text)

        # Private-use glyphs and control characters left by embedded fonts
        text = re.sub(r'[\ue000-\uf8ff\x00-\x08\x0b\x0c\x0e-\x1f]', '', text)

        text = re.sub(r'[ \t\u3000]+', ' ', text)
        text = re.sub(r' *\n *', '\n', text)
        text = re.sub(r'\n{3,}', '\n\n', text)

        return text.strip()


# Global PDF service instance
pdf_service = PDFService()
