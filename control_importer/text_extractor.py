"""Plain-text extraction from PDF using PyMuPDF and pdfplumber"""
import io
import logging

import fitz  # PyMuPDF
import pdfplumber

from .errors import PdfReadError
from .models import RawDocumentText

logger = logging.getLogger(__name__)


class TextExtractor:
    """Turns a PDF file into the raw text of all its pages"""

    def __init__(self):
        self.use_pymupdf = True  # Prefer PyMuPDF for better performance

    def extract(self, pdf_bytes: bytes, source_name: str = "") -> RawDocumentText:
        """
        Extract the plain text of every page, pages separated by newlines

        Args:
            pdf_bytes: PDF file as bytes
            source_name: File name or path, kept for reporting

        Returns:
            RawDocumentText for the whole document

        Raises:
            PdfReadError: when neither backend can read the file, or the
                document carries no text layer (scanned images)
        """
        try:
            if self.use_pymupdf:
                text = self._extract_pymupdf(pdf_bytes)
            else:
                text = self._extract_pdfplumber(pdf_bytes)
        except Exception as e:
            # Fallback to pdfplumber if PyMuPDF fails
            if not self.use_pymupdf:
                raise PdfReadError(f"Failed to extract text from PDF: {e}") from e
            logger.warning("PyMuPDF could not read %s (%s), retrying with pdfplumber", source_name, e)
            try:
                text = self._extract_pdfplumber(pdf_bytes)
            except Exception:
                raise PdfReadError(f"Failed to extract text from PDF: {e}") from e

        if not text.strip():
            raise PdfReadError("PDF has no extractable text")

        return RawDocumentText(text=text, source_name=source_name)

    def extract_file(self, path: str) -> RawDocumentText:
        with open(path, "rb") as f:
            return self.extract(f.read(), source_name=str(path))

    def _extract_pymupdf(self, pdf_bytes: bytes) -> str:
        """Extract using PyMuPDF (fitz)"""
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            return "\n".join(page.get_text("text") for page in doc)
        finally:
            doc.close()

    def _extract_pdfplumber(self, pdf_bytes: bytes) -> str:
        """Extract using pdfplumber (fallback)"""
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            return "\n".join(page.extract_text() or "" for page in pdf.pages)
