"""Document loading service for PDF text extraction."""
import logging
import re
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF

from models.document import ExtractedDocument
from services.text_processing import clean_text

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n"
PARAGRAPH_BREAK = "\n\n"
SENTENCE_END = (".", "!", "?")


class DocumentLoadError(Exception):
    """Raised when a PDF cannot be opened or contains no extractable text."""


def is_valid_pdf_file(filename: str, data: bytes) -> bool:
    """Check extension, size and the %PDF magic header."""
    return (
        filename.lower().endswith(".pdf")
        and len(data) > 0
        and data[:5] == b"%PDF-"
    )


def page_separator(previous_text: str) -> str:
    """Pages join on a line break, promoted to a paragraph break after a sentence end."""
    return PARAGRAPH_BREAK if previous_text.endswith(SENTENCE_END) else PAGE_SEPARATOR


def normalize_page_text(text: str) -> str:
    """
    Clean one page of extracted text.

    Rejoins words hyphenated across line ends and turns line breaks after a
    sentence terminator into paragraph breaks.
    """
    text = re.sub(r"(\w)-\n(\w)", r"\1\2", text)
    text = clean_text(text)
    text = re.sub(r"\n\s*\n", "\n\n", text)
    text = re.sub(r"([.!?])[ ]*\n(?!\n)", r"\1\n\n", text)
    return text.strip()


class DocumentLoader:
    """Loads a PDF and extracts its text with page-break offsets."""

    def load(self, filepath: Union[str, Path]) -> ExtractedDocument:
        """
        Load a PDF file from disk.

        Args:
            filepath: Path to the PDF

        Returns:
            ExtractedDocument with text and page breaks

        Raises:
            DocumentLoadError: If the file is missing, invalid, protected or empty
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise DocumentLoadError(f"PDF not found: {filepath}")

        try:
            pdf_document = fitz.open(str(filepath))
        except Exception as e:
            logger.error(f"Failed to open PDF {filepath.name}: {str(e)}")
            raise DocumentLoadError(
                "Invalid PDF format. Please ensure the file is a valid PDF document."
            ) from e

        return self._extract(pdf_document, filepath.name)

    def load_bytes(self, data: bytes, filename: str = "document.pdf") -> ExtractedDocument:
        """
        Load a PDF from an in-memory upload.

        Raises:
            DocumentLoadError: If the data is not a readable PDF or has no text
        """
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {str(e)}")
            raise DocumentLoadError(
                "Invalid PDF format. Please ensure the file is a valid PDF document."
            ) from e

        return self._extract(pdf_document, filename)

    def get_metadata(self, filepath: Union[str, Path]) -> dict:
        """
        Get basic PDF metadata without extracting text.

        Returns:
            Dict with title, author and page_count; page_count 0 when unreadable
        """
        try:
            with fitz.open(str(filepath)) as pdf_document:
                info = pdf_document.metadata or {}
                return {
                    "title": info.get("title") or Path(filepath).name,
                    "author": info.get("author") or None,
                    "page_count": len(pdf_document),
                }
        except Exception as e:
            logger.error(f"PDF metadata extraction error: {str(e)}")
            return {"page_count": 0}

    def _extract(self, pdf_document, filename: str) -> ExtractedDocument:
        """
        Extract text page by page, recording where each page after the first breaks off.

        Args:
            pdf_document: Open PyMuPDF document
            filename: Name used for logging and as fallback title
        """
        try:
            if pdf_document.needs_pass:
                raise DocumentLoadError("Password-protected PDFs are not supported.")

            full_text = ""
            page_breaks = []

            for page_num in range(len(pdf_document)):
                page_text = normalize_page_text(pdf_document[page_num].get_text())

                if page_num > 0:
                    # Offset of the separator ending the previous page
                    page_breaks.append(len(full_text))

                if page_text:
                    if full_text:
                        full_text += page_separator(full_text)
                    full_text += page_text

            if not full_text:
                raise DocumentLoadError(
                    "No text content found in PDF. The document may be image-based or encrypted."
                )

            info = pdf_document.metadata or {}
            page_count = len(pdf_document)
        finally:
            pdf_document.close()

        title: Optional[str] = info.get("title") or filename
        logger.info(f"Loaded {filename}: {page_count} pages, {len(full_text)} characters")

        return ExtractedDocument(
            text=full_text,
            page_breaks=page_breaks,
            page_count=page_count,
            title=title,
            author=info.get("author") or None,
        )
