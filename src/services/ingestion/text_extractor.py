"""Raw text extraction for managed files.

PDFs are read page by page with PyMuPDF (``fitz``); everything else is
read as UTF-8 text.  Both run in a worker thread so the event loop keeps
relaying progress while a large document is parsed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import fitz  # PyMuPDF
import structlog

from src.models.knowledge import ManagedFile
from src.utils.errors import IngestionError

logger = structlog.get_logger(logger_name=__name__)


class TextExtractor:
    """Turns a :class:`ManagedFile` into plain text."""

    async def extract(self, file: ManagedFile) -> str:
        """Return the text content of *file*.

        Raises
        ------
        IngestionError
            If the file cannot be opened or decoded.
        """
        if file.is_pdf:
            try:
                text = await asyncio.to_thread(self._read_pdf, file.path)
            except (OSError, RuntimeError, ValueError) as exc:
                raise IngestionError(f"Failed to parse PDF file: {exc}") from exc
        else:
            try:
                text = await asyncio.to_thread(Path(file.path).read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise IngestionError(f"Failed to read text file: {exc}") from exc

        logger.debug("text_extracted", file_id=file.id, pdf=file.is_pdf, length=len(text))
        return text

    @staticmethod
    def _read_pdf(path: str) -> str:
        pages: list[str] = []
        with fitz.open(path) as doc:
            for page in doc:
                page_text = page.get_text("text").strip()
                if page_text:
                    pages.append(page_text)
        if not pages:
            logger.warning("pdf_no_text_extracted", path=path)
        return "\n\n".join(pages)
