"""Plain-text extraction from uploaded CV documents using pdfplumber."""

import asyncio
import time
from io import BytesIO
from typing import Optional

import pdfplumber

from profile_enrichment.core.config import settings
from profile_enrichment.core.exceptions import ExtractionError
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

PDF_MAGIC = b"%PDF"


class DocumentTextExtractor:
    """Extracts page text from PDF bytes.

    pdfplumber is synchronous, so parsing runs in a worker thread bounded by
    a timeout to keep the event loop free.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds or settings.enrichment.extraction_timeout_seconds

    async def extract(self, content: bytes) -> str:
        """Return the document text, pages joined by newlines.

        Raises:
            ExtractionError: If the bytes are not a readable PDF, parsing times
                out, or the document has no extractable text
        """
        if not content:
            raise ExtractionError("Uploaded document is empty")
        if not content.lstrip()[:4].startswith(PDF_MAGIC):
            raise ExtractionError("Uploaded document is not a PDF")

        start_time = time.time()
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._extract_sync, content),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            LOGGER.warning(f"Text extraction timed out after {self.timeout_seconds}s")
            raise ExtractionError(
                f"Text extraction timed out after {self.timeout_seconds}s", original_error=e
            ) from e
        except ExtractionError:
            raise
        except Exception as e:
            LOGGER.error(f"Failed to read PDF: {e}", exc_info=True)
            raise ExtractionError(f"Failed to read PDF: {e}", original_error=e) from e

        if not text.strip():
            raise ExtractionError("No text could be extracted from the document")

        LOGGER.info(
            f"Extracted document text in {time.time() - start_time:.2f}s",
            extra={"size_bytes": len(content), "text_length": len(text)}
        )
        return text

    @staticmethod
    def _extract_sync(content: bytes) -> str:
        pages = []
        with pdfplumber.open(BytesIO(content)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text() or ""
                if page_text.strip():
                    pages.append(page_text)
        return "\n".join(pages)
