"""
Scan detection: does a document need OCR reconstruction at all?

A document is treated as scanned when none of its first few pages carries a
native text layer. Only a bounded prefix is inspected; a document whose
first pages have text is trusted to have text throughout.
"""

import logging

from .errors import DocumentUnreadable

logger = logging.getLogger(__name__)


class ScanDetector:
    """Classify a source as scanned (image-only) or text-bearing."""

    def __init__(self, page_cap: int = 3):
        if page_cap < 1:
            raise ValueError(f"page_cap must be at least 1, got {page_cap}")
        self.page_cap = page_cap

    def is_scanned(self, source) -> bool:
        """
        Probe the first pages of a source for native text.

        Args:
            source: Anything with page_count and page_text_items(index)

        Returns:
            True if no inspected page yields a non-empty text item
        """
        pages_to_check = min(self.page_cap, source.page_count)

        for page_index in range(pages_to_check):
            items = source.page_text_items(page_index)
            if any(str(item).strip() for item in items):
                logger.info(f"Native text found on page {page_index + 1}; OCR not needed")
                return False

        logger.info(f"No native text in first {pages_to_check} page(s); treating as scanned")
        return True


def is_scanned_pdf(data: bytes, page_cap: int = 3) -> bool:
    """
    Bytes-level shortcut for PDFs.

    Raises:
        DocumentUnreadable: If the bytes are not a parseable PDF
    """
    from .document import PdfSource

    if not data:
        raise DocumentUnreadable("Empty PDF payload")

    with PdfSource(data) as source:
        return ScanDetector(page_cap=page_cap).is_scanned(source)
