"""
Source document wrappers.

A source is whatever the pipeline reconstructs from: a PDF or a single
scanned image. Both expose the same small surface the pipeline stages need:
page count, native text items, native page size.
"""

import io
import logging
from typing import Any, Dict, List, Tuple, Union

import numpy as np

from .errors import DocumentUnreadable
from .images import decode_image, to_opaque_bgr

logger = logging.getLogger(__name__)


class PdfSource:
    """A PDF payload opened with pdfplumber."""

    kind = "pdf"

    def __init__(self, data: bytes, name: str = "document.pdf"):
        import pdfplumber

        self.data = data
        self.name = name
        try:
            self._pdf = pdfplumber.open(io.BytesIO(data))
            # pdfminer parses lazily; touching pages forces the xref walk
            self._pages = self._pdf.pages
        except Exception as e:
            raise DocumentUnreadable(f"Could not parse PDF '{name}': {e}") from e

        logger.debug(f"Opened PDF '{name}' with {len(self._pages)} page(s)")

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def _page(self, page_index: int):
        if not 0 <= page_index < self.page_count:
            raise IndexError(f"Page index {page_index} out of range (0..{self.page_count - 1})")
        return self._pages[page_index]

    def page_words(self, page_index: int) -> List[Dict[str, Any]]:
        """Native text-layer words with position and font attributes."""
        page = self._page(page_index)
        try:
            return page.extract_words(extra_attrs=["fontname", "size"])
        except Exception as e:
            raise DocumentUnreadable(
                f"Could not read text layer of page {page_index + 1} in '{self.name}': {e}"
            ) from e

    def page_text_items(self, page_index: int) -> List[str]:
        """Ordered native text items of one page (may contain blanks)."""
        return [word["text"] for word in self.page_words(page_index)]

    def page_size(self, page_index: int, scale: float = 1.0) -> Tuple[float, float]:
        """Native page size in points. Scale has no effect on a PDF page."""
        page = self._page(page_index)
        return float(page.width), float(page.height)

    def close(self):
        self._pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class ImageSource:
    """
    A single scanned page supplied as an image file.

    The image is taken to be the page already rendered at the pipeline's
    raster scale, so its point size is pixel size / scale.
    """

    kind = "image"
    page_count = 1

    def __init__(self, data: Union[bytes, np.ndarray], name: str = "image"):
        self.name = name
        if isinstance(data, np.ndarray):
            try:
                self.pixels = to_opaque_bgr(data)
            except ValueError as e:
                raise DocumentUnreadable(f"Unusable image array for '{name}': {e}") from e
            self.data = b""
        else:
            self.data = data
            try:
                self.pixels = decode_image(data)
            except ValueError as e:
                raise DocumentUnreadable(f"Could not decode image '{name}': {e}") from e

    def _check_index(self, page_index: int):
        if page_index != 0:
            raise IndexError(f"Page index {page_index} out of range (0..0)")

    def page_text_items(self, page_index: int) -> List[str]:
        # Images have no text layer
        self._check_index(page_index)
        return []

    def page_words(self, page_index: int) -> List[Dict[str, Any]]:
        self._check_index(page_index)
        return []

    def page_size(self, page_index: int, scale: float = 1.0) -> Tuple[float, float]:
        self._check_index(page_index)
        h, w = self.pixels.shape[:2]
        return w / scale, h / scale

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
