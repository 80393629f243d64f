"""
Page synthesis for the reconstruction pipeline.

Provides:
- ReconstructedPage: one output page as a visible image layer plus a list
  of positioned text runs
- PageSynthesizer: builds a ReconstructedPage from a raster and its
  recognition result
- PdfDocumentBuilder: writes ReconstructedPages into a PDF with reportlab
"""

import io
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .coords import TextPlacement, clip_bbox, is_degenerate, page_point_size, reconcile_word
from .images import encode_png
from .ocr_text import PageRecognitionResult, Word
from .rasterizer import RasterImage

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ReconstructedPage:
    """A synthesized output page, in output space (points)."""
    page_number: int
    point_width: float
    point_height: float
    image_png: Optional[bytes] = None
    text_runs: List[TextPlacement] = field(default_factory=list)
    skipped_words: int = 0
    confidence: float = 0.0
    placeholder: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_number": self.page_number,
            "point_width": self.point_width,
            "point_height": self.point_height,
            "confidence": self.confidence,
            "text_runs": len(self.text_runs),
            "skipped_words": self.skipped_words,
            "placeholder": self.placeholder
        }


# ============================================================================
# Page Synthesizer
# ============================================================================

class PageSynthesizer:
    """Compose one output page from a raster and its recognized words."""

    def __init__(self, min_font_size: float = 1.0):
        self.min_font_size = min_font_size

    def synthesize(
        self,
        raster: RasterImage,
        result: PageRecognitionResult,
        scale: float
    ) -> ReconstructedPage:
        """
        Build the visible and invisible layers for one page.

        Args:
            raster: Page raster the recognition ran on
            result: Recognition result for that raster
            scale: Raster scale; must equal the scale the raster was rendered at

        Returns:
            ReconstructedPage with one text run per usable word
        """
        if raster.released:
            raise ValueError(f"Raster for page {raster.page_number} was already released")
        if not math.isclose(raster.scale, scale):
            raise ValueError(
                f"Scale mismatch on page {raster.page_number}: raster rendered at "
                f"{raster.scale}, synthesis asked for {scale}"
            )
        if result.pixel_width and result.pixel_height and (
            result.pixel_width != raster.pixel_width or result.pixel_height != raster.pixel_height
        ):
            raise ValueError(
                f"Recognition ran on a {result.pixel_width}x{result.pixel_height} image but the "
                f"page raster is {raster.pixel_width}x{raster.pixel_height}"
            )

        point_width, point_height = page_point_size(raster.pixel_width, raster.pixel_height, scale)

        page = ReconstructedPage(
            page_number=raster.page_number,
            point_width=point_width,
            point_height=point_height,
            image_png=encode_png(raster.pixels),
            confidence=result.confidence
        )

        for word in result.words:
            placement = self._place_word(word, raster, scale, point_height)
            if placement is None:
                if word.text.strip():
                    page.skipped_words += 1
                continue
            page.text_runs.append(placement)

        logger.debug(
            f"Page {page.page_number}: {point_width:.1f}x{point_height:.1f}pt, "
            f"{len(page.text_runs)} text runs, {page.skipped_words} skipped"
        )
        return page

    def _place_word(
        self,
        word: Word,
        raster: RasterImage,
        scale: float,
        point_height: float
    ) -> Optional[TextPlacement]:
        text = word.text.strip()
        if not text:
            return None

        bbox = clip_bbox(word.bbox, raster.pixel_width, raster.pixel_height)
        if bbox != tuple(word.bbox):
            logger.debug(f"Clipped box of {text!r} on page {raster.page_number}: {word.bbox} -> {bbox}")

        if is_degenerate(bbox):
            logger.warning(
                f"Skipping word {text!r} on page {raster.page_number}: degenerate box {word.bbox}"
            )
            return None

        clipped = Word(text=text, bbox=bbox, confidence=word.confidence)
        return reconcile_word(clipped, scale, point_height, min_font_size=self.min_font_size)

    def placeholder(self, page_number: int, point_width: float, point_height: float) -> ReconstructedPage:
        """Blank stand-in for a page that failed, used by the lenient policy."""
        return ReconstructedPage(
            page_number=page_number,
            point_width=point_width,
            point_height=point_height,
            placeholder=True
        )


# ============================================================================
# PDF Output
# ============================================================================

class PdfDocumentBuilder:
    """
    Accumulates ReconstructedPages into a single PDF.

    Nothing is serialized until serialize() is called, so an assembly that
    aborts part way leaves no output behind.
    """

    # Standard Type 1 fonts are WinAnsi encoded
    TEXT_ENCODING = "cp1252"

    def __init__(self, text_opacity: float = 0.1, font_name: str = "Helvetica", title: Optional[str] = None):
        from reportlab.pdfgen import canvas

        if not 0.0 <= text_opacity <= 1.0:
            raise ValueError(f"text_opacity must be in [0, 1], got {text_opacity}")

        self.text_opacity = text_opacity
        self.font_name = font_name
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pageCompression=1)
        if title:
            self._canvas.setTitle(title)
        self._canvas.setCreator("pdf_recon")
        self.page_count = 0
        self._serialized = False

    def add_page(self, page: ReconstructedPage):
        """Append one page: image over the full page, then the text layer."""
        from reportlab.lib.utils import ImageReader

        if self._serialized:
            raise RuntimeError("Cannot add pages after serialize()")

        c = self._canvas
        c.setPageSize((page.point_width, page.point_height))

        if page.image_png is not None:
            c.drawImage(
                ImageReader(io.BytesIO(page.image_png)),
                0, 0,
                width=page.point_width,
                height=page.point_height
            )

        if page.text_runs:
            c.setFillColorRGB(0, 0, 0)
            c.setFillAlpha(self.text_opacity)
            for run in page.text_runs:
                c.setFont(self.font_name, run.font_size)
                c.drawString(run.x, run.y, self._encodable(run.text))

        c.showPage()
        self.page_count += 1

    def _encodable(self, text: str) -> str:
        """Replace characters the standard font encoding cannot carry."""
        safe = text.encode(self.TEXT_ENCODING, errors="replace").decode(self.TEXT_ENCODING)
        if safe != text:
            logger.warning(f"Replaced characters the font cannot encode: {text!r} -> {safe!r}")
        return safe

    def serialize(self) -> bytes:
        """Finalize the PDF and return its bytes."""
        if not self._serialized:
            self._canvas.save()
            self._serialized = True
        return self._buffer.getvalue()
