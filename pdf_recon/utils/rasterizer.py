"""
Page rasterization for the reconstruction pipeline.

Renders one page of a source at a scale multiplier over its native point
size. PDF pages go through pdf2image (poppler backend); image sources are
already raster and are passed through.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .document import ImageSource, PdfSource
from .errors import PageRenderFailed
from .images import pil_to_bgr

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class RasterImage:
    """A rendered page. Pixels are opaque BGR uint8."""
    pixels: Optional[np.ndarray]
    pixel_width: int
    pixel_height: int
    scale: float
    page_number: int = 1

    @classmethod
    def from_array(cls, pixels: np.ndarray, scale: float, page_number: int = 1) -> "RasterImage":
        h, w = pixels.shape[:2]
        return cls(pixels=pixels, pixel_width=w, pixel_height=h, scale=scale, page_number=page_number)

    @property
    def released(self) -> bool:
        return self.pixels is None

    def release(self):
        """Drop the pixel buffer once the page no longer needs it."""
        self.pixels = None


# ============================================================================
# Rasterization
# ============================================================================

def rasterize(
    source: Union[PdfSource, ImageSource],
    page_index: int,
    scale: float,
    poppler_path: Optional[str] = None
) -> RasterImage:
    """
    Render one page of a source to an opaque raster.

    Args:
        source: PdfSource or ImageSource
        page_index: 0-indexed page
        scale: Multiplier over native point size (3.0 standalone, 2.0 server)
        poppler_path: Optional poppler bin directory

    Returns:
        RasterImage with pixel size = point size x scale

    Raises:
        ValueError: If scale is not positive
        PageRenderFailed: If the page could not be rendered
    """
    if scale <= 0:
        raise ValueError(f"Raster scale must be positive, got {scale}")

    page_number = page_index + 1

    if isinstance(source, ImageSource):
        if page_index != 0:
            raise PageRenderFailed(page_number, "image sources have exactly one page")
        return RasterImage.from_array(source.pixels.copy(), scale=scale, page_number=page_number)

    return _rasterize_pdf_page(source, page_index, scale, poppler_path)


def _rasterize_pdf_page(
    source: PdfSource,
    page_index: int,
    scale: float,
    poppler_path: Optional[str]
) -> RasterImage:
    """Render a PDF page with pdf2image."""
    from pdf2image import convert_from_bytes
    from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

    page_number = page_index + 1
    dpi = POINTS_PER_INCH * scale

    logger.debug(f"Rasterizing page {page_number} at scale {scale} ({dpi:.0f} DPI)")
    try:
        pil_images = convert_from_bytes(
            source.data,
            dpi=dpi,
            first_page=page_number,
            last_page=page_number,
            fmt='png',
            poppler_path=poppler_path
        )
    except PDFInfoNotInstalledError as e:
        raise PageRenderFailed(
            page_number,
            "Poppler is not installed. Install with:\n"
            "  macOS: brew install poppler\n"
            "  Linux: sudo apt-get install poppler-utils",
            cause=e
        ) from e
    except (PDFPageCountError, PDFSyntaxError) as e:
        raise PageRenderFailed(page_number, f"poppler could not parse the page: {e}", cause=e) from e
    except Exception as e:
        raise PageRenderFailed(page_number, str(e), cause=e) from e

    if not pil_images:
        raise PageRenderFailed(page_number, "renderer returned no image")

    pil_image = pil_images[0]
    try:
        # White background under transparent regions
        pixels = pil_to_bgr(pil_image)
    finally:
        pil_image.close()

    raster = RasterImage.from_array(pixels, scale=scale, page_number=page_number)
    logger.debug(f"Page {page_number} rendered at {raster.pixel_width}x{raster.pixel_height}px")
    return raster
