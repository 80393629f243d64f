"""
Coordinate reconciliation between recognition space and output space.

Recognition space: pixels, origin at the image's top-left, at raster scale s.
Output space: points, origin at the page's bottom-left, at scale 1.0.

For a word box (x0, y0, x1, y1) on a page of output height H:

    x         = x0 / s
    font_size = (y1 - y0) / s
    y         = H - y1 / s

The vertical anchor is the lower box edge, which sits on the glyph baseline
region. Box height is the only font-size proxy available for arbitrary
recognized glyphs.
"""

from dataclasses import dataclass
from typing import Tuple

BBox = Tuple[float, float, float, float]


@dataclass(frozen=True)
class TextPlacement:
    """Where and how large to draw one word, in output space."""
    text: str
    x: float
    y: float
    font_size: float

    def to_dict(self):
        return {"text": self.text, "x": self.x, "y": self.y, "font_size": self.font_size}


def page_point_size(pixel_width: int, pixel_height: int, scale: float) -> Tuple[float, float]:
    """Output page size in points for a raster rendered at `scale`."""
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    return pixel_width / scale, pixel_height / scale


def is_degenerate(bbox: BBox) -> bool:
    """A box with no width or no height cannot carry a renderable run."""
    x0, y0, x1, y1 = bbox
    return (x1 - x0) <= 0 or (y1 - y0) <= 0


def clip_bbox(bbox: BBox, pixel_width: float, pixel_height: float) -> BBox:
    """Clamp a box to the raster's [0, w] x [0, h] rectangle."""
    x0, y0, x1, y1 = bbox
    return (
        min(max(x0, 0.0), pixel_width),
        min(max(y0, 0.0), pixel_height),
        min(max(x1, 0.0), pixel_width),
        min(max(y1, 0.0), pixel_height),
    )


def reconcile_bbox(bbox: BBox, scale: float, page_height: float) -> Tuple[float, float, float]:
    """
    Map a recognition-space box to output-space (x, y, font_size).

    Args:
        bbox: (x0, y0, x1, y1) in pixels, top-left origin
        scale: Raster scale the box was recognized at
        page_height: Output page height in points

    Returns:
        (x, y, font_size) in points, bottom-left origin
    """
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")

    x0, y0, x1, y1 = bbox
    x = x0 / scale
    font_size = (y1 - y0) / scale
    y = page_height - (y1 / scale)
    return x, y, font_size


def reconcile_word(word, scale: float, page_height: float, min_font_size: float = 0.0) -> TextPlacement:
    """
    Place one recognized word on the output page.

    Degenerate boxes still map to a zero font size here; callers decide
    whether to skip them. A positive size below `min_font_size` is raised to
    that floor.
    """
    x, y, font_size = reconcile_bbox(word.bbox, scale, page_height)
    if 0 < font_size < min_font_size:
        font_size = min_font_size
    return TextPlacement(text=word.text, x=x, y=y, font_size=font_size)
