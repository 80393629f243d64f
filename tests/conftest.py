"""
Shared fixtures: synthetic page images and small PDFs built with reportlab.
"""

import io
import shutil
import sys
from pathlib import Path

import numpy as np
import pytest

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))


def render_text_image(lines, size=(600, 300), font_scale=1.5, thickness=3) -> np.ndarray:
    """White BGR page with black Hershey text, one entry per line."""
    import cv2

    w, h = size
    img = np.ones((h, w, 3), dtype=np.uint8) * 255
    y = 70
    for line in lines:
        cv2.putText(img, line, (30, y), cv2.FONT_HERSHEY_SIMPLEX, font_scale, (0, 0, 0), thickness)
        y += int(60 * font_scale)
    return img


def build_image_pdf(images, scale: float = 3.0) -> bytes:
    """Image-only PDF, one page per image, page size = pixels / scale."""
    import cv2
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer)
    for img in images:
        h, w = img.shape[:2]
        ok, png = cv2.imencode(".png", img)
        assert ok
        c.setPageSize((w / scale, h / scale))
        c.drawImage(ImageReader(io.BytesIO(png.tobytes())), 0, 0, width=w / scale, height=h / scale)
        c.showPage()
    c.save()
    return buffer.getvalue()


def build_text_pdf(pages) -> bytes:
    """PDF with a real text layer; `pages` is a list of line lists."""
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(612, 792))
    for lines in pages:
        y = 700
        for line in lines:
            c.setFont("Helvetica", 12)
            c.drawString(100, y, line)
            y -= 20
        c.showPage()
    c.save()
    return buffer.getvalue()


@pytest.fixture
def image_pdf_factory():
    return build_image_pdf


@pytest.fixture
def text_pdf_factory():
    return build_text_pdf


@pytest.fixture
def text_image_factory():
    return render_text_image


requires_poppler = pytest.mark.skipif(
    shutil.which("pdftoppm") is None, reason="Poppler not installed"
)

requires_tesseract = pytest.mark.skipif(
    shutil.which("tesseract") is None, reason="Tesseract not installed"
)
