#!/usr/bin/env python
"""
Generate synthetic scanned documents for trying out the reconstruction pipeline.

This script creates:
- Page images with several lines of text (clean and faded)
- An image-only PDF built from those pages (no text layer)
- A normal text PDF, which the scan detector should leave alone

Usage:
    python examples/generate_samples.py
    pdf-recon --input examples/sample_pages/scanned.pdf --output scanned_ocr.pdf
"""

import io
from pathlib import Path

import numpy as np

# Letter size at scale 3.0 would be 1836 x 2376; half that keeps files small
PAGE_SIZE_PX = (918, 1188)
RENDER_SCALE = 1.5


def create_text_page(lines, faded: bool = False) -> np.ndarray:
    """Render lines of text on a white page."""
    import cv2

    w, h = PAGE_SIZE_PX
    img = np.ones((h, w, 3), dtype=np.uint8) * 255
    ink = (170, 170, 170) if faded else (0, 0, 0)

    y = 90
    for line in lines:
        cv2.putText(img, line, (60, y), cv2.FONT_HERSHEY_SIMPLEX, 0.9, ink, 2)
        y += 55

    if faded:
        # Speckle noise so recognition confidence drops
        rng = np.random.default_rng(7)
        noise = rng.integers(0, 60, size=img.shape[:2], dtype=np.uint8)
        img = cv2.subtract(img, cv2.merge([noise, noise, noise]))

    return img


def images_to_pdf(images, scale: float = RENDER_SCALE) -> bytes:
    """Wrap page images into an image-only PDF, one page per image."""
    import cv2
    from reportlab.lib.utils import ImageReader
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer)
    for img in images:
        h, w = img.shape[:2]
        ok, png = cv2.imencode(".png", img)
        if not ok:
            raise ValueError("Could not encode sample page")
        c.setPageSize((w / scale, h / scale))
        c.drawImage(ImageReader(io.BytesIO(png.tobytes())), 0, 0, width=w / scale, height=h / scale)
        c.showPage()
    c.save()
    return buffer.getvalue()


def create_text_pdf() -> bytes:
    """A born-digital PDF with a real text layer."""
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer)
    c.drawString(100, 700, "Invoice #: SAMPLE-001")
    c.drawString(100, 680, "Date: March 1, 2024")
    c.showPage()
    c.save()
    return buffer.getvalue()


def main():
    import cv2

    samples_dir = Path(__file__).parent / "sample_pages"
    samples_dir.mkdir(exist_ok=True)

    pages = [
        create_text_page([
            "Quarterly Report",
            "Revenue grew in every region this quarter.",
            "Operating costs were flat year over year.",
            "The board approved the new budget.",
        ]),
        create_text_page([
            "Appendix A",
            "This page was scanned from a faded copy.",
            "Some words may not be recognized reliably.",
        ], faded=True),
    ]

    for i, img in enumerate(pages, start=1):
        img_path = samples_dir / f"page_{i}.png"
        cv2.imwrite(str(img_path), img)
        print(f"Created: {img_path}")

    scanned_path = samples_dir / "scanned.pdf"
    scanned_path.write_bytes(images_to_pdf(pages))
    print(f"Created: {scanned_path}")

    text_path = samples_dir / "born_digital.pdf"
    text_path.write_bytes(create_text_pdf())
    print(f"Created: {text_path}")

    print("\nSample generation complete!")


if __name__ == "__main__":
    main()
