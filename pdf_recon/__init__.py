"""
OCR Reconstruction Pipeline
===========================

Rebuilds scanned (image-only) documents as searchable PDFs. Each page keeps
its original raster as the visible layer and gains a near-invisible text
layer positioned over the recognized words.

Main components:
- Scan detection (does the document need OCR at all)
- Page rasterization at a fixed scale
- Word-level text recognition with confidence
- Coordinate reconciliation (pixels, top-left -> points, bottom-left)
- Page synthesis and whole-document assembly
"""

__version__ = "1.0.0"
__author__ = "Document Reconstruction Team"
