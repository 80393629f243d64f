"""
Pipeline stages for OCR reconstruction.
"""

from .errors import (
    ReconstructionError, UnsupportedInputFormat, DocumentUnreadable,
    PageProcessingError, PageRenderFailed, RecognitionFailed,
    PageSynthesisFailed, AssemblyCancelled,
)
from .document import PdfSource, ImageSource
from .io import detect_input_type, load_source, load_source_file, save_json, ProgressUpdate
from .rasterizer import RasterImage, rasterize
from .ocr_text import TextOCR, Word, PageRecognitionResult
from .scan_detect import ScanDetector, is_scanned_pdf
from .coords import TextPlacement, reconcile_word, page_point_size
from .synthesizer import ReconstructedPage, PageSynthesizer, PdfDocumentBuilder
from .assembler import DocumentAssembler, AssemblyResult, find_low_confidence_pages
from .edits import TextEdit, EditHistory, extract_text_edits

__all__ = [
    # Errors
    "ReconstructionError", "UnsupportedInputFormat", "DocumentUnreadable",
    "PageProcessingError", "PageRenderFailed", "RecognitionFailed",
    "PageSynthesisFailed", "AssemblyCancelled",
    # Sources / IO
    "PdfSource", "ImageSource", "detect_input_type", "load_source",
    "load_source_file", "save_json", "ProgressUpdate",
    # Stages
    "RasterImage", "rasterize",
    "TextOCR", "Word", "PageRecognitionResult",
    "ScanDetector", "is_scanned_pdf",
    "TextPlacement", "reconcile_word", "page_point_size",
    "ReconstructedPage", "PageSynthesizer", "PdfDocumentBuilder",
    "DocumentAssembler", "AssemblyResult", "find_low_confidence_pages",
    # Edit records
    "TextEdit", "EditHistory", "extract_text_edits",
]
