"""
I/O utilities for the reconstruction pipeline.

Handles:
- Input type detection and rejection of unsupported payloads
- Source loading (PDF or single image)
- JSON serialization of sidecar results
- Progress reporting records
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from .document import ImageSource, PdfSource
from .errors import UnsupportedInputFormat

logger = logging.getLogger(__name__)


# ============================================================================
# Input Type Detection
# ============================================================================

_IMAGE_SIGNATURES = (
    b"\x89PNG\r\n\x1a\n",
    b"\xff\xd8\xff",        # JPEG
    b"II*\x00",             # TIFF little-endian
    b"MM\x00*",             # TIFF big-endian
    b"BM",                  # BMP
)

_PDF_MEDIA_TYPES = ("application/pdf", "application/x-pdf")


def detect_input_type(
    payload: bytes,
    filename: Optional[str] = None,
    media_type: Optional[str] = None
) -> str:
    """
    Detect whether a payload is a PDF or an image.

    Magic bytes decide; filename and media type only break ties for
    payloads with leading junk before the PDF header.

    Args:
        payload: Raw bytes
        filename: Optional original file name
        media_type: Optional declared media type

    Returns:
        'pdf' or 'image'

    Raises:
        UnsupportedInputFormat: If the payload is neither
    """
    if not payload:
        raise UnsupportedInputFormat("Empty payload")

    head = payload[:1024]
    if head.startswith(b"%PDF-"):
        return 'pdf'
    if any(head.startswith(sig) for sig in _IMAGE_SIGNATURES):
        return 'image'

    # Some producers emit garbage before the header; readers tolerate it
    declared_pdf = (
        (media_type or "").lower() in _PDF_MEDIA_TYPES
        or (filename or "").lower().endswith(".pdf")
    )
    if declared_pdf and b"%PDF-" in head:
        return 'pdf'

    what = media_type or (Path(filename).suffix if filename else "unknown")
    raise UnsupportedInputFormat(f"Unsupported input format: {what}")


def load_source(
    payload: bytes,
    filename: Optional[str] = None,
    media_type: Optional[str] = None
) -> Union[PdfSource, ImageSource]:
    """
    Open a payload as a pipeline source.

    Raises:
        UnsupportedInputFormat: Payload is not a PDF or image
        DocumentUnreadable: Payload could not be parsed
    """
    input_type = detect_input_type(payload, filename=filename, media_type=media_type)
    name = filename or f"input.{input_type}"
    logger.info(f"Input type detected: {input_type} ({len(payload)} bytes)")

    if input_type == 'pdf':
        return PdfSource(payload, name=name)
    return ImageSource(payload, name=name)


def load_source_file(input_path: Union[str, Path]) -> Union[PdfSource, ImageSource]:
    """
    Read a file from disk and open it as a pipeline source.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    return load_source(input_path.read_bytes(), filename=input_path.name)


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def save_bytes(data: bytes, output_path: Union[str, Path]) -> Path:
    """Write bytes to a file, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logger.debug(f"Saved {len(data)} bytes: {output_path}")
    return output_path


# ============================================================================
# Progress Tracking
# ============================================================================

@dataclass(frozen=True)
class ProgressUpdate:
    """One progress notification. Observability only."""
    page_index: int          # 0-indexed
    page_count: int
    percent_within_page: int

    @property
    def overall_percent(self) -> float:
        if self.page_count == 0:
            return 100.0
        return (self.page_index + self.percent_within_page / 100.0) / self.page_count * 100
