"""
Text OCR module for the reconstruction pipeline.

Provides:
- Word and page recognition data model
- Tesseract engine adapter (word boxes + confidence)
- TextOCR front end with progress reporting and error translation
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from .errors import RecognitionFailed

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Word:
    """One recognized token in recognition space (pixels, top-left origin)."""
    text: str
    bbox: Tuple[float, float, float, float]  # (x0, y0, x1, y1)
    confidence: float

    def __post_init__(self):
        x0, y0, x1, y1 = self.bbox
        if x1 < x0 or y1 < y0:
            raise ValueError(f"Inverted bounding box for word {self.text!r}: {self.bbox}")
        if not 0.0 <= self.confidence <= 100.0:
            raise ValueError(f"Confidence out of range for word {self.text!r}: {self.confidence}")

    @property
    def width(self) -> float:
        return self.bbox[2] - self.bbox[0]

    @property
    def height(self) -> float:
        return self.bbox[3] - self.bbox[1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "bbox": list(self.bbox),
            "confidence": self.confidence
        }


@dataclass
class PageRecognitionResult:
    """Recognition output for one page."""
    full_text: str
    words: List[Word] = field(default_factory=list)
    confidence: float = 0.0
    pixel_width: int = 0
    pixel_height: int = 0
    engine_used: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_text": self.full_text,
            "confidence": self.confidence,
            "pixel_width": self.pixel_width,
            "pixel_height": self.pixel_height,
            "engine": self.engine_used,
            "words": [w.to_dict() for w in self.words]
        }


# ============================================================================
# Text OCR Front End
# ============================================================================

class TextOCR:
    """
    Main text OCR interface.

    Wraps a single engine instance. Engines are heavy, so one TextOCR is
    meant to be reused across all pages of a document.
    """

    def __init__(
        self,
        engine: Union[str, Any] = "tesseract",
        language: str = "eng",
        tesseract_config: str = "--oem 3 --psm 3",
        tesseract_cmd: Optional[str] = None
    ):
        self.language = language
        if isinstance(engine, str):
            self.engine = self._create_engine(engine, tesseract_config, tesseract_cmd)
            logger.info(f"Initialized OCR engine: {engine}")
        else:
            self.engine = engine

    def _create_engine(self, engine_name: str, tesseract_config: str, tesseract_cmd: Optional[str]):
        """Create an OCR engine instance."""
        if engine_name == "tesseract":
            return TesseractEngine(
                language=self.language,
                config=tesseract_config,
                tesseract_cmd=tesseract_cmd
            )
        raise ValueError(f"Unknown OCR engine: {engine_name}")

    def recognize(
        self,
        image: np.ndarray,
        page_number: int = 1,
        progress_callback: Optional[ProgressCallback] = None
    ) -> PageRecognitionResult:
        """
        Recognize all words on a page image.

        Args:
            image: Page image (BGR)
            page_number: 1-indexed page, for error reporting
            progress_callback: Receives non-decreasing ints in [0, 100]

        Returns:
            PageRecognitionResult with words in engine emission order

        Raises:
            RecognitionFailed: If the engine errors
        """
        report = _MonotonicProgress(progress_callback)
        report(0)

        try:
            result = self.engine.recognize(image)
        except RecognitionFailed:
            raise
        except Exception as e:
            logger.error(f"Recognition failed on page {page_number}: {e}")
            raise RecognitionFailed(page_number, str(e), cause=e) from e

        report(100)
        logger.debug(
            f"Page {page_number}: {len(result.words)} words, "
            f"confidence {result.confidence:.1f}"
        )
        return result


class _MonotonicProgress:
    """Clamp progress to [0, 100], never go backwards, never raise."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.last = -1

    def __call__(self, value: float):
        if self.callback is None:
            return
        value = int(min(max(value, 0), 100))
        if value < self.last:
            return
        self.last = value
        try:
            self.callback(value)
        except Exception as e:
            # Observability only; a broken listener must not fail recognition
            logger.warning(f"Progress callback raised: {e}")


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract."""

    name = "tesseract"

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 3",
        tesseract_cmd: Optional[str] = None
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            if tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise ImportError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            ) from e

        self.language = language
        self.config = config

    def recognize(self, image: np.ndarray) -> PageRecognitionResult:
        """Recognize words using Tesseract."""
        import cv2

        h, w = image.shape[:2]
        # pytesseract treats arrays as RGB
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB) if image.ndim == 3 else image

        data = self.pytesseract.image_to_data(
            rgb,
            lang=self.language,
            config=self.config,
            output_type=self.pytesseract.Output.DICT
        )

        return parse_tesseract_data(data, pixel_width=w, pixel_height=h)


def parse_tesseract_data(
    data: Dict[str, List[Any]],
    pixel_width: int,
    pixel_height: int
) -> PageRecognitionResult:
    """
    Build a page result from pytesseract's image_to_data dictionary.

    Only word rows (level 5) with a valid confidence and non-blank text are
    kept. Page confidence is the mean word confidence.
    """
    words: List[Word] = []
    lines: Dict[Tuple[int, int, int], List[str]] = {}

    for i in range(len(data['text'])):
        if int(data['level'][i]) != 5:
            continue

        text = str(data['text'][i]).strip()
        conf = float(data['conf'][i])

        if conf < 0:  # -1 means no valid confidence
            continue
        if not text:
            continue

        left = float(data['left'][i])
        top = float(data['top'][i])
        word = Word(
            text=text,
            bbox=(
                left,
                top,
                left + float(data['width'][i]),
                top + float(data['height'][i])
            ),
            confidence=min(conf, 100.0)
        )
        words.append(word)

        line_key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        lines.setdefault(line_key, []).append(text)

    full_text = '\n'.join(' '.join(line) for line in lines.values())
    avg_confidence = float(np.mean([w.confidence for w in words])) if words else 0.0

    return PageRecognitionResult(
        full_text=full_text,
        words=words,
        confidence=avg_confidence,
        pixel_width=pixel_width,
        pixel_height=pixel_height,
        engine_used="tesseract"
    )
