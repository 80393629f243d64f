"""
Document assembler module for the reconstruction pipeline.

Provides:
- AssemblyResult (output bytes + confidence sidecar)
- Pipeline orchestration: rasterize -> recognize -> synthesize per page
- Low-confidence flagging
- Cancellation between pages
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .errors import (
    AssemblyCancelled,
    DocumentUnreadable,
    PageProcessingError,
    PageSynthesisFailed,
    RecognitionFailed,
)
from .io import ProgressUpdate
from .synthesizer import PageSynthesizer, PdfDocumentBuilder, ReconstructedPage

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressUpdate], None]


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class AssemblyResult:
    """Output of a whole-document reconstruction."""
    pdf_bytes: bytes
    per_page_confidence: List[float] = field(default_factory=list)
    low_confidence_pages: List[int] = field(default_factory=list)  # 1-indexed
    failed_pages: List[int] = field(default_factory=list)          # 1-indexed
    pages: List[ReconstructedPage] = field(default_factory=list)
    processing_time_seconds: float = 0.0

    @property
    def page_count(self) -> int:
        return len(self.per_page_confidence)

    @property
    def words_placed(self) -> int:
        return sum(len(p.text_runs) for p in self.pages)

    @property
    def words_skipped(self) -> int:
        return sum(p.skipped_words for p in self.pages)

    def to_dict(self) -> Dict[str, Any]:
        """Sidecar for callers; low_confidence_pages is always present."""
        return {
            "page_count": self.page_count,
            "per_page_confidence": [round(c, 2) for c in self.per_page_confidence],
            "low_confidence_pages": list(self.low_confidence_pages),
            "failed_pages": list(self.failed_pages),
            "words_placed": self.words_placed,
            "words_skipped": self.words_skipped,
            "processing_time_seconds": round(self.processing_time_seconds, 2),
            "pages": [p.to_dict() for p in self.pages]
        }


def find_low_confidence_pages(confidences: List[float], threshold: float = 70.0) -> List[int]:
    """1-indexed pages whose confidence is strictly below the threshold."""
    return [i + 1 for i, conf in enumerate(confidences) if conf < threshold]


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Orchestrates the reconstruction pipeline over all pages of a source.

    Pages run strictly in order, one at a time; the OCR engine is shared
    across pages. The blocking stages run in worker threads so independent
    documents assembled concurrently do not wait on each other.
    """

    def __init__(
        self,
        raster_scale: float = 3.0,
        low_confidence_threshold: float = 70.0,
        failure_policy: str = "abort",
        text_opacity: float = 0.1,
        font_name: str = "Helvetica",
        min_font_size: float = 1.0,
        language: str = "eng",
        tesseract_config: str = "--oem 3 --psm 3",
        tesseract_cmd: Optional[str] = None,
        poppler_path: Optional[str] = None,
        text_ocr=None,
        rasterizer: Optional[Callable] = None
    ):
        if raster_scale <= 0:
            raise ValueError(f"raster_scale must be positive, got {raster_scale}")
        if failure_policy not in ("abort", "placeholder"):
            raise ValueError(f"Unknown failure policy: {failure_policy}")

        self.raster_scale = raster_scale
        self.low_confidence_threshold = low_confidence_threshold
        self.failure_policy = failure_policy
        self.text_opacity = text_opacity
        self.font_name = font_name
        self.language = language
        self.tesseract_config = tesseract_config
        self.tesseract_cmd = tesseract_cmd
        self.poppler_path = poppler_path

        self.synthesizer = PageSynthesizer(min_font_size=min_font_size)

        # Initialize components lazily
        self._text_ocr = text_ocr
        self._rasterizer = rasterizer

    @classmethod
    def from_config(cls, config, **overrides) -> "DocumentAssembler":
        """Build an assembler from a PipelineConfig."""
        kwargs = dict(
            raster_scale=config.raster.scale,
            low_confidence_threshold=config.low_confidence_threshold,
            failure_policy=config.failure_policy,
            text_opacity=config.synthesis.text_opacity,
            font_name=config.synthesis.font_name,
            min_font_size=config.synthesis.min_font_size,
            language=config.ocr.language,
            tesseract_config=config.ocr.tesseract_config,
            tesseract_cmd=config.ocr.tesseract_cmd,
            poppler_path=config.raster.poppler_path
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def text_ocr(self):
        if self._text_ocr is None:
            from .ocr_text import TextOCR
            self._text_ocr = TextOCR(
                engine="tesseract",
                language=self.language,
                tesseract_config=self.tesseract_config,
                tesseract_cmd=self.tesseract_cmd
            )
        return self._text_ocr

    @property
    def rasterizer(self):
        if self._rasterizer is None:
            from .rasterizer import rasterize
            self._rasterizer = rasterize
        return self._rasterizer

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def assemble(
        self,
        source,
        progress_callback: Optional[ProgressListener] = None,
        cancel_event=None
    ) -> AssemblyResult:
        """Synchronous wrapper around assemble_async()."""
        return asyncio.run(
            self.assemble_async(source, progress_callback=progress_callback, cancel_event=cancel_event)
        )

    async def assemble_async(
        self,
        source,
        progress_callback: Optional[ProgressListener] = None,
        cancel_event=None
    ) -> AssemblyResult:
        """
        Reconstruct every page of a source into one searchable PDF.

        Args:
            source: PdfSource or ImageSource
            progress_callback: Receives ProgressUpdate records (observability only)
            cancel_event: Object with is_set(); checked before each page starts

        Returns:
            AssemblyResult with output bytes and per-page confidence

        Raises:
            DocumentUnreadable: Source has no pages
            RecognitionFailed: The OCR engine is unavailable (reported on page 1)
            PageProcessingError: A page failed under the abort policy
            AssemblyCancelled: cancel_event was set between pages
        """
        start_time = time.time()
        page_count = source.page_count
        if page_count == 0:
            raise DocumentUnreadable(f"'{getattr(source, 'name', 'document')}' has no pages")

        try:
            self.text_ocr
        except ImportError as e:
            # No engine means no page can be recognized, whatever the policy
            logger.error(f"OCR engine unavailable: {e}")
            raise RecognitionFailed(1, f"OCR engine unavailable: {e}", cause=e) from e

        logger.info(f"Reconstructing {page_count} page(s) at scale {self.raster_scale}")

        builder = PdfDocumentBuilder(
            text_opacity=self.text_opacity,
            font_name=self.font_name,
            title=getattr(source, 'name', None)
        )
        pages: List[ReconstructedPage] = []
        failed_pages: List[int] = []

        for page_index in range(page_count):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Assembly cancelled before page {page_index + 1}")
                raise AssemblyCancelled(page_index + 1)

            try:
                page = await self._process_page(source, page_index, page_count, progress_callback)
            except PageProcessingError as e:
                if self.failure_policy == "abort":
                    logger.error(f"Aborting assembly: {e}")
                    raise
                logger.warning(f"Substituting placeholder for page {e.page_number}: {e}")
                page = self._placeholder_for(source, page_index)
                failed_pages.append(page_index + 1)

            builder.add_page(page)
            pages.append(page)

        per_page_confidence = [p.confidence for p in pages]
        low_confidence_pages = [
            n for n in find_low_confidence_pages(per_page_confidence, self.low_confidence_threshold)
            if n not in failed_pages
        ]
        if low_confidence_pages:
            logger.warning(f"Low-confidence pages (< {self.low_confidence_threshold}): {low_confidence_pages}")

        result = AssemblyResult(
            pdf_bytes=builder.serialize(),
            per_page_confidence=per_page_confidence,
            low_confidence_pages=low_confidence_pages,
            failed_pages=failed_pages,
            pages=pages,
            processing_time_seconds=time.time() - start_time
        )
        logger.info(
            f"Reconstructed {result.page_count} page(s) in {result.processing_time_seconds:.2f}s, "
            f"{result.words_placed} words placed"
        )
        return result

    # ------------------------------------------------------------------
    # Per-page work
    # ------------------------------------------------------------------

    async def _process_page(
        self,
        source,
        page_index: int,
        page_count: int,
        progress_callback: Optional[ProgressListener]
    ) -> ReconstructedPage:
        """Rasterize, recognize and synthesize one page."""
        page_number = page_index + 1
        page_start = time.time()

        def report(percent: int):
            if progress_callback is None:
                return
            try:
                progress_callback(ProgressUpdate(page_index, page_count, percent))
            except Exception as e:
                logger.warning(f"Progress callback raised: {e}")

        raster = None
        try:
            raster = await asyncio.to_thread(
                self.rasterizer, source, page_index, self.raster_scale, self.poppler_path
            )
            logger.info(f"Processing page {page_number} ({raster.pixel_width}x{raster.pixel_height})")

            result = await asyncio.to_thread(
                self.text_ocr.recognize, raster.pixels, page_number, report
            )

            try:
                page = self.synthesizer.synthesize(raster, result, self.raster_scale)
            except Exception as e:
                raise PageSynthesisFailed(page_number, str(e), cause=e) from e
        finally:
            # The raster belongs to this page only
            if raster is not None:
                raster.release()

        elapsed = time.time() - page_start
        logger.info(
            f"Page {page_number} processed in {elapsed:.2f}s "
            f"(confidence {page.confidence:.1f}, {len(page.text_runs)} words)"
        )
        return page

    def _placeholder_for(self, source, page_index: int) -> ReconstructedPage:
        width, height = source.page_size(page_index, self.raster_scale)
        return self.synthesizer.placeholder(page_index + 1, width, height)
