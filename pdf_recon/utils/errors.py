"""
Error taxonomy for the reconstruction pipeline.

Every fatal condition surfaces as a ReconstructionError subclass. Page level
failures carry the 1-indexed page number and the stage that failed, so a
caller can report exactly where an assembly stopped.
"""

from typing import Optional


class ReconstructionError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedInputFormat(ReconstructionError):
    """Payload is not a document or image the pipeline accepts."""


class DocumentUnreadable(ReconstructionError):
    """Payload looked like a document but could not be parsed."""


class AssemblyCancelled(ReconstructionError):
    """Caller cancelled the assembly between pages."""

    def __init__(self, next_page: int):
        self.next_page = next_page
        super().__init__(f"Assembly cancelled before page {next_page}")


class PageProcessingError(ReconstructionError):
    """A single page failed in one pipeline stage."""

    stage = "process"

    def __init__(self, page_number: int, message: str, cause: Optional[BaseException] = None):
        self.page_number = page_number
        self.cause = cause
        super().__init__(f"Page {page_number} failed at {self.stage}: {message}")


class PageRenderFailed(PageProcessingError):
    stage = "rasterize"


class RecognitionFailed(PageProcessingError):
    stage = "recognize"


class PageSynthesisFailed(PageProcessingError):
    stage = "synthesize"
