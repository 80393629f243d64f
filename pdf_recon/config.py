"""
Configuration and constants for the OCR reconstruction pipeline.

This module provides:
- Global logging setup
- Processing parameters for each pipeline stage
- Environment variable overrides
"""

import os
from dataclasses import dataclass, field
from typing import Optional
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("pdf_recon")


# ============================================================================
# Processing Configuration
# ============================================================================

DEFAULT_RASTER_SCALE = 3.0
SERVER_RASTER_SCALE = 2.0  # latency over accuracy
DEFAULT_LOW_CONFIDENCE_THRESHOLD = 70.0
DEFAULT_SCAN_PAGE_CAP = 3

FAILURE_POLICIES = ("abort", "placeholder")


@dataclass
class RasterConfig:
    """Page rasterization configuration."""
    scale: float = DEFAULT_RASTER_SCALE
    poppler_path: Optional[str] = None


@dataclass
class OCRConfig:
    """Text recognition configuration."""
    language: str = "eng"
    # psm 3 = fully automatic page segmentation, the right mode for whole pages
    tesseract_config: str = "--oem 3 --psm 3"
    tesseract_cmd: Optional[str] = None


@dataclass
class ScanConfig:
    """Scan detection configuration."""
    page_cap: int = DEFAULT_SCAN_PAGE_CAP


@dataclass
class SynthesisConfig:
    """Output page synthesis configuration."""
    # Fill alpha of the text layer; 0 hides it entirely
    text_opacity: float = 0.1
    font_name: str = "Helvetica"
    min_font_size: float = 1.0


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    raster: RasterConfig = field(default_factory=RasterConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)

    # Global settings
    low_confidence_threshold: float = DEFAULT_LOW_CONFIDENCE_THRESHOLD
    failure_policy: str = "abort"  # abort or placeholder
    debug_mode: bool = False

    def validate(self) -> "PipelineConfig":
        """Reject values the pipeline cannot work with."""
        if self.raster.scale <= 0:
            raise ValueError(f"raster scale must be positive, got {self.raster.scale}")
        if self.scan.page_cap < 1:
            raise ValueError(f"scan page cap must be at least 1, got {self.scan.page_cap}")
        if not 0.0 <= self.synthesis.text_opacity <= 1.0:
            raise ValueError(f"text opacity must be in [0, 1], got {self.synthesis.text_opacity}")
        if self.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"failure policy must be one of {FAILURE_POLICIES}, got {self.failure_policy!r}"
            )
        return self


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    # Server variant trades recognition accuracy for latency
    if os.environ.get("PDF_RECON_SERVER_MODE", "").lower() == "true":
        config.raster.scale = SERVER_RASTER_SCALE

    if os.environ.get("PDF_RECON_RASTER_SCALE"):
        config.raster.scale = float(os.environ["PDF_RECON_RASTER_SCALE"])

    if os.environ.get("PDF_RECON_LOW_CONFIDENCE"):
        config.low_confidence_threshold = float(os.environ["PDF_RECON_LOW_CONFIDENCE"])

    if os.environ.get("PDF_RECON_SCAN_PAGE_CAP"):
        config.scan.page_cap = int(os.environ["PDF_RECON_SCAN_PAGE_CAP"])

    if os.environ.get("PDF_RECON_TEXT_OPACITY"):
        config.synthesis.text_opacity = float(os.environ["PDF_RECON_TEXT_OPACITY"])

    # Tesseract binary location for hosts where it is not on PATH
    config.ocr.tesseract_cmd = os.environ.get("PDF_RECON_TESSERACT_CMD")
    config.raster.poppler_path = os.environ.get("PDF_RECON_POPPLER_PATH")

    if os.environ.get("PDF_RECON_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config.validate()
