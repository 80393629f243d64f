#!/usr/bin/env python
"""
Command-line interface for the OCR reconstruction pipeline.

Usage:
    python -m pdf_recon.cli --input <pdf_or_image> --output <output.pdf> [options]

Examples:
    # Make a scanned PDF searchable
    python -m pdf_recon.cli --input scan.pdf --output searchable.pdf

    # Faster, lower-accuracy server preset
    python -m pdf_recon.cli --input scan.pdf --output searchable.pdf --server-mode

    # Reconstruct even if the document already has a text layer
    python -m pdf_recon.cli --input mixed.pdf --output out.pdf --force
"""

import argparse
import logging
import sys
from pathlib import Path

from pdf_recon import __version__
from pdf_recon.config import SERVER_RASTER_SCALE, get_config, logger


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pdf-recon",
        description="Rebuild scanned documents as searchable PDFs with an invisible text layer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Make a scanned PDF searchable:
    pdf-recon --input scan.pdf --output searchable.pdf

  Write the confidence report somewhere specific:
    pdf-recon --input scan.pdf --output out.pdf --sidecar report.json

  Keep going when a page fails (blank placeholder page):
    pdf-recon --input scan.pdf --output out.pdf --on-page-error placeholder
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF or scanned page image"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output PDF path"
    )

    # Optional arguments
    parser.add_argument(
        "--sidecar",
        default=None,
        help="Path for the JSON confidence report (default: <output>.json)"
    )

    scale_group = parser.add_mutually_exclusive_group()
    scale_group.add_argument(
        "--scale",
        type=float,
        default=None,
        help="Raster scale over native page size (default: 3.0)"
    )
    scale_group.add_argument(
        "--server-mode",
        action="store_true",
        help=f"Use the latency-oriented raster scale ({SERVER_RASTER_SCALE})"
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Pages below this confidence are flagged for review (default: 70)"
    )

    parser.add_argument(
        "--scan-page-cap",
        type=int,
        default=None,
        help="How many leading pages to probe for a text layer (default: 3)"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Reconstruct even if the document already has a text layer"
    )

    parser.add_argument(
        "--lang",
        default=None,
        help="Tesseract language (default: eng)"
    )

    parser.add_argument(
        "--text-opacity",
        type=float,
        default=None,
        help="Fill opacity of the text layer, 0 to 1 (default: 0.1)"
    )

    parser.add_argument(
        "--on-page-error",
        choices=["abort", "placeholder"],
        default=None,
        help="abort the whole document, or substitute a blank page (default: abort)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def build_config(args):
    """Apply CLI flags on top of the environment-derived config."""
    config = get_config()

    if args.server_mode:
        config.raster.scale = SERVER_RASTER_SCALE
    elif args.scale is not None:
        config.raster.scale = args.scale

    if args.threshold is not None:
        config.low_confidence_threshold = args.threshold
    if args.scan_page_cap is not None:
        config.scan.page_cap = args.scan_page_cap
    if args.lang:
        config.ocr.language = args.lang
    if args.text_opacity is not None:
        config.synthesis.text_opacity = args.text_opacity
    if args.on_page_error:
        config.failure_policy = args.on_page_error

    return config.validate()


def run_pipeline(args) -> int:
    """Run the reconstruction pipeline."""
    from pdf_recon.utils.assembler import DocumentAssembler
    from pdf_recon.utils.io import load_source_file, save_bytes, save_json
    from pdf_recon.utils.scan_detect import ScanDetector

    config = build_config(args)
    if config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)

    input_path = Path(args.input)
    output_path = Path(args.output)
    sidecar_path = Path(args.sidecar) if args.sidecar else output_path.with_suffix(".json")

    with load_source_file(input_path) as source:
        logger.info(f"Loaded {source.page_count} page(s) from {input_path}")

        if not args.force:
            detector = ScanDetector(page_cap=config.scan.page_cap)
            if not detector.is_scanned(source):
                if not args.quiet:
                    print(f"{input_path} already has a text layer; nothing to do (use --force to override)")
                return 0

        assembler = DocumentAssembler.from_config(config)
        result = assembler.assemble(source)

    save_bytes(result.pdf_bytes, output_path)
    save_json(result.to_dict(), sidecar_path)
    logger.info(f"Saved PDF: {output_path}")
    logger.info(f"Saved report: {sidecar_path}")

    if not args.quiet:
        print("\n" + "="*60)
        print("RECONSTRUCTION COMPLETE")
        print("="*60)
        print(f"Source: {input_path}")
        print(f"Output: {output_path}")
        print(f"Pages processed: {result.page_count}")
        print(f"Processing time: {result.processing_time_seconds:.2f}s")
        print()
        print("Confidence:")
        for number, conf in enumerate(result.per_page_confidence, start=1):
            print(f"  Page {number}: {conf:.1f}")
        print(f"Words placed: {result.words_placed} (skipped: {result.words_skipped})")
        if result.low_confidence_pages:
            print(f"Review recommended for pages: {', '.join(map(str, result.low_confidence_pages))}")
        if result.failed_pages:
            print(f"Placeholder pages (failed): {', '.join(map(str, result.failed_pages))}")
        print("="*60)

    return 0


def main(argv=None):
    """Main entry point."""
    from pdf_recon.utils.errors import ReconstructionError

    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = 130
    except (ReconstructionError, FileNotFoundError, ValueError) as e:
        logger.error(f"Reconstruction failed: {e}")
        if args.verbose:
            raise
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
