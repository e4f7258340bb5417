"""Main module for the images normalizer CLI."""

import sys
import argparse
from typing import List, Optional

from tqdm import tqdm

from . import __version__
from .core import ConfigurationError, ProgressState, build_config, get_logger, set_debug_logging
from .core.factories import ProcessingPipelineFactory
from .core.reporting import log_configuration

PROCESSOR_NAMES = {"multithread": "Multithreaded", "serial": "Serial"}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its ``process`` and ``version`` subcommands."""
    parser = argparse.ArgumentParser(
        prog="images-normalizer",
        description="Images Normalizer - center-crop, downsize and re-encode a directory of images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Crop to 5:7, cap width at 1500px, keep each file's format
  images-normalizer process -i ./input/ -o ./output/

  # Square crops written as PNG with best compression, no metadata
  images-normalizer process -a 1/1 -f png -q 90 --no-metadata

  # Show version
  images-normalizer version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Normalize images from an input directory into an output directory"
    )
    process_parser.add_argument(
        "-a", "--aspect-ratio", help="Enforced aspect ratio with center crop, e.g. 5/7 (default: 5/7)"
    )
    process_parser.add_argument(
        "-b", "--batch-size", type=int, help="Images per batch processed in parallel (default: 100)"
    )
    process_parser.add_argument(
        "-e", "--extensions", help="Input extensions to process (default: gif|jpg|jpeg|png)"
    )
    process_parser.add_argument(
        "-f", "--format", dest="encode_extension",
        help="Output extension (jpg, jpeg, png, gif) or 'original' (default: original)",
    )
    process_parser.add_argument("-i", "--input", help="Input directory (default: ./input/)")
    process_parser.add_argument("-o", "--output", help="Output directory (default: ./output/)")
    process_parser.add_argument(
        "-m", "--max-width", type=int, help="Max width before resizing (default: 1500)"
    )
    process_parser.add_argument(
        "-q", "--quality", type=int, help="JPEG quality / PNG compression tier, 0-100 (default: 95)"
    )
    process_parser.add_argument("--no-crop", action="store_true", help="Do not crop the image")
    process_parser.add_argument("--no-resize", action="store_true", help="Do not resize the image")
    process_parser.add_argument(
        "--no-metadata", action="store_true", help="Do not copy EXIF/XMP/IPTC metadata"
    )
    process_parser.add_argument(
        "--metadata-tool",
        choices=["auto", "exiftool", "piexif"],
        help="Metadata copier: exiftool (EXIF/IPTC/XMP) or piexif (EXIF, JPEG only) (default: auto)",
    )
    process_parser.add_argument(
        "--processor",
        choices=sorted(PROCESSOR_NAMES),
        help="Batch execution strategy (default: multithread)",
    )
    process_parser.add_argument(
        "-w", "--workers", type=int, dest="concurrency", help="Worker threads per batch (default: 8)"
    )
    process_parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    process_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")

    return parser


def _attach_progress_bar(progress: ProgressState, disable: bool) -> tqdm:
    bar = tqdm(total=100, unit="%", desc="Processing images", ncols=100, disable=True if disable else None)

    def on_progress(value: float) -> None:
        target = round(value * 100)
        if target > bar.n:
            bar.update(target - bar.n)

    progress.subscribe(on_progress)
    return bar


def run_process(args: argparse.Namespace) -> int:
    """Run the ``process`` command. Returns the process exit status."""
    logger = get_logger("processor")

    try:
        config = build_config(
            aspect_ratio=args.aspect_ratio,
            batch_size=args.batch_size,
            decode_extensions=args.extensions,
            encode_extension=args.encode_extension,
            input_dir=args.input,
            output_dir=args.output,
            max_width=args.max_width,
            quality=args.quality,
            crop=not args.no_crop,
            resize=not args.no_resize,
            copy_metadata=not args.no_metadata,
            metadata_tool=args.metadata_tool,
            processor=args.processor,
            concurrency=args.concurrency,
            debug=args.debug,
        )
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    set_debug_logging(config.debug)
    log_configuration(config, PROCESSOR_NAMES[config.processor])

    progress = ProgressState()
    bar = _attach_progress_bar(progress, disable=args.no_progress)
    try:
        pipeline = ProcessingPipelineFactory.create_pipeline(config, progress=progress)
        pipeline.process_all(config)
    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
        return 130
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        return 1
    finally:
        bar.close()

    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the command-line interface of the Images Normalizer.

    The exit status tells whether the run completed, not whether every file
    succeeded; per-file outcomes are in the log.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "process":
        sys.exit(run_process(args))

    elif args.command == "version":
        print("Images Normalizer CLI")
        print(f"Version {__version__}")
        print("Aspect-ratio crop, bounded resize and re-encode for image directories")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
