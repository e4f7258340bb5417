"""Run banners, per-batch progress lines and final statistics."""

from typing import Any, Dict, Optional

from .logging_config import get_logger
from .models import BatchSummary, ProcessingConfig


def log_configuration(config: ProcessingConfig, processor_name: str) -> None:
    """Log processing configuration."""
    logger = get_logger("processor")
    logger.info("=" * 80)
    logger.info(f"{processor_name.upper()} IMAGE NORMALIZER")
    logger.info("=" * 80)

    logger.info("CONFIGURATION:")
    logger.info(f"  Input directory:   {config.input_dir}")
    logger.info(f"  Output directory:  {config.output_dir}")
    logger.info(f"  Input extensions:  {'|'.join(config.decode_extensions)}")
    logger.info("")

    logger.info("PROCESSING OPTIONS:")
    logger.info(f"  Aspect ratio:   {config.aspect_ratio}" + ("" if config.crop else " (crop disabled)"))
    logger.info(f"  Max width:      {config.max_width}" + ("" if config.resize else " (resize disabled)"))
    logger.info(f"  Output format:  {config.encode_extension}")
    logger.info(f"  Quality:        {config.quality}")
    metadata = f"Enabled ({config.metadata_tool})" if config.copy_metadata else "Disabled"
    logger.info(f"  Metadata copy:  {metadata}")
    logger.info(f"  Batch Size:     {config.batch_size}")
    logger.info(f"  Workers:        {config.concurrency}")
    logger.info("=" * 80)


def log_batch_progress(
    batch_number: int,
    num_batches: int,
    batch_size: int,
    batch_time: float,
    progress: float,
    processed_count: int,
    skipped_count: int,
) -> None:
    """Log progress after one batch has finished."""
    logger = get_logger("processor")
    rate = batch_size / batch_time if batch_time > 0 else 0

    logger.info(
        f"Batch {batch_number}/{num_batches} - Progress: {progress * 100:.1f}% - "
        f"Rate: {rate:.1f} items/sec - "
        f"Processed: {processed_count}, Skipped: {skipped_count}"
    )


def log_final_statistics(
    summary: BatchSummary, metrics: Optional[Dict[str, Any]] = None
) -> None:
    """Log final processing statistics."""
    logger = get_logger("processor")
    total_time = summary.processing_time
    overall_rate = summary.total_items / total_time if total_time > 0 else 0

    logger.info("=" * 80)
    logger.info("PROCESSING COMPLETED")
    logger.info("=" * 80)
    logger.info(f"Total execution time: {total_time:.1f}s")
    logger.info(f"Overall processing rate: {overall_rate:.1f} items/sec")
    logger.info(f"Successfully processed: {summary.processed_count}")
    logger.info(f"Skipped: {summary.skipped_count}")
    for error_type, count in sorted(summary.errors_by_type.items()):
        logger.info(f"  {error_type}: {count}")
    if summary.metadata_failures:
        logger.info(f"Metadata copy failures: {summary.metadata_failures}")
    if metrics:
        logger.info(f"Average time per file: {metrics['avg_duration'] * 1000:.1f}ms")
    logger.info("=" * 80)
