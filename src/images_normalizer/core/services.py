"""Service implementations for the image normalization pipeline."""

import math
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar, Union

from PIL import Image

from .codec import (
    Codec,
    EncoderSettings,
    decode_image,
    encode_frames,
    encode_image,
    extract_frames,
    is_animated,
    resolve_output_extension,
    select_encoder,
)
from .error_handling import BatchOperationContextManager, with_error_handling
from .exceptions import ConfigurationError, OutputCollisionError
from .geometry import bounded_resize, crop_to_aspect, image_ratio
from .models import (
    BatchSummary,
    ImageItem,
    PipelineStage,
    ProcessingConfig,
    ProcessingResult,
    RenderedImage,
)
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .progress import ProgressState
from .protocols import (
    BatchProcessor,
    FileDiscoveryService,
    LoggerProtocol,
    MetadataPropagatorProtocol,
    ProcessingService,
)
from .reporting import log_batch_progress, log_final_statistics

T = TypeVar("T")


def calculate_dest_path(
    source_path: Union[str, Path], output_dir: Union[str, Path], extension: str
) -> Path:
    """
    Output path for a source file: ``output_dir/<stem>.<extension>``.

    Only the trailing extension token is replaced, so ``a.b.jpeg`` becomes
    ``a.b.jpg`` rather than ``a.jpg``.
    """
    stem = Path(source_path).stem
    name = f"{stem}.{extension}" if extension else stem
    return Path(output_dir) / name


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield contiguous chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


@with_error_handling
def read_source(path: Path) -> bytes:
    return Path(path).read_bytes()


@with_error_handling
def write_output(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file so no partial output remains."""
    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


class ImageTransformService:
    """Pure image transformation service with no I/O dependencies."""

    def crop(self, image: Image.Image, config: ProcessingConfig) -> Image.Image:
        if not config.crop:
            return image
        return crop_to_aspect(image, image_ratio(image), config.aspect_ratio)

    def resize(self, image: Image.Image, config: ProcessingConfig) -> Image.Image:
        if not config.resize:
            return image
        return bounded_resize(image, config.max_width)

    def transform(self, image: Image.Image, config: ProcessingConfig) -> Image.Image:
        """Crop then resize. The order is fixed: resizing first would shift the framing."""
        return self.resize(self.crop(image, config), config)

    def encode(
        self,
        source: Image.Image,
        transformed: Image.Image,
        settings: EncoderSettings,
        config: ProcessingConfig,
    ) -> bytes:
        """Encode ``transformed``; animated GIF sources keep all their frames."""
        if not is_animated(source) or settings.codec is not Codec.GIF:
            return encode_image(transformed, settings)

        frames = extract_frames(source)
        durations = [frame.info.get("duration", 0) for frame in frames]
        return encode_frames(
            [self.transform(frame, config) for frame in frames],
            settings,
            durations=durations,
            loop=source.info.get("loop", 0),
        )

    def render(
        self,
        data: bytes,
        extension: str,
        config: ProcessingConfig,
        name: str = "",
    ) -> RenderedImage:
        """
        In-memory mode: decode, crop, resize and encode without touching disk.

        Uses exactly the same steps as on-disk mode, so its bytes are the
        reference output for a file.
        """
        image = decode_image(data)
        source_width, source_height = image.size
        transformed = self.transform(image, config)
        settings = select_encoder(extension, config.quality)
        encoded = self.encode(image, transformed, settings, config)
        return RenderedImage(
            name=name,
            extension=extension,
            data=encoded,
            width=transformed.width,
            height=transformed.height,
            source_width=source_width,
            source_height=source_height,
        )


def render_file(
    path: Union[str, Path],
    config: ProcessingConfig,
    transformer: Optional[ImageTransformService] = None,
) -> RenderedImage:
    """In-memory mode for a file on disk, e.g. for a preview renderer."""
    path = Path(path)
    transformer = transformer or ImageTransformService()
    extension = resolve_output_extension(path, config.encode_extension)
    return transformer.render(read_source(path), extension, config, name=path.name)


class LocalFileDiscoveryService(FileDiscoveryService):
    """Lists image files in a local directory by extension."""

    def __init__(self, logger: LoggerProtocol):
        self._logger = logger

    def discover_files(self, directory: Path, extensions: Iterable[str]) -> List[Path]:
        """
        List regular files whose trailing extension token is in ``extensions``.

        Matching is case-sensitive and non-recursive; results are sorted by name.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ConfigurationError(f"Input directory not found: {directory}")

        wanted = set(extensions)
        self._logger.debug(f"Discovering {'|'.join(sorted(wanted))} files in {directory}")

        files = sorted(
            path
            for path in directory.iterdir()
            if path.is_file()
            and "." in path.name
            and path.name.rsplit(".", 1)[1] in wanted
        )
        self._logger.info(f"Found {len(files)} image files in {directory}")
        return files


class ImageProcessingService(ProcessingService):
    """On-disk mode: runs one file through the pipeline and writes the output."""

    def __init__(
        self,
        transformer: ImageTransformService,
        logger: LoggerProtocol,
        metadata_propagator: Optional[MetadataPropagatorProtocol] = None,
    ):
        self._transformer = transformer
        self._logger = logger
        self._metadata_propagator = metadata_propagator

    def process_image(
        self, item: ImageItem, config: ProcessingConfig
    ) -> ProcessingResult:
        """Process a single image; every per-file error becomes a skipped result."""
        start_time = time.time()
        log_context = LogContext(
            correlation_id=f"img_{item.name}_{int(start_time * 1000)}",
            operation="process_image",
            component="image_processing_service",
        ).with_metadata(source=item.name, dest=item.dest_path.name)

        result = ProcessingResult(
            source_path=str(item.source_path), dest_path=str(item.dest_path)
        )

        try:
            if item.duplicate_of is not None:
                raise OutputCollisionError(
                    f"{item.dest_path.name} is already written from {item.duplicate_of.name}"
                )

            self._logger.debug("Decoding image", log_context.with_operation("decode"))
            image = decode_image(read_source(item.source_path))
            result.stage = PipelineStage.DECODED

            cropped = self._transformer.crop(image, config)
            result.stage = PipelineStage.CROPPED

            resized = self._transformer.resize(cropped, config)
            result.stage = PipelineStage.RESIZED

            settings = select_encoder(item.dest_path.suffix[1:], config.quality)
            encoded = self._transformer.encode(image, resized, settings, config)
            write_output(item.dest_path, encoded)
            result.stage = PipelineStage.ENCODED
            result.width, result.height = resized.size
            result.success = True

        except Exception as e:  # noqa: BLE001
            # Per-file boundary: nothing escapes to the batch
            self._fail(result, e, log_context)
            result.processing_time = time.time() - start_time
            return result

        self._copy_metadata(item, config, result, log_context)
        result.processing_time = time.time() - start_time

        self._logger.info(
            "Successfully processed image",
            log_context,
            size=f"{result.width}x{result.height}",
            processing_time_ms=round(result.processing_time * 1000, 1),
        )
        return result

    def _fail(
        self, result: ProcessingResult, error: Exception, log_context: LogContext
    ) -> None:
        failed_stage = result.stage
        result.stage = PipelineStage.FAILED
        result.success = False
        result.error = str(error)
        result.error_type = type(error).__name__
        self._logger.error(
            f"Skipping image after {failed_stage.value}: {result.error_type}",
            log_context.with_metadata(error=str(error)),
        )

    def _copy_metadata(
        self,
        item: ImageItem,
        config: ProcessingConfig,
        result: ProcessingResult,
        log_context: LogContext,
    ) -> None:
        if not config.copy_metadata or self._metadata_propagator is None:
            result.stage = PipelineStage.METADATA_SKIPPED
            return

        try:
            self._metadata_propagator.propagate(item.source_path, item.dest_path)
        except Exception as e:  # noqa: BLE001
            # The output file stays; only the metadata is missing
            result.metadata_error = str(e)
            self._logger.warning(
                "Metadata copy failed",
                log_context.with_operation("copy_metadata").with_metadata(error=str(e)),
            )
            return

        result.metadata_copied = True
        result.stage = PipelineStage.METADATA_COPIED


def _process_and_advance(
    service: ProcessingService,
    item: ImageItem,
    config: ProcessingConfig,
    progress: Optional[ProgressState],
    step: float,
) -> ProcessingResult:
    try:
        return service.process_image(item, config)
    finally:
        if progress is not None:
            progress.advance(step)


def _unexpected_failure(item: ImageItem, error: Exception) -> ProcessingResult:
    return ProcessingResult(
        source_path=str(item.source_path),
        dest_path=str(item.dest_path),
        stage=PipelineStage.FAILED,
        error=str(error),
        error_type=type(error).__name__,
    )


class SerialBatchProcessor(BatchProcessor):
    """Serial batch processor implementation."""

    def __init__(self, processing_service: ProcessingService, logger: LoggerProtocol):
        self._processing_service = processing_service
        self._logger = logger

    def process_batch(
        self,
        items: List[ImageItem],
        config: ProcessingConfig,
        progress: Optional[ProgressState] = None,
        step: float = 0.0,
    ) -> List[ProcessingResult]:
        """Process batch of images serially, in order."""
        results = []

        for item in items:
            try:
                result = _process_and_advance(
                    self._processing_service, item, config, progress, step
                )
            except Exception as e:  # noqa: BLE001
                self._logger.error(f"Unexpected failure for {item.name}: {e}")
                result = _unexpected_failure(item, e)
            results.append(result)

        return results


class ThreadedBatchProcessor(BatchProcessor):
    """Fans one chunk out over a thread pool and waits for all of it."""

    def __init__(self, processing_service: ProcessingService, logger: LoggerProtocol):
        self._processing_service = processing_service
        self._logger = logger

    def process_batch(
        self,
        items: List[ImageItem],
        config: ProcessingConfig,
        progress: Optional[ProgressState] = None,
        step: float = 0.0,
    ) -> List[ProcessingResult]:
        """
        Process a batch concurrently with ``config.concurrency`` threads at most.

        Results come back in completion order, not input order.
        """
        if not items:
            return []

        results: List[ProcessingResult] = []
        max_workers = min(config.concurrency, len(items))

        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="normalizer"
        ) as executor:
            future_to_item = {
                executor.submit(
                    _process_and_advance,
                    self._processing_service,
                    item,
                    config,
                    progress,
                    step,
                ): item
                for item in items
            }

            for future in as_completed(future_to_item):
                try:
                    results.append(future.result())
                except Exception as e:  # noqa: BLE001
                    item = future_to_item[future]
                    self._logger.error(f"Unexpected failure for {item.name}: {e}")
                    results.append(_unexpected_failure(item, e))

        return results


class WorkItemFactory:
    """Factory for creating work items."""

    @staticmethod
    def create_work_items(
        source_files: List[Path], config: ProcessingConfig
    ) -> List[ImageItem]:
        """
        Map each source to its output path.

        When two sources map to the same output, such as ``a.jpg`` and ``a.png``
        with an explicit ``png`` target, the first one keeps the path and the
        later ones are marked as duplicates to be skipped.
        """
        work_items = []
        claimed: Dict[Path, Path] = {}

        for source_path in source_files:
            extension = resolve_output_extension(source_path, config.encode_extension)
            dest_path = calculate_dest_path(source_path, config.output_dir, extension)
            work_items.append(
                ImageItem(
                    source_path=source_path,
                    dest_path=dest_path,
                    duplicate_of=claimed.get(dest_path),
                )
            )
            claimed.setdefault(dest_path, source_path)

        return work_items


class ProcessingOrchestrator:
    """Runs a whole directory: discovery, sequential chunks, progress, summary."""

    def __init__(
        self,
        file_discovery: FileDiscoveryService,
        batch_processor: BatchProcessor,
        logger: LoggerProtocol,
        progress: Optional[ProgressState] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._file_discovery = file_discovery
        self._batch_processor = batch_processor
        self._logger = logger
        self.progress = progress or ProgressState()
        self._metrics_collector = metrics_collector

    def process_all(self, config: ProcessingConfig) -> BatchSummary:
        """
        Process every discovered file and return the run summary.

        Chunk N+1 starts only after chunk N has finished. Progress ends at
        exactly 1.0 whatever the individual outcomes were.
        """
        start_time = time.time()
        self.progress.reset()

        source_files = self._file_discovery.discover_files(
            config.input_dir, config.decode_extensions
        )

        if not source_files:
            self._logger.info("No files found to process")
            self.progress.complete()
            return BatchSummary(progress=self.progress.value)

        try:
            Path(config.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create output directory {config.output_dir}: {e}"
            ) from e

        work_items = WorkItemFactory.create_work_items(source_files, config)
        step = 1.0 / len(work_items)
        num_batches = math.ceil(len(work_items) / config.batch_size)
        summary = BatchSummary(total_items=len(work_items))

        self._logger.info(
            f"Processing {len(work_items)} files in {num_batches} batches"
        )

        with BatchOperationContextManager(operation_name="Image normalization") as batch_manager:
            for batch_number, batch in enumerate(
                chunked(work_items, config.batch_size), start=1
            ):
                self._logger.info(
                    f"Processing batch {batch_number}/{num_batches} with {len(batch)} items"
                )
                batch_start_time = time.time()

                results = self._batch_processor.process_batch(
                    batch, config, self.progress, step
                )

                for result in results:
                    self._record(result)
                    if result.success:
                        summary.processed_count += 1
                        if result.metadata_error:
                            summary.metadata_failures += 1
                    else:
                        summary.skipped_count += 1
                        batch_manager.add_error(
                            result.error or "Unknown error",
                            item_identifier=result.name,
                            kind=result.error_type or "ImageProcessingError",
                        )

                log_batch_progress(
                    batch_number,
                    num_batches,
                    len(batch),
                    time.time() - batch_start_time,
                    self.progress.value,
                    summary.processed_count,
                    summary.skipped_count,
                )

            summary.errors_by_type = batch_manager.error_counts()

        self.progress.complete()
        summary.progress = self.progress.value
        summary.processing_time = time.time() - start_time

        metrics = (
            self._metrics_collector.get_summary("process_image")
            if self._metrics_collector
            else None
        )
        log_final_statistics(summary, metrics)
        return summary

    def _record(self, result: ProcessingResult) -> None:
        if self._metrics_collector is None:
            return
        self._metrics_collector.record_metric(
            PerformanceMetrics(
                operation="process_image",
                duration=result.processing_time,
                success=result.success,
                error_type=result.error_type or None,
            )
        )
