"""Factory classes for creating configured service instances."""

import logging
from typing import Any, Optional

from .logging_config import get_logger
from .metadata import create_metadata_propagator
from .models import ProcessingConfig
from .observability import LogContext, MetricsCollector
from .progress import ProgressState
from .protocols import LoggerProtocol, MetadataPropagatorProtocol
from .services import (
    ImageProcessingService,
    ImageTransformService,
    LocalFileDiscoveryService,
    ProcessingOrchestrator,
    SerialBatchProcessor,
    ThreadedBatchProcessor,
)


class LoggerAdapter:
    """Adapter to make standard logger compatible with LoggerProtocol."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format(self, message: str, context: Any, **kwargs: Any) -> str:
        if isinstance(context, LogContext):
            return context.format(message, **kwargs)
        if kwargs:
            extra = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            return f"{message} ({extra})"
        return message

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self._format(message, context, **kwargs))

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.info(self._format(message, context, **kwargs))

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, context, **kwargs))

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.error(self._format(message, context, **kwargs))


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "pipeline") -> LoggerProtocol:
        """Create a configured logger wrapped for LoggerProtocol."""
        return LoggerAdapter(get_logger(name))


class ProcessingPipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def create_pipeline(
        config: ProcessingConfig,
        logger: Optional[LoggerProtocol] = None,
        metadata_propagator: Optional[MetadataPropagatorProtocol] = None,
        progress: Optional[ProgressState] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ProcessingOrchestrator:
        """
        Create a fully configured processing pipeline for ``config``.

        The metadata propagator is only built when metadata copying is
        enabled, so a missing exiftool never matters for ``--no-metadata`` runs.
        """
        if logger is None:
            logger = LoggerFactory.create_logger()

        if metadata_propagator is None and config.copy_metadata:
            metadata_propagator = create_metadata_propagator(config.metadata_tool)

        transformer = ImageTransformService()
        processing_service = ImageProcessingService(
            transformer, logger, metadata_propagator
        )

        if config.processor == "serial":
            batch_processor = SerialBatchProcessor(processing_service, logger)
        else:
            batch_processor = ThreadedBatchProcessor(processing_service, logger)

        return ProcessingOrchestrator(
            file_discovery=LocalFileDiscoveryService(logger),
            batch_processor=batch_processor,
            logger=logger,
            progress=progress,
            metrics_collector=metrics_collector or MetricsCollector(),
        )
