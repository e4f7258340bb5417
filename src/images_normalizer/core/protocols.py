"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol, Union

from .models import ImageItem, ProcessingConfig, ProcessingResult
from .progress import ProgressState


class MetadataPropagatorProtocol(Protocol):
    """Copies descriptive tags from a source image to its output."""

    def propagate(
        self, source_path: Union[str, Path], target_path: Union[str, Path]
    ) -> None:
        """Copy all tags except width and height; raise MetadataCopyError on failure."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        ...


class FileDiscoveryService(ABC):
    """Abstract service for discovering files to process."""

    @abstractmethod
    def discover_files(self, directory: Path, extensions: Iterable[str]) -> List[Path]:
        """Discover files to process, in a stable order."""
        ...


class ProcessingService(ABC):
    """Abstract service for processing images."""

    @abstractmethod
    def process_image(
        self, item: ImageItem, config: ProcessingConfig
    ) -> ProcessingResult:
        """Process a single image. Never raises for per-file failures."""
        ...


class BatchProcessor(ABC):
    """Abstract batch processor: runs one chunk to completion."""

    @abstractmethod
    def process_batch(
        self,
        items: List[ImageItem],
        config: ProcessingConfig,
        progress: Optional[ProgressState] = None,
        step: float = 0.0,
    ) -> List[ProcessingResult]:
        """Process a batch of images, advancing ``progress`` by ``step`` per file."""
        ...
