# src/images_normalizer/core/error_handling.py

import functools
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List

from PIL import Image, UnidentifiedImageError

from .exceptions import (
    DecodeError,
    FileIOError,
    ImagesNormalizerError,
)


def with_error_handling(func):
    """
    A decorator to wrap functions with standardized error handling.

    Errors that are already part of the images normalizer taxonomy pass
    through untouched. Pillow identification failures become ``DecodeError``
    and remaining ``OSError`` instances become ``FileIOError``.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ImagesNormalizerError as e:
            logger.debug(f"Error in '{func.__name__}': {e}")
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, (UnidentifiedImageError, Image.DecompressionBombError)):
                raise DecodeError(f"Failed to identify image in {func.__name__}: {e}") from e
            if isinstance(e, OSError):
                raise FileIOError(f"I/O failure in {func.__name__}: {e}") from e
            raise
    return wrapper


@dataclass(frozen=True)
class SkippedItem:
    item: str
    error: str
    kind: str


class BatchOperationContextManager:
    """
    Collects the files skipped during a run and logs them when the block exits.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[SkippedItem] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif self.errors:
            total = len(self.errors)
            self.logger.warning(f"{self.operation_name} completed with {total} skipped item(s).")
            for index, skipped in enumerate(self.errors, start=1):
                self.logger.warning(
                    f"  Skipped {index}/{total} '{skipped.item}' [{skipped.kind}]: {skipped.error}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Exceptions that reached the block itself are never swallowed
        return False

    def add_error(self, error_message, item_identifier="Unknown item", kind="ImageProcessingError"):
        """
        Report a skipped file from within the ``with`` block.

        Args:
            error_message: The error message or exception.
            item_identifier: The file name of the item that failed.
            kind: The error class name, e.g. ``DecodeError``.
        """
        self.errors.append(SkippedItem(item_identifier, str(error_message), kind))
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")

    def error_counts(self) -> Dict[str, int]:
        """Number of skipped files per error kind."""
        return dict(Counter(skipped.kind for skipped in self.errors))
