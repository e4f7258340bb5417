"""Custom exceptions for the images normalizer."""

from __future__ import annotations


class ImagesNormalizerError(Exception):
    """Base exception for all images normalizer errors."""


class ConfigurationError(ImagesNormalizerError):
    """Error raised for invalid configuration options. Fatal at startup."""


class ImageProcessingError(ImagesNormalizerError):
    """Error raised when processing a single image fails."""


class DecodeError(ImageProcessingError):
    """Source bytes are not a valid or supported image."""


class UnsupportedFormatError(ImageProcessingError):
    """Target extension is not recognised by codec dispatch."""


class InvalidGeometryError(ImageProcessingError):
    """Crop or resize arithmetic would produce a zero dimension."""


class EncodeError(ImageProcessingError):
    """The encoder rejected the transformed image."""


class MetadataCopyError(ImageProcessingError):
    """Metadata could not be carried from the source to the output."""


class FileIOError(ImageProcessingError):
    """Source could not be read or destination could not be written."""


class OutputCollisionError(ImageProcessingError):
    """Another source in the run already writes the same output file."""
