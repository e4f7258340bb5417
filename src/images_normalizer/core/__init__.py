"""Core utilities and shared components for the images normalizer."""

from .codec import (
    Codec,
    EncoderSettings,
    PngCompression,
    decode_image,
    encode_image,
    png_compression_for_quality,
    resolve_output_extension,
    select_encoder,
)
from .geometry import (
    bounded_resize,
    crop_box,
    crop_to_aspect,
    image_ratio,
    resize_dimensions,
    to_rgba_array,
)
from .logging_config import get_logger, set_debug_logging, setup_logger
from .exceptions import (
    ImagesNormalizerError,
    ConfigurationError,
    ImageProcessingError,
    DecodeError,
    UnsupportedFormatError,
    InvalidGeometryError,
    EncodeError,
    MetadataCopyError,
    FileIOError,
)
from .models import (
    BatchSummary,
    ImageItem,
    PipelineStage,
    ProcessingConfig,
    ProcessingResult,
    RenderedImage,
    build_config,
    parse_aspect_ratio,
)
from .progress import ProgressState

__all__ = [
    "Codec",
    "EncoderSettings",
    "PngCompression",
    "decode_image",
    "encode_image",
    "png_compression_for_quality",
    "resolve_output_extension",
    "select_encoder",
    "bounded_resize",
    "crop_box",
    "crop_to_aspect",
    "image_ratio",
    "resize_dimensions",
    "to_rgba_array",
    "setup_logger",
    "get_logger",
    "set_debug_logging",
    "ImagesNormalizerError",
    "ConfigurationError",
    "ImageProcessingError",
    "DecodeError",
    "UnsupportedFormatError",
    "InvalidGeometryError",
    "EncodeError",
    "MetadataCopyError",
    "FileIOError",
    "BatchSummary",
    "ImageItem",
    "PipelineStage",
    "ProcessingConfig",
    "ProcessingResult",
    "RenderedImage",
    "build_config",
    "parse_aspect_ratio",
    "ProgressState",
]
