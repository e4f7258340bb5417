"""Shared data models for the images normalizer."""

from enum import Enum
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .codec import ORIGINAL_EXTENSION, Codec
from .exceptions import ConfigurationError, UnsupportedFormatError

DEFAULT_EXTENSIONS = ("gif", "jpg", "jpeg", "png")


def parse_aspect_ratio(value: Any) -> Fraction:
    """
    Parse an aspect ratio into an exact positive ``Fraction``.

    Accepts ``Fraction`` and ``int`` values, floats (taken by their decimal
    representation, so ``0.7`` is ``7/10``) and strings such as ``"5/7"``,
    ``"16:9"`` or ``"1.5"``.

    Raises:
        ValueError: If the value cannot be parsed or is not positive.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid aspect ratio: {value!r}")
    try:
        if isinstance(value, Fraction):
            ratio = value
        elif isinstance(value, int):
            ratio = Fraction(value)
        elif isinstance(value, float):
            ratio = Fraction(repr(value))
        elif isinstance(value, str):
            ratio = Fraction(value.strip().replace(":", "/"))
        else:
            raise ValueError(f"Invalid aspect ratio: {value!r}")
    except ZeroDivisionError as exc:
        raise ValueError(f"Invalid aspect ratio: {value!r}") from exc
    except ValueError as exc:
        raise ValueError(f"Invalid aspect ratio: {value!r}") from exc

    if ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {value!r}")
    return ratio


class PipelineStage(str, Enum):
    """Last state a file reached in the transform pipeline."""

    DISCOVERED = "discovered"
    DECODED = "decoded"
    CROPPED = "cropped"
    RESIZED = "resized"
    ENCODED = "encoded"
    METADATA_COPIED = "metadata_copied"
    METADATA_SKIPPED = "metadata_skipped"
    FAILED = "failed"


class ProcessingConfig(BaseModel):
    """Configuration for the processing job. Immutable once built."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    aspect_ratio: Fraction = Fraction(5, 7)
    batch_size: int = Field(default=100, ge=1)
    decode_extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    encode_extension: str = ORIGINAL_EXTENSION
    max_width: int = Field(default=1500, ge=1)
    quality: int = Field(default=95, ge=0, le=100)
    input_dir: Path = Path("./input/")
    output_dir: Path = Path("./output/")
    crop: bool = True
    resize: bool = True
    copy_metadata: bool = True
    metadata_tool: Literal["auto", "exiftool", "piexif"] = "auto"
    concurrency: int = Field(default=8, ge=1)
    processor: Literal["multithread", "serial"] = "multithread"
    debug: bool = False

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _parse_aspect_ratio(cls, value: Any) -> Fraction:
        return parse_aspect_ratio(value)

    @field_validator("decode_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = value.split("|")
        extensions = tuple(ext.strip().lstrip(".") for ext in value if ext.strip())
        if not extensions:
            raise ValueError("At least one input extension is required")
        return extensions

    @field_validator("encode_extension")
    @classmethod
    def _check_encode_extension(cls, value: str) -> str:
        value = value.strip().lstrip(".")
        if value.lower() == ORIGINAL_EXTENSION:
            return ORIGINAL_EXTENSION
        try:
            Codec.from_extension(value)
        except UnsupportedFormatError as exc:
            raise ValueError(str(exc)) from exc
        return value


def build_config(**values: Any) -> ProcessingConfig:
    """
    Build a ``ProcessingConfig``, reporting problems as ``ConfigurationError``.

    Unset or ``None`` values fall back to the model defaults.
    """
    try:
        return ProcessingConfig(
            **{key: value for key, value in values.items() if value is not None}
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


class ImageItem(BaseModel):
    """Represents an image to be processed."""

    source_path: Path
    dest_path: Path
    # Earlier source that already maps to dest_path, if any
    duplicate_of: Optional[Path] = None

    @property
    def name(self) -> str:
        return self.source_path.name


class ProcessingResult(BaseModel):
    """Result of processing a single image in on-disk mode."""

    source_path: str
    dest_path: str = ""
    success: bool = False
    stage: PipelineStage = PipelineStage.DISCOVERED
    error: str = ""
    error_type: str = ""
    metadata_copied: bool = False
    metadata_error: str = ""
    width: int = 0
    height: int = 0
    processing_time: float = 0.0

    @property
    def name(self) -> str:
        return Path(self.source_path).name


class RenderedImage(BaseModel):
    """Result of processing a single image in in-memory mode."""

    name: str
    extension: str
    data: bytes
    width: int
    height: int
    source_width: int
    source_height: int


class BatchSummary(BaseModel):
    """Aggregated outcome of one batch run."""

    total_items: int = 0
    processed_count: int = 0
    skipped_count: int = 0
    metadata_failures: int = 0
    errors_by_type: Dict[str, int] = Field(default_factory=dict)
    processing_time: float = 0.0
    progress: float = 0.0
