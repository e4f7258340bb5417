"""Codec dispatch: decoding, output format selection and quality mapping."""

import io
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from PIL import Image, ImageSequence, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError, UnsupportedFormatError

ORIGINAL_EXTENSION = "original"

ADAPTIVE_FILTER = "adaptive"

_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}
_JPEG_MODES = {"L", "RGB", "CMYK"}


class Codec(Enum):
    """Closed set of output codecs, valued by Pillow format name."""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"

    @classmethod
    def from_extension(cls, extension: str) -> "Codec":
        """
        Convert an extension label (``"jpg"``, ``".PNG"``...) into a codec.

        Raises:
            UnsupportedFormatError: If no codec handles the label.
        """
        label = extension.strip().lstrip(".").lower()
        try:
            return _EXTENSION_TO_CODEC[label]
        except KeyError:
            raise UnsupportedFormatError(
                f"Unsupported output format: {extension!r}"
            ) from None


_EXTENSION_TO_CODEC = {
    "jpg": Codec.JPEG,
    "jpeg": Codec.JPEG,
    "png": Codec.PNG,
    "gif": Codec.GIF,
}


class PngCompression(Enum):
    """PNG compression effort tiers, valued by zlib level."""

    FAST = 1
    DEFAULT = 6
    BEST = 9


def png_compression_for_quality(quality: int) -> PngCompression:
    """Map a 0-100 quality setting to a PNG compression effort tier."""
    if 50 <= quality <= 79:
        return PngCompression.FAST
    if 80 <= quality <= 100:
        return PngCompression.BEST
    return PngCompression.DEFAULT


@dataclass(frozen=True)
class EncoderSettings:
    """
    Concrete encoder choice for one output file.

    ``png_filter`` is informational: it names the scanline filter strategy
    Pillow's PNG encoder applies by itself and is not passed to ``save()``.
    """

    codec: Codec
    extension: str
    save_options: Dict[str, Any] = field(default_factory=dict)
    png_compression: Optional[PngCompression] = None
    png_filter: Optional[str] = None


def select_encoder(extension: str, quality: int) -> EncoderSettings:
    """
    Select the encoder and compression parameter for an output extension.

    JPEG takes ``quality`` as its lossy quality factor. PNG turns it into a
    compression effort tier with adaptive filtering. GIF ignores it.

    Raises:
        UnsupportedFormatError: If the extension is not recognised.
    """
    codec = Codec.from_extension(extension)

    if codec is Codec.JPEG:
        return EncoderSettings(codec, extension, {"quality": quality})
    if codec is Codec.PNG:
        tier = png_compression_for_quality(quality)
        return EncoderSettings(
            codec,
            extension,
            {"compress_level": tier.value},
            png_compression=tier,
            png_filter=ADAPTIVE_FILTER,
        )
    return EncoderSettings(codec, extension)


def resolve_output_extension(
    source_path: Union[str, Path], encode_extension: str
) -> str:
    """Return the output extension for a file, honouring ``"original"``."""
    if encode_extension == ORIGINAL_EXTENSION:
        return Path(source_path).suffix[1:]
    return encode_extension


def decode_image(data: bytes) -> Image.Image:
    """
    Sniff the container and decode bytes into a loaded Pillow image.

    Raises:
        DecodeError: If the bytes are not a valid or supported image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    return image


def is_animated(image: Image.Image) -> bool:
    return bool(getattr(image, "is_animated", False))


def extract_frames(image: Image.Image) -> List[Image.Image]:
    """Copy every frame of a multi-frame image, keeping per-frame info."""
    return [frame.copy() for frame in ImageSequence.Iterator(image)]


def _prepare_mode(image: Image.Image, codec: Codec) -> Image.Image:
    if codec is Codec.JPEG and image.mode not in _JPEG_MODES:
        return image.convert("RGB")
    if codec is Codec.PNG and image.mode not in _PNG_MODES:
        return image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return image


def encode_image(image: Image.Image, settings: EncoderSettings) -> bytes:
    """
    Encode an image fully into memory, keeping its ICC profile for JPEG and PNG.

    Raises:
        EncodeError: If the encoder rejects the image.
    """
    buffer = io.BytesIO()
    try:
        prepared = _prepare_mode(image, settings.codec)
        options = dict(settings.save_options)
        icc_profile = image.info.get("icc_profile")
        if image.mode == "CMYK" and prepared.mode != "CMYK":
            # A CMYK profile does not describe the converted RGB pixels
            prepared.info.pop("icc_profile", None)
        elif icc_profile and settings.codec is not Codec.GIF:
            options["icc_profile"] = icc_profile
        prepared.save(buffer, format=settings.codec.value, **options)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(
            f"Cannot encode image as {settings.codec.value}: {exc}"
        ) from exc
    return buffer.getvalue()


def encode_frames(
    frames: Sequence[Image.Image],
    settings: EncoderSettings,
    durations: Optional[Sequence[int]] = None,
    loop: int = 0,
) -> bytes:
    """
    Re-multiplex already transformed frames into one animated file.

    Only GIF keeps every frame; other codecs encode the first frame.
    """
    if not frames:
        raise EncodeError("No frames to encode")
    if settings.codec is not Codec.GIF or len(frames) == 1:
        return encode_image(frames[0], settings)

    buffer = io.BytesIO()
    options: Dict[str, Any] = {"save_all": True, "append_images": list(frames[1:]), "loop": loop}
    if durations:
        options["duration"] = list(durations)
    try:
        frames[0].save(buffer, format=settings.codec.value, **options)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"Cannot encode animation: {exc}") from exc
    return buffer.getvalue()
