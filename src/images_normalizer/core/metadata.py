"""Metadata propagation from a source image to its transformed output."""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

import piexif
from PIL import Image

from .exceptions import ConfigurationError, MetadataCopyError
from .logging_config import get_logger

PathLike = Union[str, Path]

# Dimension tags describe the source pixels and must not reach the output
EXIFTOOL_DIMENSION_TAGS = (
    "ImageWidth",
    "ImageHeight",
    "ExifImageWidth",
    "ExifImageHeight",
    "RelatedImageWidth",
    "RelatedImageHeight",
)


class ExiftoolMetadataPropagator:
    """Copy EXIF, IPTC and XMP tags with the external ``exiftool`` program."""

    def __init__(self, executable: Optional[str] = None, timeout: Optional[float] = None):
        self._executable = executable or shutil.which("exiftool") or "exiftool"
        # No timeout unless the caller chooses one
        self._timeout = timeout
        self._logger = get_logger("metadata")

    def build_command(self, source_path: PathLike, target_path: PathLike) -> List[str]:
        command = [
            self._executable,
            "-overwrite_original",
            "-TagsFromFile",
            str(source_path),
            "-all:all",
            "-unsafe",
        ]
        command.extend(f"--{tag}" for tag in EXIFTOOL_DIMENSION_TAGS)
        command.append(str(target_path))
        return command

    def propagate(self, source_path: PathLike, target_path: PathLike) -> None:
        command = self.build_command(source_path, target_path)
        self._logger.debug(f"Running {' '.join(command)}")
        try:
            subprocess.run(
                command,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            raise MetadataCopyError(f"exiftool not found: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode(errors="replace").strip() if exc.stderr else ""
            raise MetadataCopyError(
                f"exiftool failed for {Path(target_path).name}: {stderr or exc}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise MetadataCopyError(
                f"exiftool timed out after {exc.timeout}s for {Path(target_path).name}"
            ) from exc


class PiexifMetadataPropagator:
    """
    Copy EXIF tags in-process with ``piexif``.

    Only JPEG targets can receive EXIF this way. Width and length tags are
    dropped, the pixel dimension tags are recomputed from the written file and
    the stale thumbnail is removed.
    """

    def __init__(self) -> None:
        self._logger = get_logger("metadata")

    def propagate(self, source_path: PathLike, target_path: PathLike) -> None:
        try:
            exif_dict = piexif.load(str(source_path))
        except Exception as exc:  # noqa: BLE001
            raise MetadataCopyError(
                f"No readable EXIF in {Path(source_path).name}: {exc}"
            ) from exc

        if not any(exif_dict.get(ifd) for ifd in ("0th", "Exif", "GPS", "Interop")):
            raise MetadataCopyError(f"No EXIF metadata in {Path(source_path).name}")

        try:
            with Image.open(target_path) as target:
                width, height = target.size
        except OSError as exc:
            raise MetadataCopyError(f"Cannot read output {target_path}: {exc}") from exc

        exif_dict.setdefault("0th", {}).pop(piexif.ImageIFD.ImageWidth, None)
        exif_dict["0th"].pop(piexif.ImageIFD.ImageLength, None)
        exif_dict.setdefault("Exif", {})[piexif.ExifIFD.PixelXDimension] = width
        exif_dict["Exif"][piexif.ExifIFD.PixelYDimension] = height
        exif_dict["1st"] = {}
        exif_dict["thumbnail"] = None

        try:
            piexif.insert(piexif.dump(exif_dict), str(target_path))
        except Exception as exc:  # noqa: BLE001
            raise MetadataCopyError(
                f"Cannot write EXIF into {Path(target_path).name}: {exc}"
            ) from exc
        self._logger.debug(f"Copied EXIF {Path(source_path).name} -> {Path(target_path).name}")


def create_metadata_propagator(tool: str = "auto"):
    """
    Build the metadata propagator for ``tool``.

    ``"auto"`` prefers exiftool when it is on ``PATH`` since it also carries
    IPTC and XMP, and falls back to piexif.
    """
    if tool == "exiftool":
        return ExiftoolMetadataPropagator()
    if tool == "piexif":
        return PiexifMetadataPropagator()
    if tool == "auto":
        if shutil.which("exiftool"):
            return ExiftoolMetadataPropagator()
        get_logger("metadata").info(
            "exiftool not found on PATH, copying EXIF only with piexif"
        )
        return PiexifMetadataPropagator()
    raise ConfigurationError(f"Unknown metadata tool: {tool!r}")
