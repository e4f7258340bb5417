"""Testing utilities and fakes for the images normalizer."""

from .fakes import (
    FakeLogger,
    FakeMetadataPropagator,
    create_animated_gif,
    create_test_image,
    make_test_exif,
    setup_test_directory,
    write_test_image,
)

__all__ = [
    "FakeLogger",
    "FakeMetadataPropagator",
    "create_animated_gif",
    "create_test_image",
    "make_test_exif",
    "setup_test_directory",
    "write_test_image",
]
