"""Tests for fake implementations to ensure they work correctly."""

import io

import piexif
import pytest
from PIL import Image

from images_normalizer.core.exceptions import MetadataCopyError
from images_normalizer.core.observability import LogContext
from images_normalizer.testing.fakes import (
    FakeLogger,
    FakeMetadataPropagator,
    create_animated_gif,
    create_test_image,
    make_test_exif,
    setup_test_directory,
)


class TestFakeLogger:
    """Tests for FakeLogger."""

    def test_logging_levels(self):
        logger = FakeLogger()

        logger.debug("Debug message")
        logger.info("Info message", extra_field="value")
        logger.warning("Warning message")
        logger.error("Error message")

        logs = logger.get_logs()
        assert [log["level"] for log in logs] == ["DEBUG", "INFO", "WARNING", "ERROR"]
        assert logs[1]["extra_field"] == "value"

    def test_context_fields_are_flattened(self):
        logger = FakeLogger()
        context = LogContext(correlation_id="abc", operation="decode").with_metadata(source="a.jpg")

        logger.info("Decoding", context)

        log = logger.get_logs()[0]
        assert log["correlation_id"] == "abc"
        assert log["operation"] == "decode"
        assert log["source"] == "a.jpg"

    def test_filter_and_clear(self):
        logger = FakeLogger()
        logger.info("one")
        logger.error("two")

        assert [log["message"] for log in logger.get_logs("ERROR")] == ["two"]
        logger.clear_logs()
        assert logger.get_logs() == []

    def test_failure_mode(self):
        logger = FakeLogger()
        logger.should_fail = True

        with pytest.raises(Exception, match="Simulated logging failure"):
            logger.info("Test message")


class TestFakeMetadataPropagator:
    def test_records_calls(self):
        propagator = FakeMetadataPropagator()
        propagator.propagate("in/a.jpg", "out/a.jpg")
        assert [(str(s), str(t)) for s, t in propagator.calls] == [("in/a.jpg", "out/a.jpg")]

    def test_failure_mode(self):
        propagator = FakeMetadataPropagator()
        propagator.set_failure_mode(True, "no tags")

        with pytest.raises(MetadataCopyError, match="no tags"):
            propagator.propagate("a.jpg", "b.jpg")
        assert len(propagator.calls) == 1


class TestImageFixtures:
    @pytest.mark.parametrize("fmt", ["JPEG", "PNG", "GIF"])
    def test_create_test_image(self, fmt):
        image = Image.open(io.BytesIO(create_test_image(64, 48, format=fmt)))
        assert image.format == fmt
        assert image.size == (64, 48)

    def test_create_test_image_with_exif(self):
        data = create_test_image(40, 30, exif=make_test_exif("hello", 40, 30))
        exif = piexif.load(data)
        assert exif["0th"][piexif.ImageIFD.ImageDescription] == b"hello"

    def test_create_animated_gif(self):
        image = Image.open(io.BytesIO(create_animated_gif(frames=4)))
        assert image.n_frames == 4

    def test_setup_test_directory(self, tmp_path):
        input_dir, output_dir = setup_test_directory(tmp_path)

        assert sorted(p.name for p in input_dir.iterdir()) == [
            "graphic.png",
            "photo1.jpg",
            "photo2.jpeg",
            "photo3.jpg",
            "readme.txt",
            "upper.JPG",
        ]
        assert not output_dir.exists()
