"""Integration tests for the complete pipeline."""

import io

import numpy as np
import piexif
import pytest
from PIL import Image

from images_normalizer.core.exceptions import ConfigurationError
from images_normalizer.core.factories import ProcessingPipelineFactory
from images_normalizer.core.geometry import to_rgba_array
from images_normalizer.core.models import ProcessingConfig
from images_normalizer.core.observability import MetricsCollector
from images_normalizer.core.progress import ProgressState
from images_normalizer.core.services import render_file
from images_normalizer.testing.fakes import (
    FakeLogger,
    create_test_image,
    write_test_image,
)


def _populate(directory, valid=9, corrupt=1):
    directory.mkdir(parents=True, exist_ok=True)
    for i in range(valid):
        fmt, ext = ("PNG", "png") if i % 3 == 0 else ("JPEG", "jpg")
        write_test_image(directory / f"img{i:02d}.{ext}", create_test_image(120 + i * 10, 90, format=fmt))
    for i in range(corrupt):
        write_test_image(directory / f"broken{i}.jpg", b"\xff\xd8 truncated nonsense")


class TestPipelineIntegration:
    """Integration tests for the complete processing pipeline."""

    def test_end_to_end_processing(self, config_for):
        """Every matching file is written with its original extension and format."""
        config = config_for()
        logger = FakeLogger()
        pipeline = ProcessingPipelineFactory.create_pipeline(config, logger=logger)

        summary = pipeline.process_all(config)

        assert summary.total_items == 4
        assert summary.processed_count == 4
        assert summary.skipped_count == 0
        assert summary.progress == 1.0

        names = sorted(p.name for p in config.output_dir.iterdir())
        assert names == ["graphic.png", "photo1.jpg", "photo2.jpeg", "photo3.jpg"]

        with Image.open(config.output_dir / "graphic.png") as png:
            assert png.format == "PNG"
            assert png.size == (125, 175)
        with Image.open(config.output_dir / "photo2.jpeg") as jpeg:
            assert jpeg.format == "JPEG"
            assert jpeg.size == (142, 200)

    def test_partial_failure_is_contained(self, tmp_path):
        """One corrupt file is skipped; the other nine are written."""
        _populate(tmp_path / "in")
        config = ProcessingConfig(
            input_dir=tmp_path / "in",
            output_dir=tmp_path / "out",
            batch_size=4,
            copy_metadata=False,
        )
        pipeline = ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger())

        summary = pipeline.process_all(config)

        assert summary.total_items == 10
        assert summary.processed_count == 9
        assert summary.skipped_count == 1
        assert summary.errors_by_type == {"DecodeError": 1}
        assert summary.progress == 1.0
        assert pipeline.progress.completed == 10
        assert len(list((tmp_path / "out").iterdir())) == 9
        assert not (tmp_path / "out" / "broken0.jpg").exists()

    def test_progress_completes_when_every_file_fails(self, tmp_path):
        _populate(tmp_path / "in", valid=0, corrupt=7)
        config = ProcessingConfig(
            input_dir=tmp_path / "in", output_dir=tmp_path / "out", batch_size=3, copy_metadata=False
        )

        summary = ProcessingPipelineFactory.create_pipeline(
            config, logger=FakeLogger()
        ).process_all(config)

        assert summary.skipped_count == 7
        assert summary.progress == 1.0

    @pytest.mark.parametrize("processor", ["serial", "multithread"])
    def test_processors_agree(self, tmp_path, processor):
        _populate(tmp_path / "in", valid=5, corrupt=2)
        config = ProcessingConfig(
            input_dir=tmp_path / "in",
            output_dir=tmp_path / "out",
            batch_size=3,
            copy_metadata=False,
            processor=processor,
        )

        summary = ProcessingPipelineFactory.create_pipeline(
            config, logger=FakeLogger()
        ).process_all(config)

        assert (summary.processed_count, summary.skipped_count) == (5, 2)

    def test_batches_run_in_sequence(self, tmp_path):
        _populate(tmp_path / "in", valid=5, corrupt=0)
        config = ProcessingConfig(
            input_dir=tmp_path / "in", output_dir=tmp_path / "out", batch_size=2, copy_metadata=False
        )
        logger = FakeLogger()

        ProcessingPipelineFactory.create_pipeline(config, logger=logger).process_all(config)

        batch_lines = [
            log["message"] for log in logger.get_logs("INFO")
            if log["message"].startswith("Processing batch")
        ]
        assert batch_lines == [
            "Processing batch 1/3 with 2 items",
            "Processing batch 2/3 with 2 items",
            "Processing batch 3/3 with 1 items",
        ]

    def test_progress_is_monotonic_and_complete(self, tmp_path):
        _populate(tmp_path / "in", valid=12, corrupt=3)
        config = ProcessingConfig(
            input_dir=tmp_path / "in",
            output_dir=tmp_path / "out",
            batch_size=5,
            concurrency=4,
            copy_metadata=False,
        )
        progress = ProgressState()
        seen = []
        progress.subscribe(seen.append)

        ProcessingPipelineFactory.create_pipeline(
            config, logger=FakeLogger(), progress=progress
        ).process_all(config)

        assert len(seen) == 16
        assert seen == sorted(seen)
        assert seen[-1] == 1.0

    def test_empty_input_completes(self, tmp_path):
        (tmp_path / "in").mkdir()
        config = ProcessingConfig(
            input_dir=tmp_path / "in", output_dir=tmp_path / "out", copy_metadata=False
        )
        pipeline = ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger())

        summary = pipeline.process_all(config)

        assert summary.total_items == 0
        assert summary.progress == 1.0

    def test_output_directory_is_created(self, tmp_path):
        _populate(tmp_path / "in", valid=1, corrupt=0)
        out = tmp_path / "nested" / "deeper" / "out"
        config = ProcessingConfig(input_dir=tmp_path / "in", output_dir=out, copy_metadata=False)

        ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger()).process_all(config)

        assert (out / "img00.png").exists()

    def test_explicit_format_renames_last_token(self, tmp_path):
        write_test_image(tmp_path / "in" / "a.b.jpeg", create_test_image(70, 70))
        write_test_image(tmp_path / "in" / "c.png", create_test_image(70, 70, format="PNG"))
        config = ProcessingConfig(
            input_dir=tmp_path / "in",
            output_dir=tmp_path / "out",
            encode_extension="jpg",
            copy_metadata=False,
        )

        ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger()).process_all(config)

        assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["a.b.jpg", "c.jpg"]
        with Image.open(tmp_path / "out" / "c.jpg") as converted:
            assert converted.format == "JPEG"

    @pytest.mark.parametrize("processor", ["serial", "multithread"])
    def test_colliding_outputs_write_one_file(self, tmp_path, processor):
        """a.jpg and a.png both target a.png; the first in order wins, the other is skipped."""
        write_test_image(tmp_path / "in" / "a.jpg", create_test_image(70, 70))
        write_test_image(tmp_path / "in" / "a.png", create_test_image(140, 140, format="PNG"))
        config = ProcessingConfig(
            input_dir=tmp_path / "in",
            output_dir=tmp_path / "out",
            encode_extension="png",
            copy_metadata=False,
            processor=processor,
        )

        summary = ProcessingPipelineFactory.create_pipeline(
            config, logger=FakeLogger()
        ).process_all(config)

        assert (summary.processed_count, summary.skipped_count) == (1, 1)
        assert summary.errors_by_type == {"OutputCollisionError": 1}
        assert summary.progress == 1.0
        assert [p.name for p in (tmp_path / "out").iterdir()] == ["a.png"]
        with Image.open(tmp_path / "out" / "a.png") as written:
            assert written.size == (50, 70)

    def test_disk_output_matches_in_memory_render(self, config_for):
        """On-disk and in-memory modes produce the same pixels."""
        config = config_for(aspect_ratio="1/1", max_width=100)
        ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger()).process_all(config)

        for name in ("graphic.png", "photo2.jpeg"):
            rendered = render_file(config.input_dir / name, config)
            with Image.open(config.output_dir / name) as on_disk:
                disk_pixels = to_rgba_array(on_disk)
            memory_pixels = to_rgba_array(Image.open(io.BytesIO(rendered.data)))

            assert disk_pixels.shape == (100, 100, 4)
            assert np.array_equal(disk_pixels, memory_pixels)

    def test_metadata_failures_are_not_fatal(self, config_for):
        """Sources without EXIF still produce output; only metadata is missing."""
        config = config_for(copy_metadata=True, metadata_tool="piexif")
        metrics = MetricsCollector()

        summary = ProcessingPipelineFactory.create_pipeline(
            config, logger=FakeLogger(), metrics_collector=metrics
        ).process_all(config)

        assert summary.processed_count == 4
        # photo1.jpg is the only source carrying EXIF
        assert summary.metadata_failures == 3
        assert metrics.get_summary("process_image")["total_operations"] == 4

        exif = piexif.load(str(config.output_dir / "photo1.jpg"))
        assert exif["0th"][piexif.ImageIFD.ImageDescription] == b"photo one"
        assert exif["Exif"][piexif.ExifIFD.PixelXDimension] == 107
        assert exif["Exif"][piexif.ExifIFD.PixelYDimension] == 150

    def test_missing_input_directory(self, tmp_path):
        config = ProcessingConfig(
            input_dir=tmp_path / "missing", output_dir=tmp_path / "out", copy_metadata=False
        )
        pipeline = ProcessingPipelineFactory.create_pipeline(config, logger=FakeLogger())

        with pytest.raises(ConfigurationError):
            pipeline.process_all(config)
