"""Shared pytest fixtures."""

import pytest

from images_normalizer.core.logging_config import set_debug_logging
from images_normalizer.core.models import ProcessingConfig
from images_normalizer.testing.fakes import FakeLogger, setup_test_directory


@pytest.fixture(autouse=True)
def reset_debug_logging():
    """Keep --debug runs from leaking DEBUG level into other tests."""
    yield
    set_debug_logging(False)


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def image_dirs(tmp_path):
    """Input directory with sample images and a not yet created output directory."""
    return setup_test_directory(tmp_path)


@pytest.fixture
def config_for(image_dirs):
    """Build a config pointed at the sample directories."""
    input_dir, output_dir = image_dirs

    def _build(**overrides):
        values = {
            "input_dir": input_dir,
            "output_dir": output_dir,
            "copy_metadata": False,
            "concurrency": 4,
        }
        values.update(overrides)
        return ProcessingConfig(**values)

    return _build
