"""
Pytest fixtures for imgresizer tests.
"""

import io
import logging

import pytest
from PIL import Image

from imgresizer.errors import StorageError


def make_image_bytes(size=(800, 600), mode='RGB', color='red', fmt='JPEG') -> bytes:
    """Encode a solid-colour test image."""
    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class RecordingBackend:
    """In-memory storage backend that records every persist call."""

    def __init__(self, name='memory', fail=False, error=None, fail_on=None):
        self.name = name
        self.fail = fail
        self.error = error
        self.fail_on = fail_on
        self.calls = []

    async def persist(self, filename, data, content_type='application/octet-stream'):
        self.calls.append((filename, data, content_type))
        if self.error is not None:
            raise self.error
        if self.fail or (self.fail_on is not None and self.fail_on in filename):
            raise StorageError(f"Permission denied writing {filename}")
        return f"{self.name}://{filename}"


@pytest.fixture
def image_factory():
    """Fixture providing make_image_bytes for custom test images."""
    return make_image_bytes


@pytest.fixture
def backend_factory():
    """Fixture providing RecordingBackend for custom backends."""
    return RecordingBackend


@pytest.fixture
def sample_image_bytes():
    """Fixture providing an 800x600 JPEG."""
    return make_image_bytes()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing a 400x300 PNG with transparency."""
    return make_image_bytes(size=(400, 300), mode='RGBA', color=(255, 0, 0, 128), fmt='PNG')


@pytest.fixture
def small_image_bytes():
    """Fixture providing a 100x50 JPEG."""
    return make_image_bytes(size=(100, 50), color='blue')


@pytest.fixture
def overlay_png_bytes():
    """Fixture providing a small opaque green PNG overlay."""
    return make_image_bytes(size=(10, 10), mode='RGBA', color=(0, 255, 0, 255), fmt='PNG')


@pytest.fixture
def memory_backend():
    """Fixture providing a working in-memory backend."""
    return RecordingBackend('memory')


@pytest.fixture
def failing_backend():
    """Fixture providing a backend whose every persist fails."""
    return RecordingBackend('broken', fail=True)


@pytest.fixture
def cache_dir(tmp_path):
    """Fixture providing a cache directory path."""
    return str(tmp_path / 'cache')


@pytest.fixture
def variant_cache(cache_dir, logger):
    """Fixture providing an enabled VariantCache."""
    from imgresizer.variant_cache import VariantCache

    return VariantCache(cache_dir, enabled=True, logger=logger)


@pytest.fixture
def sizes():
    """Fixture providing the default size table."""
    from imgresizer.size_profile import build_size_table

    return build_size_table()


@pytest.fixture
def resizer(memory_backend, variant_cache, logger):
    """Fixture providing an ImageResizer with an in-memory backend and enabled cache."""
    from imgresizer.resizer import ImageResizer
    from imgresizer.resizer_config import ResizerConfig

    return ImageResizer(
        ResizerConfig(),
        backends=[memory_backend],
        cache=variant_cache,
        logger=logger,
    )


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    return logging.getLogger('test')
