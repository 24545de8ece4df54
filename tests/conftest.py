"""Pytest configuration and fixtures."""

import numpy as np
import pytest
from PIL import Image


def make_rgba(h: int, w: int, color=(255, 255, 255), alpha: int = 255) -> np.ndarray:
    """Uniform RGBA image."""
    image = np.zeros((h, w, 4), dtype=np.uint8)
    image[..., :3] = color
    image[..., 3] = alpha
    return image


@pytest.fixture
def two_color_image():
    """4x8 image: red left half, blue right half."""
    image = make_rgba(4, 8, (0, 0, 255))
    image[:, :4, :3] = (255, 0, 0)
    return image


@pytest.fixture
def stripes_image():
    """3x9 image of three vertical stripes of distinct colors."""
    image = make_rgba(3, 9, (200, 40, 40))
    image[:, :3, :3] = (40, 40, 200)
    image[:, 3:6, :3] = (40, 200, 40)
    return image


@pytest.fixture
def half_transparent_image():
    """10x10 image: transparent left half, opaque red right half."""
    image = make_rgba(10, 10, (255, 0, 0))
    image[:, :5] = (0, 0, 0, 0)
    return image


@pytest.fixture
def png_file(tmp_path, half_transparent_image):
    """RGBA PNG on disk."""
    path = tmp_path / "input.png"
    Image.fromarray(half_transparent_image).save(path)
    return path
