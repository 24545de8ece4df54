"""Tests for transparency keying."""

import numpy as np
import pytest

from tracevec.keying import (
    SPECIAL_COLORS,
    apply_keying,
    color_exists,
    find_unused_color,
    key_image,
    should_key,
)
from tracevec.types import NO_KEY, KeyColorExhaustedError


def opaque(h, w, color=(10, 20, 30)):
    image = np.zeros((h, w, 4), dtype=np.uint8)
    image[..., :3] = color
    image[..., 3] = 255
    return image


class TestShouldKey:
    """Test cases for the keying decision."""

    def test_opaque_image(self):
        """Fully opaque images are never keyed."""
        assert not should_key(opaque(10, 10))

    def test_threshold_reached(self):
        """Width 10 gives a threshold of 4 transparent pixels."""
        image = opaque(10, 10)
        image[0, :4, 3] = 0
        assert should_key(image)

    def test_threshold_not_reached(self):
        """One pixel below the threshold does not trigger keying."""
        image = opaque(10, 10)
        image[0, :3, 3] = 0
        assert not should_key(image)

    def test_counts_accumulate_across_rows(self):
        """Transparent pixels from different sampled rows add up."""
        image = opaque(10, 10)
        image[0, :2, 3] = 0
        image[9, :2, 3] = 0
        assert should_key(image)

    def test_unsampled_rows_ignored(self):
        """Only rows 0, h/4, h/2, 3h/4 and h-1 are scanned."""
        image = opaque(10, 10)
        image[1, :, 3] = 0
        assert not should_key(image)

    def test_threshold_uses_width_times_two(self):
        """The threshold is width * 2 * 0.2 even though five rows are sampled."""
        image = opaque(100, 100)
        # 40 of 500 sampled pixels is 8%, still enough
        image[0, :40, 3] = 0
        assert should_key(image)

        image[0, 39, 3] = 255
        assert not should_key(image)

    def test_tiny_width_keys_immediately(self):
        """A zero threshold is reached as soon as scanning starts."""
        assert should_key(opaque(3, 2))

    def test_empty_image(self):
        """Zero-sized images are not keyed."""
        assert not should_key(np.zeros((0, 0, 4), dtype=np.uint8))


class TestFindUnusedColor:
    """Test cases for key color search."""

    def test_first_special_color(self):
        """Red is chosen when absent."""
        assert find_unused_color(opaque(4, 4)) == (255, 0, 0)

    def test_skips_present_colors(self):
        """Colors present in the image are skipped."""
        image = opaque(4, 4)
        image[0, 0, :3] = (255, 0, 0)
        image[0, 1, :3] = (0, 255, 0)
        assert find_unused_color(image) == (0, 0, 255)

    def test_result_is_absent(self):
        """Returned color never occurs in the image."""
        image = opaque(6, 6)
        for i, color in enumerate(SPECIAL_COLORS):
            image[0, i, :3] = color
        color = find_unused_color(image, np.random.default_rng(7))
        assert not color_exists(image, color)

    def test_exhausted(self):
        """All twelve candidates present raises KeyColorExhaustedError."""
        reference = np.random.default_rng(123)
        randoms = [tuple(int(c) for c in reference.integers(0, 256, size=3)) for _ in range(6)]

        image = opaque(2, 12)
        for i, color in enumerate(list(SPECIAL_COLORS) + randoms):
            image[i // 12, i % 12, :3] = color

        with pytest.raises(KeyColorExhaustedError, match="unable to find unused color"):
            find_unused_color(image, np.random.default_rng(123))


class TestApplyKeying:
    """Test cases for key application."""

    def test_only_transparent_pixels_replaced(self, half_transparent_image):
        """Transparent pixels get the key color and keep alpha 0."""
        image = apply_keying(half_transparent_image, (0, 255, 0))

        assert np.all(image[:, :5, :3] == (0, 255, 0))
        assert np.all(image[:, :5, 3] == 0)
        assert np.all(image[:, 5:, :3] == (255, 0, 0))

    def test_key_image_not_triggered(self):
        """Without enough transparency the image is returned untouched."""
        image = opaque(8, 8)
        before = image.copy()

        result, key = key_image(image)

        assert key == NO_KEY
        np.testing.assert_array_equal(result, before)

    def test_key_image_triggered(self, half_transparent_image):
        """Keying picks a color absent from the opaque content."""
        image, key = key_image(half_transparent_image, np.random.default_rng(0))

        assert key == (0, 255, 0)
        assert np.all(image[:, :5, :3] == key)
