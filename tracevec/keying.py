"""Transparency keying: replace transparent pixels with an unused solid color."""
import logging
from typing import Optional, Tuple

import numpy as np

from tracevec.types import NO_KEY, ImageArray, KeyColorExhaustedError

logger = logging.getLogger(__name__)

# Fraction of sampled boundary pixels that must be transparent before the
# whole image is keyed.
KEYING_THRESHOLD = 0.2

NUM_UNUSED_COLOR_ITERATIONS = 6

SPECIAL_COLORS = (
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (0, 255, 255),
    (255, 0, 255),
)


def should_key(image: ImageArray) -> bool:
    """
    Decide whether transparency keying is needed.

    Scans five rows (top, 1/4, 1/2, 3/4, bottom) and counts pixels with
    zero alpha. The threshold is ``width * 2 * KEYING_THRESHOLD`` regardless
    of how many rows are sampled.

    Args:
        image: (H, W, 4) RGBA array

    Returns:
        True once the running count of transparent pixels reaches the threshold
    """
    height, width = image.shape[:2]
    if width == 0 or height == 0:
        return False

    threshold = int(width * 2 * KEYING_THRESHOLD)
    rows = [0, height // 4, height // 2, 3 * height // 4, height - 1]

    if threshold == 0:
        # Reached as soon as the first pixel is scanned
        return True

    count = 0
    for y in rows:
        count += int(np.count_nonzero(image[y, :, 3] == 0))
        if count >= threshold:
            return True

    return False


def color_exists(image: ImageArray, color: Tuple[int, int, int]) -> bool:
    """Check whether any pixel has exactly this RGB value."""
    return bool(np.any(np.all(image[..., :3] == np.asarray(color, dtype=image.dtype), axis=-1)))


def find_unused_color(
    image: ImageArray,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[int, int, int]:
    """
    Find a color absent from the image to use as the key.

    Tries six saturated colors first, then six random ones drawn from rng.

    Args:
        image: (H, W, 3) or (H, W, 4) array
        rng: Random source for the random candidates

    Returns:
        RGB tuple not present in the image

    Raises:
        KeyColorExhaustedError: If all twelve candidates are in use
    """
    if rng is None:
        rng = np.random.default_rng()

    for color in SPECIAL_COLORS:
        if not color_exists(image, color):
            return color

    for _ in range(NUM_UNUSED_COLOR_ITERATIONS):
        color = tuple(int(c) for c in rng.integers(0, 256, size=3))
        if not color_exists(image, color):
            return color

    raise KeyColorExhaustedError("unable to find unused color in image to use as key")


def apply_keying(image: ImageArray, key_color: Tuple[int, int, int]) -> ImageArray:
    """
    Overwrite the color channels of every zero-alpha pixel with key_color.

    Alpha is left unchanged. The image is modified in place and returned.
    """
    transparent = image[..., 3] == 0
    image[transparent, :3] = key_color
    return image


def key_image(
    image: ImageArray,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[ImageArray, Tuple[int, int, int]]:
    """
    Run the full keying step.

    Returns:
        Tuple of (image, key_color). key_color is NO_KEY when keying was
        not triggered, in which case the image is untouched.

    Raises:
        KeyColorExhaustedError: If keying is needed but no color is free
    """
    if not should_key(image):
        logger.debug("Keying not required")
        return image, NO_KEY

    key_color = find_unused_color(image, rng)
    apply_keying(image, key_color)
    logger.info(f"Transparent pixels keyed with color {key_color}")
    return image, key_color
