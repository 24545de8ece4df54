"""Raster image ingestion for color and segmentation inputs."""
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from tracevec.types import ImageArray, InputError


def read_color_image(path: Union[str, Path]) -> ImageArray:
    """
    Load an image file as an RGBA array.

    Args:
        path: Path to image file

    Returns:
        (H, W, 4) uint8 array

    Raises:
        InputError: If the file is missing or cannot be decoded
    """
    path = Path(path)

    if not path.is_file():
        raise InputError(f"No image file found at {path}")

    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as e:
        raise InputError(f"Failed to decode image {path}: {e}") from e


def read_seg_image(path: Union[str, Path]) -> ImageArray:
    """
    Load a segmentation label image as a single-channel array.

    Args:
        path: Path to image file holding one label byte per pixel

    Returns:
        (H, W) uint8 label array

    Raises:
        InputError: If the file is missing or cannot be decoded
    """
    path = Path(path)

    if not path.is_file():
        raise InputError(f"No image file found at {path}")

    labels = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if labels is None:
        raise InputError(f"Failed to decode segmentation image {path}")

    return labels


def color_image_from_array(image: np.ndarray) -> ImageArray:
    """
    Validate and normalize an in-memory color image.

    Grayscale input is expanded to RGB and RGB input gets an opaque alpha
    channel. The result is always a fresh copy owned by the caller.

    Args:
        image: (H, W), (H, W, 3) or (H, W, 4) array with values 0-255

    Returns:
        (H, W, 4) uint8 array

    Raises:
        InputError: If the channel layout is not supported
    """
    image = np.asarray(image)

    if image.ndim == 2:
        image = np.stack([image] * 3, axis=-1)

    if image.ndim != 3:
        raise InputError(f"Expected 2D or 3D array, got {image.ndim}D")

    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        image = np.concatenate([image.astype(np.uint8), alpha], axis=2)
    elif image.shape[2] != 4:
        raise InputError(f"Expected 3 or 4 channels, got {image.shape[2]}")

    return np.array(image, dtype=np.uint8, copy=True)


def seg_image_from_array(labels: np.ndarray) -> ImageArray:
    """
    Validate an in-memory label image.

    Raises:
        InputError: If the array is not single-channel
    """
    labels = np.asarray(labels)

    if labels.ndim == 3 and labels.shape[2] == 1:
        labels = labels[..., 0]

    if labels.ndim != 2:
        raise InputError(
            f"Segmentation input must be single-channel, got shape {labels.shape}"
        )

    return np.array(labels, copy=True)
