"""Image loading utilities for the overlay renderer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)

ImageSource = Union[np.ndarray, str, Path, bytes, bytearray, memoryview, None]


def decode_image(payload: Union[bytes, bytearray, memoryview]) -> Optional[np.ndarray]:
    """Decode an encoded image buffer into a BGR array, or ``None`` if it is not an image."""

    buffer = np.frombuffer(payload, dtype=np.uint8)
    if buffer.size == 0:
        return None
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        LOGGER.debug("Buffer of %d bytes could not be decoded", buffer.size)
    return image


def read_image(path: Union[str, Path]) -> Optional[np.ndarray]:
    """Read an image file from disk, returning ``None`` when it is missing or unreadable."""

    path = Path(path)
    if not path.is_file():
        LOGGER.debug("Image %s does not exist", path)
        return None
    # cv2.imread does not accept non-ASCII paths on every platform
    return decode_image(path.read_bytes())


def load_image(source: ImageSource) -> Optional[np.ndarray]:
    """Resolve any supported image source to a loaded BGR array."""

    if source is None:
        return None
    if isinstance(source, np.ndarray):
        image = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        image = decode_image(source)
    else:
        image = read_image(source)
    if image is None or image.size == 0 or image.ndim < 2:
        return None
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def natural_size(image: np.ndarray) -> tuple[int, int]:
    """Return ``(width, height)`` of a loaded image."""

    height, width = image.shape[:2]
    return int(width), int(height)


def encode_jpeg(image: np.ndarray, quality: int = 90) -> bytes:
    success, encoded = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not success:
        raise RuntimeError("Unable to encode image as JPEG")
    return encoded.tobytes()
