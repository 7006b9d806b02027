"""Geometry helper utilities for normalized bounding boxes."""
from __future__ import annotations

from typing import Sequence

from ..models import PixelBox

BBox = Sequence[float]


def to_pixel_box(bbox: BBox, surface_width: int, surface_height: int) -> PixelBox:
    """Scale a normalized ``[x, y, w, h]`` box to the pixels of a surface."""

    x, y, width, height = bbox
    return PixelBox(
        x=int(round(x * surface_width)),
        y=int(round(y * surface_height)),
        width=int(round(width * surface_width)),
        height=int(round(height * surface_height)),
    )


def format_confidence(confidence: float) -> str:
    """Render a 0..1 confidence as a rounded percentage label."""

    # half-up: 0.125 -> "13%"
    return f"{int(confidence * 100 + 0.5)}%"
