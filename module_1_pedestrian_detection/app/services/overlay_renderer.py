"""Draw detection boxes and confidence labels over images with OpenCV.

Bounding boxes arrive normalized to ``[x, y, width, height]`` fractions of the
image.  The drawing surface is always sized to the image's natural resolution,
so the same overlay lines up with the image however it is later displayed.

Every render is a full clear-and-redraw.  When the image cannot be loaded the
renderer does nothing and returns ``None``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..config.settings import DetectionSettings
from ..models import Detection, PixelBox
from ..utils.geometry import format_confidence, to_pixel_box
from ..utils.images import ImageSource, load_image, natural_size

LOGGER = logging.getLogger(__name__)

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class OverlayStyle:
    box_color: Color = (153, 211, 54)
    text_color: Color = (26, 19, 15)
    line_thickness: int = 2
    font_scale: float = 0.4
    label_width: int = 60
    label_height: int = 20
    label_margin: int = 2
    label_gap: int = 2
    text_inset_x: int = 4
    text_baseline_offset: int = 8

    @classmethod
    def from_settings(cls, settings: DetectionSettings) -> "OverlayStyle":
        return cls(
            box_color=tuple(settings.overlay_color_bgr),
            text_color=tuple(settings.overlay_text_color_bgr),
            line_thickness=settings.overlay_line_thickness,
            font_scale=settings.overlay_font_scale,
            label_width=settings.label_width,
            label_height=settings.label_height,
        )


class OverlayRenderer:
    """Render normalized detections onto a surface matching the image size."""

    def __init__(self, style: Optional[OverlayStyle] = None) -> None:
        self.style = style or OverlayStyle()

    def draw(self, surface: np.ndarray, detections: Sequence[Detection]) -> List[PixelBox]:
        """Clear ``surface`` in place and draw every detection on it."""

        surface[...] = 0
        height, width = surface.shape[:2]
        channels = surface.shape[2] if surface.ndim == 3 else 1
        box_color = self._paint(self.style.box_color, channels)
        text_color = self._paint(self.style.text_color, channels)
        boxes: List[PixelBox] = []
        for detection in detections:
            box = to_pixel_box(detection.bbox, width, height)
            self._draw_box(surface, box, box_color)
            self._draw_label(surface, box, format_confidence(detection.confidence), box_color, text_color)
            boxes.append(box)
        return boxes

    def render_overlay(self, image: ImageSource, detections: Sequence[Detection]) -> Optional[np.ndarray]:
        """Return a transparent BGRA layer with the annotations, sized to the image."""

        loaded = load_image(image)
        if loaded is None:
            LOGGER.debug("Image not available, skipping overlay render")
            return None
        width, height = natural_size(loaded)
        surface = np.zeros((height, width, 4), dtype=np.uint8)
        self.draw(surface, detections)
        return surface

    def annotate(self, image: ImageSource, detections: Sequence[Detection]) -> Optional[np.ndarray]:
        """Return a copy of the image with the overlay composited on top."""

        loaded = load_image(image)
        if loaded is None:
            LOGGER.debug("Image not available, skipping annotation")
            return None
        overlay = self.render_overlay(loaded, detections)
        annotated = loaded.copy()
        mask = overlay[..., 3] > 0
        annotated[mask] = overlay[..., :3][mask]
        return annotated

    def _draw_box(self, surface: np.ndarray, box: PixelBox, color: tuple) -> None:
        cv2.rectangle(surface, (box.x, box.y), box.bottom_right, color, self.style.line_thickness)

    def _draw_label(
        self,
        surface: np.ndarray,
        box: PixelBox,
        text: str,
        background: tuple,
        foreground: tuple,
    ) -> None:
        style = self.style
        # label sits above the box's top-left corner
        left = box.x - style.label_margin
        top = box.y - style.label_height - style.label_gap
        cv2.rectangle(
            surface,
            (left, top),
            (left + style.label_width - 1, top + style.label_height - 1),
            background,
            cv2.FILLED,
        )
        cv2.putText(
            surface,
            text,
            (box.x + style.text_inset_x, box.y - style.text_baseline_offset),
            cv2.FONT_HERSHEY_SIMPLEX,
            style.font_scale,
            foreground,
            1,
            cv2.LINE_AA,
        )

    @staticmethod
    def _paint(color: Color, channels: int) -> tuple:
        if channels == 4:
            return (int(color[0]), int(color[1]), int(color[2]), 255)
        if channels == 1:
            return (int(max(color)),)
        return (int(color[0]), int(color[1]), int(color[2]))


class DetectionCanvas:
    """Keep an overlay surface in sync with the most recently supplied result."""

    def __init__(self, renderer: Optional[OverlayRenderer] = None) -> None:
        self.renderer = renderer or OverlayRenderer()
        self.surface: Optional[np.ndarray] = None
        self.boxes: List[PixelBox] = []
        self._drawn_key: Optional[Hashable] = None

    def update(self, result_id: str, image: ImageSource, detections: Sequence[Detection]) -> bool:
        """Redraw when the result or image changed; return True if the surface was redrawn."""

        loaded = load_image(image)
        if loaded is None:
            LOGGER.debug("Image for result %s not loaded yet", result_id)
            return False
        width, height = natural_size(loaded)
        key = (result_id, (width, height), tuple(detections))
        if self.surface is not None and key == self._drawn_key:
            return False
        if self.surface is None or self.surface.shape[:2] != (height, width):
            self.surface = np.zeros((height, width, 4), dtype=np.uint8)
        self.boxes = self.renderer.draw(self.surface, detections)
        self._drawn_key = key
        return True

    def composite(self, image: ImageSource) -> Optional[np.ndarray]:
        """Blend the current surface over ``image`` if both are available and aligned."""

        loaded = load_image(image)
        if loaded is None or self.surface is None:
            return None
        if natural_size(loaded) != (self.surface.shape[1], self.surface.shape[0]):
            return None
        annotated = loaded.copy()
        mask = self.surface[..., 3] > 0
        annotated[mask] = self.surface[..., :3][mask]
        return annotated
