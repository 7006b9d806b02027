"""Persist annotated images produced by the overlay renderer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..config.settings import DetectionSettings
from ..models import Detection
from ..utils.images import ImageSource, encode_jpeg
from .overlay_renderer import OverlayRenderer, OverlayStyle

LOGGER = logging.getLogger(__name__)


class AnnotatedImageWriter:
    """Render detections over an image and write the result as a JPEG."""

    def __init__(
        self,
        output_dir: Path,
        renderer: Optional[OverlayRenderer] = None,
        jpeg_quality: int = 90,
    ) -> None:
        self.output_dir = output_dir
        self.renderer = renderer or OverlayRenderer()
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_settings(cls, output_dir: Path, settings: DetectionSettings) -> "AnnotatedImageWriter":
        return cls(
            output_dir,
            renderer=OverlayRenderer(OverlayStyle.from_settings(settings)),
            jpeg_quality=settings.annotated_jpeg_quality,
        )

    def save(self, image: ImageSource, detections: Sequence[Detection], filename: str) -> Optional[Path]:
        """Write the annotated image under ``filename``; ``None`` if the image could not be loaded."""

        annotated = self.renderer.annotate(image, detections)
        if annotated is None:
            LOGGER.debug("Nothing rendered for %s", filename)
            return None
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / filename
        temp_path = target.with_name(f"{target.stem}.tmp{target.suffix}")
        temp_path.write_bytes(encode_jpeg(annotated, self.jpeg_quality))
        temp_path.replace(target)
        LOGGER.debug("Saved annotated image %s", target)
        return target
