"""Pedestrian detector capability and its constant mock variant."""
from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml

from ..config.settings import DetectionSettings
from ..models import Detection
from ..utils.images import ImageSource

LOGGER = logging.getLogger(__name__)


DEFAULT_MOCK_DETECTIONS: tuple[Detection, ...] = (
    Detection(bbox=(0.15, 0.2, 0.35, 0.65), confidence=0.92, class_name="person"),
    Detection(bbox=(0.45, 0.25, 0.63, 0.65), confidence=0.89, class_name="person"),
    Detection(bbox=(0.7, 0.3, 0.85, 0.65), confidence=0.84, class_name="person"),
)

MODEL_INFO: Dict[str, str] = {
    "architecture": "YOLOv8",
    "input_size": "640x640",
    "framework": "PyTorch",
    "dataset": "COCO + Custom",
    "parameters": "11.2M",
}


class PedestrianDetector(ABC):
    """Capability shared by every detector variant."""

    name: str = "detector"

    @abstractmethod
    def predict(self, image: ImageSource) -> List[Detection]:
        """Return normalized pedestrian detections for one image."""

    def describe(self) -> Dict[str, Any]:
        return {"variant": self.name}


def load_mock_detections(path: Path) -> List[Detection]:
    """Read canned detections from a YAML file with a top-level ``detections`` list."""

    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    raw_items = payload.get("detections", []) if isinstance(payload, dict) else []
    detections: List[Detection] = []
    for item in raw_items:
        if not isinstance(item, dict):
            continue
        detections.append(
            Detection(
                bbox=tuple(float(v) for v in item.get("bbox", ())),
                confidence=float(item.get("confidence", 0.0)),
                class_name=str(item.get("class", "person")),
            )
        )
    LOGGER.info("Loaded %d mock detections from %s", len(detections), path)
    return detections


class MockPedestrianDetector(PedestrianDetector):
    """Returns the same detections for every image after an artificial delay."""

    name = "constant_mock"

    def __init__(
        self,
        detections: Optional[Sequence[Detection]] = None,
        delay_range: tuple[float, float] = (0.2, 0.5),
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._detections = tuple(detections) if detections is not None else DEFAULT_MOCK_DETECTIONS
        low, high = delay_range
        self.delay_range = (max(low, 0.0), max(high, low, 0.0))
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: DetectionSettings) -> "MockPedestrianDetector":
        detections = None
        if settings.mock_detections_path is not None:
            detections = load_mock_detections(settings.mock_detections_path)
        return cls(
            detections=detections,
            delay_range=(settings.mock_delay_min_seconds, settings.mock_delay_max_seconds),
        )

    def predict(self, image: ImageSource) -> List[Detection]:
        low, high = self.delay_range
        delay = low + self._rng.random() * (high - low)
        if delay > 0:
            self._sleep(delay)
        detections = list(self._detections)
        LOGGER.debug("Mock detector returned %d detections after %.3fs", len(detections), delay)
        return detections

    def describe(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {"variant": self.name}
        info.update(MODEL_INFO)
        return info
