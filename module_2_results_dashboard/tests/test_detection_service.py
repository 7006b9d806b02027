from pathlib import Path
from unittest.mock import MagicMock

import cv2
import numpy as np
import pytest

from module_1_pedestrian_detection.app.services.detector import MockPedestrianDetector
from module_1_pedestrian_detection.app.services.output_writer import AnnotatedImageWriter
from module_2_results_dashboard.adapters.upload_storage import UploadStorage, UploadValidationError
from module_2_results_dashboard.core.result_store import InMemoryResultStore
from module_2_results_dashboard.services.detection_service import (
    DetectionProcessingError,
    DetectionService,
)


def encode_png(height: int = 60, width: int = 90) -> bytes:
    success, encoded = cv2.imencode(".png", np.full((height, width, 3), 128, dtype=np.uint8))
    assert success
    return encoded.tobytes()


@pytest.fixture()
def store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture()
def service(tmp_path: Path, store: InMemoryResultStore) -> DetectionService:
    upload_dir = tmp_path / "uploads"
    return DetectionService(
        store,
        MockPedestrianDetector(delay_range=(0.0, 0.0)),
        UploadStorage(upload_dir),
        AnnotatedImageWriter(upload_dir),
    )


def test_process_upload_stores_result_and_processed_image(service: DetectionService, store: InMemoryResultStore) -> None:
    result = service.process_upload("crossing.png", "image/png", encode_png())

    assert result.filename == "crossing.png"
    assert result.original_url.startswith("/uploads/")
    assert result.total_pedestrians == 3
    assert len(result.detections) == 3
    assert result.processing_time >= 0
    assert store.get_by_id(result.id) == result

    processed_name = result.processed_url.rsplit("/", 1)[-1]
    processed = cv2.imread(str(service.uploads.upload_dir / processed_name))
    assert processed.shape == (60, 90, 3)

    metrics = store.get_metrics()
    assert metrics.total_processed == 1
    assert metrics.high_risk_detections == 1
    assert metrics.recent_detections == 3


def test_process_upload_without_renderable_image_has_no_processed_url(service: DetectionService) -> None:
    result = service.process_upload("garbled.png", "image/png", b"definitely not png data")

    assert result.processed_url is None
    assert result.total_pedestrians == 3


def test_process_upload_without_writer(tmp_path: Path, store: InMemoryResultStore) -> None:
    service = DetectionService(
        store,
        MockPedestrianDetector(delay_range=(0.0, 0.0)),
        UploadStorage(tmp_path),
    )

    result = service.process_upload("crossing.png", "image/png", encode_png())

    assert result.processed_url is None


def test_process_upload_rejects_invalid_files(service: DetectionService, store: InMemoryResultStore) -> None:
    with pytest.raises(UploadValidationError):
        service.process_upload("notes.txt", "text/plain", b"hello")

    assert store.list_all() == []


def test_process_upload_wraps_detector_failures(tmp_path: Path, store: InMemoryResultStore) -> None:
    detector = MagicMock()
    detector.predict.side_effect = RuntimeError("model exploded")
    service = DetectionService(store, detector, UploadStorage(tmp_path))

    with pytest.raises(DetectionProcessingError):
        service.process_upload("crossing.png", "image/png", encode_png())

    assert store.list_all() == []
    assert store.get_metrics().total_processed == 0


def test_model_info_reports_detector(service: DetectionService) -> None:
    assert service.model_info()["variant"] == "constant_mock"
