import logging
import time
from typing import Any, Dict, Optional

from module_1_pedestrian_detection.app.services.detector import PedestrianDetector
from module_1_pedestrian_detection.app.services.output_writer import AnnotatedImageWriter
from module_2_results_dashboard.adapters.upload_storage import UploadStorage
from module_2_results_dashboard.core.models import DetectionResult, DetectionResultCreate
from module_2_results_dashboard.core.result_store import ResultRepository


logger = logging.getLogger(__name__)


class DetectionProcessingError(RuntimeError):
    """Raised when an accepted upload could not be turned into a detection result."""


class DetectionService:
    """Coordinate upload storage, detection, overlay rendering, and the result store."""

    def __init__(
        self,
        store: ResultRepository,
        detector: PedestrianDetector,
        uploads: UploadStorage,
        writer: Optional[AnnotatedImageWriter] = None,
    ) -> None:
        self.store = store
        self.detector = detector
        self.uploads = uploads
        self.writer = writer

    def process_upload(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        payload: bytes,
    ) -> DetectionResult:
        stored = self.uploads.save(filename, content_type, payload)
        try:
            started = time.perf_counter()
            detections = self.detector.predict(stored.path)
            processing_time = time.perf_counter() - started

            processed_url: Optional[str] = None
            if self.writer is not None:
                processed_name = f"processed_{stored.path.stem}.jpg"
                if self.writer.save(stored.path, detections, processed_name) is not None:
                    processed_url = self.uploads.url_for(processed_name)

            result = self.store.create(
                DetectionResultCreate(
                    filename=stored.original_filename,
                    original_url=stored.url,
                    processed_url=processed_url,
                    detections=detections,
                    processing_time=processing_time,
                    total_pedestrians=len(detections),
                )
            )
        except Exception as exc:
            logger.exception("Detection failed for %s", stored.original_filename)
            raise DetectionProcessingError("Failed to process image") from exc

        logger.info(
            "Processed %s | pedestrians=%d | processing_time=%.2fs | id=%s",
            result.filename,
            result.total_pedestrians,
            result.processing_time,
            result.id,
        )
        return result

    def model_info(self) -> Dict[str, Any]:
        return self.detector.describe()
