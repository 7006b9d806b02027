from datetime import datetime, timedelta
from statistics import fmean
from typing import Iterable, List

from module_2_results_dashboard.core.models import DetectionResult, SystemMetrics


class MetricsAggregator:
    """Derive system metrics from the complete set of stored results.

    Counters are always rebuilt from scratch; accuracy, precision and recall are
    carried over from the previous snapshot unchanged.
    """

    def __init__(
        self,
        high_risk_threshold: float = 0.9,
        recent_window: timedelta = timedelta(hours=24),
        default_avg_processing_time: float = 0.21,
    ) -> None:
        self.high_risk_threshold = high_risk_threshold
        self.recent_window = recent_window
        self.default_avg_processing_time = default_avg_processing_time

    def recompute(
        self,
        results: Iterable[DetectionResult],
        previous: SystemMetrics,
        now: datetime,
    ) -> SystemMetrics:
        items: List[DetectionResult] = list(results)
        recent_cutoff = now - self.recent_window
        avg_processing_time = (
            fmean(result.processing_time for result in items)
            if items
            else self.default_avg_processing_time
        )
        recent_detections = sum(
            result.total_pedestrians for result in items if result.created_at > recent_cutoff
        )
        high_risk_detections = sum(
            1
            for result in items
            for detection in result.detections
            if detection.confidence > self.high_risk_threshold
        )
        return previous.model_copy(
            update={
                "total_processed": len(items),
                "avg_processing_time": avg_processing_time,
                "recent_detections": recent_detections,
                "high_risk_detections": high_risk_detections,
                "updated_at": now,
            }
        )
