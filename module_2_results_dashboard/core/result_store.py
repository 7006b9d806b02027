import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from module_2_results_dashboard.core.metrics import MetricsAggregator
from module_2_results_dashboard.core.models import (
    DetectionResult,
    DetectionResultCreate,
    SystemMetrics,
    SystemMetricsUpdate,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


DEFAULT_METRICS = SystemMetricsUpdate(
    accuracy=94.2,
    precision=91.8,
    recall=89.5,
    avg_processing_time=0.21,
    total_processed=0,
    high_risk_detections=0,
    recent_detections=0,
)


class ResultRepository(ABC):
    """Storage contract for detection results and the system metrics singleton."""

    @abstractmethod
    def create(self, payload: DetectionResultCreate) -> DetectionResult:
        ...

    @abstractmethod
    def get_by_id(self, result_id: str) -> Optional[DetectionResult]:
        ...

    @abstractmethod
    def list_all(self) -> List[DetectionResult]:
        ...

    @abstractmethod
    def get_metrics(self) -> SystemMetrics:
        ...

    @abstractmethod
    def set_metrics(self, payload: SystemMetricsUpdate) -> SystemMetrics:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemoryResultStore(ResultRepository):
    """Keep detection results in process memory and recompute metrics on every call."""

    def __init__(
        self,
        aggregator: Optional[MetricsAggregator] = None,
        seed_metrics: SystemMetricsUpdate = DEFAULT_METRICS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.aggregator = aggregator or MetricsAggregator()
        self._seed_metrics = seed_metrics
        self._clock = clock
        self._lock = threading.Lock()
        self._results: Dict[str, DetectionResult] = {}
        self._metrics = self._seeded_metrics()

    def create(self, payload: DetectionResultCreate) -> DetectionResult:
        with self._lock:
            result = DetectionResult(
                id=str(uuid.uuid4()),
                filename=payload.filename,
                original_url=payload.original_url,
                processed_url=payload.processed_url or None,
                detections=tuple(payload.detections or ()),
                processing_time=payload.processing_time,
                total_pedestrians=payload.total_pedestrians or 0,
                created_at=self._clock(),
            )
            self._results[result.id] = result
            self._refresh_metrics()
            return result

    def get_by_id(self, result_id: str) -> Optional[DetectionResult]:
        with self._lock:
            return self._results.get(result_id)

    def list_all(self) -> List[DetectionResult]:
        with self._lock:
            # dict preserves insertion order, so equal timestamps keep it too
            return sorted(self._results.values(), key=lambda item: item.created_at, reverse=True)

    def get_metrics(self) -> SystemMetrics:
        with self._lock:
            self._refresh_metrics()
            return self._metrics

    def set_metrics(self, payload: SystemMetricsUpdate) -> SystemMetrics:
        with self._lock:
            self._metrics = SystemMetrics(
                id=self._metrics.id,
                updated_at=self._clock(),
                **payload.model_dump(),
            )
            return self._metrics

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
            self._metrics = self._seeded_metrics()

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def _seeded_metrics(self) -> SystemMetrics:
        return SystemMetrics(
            id=str(uuid.uuid4()),
            updated_at=self._clock(),
            **self._seed_metrics.model_dump(),
        )

    def _refresh_metrics(self) -> None:
        self._metrics = self.aggregator.recompute(self._results.values(), self._metrics, self._clock())
