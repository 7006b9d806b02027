from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from module_1_pedestrian_detection.app.models import Detection


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DetectionResultCreate(_CamelModel):
    filename: str
    original_url: str
    processed_url: Optional[str] = None
    detections: Optional[List[Detection]] = None
    processing_time: float = Field(ge=0.0)
    total_pedestrians: Optional[int] = Field(default=None, ge=0)


class DetectionResult(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    filename: str
    original_url: str
    processed_url: Optional[str] = None
    detections: Tuple[Detection, ...] = ()
    processing_time: float
    total_pedestrians: int = 0
    created_at: datetime


class SystemMetricsUpdate(_CamelModel):
    accuracy: float
    precision: float
    recall: float
    avg_processing_time: float = Field(ge=0.0)
    total_processed: int = Field(ge=0)
    high_risk_detections: int = Field(ge=0)
    recent_detections: int = Field(ge=0)


class SystemMetrics(SystemMetricsUpdate):
    model_config = ConfigDict(frozen=True)

    id: str
    updated_at: datetime
