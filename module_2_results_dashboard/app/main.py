import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from module_1_pedestrian_detection.app.config.settings import DetectionSettings
from module_1_pedestrian_detection.app.services.detector import MockPedestrianDetector, PedestrianDetector
from module_1_pedestrian_detection.app.services.output_writer import AnnotatedImageWriter
from module_2_results_dashboard.adapters.upload_storage import UploadStorage, UploadValidationError
from module_2_results_dashboard.app.settings import AppSettings, get_settings
from module_2_results_dashboard.core.metrics import MetricsAggregator
from module_2_results_dashboard.core.models import DetectionResult, SystemMetrics, SystemMetricsUpdate
from module_2_results_dashboard.core.result_store import InMemoryResultStore, ResultRepository
from module_2_results_dashboard.services.detection_service import (
    DetectionProcessingError,
    DetectionService,
)


logger = logging.getLogger(__name__)

router = APIRouter()


def build_store(settings: AppSettings) -> InMemoryResultStore:
    aggregator = MetricsAggregator(
        high_risk_threshold=settings.high_risk_threshold,
        recent_window=timedelta(hours=settings.recent_window_hours),
        default_avg_processing_time=settings.default_avg_processing_time,
    )
    seed = SystemMetricsUpdate(
        accuracy=settings.seed_accuracy,
        precision=settings.seed_precision,
        recall=settings.seed_recall,
        avg_processing_time=settings.default_avg_processing_time,
        total_processed=0,
        high_risk_detections=0,
        recent_detections=0,
    )
    return InMemoryResultStore(aggregator, seed_metrics=seed)


def build_service(
    settings: AppSettings,
    store: ResultRepository,
    detector: Optional[PedestrianDetector] = None,
    detection_settings: Optional[DetectionSettings] = None,
) -> DetectionService:
    detection_settings = detection_settings or DetectionSettings()
    uploads = UploadStorage(
        settings.upload_dir,
        url_prefix=settings.uploads_url_path,
        max_bytes=settings.max_upload_bytes,
        allowed_extensions=settings.allowed_extensions,
    )
    writer = None
    if settings.render_processed_images:
        writer = AnnotatedImageWriter.from_settings(settings.upload_dir, detection_settings)
    return DetectionService(
        store,
        detector or MockPedestrianDetector.from_settings(detection_settings),
        uploads,
        writer,
    )


def get_store(request: Request) -> ResultRepository:
    return request.app.state.store


def get_service(request: Request) -> DetectionService:
    return request.app.state.detection_service


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", response_model=SystemMetrics)
def read_metrics(store: ResultRepository = Depends(get_store)) -> SystemMetrics:
    return store.get_metrics()


@router.put("/metrics", response_model=SystemMetrics)
def override_metrics(
    payload: SystemMetricsUpdate,
    store: ResultRepository = Depends(get_store),
) -> SystemMetrics:
    metrics = store.set_metrics(payload)
    logger.info("System metrics overridden by administrator")
    return metrics


@router.get("/detections", response_model=List[DetectionResult])
def list_detections(store: ResultRepository = Depends(get_store)) -> List[DetectionResult]:
    return store.list_all()


@router.post("/detections/reset", status_code=204)
def reset_detections(store: ResultRepository = Depends(get_store)) -> None:
    store.clear()
    logger.info("Cleared stored detection results")


@router.get("/detections/{result_id}", response_model=DetectionResult)
def read_detection(result_id: str, store: ResultRepository = Depends(get_store)) -> DetectionResult:
    result = store.get_by_id(result_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Detection result not found")
    return result


@router.post("/detect", response_model=DetectionResult)
async def detect(
    image: Optional[UploadFile] = File(None),
    service: DetectionService = Depends(get_service),
) -> DetectionResult:
    if image is None:
        raise HTTPException(status_code=400, detail="No image file provided")
    # one byte past the limit is enough to reject oversized uploads
    payload = await image.read(service.uploads.max_bytes + 1)
    try:
        return await run_in_threadpool(
            service.process_upload, image.filename, image.content_type, payload
        )
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DetectionProcessingError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        await image.close()


@router.get("/model")
def model_info(service: DetectionService = Depends(get_service)) -> Dict[str, Any]:
    return service.model_info()


@asynccontextmanager
async def lifespan(app: FastAPI):
    upload_dir = app.state.settings.upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Serving uploads from %s", upload_dir)
    yield


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    store: Optional[ResultRepository] = None,
    detector: Optional[PedestrianDetector] = None,
    detection_settings: Optional[DetectionSettings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if store is None:
        store = build_store(settings)

    app = FastAPI(title="PedDetect Results Dashboard", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.detection_service = build_service(settings, store, detector, detection_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    uploads_path = app.state.detection_service.uploads.url_prefix

    @app.middleware("http")
    async def open_upload_access(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(uploads_path + "/"):
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    app.include_router(router)
    # the dashboard client calls the same routes under /api
    app.include_router(router, prefix="/api")
    app.mount(
        uploads_path,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    return app


# Exported application instance for uvicorn
app = create_app()
