from pathlib import Path

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from module_1_pedestrian_detection.app.services.detector import MockPedestrianDetector
from module_2_results_dashboard.app.main import create_app
from module_2_results_dashboard.app.settings import AppSettings


def encode_jpeg() -> bytes:
    success, encoded = cv2.imencode(".jpg", np.full((100, 200, 3), 90, dtype=np.uint8))
    assert success
    return encoded.tobytes()


@pytest.fixture()
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(upload_dir=tmp_path / "uploads", max_upload_bytes=64 * 1024)


@pytest.fixture()
def client(settings: AppSettings):
    app = create_app(settings, detector=MockPedestrianDetector(delay_range=(0.0, 0.0)))
    with TestClient(app) as test_client:
        yield test_client


def upload(client: TestClient, name: str = "street.jpg", path: str = "/detect"):
    return client.post(path, files={"image": (name, encode_jpeg(), "image/jpeg")})


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_defaults(client: TestClient) -> None:
    response = client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["accuracy"] == 94.2
    assert body["precision"] == 91.8
    assert body["recall"] == 89.5
    assert body["avgProcessingTime"] == 0.21
    assert body["totalProcessed"] == 0
    assert "updatedAt" in body and "id" in body


def test_detect_flow(client: TestClient) -> None:
    response = upload(client)

    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == "street.jpg"
    assert body["totalPedestrians"] == 3
    assert body["originalUrl"].startswith("/uploads/")
    assert body["processedUrl"].startswith("/uploads/processed_")
    assert body["detections"][0] == {"bbox": [0.15, 0.2, 0.35, 0.65], "confidence": 0.92, "class": "person"}
    assert "createdAt" in body and "processingTime" in body

    fetched = client.get(f"/detections/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == body

    metrics = client.get("/metrics").json()
    assert metrics["totalProcessed"] == 1
    assert metrics["highRiskDetections"] == 1
    assert metrics["recentDetections"] == 3


def test_detections_listed_newest_first(client: TestClient) -> None:
    first = upload(client, "first.jpg").json()
    second = upload(client, "second.jpg").json()

    response = client.get("/detections")

    assert response.status_code == 200
    ids = [item["id"] for item in response.json()]
    assert set(ids) == {first["id"], second["id"]}
    created = [item["createdAt"] for item in response.json()]
    assert created == sorted(created, reverse=True)


def test_unknown_detection_returns_404(client: TestClient) -> None:
    response = client.get("/detections/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Detection result not found"


def test_routes_available_under_api_prefix(client: TestClient) -> None:
    created = upload(client, path="/api/detect")

    assert created.status_code == 200
    assert client.get("/api/detections").json()[0]["id"] == created.json()["id"]
    assert client.get("/api/metrics").json()["totalProcessed"] == 1


def test_detect_without_file_is_client_error(client: TestClient) -> None:
    response = client.post("/detect")

    assert response.status_code == 400
    assert response.json()["detail"] == "No image file provided"


def test_detect_rejects_wrong_type(client: TestClient) -> None:
    response = client.post("/detect", files={"image": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    assert response.json()["detail"] == "Only image files are allowed"
    assert client.get("/detections").json() == []


def test_detect_rejects_oversized_upload(client: TestClient) -> None:
    payload = b"\xff" * (64 * 1024 + 10)

    response = client.post("/detect", files={"image": ("big.jpg", payload, "image/jpeg")})

    assert response.status_code == 400
    assert "upload limit" in response.json()["detail"]


def test_uploads_served_with_open_cors(client: TestClient) -> None:
    body = upload(client).json()

    response = client.get(body["originalUrl"])

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.content == encode_jpeg()
    assert client.get(body["processedUrl"]).status_code == 200


def test_metrics_override_and_reset(client: TestClient) -> None:
    upload(client)

    response = client.put(
        "/metrics",
        json={
            "accuracy": 97.0,
            "precision": 96.0,
            "recall": 95.0,
            "avgProcessingTime": 0.5,
            "totalProcessed": 42,
            "highRiskDetections": 4,
            "recentDetections": 8,
        },
    )
    assert response.status_code == 200
    assert response.json()["totalProcessed"] == 42

    refreshed = client.get("/metrics").json()
    assert refreshed["accuracy"] == 97.0
    assert refreshed["totalProcessed"] == 1

    reset = client.post("/detections/reset")
    assert reset.status_code == 204
    assert client.get("/detections").json() == []
    assert client.get("/metrics").json()["totalProcessed"] == 0


def test_model_info(client: TestClient) -> None:
    response = client.get("/model")

    assert response.status_code == 200
    assert response.json()["architecture"] == "YOLOv8"


class FailingDetector(MockPedestrianDetector):
    def predict(self, image):
        raise RuntimeError("inference backend unavailable")


def test_detect_reports_processing_failure(settings: AppSettings) -> None:
    app = create_app(settings, detector=FailingDetector(delay_range=(0.0, 0.0)))

    with TestClient(app) as failing_client:
        response = upload(failing_client)

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to process image"}
        assert failing_client.get("/detections").json() == []
