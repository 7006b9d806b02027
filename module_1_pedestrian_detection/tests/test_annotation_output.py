from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

from module_1_pedestrian_detection.app import annotate
from module_1_pedestrian_detection.app.config.settings import DetectionSettings
from module_1_pedestrian_detection.app.services.detector import MockPedestrianDetector
from module_1_pedestrian_detection.app.services.output_writer import AnnotatedImageWriter


@pytest.fixture()
def image_path(tmp_path: Path) -> Path:
    path = tmp_path / "inputs" / "crossing.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(path), np.full((240, 320, 3), 200, dtype=np.uint8))
    return path


def test_writer_saves_annotated_jpeg(tmp_path: Path, image_path: Path) -> None:
    writer = AnnotatedImageWriter(tmp_path / "out")
    detections = MockPedestrianDetector(delay_range=(0.0, 0.0)).predict(image_path)

    target = writer.save(image_path, detections, "processed_crossing.jpg")

    assert target == tmp_path / "out" / "processed_crossing.jpg"
    saved = cv2.imread(str(target))
    assert saved.shape == (240, 320, 3)
    assert not list((tmp_path / "out").glob("*.tmp.jpg"))


def test_writer_skips_unreadable_images(tmp_path: Path) -> None:
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not really a jpeg")
    writer = AnnotatedImageWriter(tmp_path / "out")

    assert writer.save(broken, [], "processed_broken.jpg") is None
    assert not (tmp_path / "out" / "processed_broken.jpg").exists()


def test_writer_from_settings_uses_quality(tmp_path: Path) -> None:
    settings = DetectionSettings(annotated_jpeg_quality=55, overlay_line_thickness=4)

    writer = AnnotatedImageWriter.from_settings(tmp_path, settings)

    assert writer.jpeg_quality == 55
    assert writer.renderer.style.line_thickness == 4


def test_collect_images_filters_suffixes(tmp_path: Path, image_path: Path) -> None:
    (image_path.parent / "notes.txt").write_text("skip me")
    (image_path.parent / "second.JPG").write_bytes(b"")

    images = annotate.collect_images([str(image_path.parent)])

    assert [p.name for p in images] == ["crossing.png", "second.JPG"]


def test_annotate_images_writes_outputs(tmp_path: Path, image_path: Path) -> None:
    missing = tmp_path / "missing.png"
    writer = AnnotatedImageWriter(tmp_path / "out")
    detector = MockPedestrianDetector(delay_range=(0.0, 0.0))

    written = annotate.annotate_images([image_path, missing], detector, writer)

    assert written == 1
    assert (tmp_path / "out" / "annotated_crossing.jpg").exists()


def test_cli_main_exits_cleanly(tmp_path: Path, image_path: Path) -> None:
    out_dir = tmp_path / "cli-out"

    with pytest.raises(SystemExit) as excinfo:
        annotate.main([str(image_path), "--output-dir", str(out_dir), "--no-delay"])

    assert excinfo.value.code == 0
    assert (out_dir / "annotated_crossing.jpg").exists()
