"""Entry point for annotating local images with pedestrian detections."""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional

from .config.settings import DetectionSettings, load_settings
from .services.detector import MockPedestrianDetector, PedestrianDetector
from .services.output_writer import AnnotatedImageWriter

LOGGER = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp"}


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Module 1 - Pedestrian Detection (image annotation)")
    parser.add_argument("images", nargs="+", help="Image files or directories to annotate")
    parser.add_argument("--output-dir", type=str, default="annotated", help="Directory for annotated copies")
    parser.add_argument("--mock-detections", type=str, default=None, help="YAML file with canned detections")
    parser.add_argument("--no-delay", action="store_true", help="Skip the simulated inference delay")
    parser.add_argument("--font-scale", type=float, default=None, help="Confidence label font scale")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    return parser


def setup_logging(log_format: str = "text", level: int = logging.INFO) -> None:
    if log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=[handler])


def resolve_settings(args: argparse.Namespace) -> DetectionSettings:
    overrides = {}
    if args.mock_detections:
        overrides["mock_detections_path"] = Path(args.mock_detections)
    if args.no_delay:
        overrides["mock_delay_min_seconds"] = 0.0
        overrides["mock_delay_max_seconds"] = 0.0
    if args.font_scale is not None:
        overrides["overlay_font_scale"] = args.font_scale
    if args.log_format:
        overrides["log_format"] = args.log_format
    return load_settings(**overrides)


def collect_images(inputs: Iterable[str]) -> List[Path]:
    images: List[Path] = []
    for raw in inputs:
        path = Path(raw).expanduser()
        if path.is_dir():
            images.extend(sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES))
        elif path.suffix.lower() in IMAGE_SUFFIXES:
            images.append(path)
        else:
            LOGGER.warning("Skipping %s: not an image file", path)
    return images


def annotate_images(
    images: Iterable[Path],
    detector: PedestrianDetector,
    writer: AnnotatedImageWriter,
) -> int:
    """Annotate each image and return how many annotated copies were written."""

    written = 0
    for image_path in images:
        started = time.perf_counter()
        detections = detector.predict(image_path)
        elapsed = time.perf_counter() - started
        target = writer.save(image_path, detections, f"annotated_{image_path.stem}.jpg")
        if target is None:
            LOGGER.warning("Could not read %s, no annotation written", image_path)
            continue
        written += 1
        LOGGER.info(
            "%s | pedestrians=%d | processing_time=%.2fs | output=%s",
            image_path.name,
            len(detections),
            elapsed,
            target,
        )
    return written


def run_annotation(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings.log_format)

    images = collect_images(args.images)
    if not images:
        LOGGER.error("No images found in %s", ", ".join(args.images))
        return 1

    detector = MockPedestrianDetector.from_settings(settings)
    writer = AnnotatedImageWriter.from_settings(Path(args.output_dir), settings)
    written = annotate_images(images, detector, writer)
    LOGGER.info("Annotated %d of %d images", written, len(images))
    return 0 if written else 1


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    sys.exit(run_annotation(args))


if __name__ == "__main__":  # pragma: no cover
    main()
