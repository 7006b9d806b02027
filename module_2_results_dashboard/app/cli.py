"""Convenience CLI for talking to a running dashboard API and inspecting the outputs."""

from __future__ import annotations

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, List, Optional

import requests

from module_1_pedestrian_detection.app.annotate import setup_logging


logger = logging.getLogger(__name__)


class DashboardClient:
    """Thin HTTP client for the dashboard routes."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def upload(self, image_path: Path) -> dict:
        content_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
        with image_path.open("rb") as handle:
            response = self._session.post(
                f"{self.base_url}/detect",
                files={"image": (image_path.name, handle, content_type)},
                timeout=self.timeout,
            )
        return self._json(response)

    def list_results(self) -> List[dict]:
        return self._json(self._session.get(f"{self.base_url}/detections", timeout=self.timeout))

    def get_result(self, result_id: str) -> dict:
        return self._json(
            self._session.get(f"{self.base_url}/detections/{result_id}", timeout=self.timeout)
        )

    def metrics(self) -> dict:
        return self._json(self._session.get(f"{self.base_url}/metrics", timeout=self.timeout))

    def close(self) -> None:
        self._session.close()

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            raise requests.HTTPError(f"Received status {response.status_code}: {detail}", response=response)
        return response.json()


def _dump(obj: object) -> str:
    return json.dumps(obj, indent=2)


def _summary(result: dict) -> str:
    return "{id} | {filename} | pedestrians={count} | processing_time={time:.2f}s".format(
        id=result.get("id"),
        filename=result.get("filename"),
        count=result.get("totalPedestrians", 0),
        time=result.get("processingTime", 0.0),
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query a running PedDetect dashboard API.")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Dashboard API base URL (default: http://localhost:8000).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    upload = subparsers.add_parser("upload", help="Upload images for detection.")
    upload.add_argument("images", nargs="+", help="Image files to upload.")
    subparsers.add_parser("list", help="List stored detection results, newest first.")
    show = subparsers.add_parser("show", help="Show one detection result.")
    show.add_argument("result_id")
    subparsers.add_parser("metrics", help="Show the current system metrics.")
    return parser


def run(args: argparse.Namespace, client: DashboardClient) -> int:
    if args.command == "upload":
        failures = 0
        for raw in args.images:
            try:
                result = client.upload(Path(raw))
            except (OSError, requests.RequestException) as exc:
                logger.error("Upload of %s failed: %s", raw, exc)
                failures += 1
                continue
            print(_summary(result))
        return 1 if failures else 0

    if args.command == "list":
        try:
            results = client.list_results()
        except requests.RequestException as exc:
            logger.error("Listing results failed: %s", exc)
            return 1
        print(f"Stored results: {len(results)}")
        for item in results:
            print(_summary(item))
        return 0

    if args.command == "show":
        try:
            print(_dump(client.get_result(args.result_id)))
        except requests.RequestException as exc:
            logger.error("%s", exc)
            return 1
        return 0

    try:
        metrics = client.metrics()
    except requests.RequestException as exc:
        logger.error("Fetching metrics failed: %s", exc)
        return 1
    print(_dump(metrics))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)
    setup_logging()
    client = DashboardClient(args.base_url)
    try:
        code = run(args, client)
    finally:
        client.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
