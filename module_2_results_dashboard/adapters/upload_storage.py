import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional


logger = logging.getLogger(__name__)


class UploadValidationError(ValueError):
    """Raised when an upload is missing, too large, or not an accepted image type."""


@dataclass(frozen=True)
class StoredUpload:
    original_filename: str
    stored_name: str
    path: Path
    url: str


class UploadStorage:
    """Validate uploaded images and keep them in a directory served as static files."""

    def __init__(
        self,
        upload_dir: Path,
        url_prefix: str = "/uploads",
        max_bytes: int = 10 * 1024 * 1024,
        allowed_extensions: Iterable[str] = ("jpeg", "jpg", "png", "webp"),
    ) -> None:
        self.upload_dir = upload_dir
        self.url_prefix = "/" + url_prefix.strip("/")
        self.max_bytes = max_bytes
        extensions = [ext.lower().lstrip(".") for ext in allowed_extensions]
        self._type_pattern = re.compile("|".join(re.escape(ext) for ext in extensions))
        self._extensions = set(extensions)

    def validate(self, filename: Optional[str], content_type: Optional[str], size: int) -> str:
        """Return the sanitized filename or raise ``UploadValidationError``."""

        safe_name = Path(filename or "").name
        if not safe_name:
            raise UploadValidationError("No image file provided")
        if size <= 0:
            raise UploadValidationError("Uploaded image is empty")
        if size > self.max_bytes:
            raise UploadValidationError(f"Image exceeds the upload limit of {self.max_bytes} bytes")
        extension = Path(safe_name).suffix.lower().lstrip(".")
        mimetype = (content_type or "").lower()
        if extension not in self._extensions or not self._type_pattern.search(mimetype):
            raise UploadValidationError("Only image files are allowed")
        return safe_name

    def save(self, filename: Optional[str], content_type: Optional[str], payload: bytes) -> StoredUpload:
        safe_name = self.validate(filename, content_type, len(payload))
        stored_name = f"{uuid.uuid4().hex}{Path(safe_name).suffix.lower()}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        target = self.upload_dir / stored_name
        target.write_bytes(payload)
        logger.info("Stored upload %s as %s (%d bytes)", safe_name, target, len(payload))
        return StoredUpload(
            original_filename=safe_name,
            stored_name=stored_name,
            path=target,
            url=self.url_for(stored_name),
        )

    def url_for(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"
