import logging
import os
import time
import uuid

from fastapi import UploadFile

from errors import ValidationError

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}


class UploadStore:
    """Saves listing images to disk; they are served back from ``url_prefix``."""

    def __init__(self, directory: str, max_bytes: int, url_prefix: str = "/uploads"):
        self.directory = directory
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.directory, exist_ok=True)

    def save(self, image: UploadFile) -> str:
        ext = os.path.splitext(image.filename or "")[1].lower()
        content_type = (image.content_type or "").lower()
        if ext not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only JPEG/PNG images are allowed")

        data = image.file.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image must be at most {_format_size(self.max_bytes)}")

        filename = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{ext}"
        with open(os.path.join(self.directory, filename), "wb") as f:
            f.write(data)
        log.info("Saved upload %s (%d bytes)", filename, len(data))
        return f"{self.url_prefix}/{filename}"


def _format_size(n: int) -> str:
    mb = 1024 * 1024
    if n >= mb and n % mb == 0:
        return f"{n // mb}MB"
    return f"{n} bytes"
