"""
Image store adapter.

Uploaded images are validated (type, size, magic bytes), normalised to JPEG
with Pillow and written below UPLOADS_DIR. Each stored image is addressed by a
public id ("<folder>/<hex>") and served from /static/uploads.
"""

from __future__ import annotations

import io
import logging
import os
import re
import uuid
from dataclasses import dataclass
from typing import Iterable, Protocol

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import get_settings
from .errors import BadRequestError
from .utils import absolute_url

logger = logging.getLogger(__name__)

JPEG_MAGIC = b"\xFF\xD8\xFF"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
ALLOWED_TYPES = {"image/jpeg", "image/png", "image/jpg", "image/pjpeg"}
MAX_DIMENSIONS = (1600, 1600)
_PUBLIC_ID = re.compile(r"[a-z0-9_-]+/[0-9a-f]{32}")


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    data: bytes


class ImageStore(Protocol):
    def upload(self, files: Iterable[ImageUpload]) -> list[dict]: ...

    def delete(self, public_ids: Iterable[str]) -> None: ...


def _has_valid_signature(data: bytes, content_type: str) -> bool:
    if content_type in {"image/jpeg", "image/jpg", "image/pjpeg"}:
        return data.startswith(JPEG_MAGIC)
    if content_type == "image/png":
        return data.startswith(PNG_MAGIC)
    return False


class LocalImageStore:
    """Stores images on local disk."""

    def __init__(self, root: str | None = None, folder: str = "images", max_bytes: int | None = None):
        settings = get_settings()
        self.root = root or settings.uploads_dir
        self.folder = re.sub(r"[^a-z0-9_-]+", "", folder.lower()) or "images"
        self.max_bytes = max_bytes or settings.max_upload_bytes

    def _path(self, public_id: str) -> str:
        return os.path.join(self.root, *public_id.split("/")) + ".jpg"

    def _validate(self, file: ImageUpload) -> None:
        ct = (file.content_type or "").lower()
        if ct not in ALLOWED_TYPES:
            raise BadRequestError("Unsupported image format (use JPEG or PNG)")
        if not file.data:
            raise BadRequestError("Empty image")
        if len(file.data) > self.max_bytes:
            raise BadRequestError(f"Image exceeds {self.max_bytes // (1024 * 1024) or 1}MB")
        if not _has_valid_signature(file.data, ct):
            raise BadRequestError("Invalid image file")

    def _normalise(self, data: bytes) -> bytes:
        try:
            image = Image.open(io.BytesIO(data))
            image = ImageOps.exif_transpose(image)
            image = image.convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise BadRequestError("Invalid image file") from exc
        image.thumbnail(MAX_DIMENSIONS, Image.LANCZOS)
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=85, optimize=True)
        return buffer.getvalue()

    def upload(self, files: Iterable[ImageUpload]) -> list[dict]:
        files = list(files)
        for file in files:
            self._validate(file)
        # decode everything first so a bad file leaves nothing on disk
        payloads = [self._normalise(file.data) for file in files]
        stored: list[dict] = []
        try:
            for payload in payloads:
                public_id = f"{self.folder}/{uuid.uuid4().hex}"
                dest_path = self._path(public_id)
                os.makedirs(os.path.dirname(dest_path), exist_ok=True)
                with open(dest_path, "wb") as f:
                    f.write(payload)
                stored.append({"public_id": public_id, "url": absolute_url(f"/static/uploads/{public_id}.jpg")})
        except OSError:
            self.delete([img["public_id"] for img in stored])
            raise
        return stored

    def delete(self, public_ids: Iterable[str]) -> None:
        for public_id in public_ids:
            if not public_id or not _PUBLIC_ID.fullmatch(public_id):
                logger.warning("Ignoring malformed image id %r", public_id)
                continue
            try:
                os.remove(self._path(public_id))
            except FileNotFoundError:
                logger.info("Image %s already removed", public_id)
