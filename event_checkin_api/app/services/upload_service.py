"""
Image uploads for form branding (hero image, watermark, logo) and
photo fields.

Files are checked with Pillow rather than trusted by extension or
client-supplied content type, saved under ``settings.upload_dir`` with
a random name, and served back by the static mount at
``/attached_assets``.
"""

import io
import logging
import secrets
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from event_checkin_api.app.core.config import settings


logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
PUBLIC_PREFIX = "/attached_assets"
# Pillow format name -> stored file extension
ALLOWED_FORMATS = {
    "PNG": "png",
    "JPEG": "jpg",
    "GIF": "gif",
    "WEBP": "webp",
}


def get_upload_dir() -> Path:
    path = Path(settings.upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def detect_image_format(content: bytes) -> str:
    """Return the file extension for ``content`` or raise ``ValueError``."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError("Uploaded file is not a valid image") from e
    if image_format not in ALLOWED_FORMATS:
        raise ValueError("Only PNG, JPEG, GIF and WEBP images are allowed")
    return ALLOWED_FORMATS[image_format]


class UploadService:
    """Persist uploaded images and return their public URL."""

    @classmethod
    async def save_image(cls, content: bytes, filename: str = "") -> str:
        """Validate and store an image, returning ``/attached_assets/<name>``.

        Raises ``ValueError`` for empty, oversized or non-image uploads.
        """
        if not content:
            raise ValueError("No image uploaded")
        if len(content) > MAX_UPLOAD_BYTES:
            raise ValueError(f"Image exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit")
        extension = detect_image_format(content)
        name = f"upload-{secrets.token_hex(8)}.{extension}"
        (get_upload_dir() / name).write_bytes(content)
        logger.info("Stored upload %r as %s (%s bytes)", filename, name, len(content))
        return f"{PUBLIC_PREFIX}/{name}"
