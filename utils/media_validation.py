"""Validation helpers for uploaded image content."""

import io
import logging
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from utils.errors import MissingField

LOGGER = logging.getLogger(__name__)
DEFAULT_IMAGE_TYPE = "image/jpeg"
GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lower-case a content type and strip any parameters."""
    if not content_type:
        return ""
    return content_type.lower().split(";", 1)[0].strip()


def sniff_image_type(data: bytes) -> Optional[str]:
    """Return the MIME type Pillow detects for the bytes, or None."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def resolve_image_type(content_type: Optional[str], data: bytes) -> str:
    """Pick the media type to send along with the image bytes.

    A declared `image/*` type is trusted as-is. Browsers and scripted clients
    sometimes omit it or send a generic octet-stream, in which case the bytes
    are sniffed and, failing that, treated as JPEG.
    """
    declared = normalize_content_type(content_type)
    if declared.startswith("image/"):
        return declared
    if declared not in GENERIC_CONTENT_TYPES:
        LOGGER.debug("Ignoring non-image declared content type %s", declared)
    return sniff_image_type(data) or DEFAULT_IMAGE_TYPE


def require_prompt(prompt: Optional[str]) -> str:
    """Return the prompt unchanged, or raise when it is absent or blank."""
    if prompt is None or not prompt.strip():
        raise MissingField("prompt")
    return prompt


async def read_image_upload(image: Optional[UploadFile]) -> bytes:
    """Read the uploaded image, treating a missing or empty upload as absent."""
    if image is None:
        raise MissingField("image")
    image_bytes = await image.read()
    if not image_bytes:
        raise MissingField("image")
    return image_bytes
