"""
Cloudinary configuration and utilities for image uploads and deletion
"""
import logging
import re
from typing import Iterable, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader

from config.settings import CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET
from constants import IMAGE_TYPE_AVATAR

logger = logging.getLogger(__name__)

BASE_FOLDER = "event-management"

# Per image type: destination folder and the transformation applied on upload
UPLOAD_PRESETS = {
    IMAGE_TYPE_AVATAR: {
        "folder": f"{BASE_FOLDER}/avatars",
        "transformation": {"width": 200, "height": 200, "crop": "fill", "gravity": "face"},
    },
    "default": {
        "folder": f"{BASE_FOLDER}/events",
        "transformation": {"width": 800, "height": 400, "crop": "fill"},
    },
}

_VERSION_SEGMENT = re.compile(r"^v\d+$")

cloudinary.config(
    cloud_name=CLOUDINARY_CLOUD_NAME,
    api_key=CLOUDINARY_API_KEY,
    api_secret=CLOUDINARY_API_SECRET,
    secure=True,
)


class MediaStorageError(Exception):
    """Raised when an upload to Cloudinary fails."""


def is_configured() -> bool:
    return all([CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET])


def upload_image_to_cloudinary(image_data, image_type: Optional[str] = None) -> dict:
    """
    Upload an image to Cloudinary

    Args:
        image_data: Image file bytes or a data URL
        image_type: 'user-avatar' or 'event-banner'; picks folder and transformation

    Returns:
        dict: url, public_id, width and height of the stored image

    Raises:
        MediaStorageError: If upload fails or Cloudinary is not configured
    """
    if not is_configured():
        raise MediaStorageError(
            "Cloudinary credentials not configured. Please set CLOUDINARY_CLOUD_NAME, "
            "CLOUDINARY_API_KEY, and CLOUDINARY_API_SECRET"
        )

    preset = UPLOAD_PRESETS.get(image_type, UPLOAD_PRESETS["default"])
    try:
        result = cloudinary.uploader.upload(
            image_data,
            folder=preset["folder"],
            transformation=preset["transformation"],
            resource_type="image",
            overwrite=False,
            invalidate=True,
        )
    except Exception as e:
        raise MediaStorageError(f"Failed to upload image to Cloudinary: {str(e)}") from e

    return {
        "url": result["secure_url"],
        "public_id": result["public_id"],
        "width": result.get("width"),
        "height": result.get("height"),
    }


def extract_public_id_from_url(url: str) -> Optional[str]:
    """
    Derive the public id from a delivery URL.
    https://res.cloudinary.com/<cloud>/image/upload/v123/folder/name.jpg -> folder/name
    """
    if not url:
        return None
    parts = url.split("?")[0].split("/")
    if "upload" not in parts:
        return None

    path = parts[parts.index("upload") + 1:]
    if path and _VERSION_SEGMENT.match(path[0]):
        path = path[1:]
    if not path:
        return None

    public_id = "/".join(path)
    dot = public_id.rfind(".")
    return public_id[:dot] if dot > 0 else public_id


def delete_image(public_id: str) -> bool:
    """Destroy a single asset. Returns True only when Cloudinary reports 'ok'."""
    result = cloudinary.uploader.destroy(public_id)
    return result.get("result") == "ok"


def delete_images(public_ids: list[str]) -> dict:
    """Bulk delete; returns {'deleted': [...], 'failed': [...]}."""
    result = cloudinary.api.delete_resources(public_ids)
    deleted, failed = [], []
    for public_id, status in result.get("deleted", {}).items():
        (deleted if status == "deleted" else failed).append(public_id)
    return {"deleted": deleted, "failed": failed}


def delete_images_quietly(urls: Iterable[Optional[str]]) -> int:
    """
    Best-effort removal of stored media referenced by URL.
    Never raises; failures are logged. Returns how many assets were removed.
    """
    public_ids = [pid for pid in (extract_public_id_from_url(url) for url in urls if url) if pid]
    if not public_ids:
        return 0
    if not is_configured():
        logger.warning(f"Cloudinary not configured, leaving {len(public_ids)} image(s) in storage")
        return 0

    try:
        if len(public_ids) == 1:
            return 1 if delete_image(public_ids[0]) else 0
        result = delete_images(public_ids)
        if result["failed"]:
            logger.warning(f"Cloudinary could not delete: {result['failed']}")
        return len(result["deleted"])
    except Exception as e:
        logger.warning(f"Failed to delete image(s) from Cloudinary {public_ids}: {e}")
        return 0
