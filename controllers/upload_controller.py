import base64
import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from auth.auth_utils import get_current_user
from constants import ALLOWED_IMAGE_TYPES, IMAGE_TYPE_BANNER, MAX_IMAGE_SIZE_BYTES
from middleware.rate_limiter import limiter, RATE_LIMIT_UPLOAD
from models.upload import ImageDeleteRequest
from utils.cloudinary_config import (
    MediaStorageError,
    delete_image,
    extract_public_id_from_url,
    upload_image_to_cloudinary,
)
from utils.exceptions import APIException, ValidationException

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("/image")
@limiter.limit(RATE_LIMIT_UPLOAD)
async def upload_image(
    request: Request,
    file: UploadFile = File(None),
    type: str = Form(IMAGE_TYPE_BANNER),
    current_user: dict = Depends(get_current_user),
):
    if file is None:
        raise ValidationException("No file provided")
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationException("Invalid file type. Only JPEG, PNG, and WebP are allowed")

    image_data = await file.read()
    if len(image_data) > MAX_IMAGE_SIZE_BYTES:
        raise ValidationException("File size too large. Maximum 5MB allowed")

    data_url = f"data:{file.content_type};base64,{base64.b64encode(image_data).decode()}"
    try:
        result = await run_in_threadpool(upload_image_to_cloudinary, data_url, type)
    except MediaStorageError as e:
        logger.error(f"Image upload failed for user {current_user['_id']}: {e}")
        raise APIException("Failed to upload image", status_code=500, error_code="UPLOAD_FAILED")

    return {"success": True, "message": "Image uploaded successfully", "data": result}


@router.delete("/delete")
async def delete_uploaded_image(payload: ImageDeleteRequest, current_user: dict = Depends(get_current_user)):
    if not payload.image_url and not payload.public_id:
        raise ValidationException("Image URL or public ID required")

    public_id = payload.public_id or extract_public_id_from_url(payload.image_url)
    if not public_id:
        raise ValidationException("Could not determine image public ID")

    try:
        deleted = await run_in_threadpool(delete_image, public_id)
    except Exception as e:
        logger.error(f"Cloudinary delete failed for {public_id}: {e}")
        deleted = False

    if not deleted:
        raise APIException("Failed to delete image from Cloudinary", status_code=500, error_code="DELETE_FAILED")
    return {"success": True, "message": "Image deleted successfully"}
