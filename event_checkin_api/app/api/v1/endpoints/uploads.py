"""
Image upload endpoint for API v1 (administrators only).
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from event_checkin_api.app.core.security import require_admin
from event_checkin_api.app.services.upload_service import MAX_UPLOAD_BYTES, UploadService


router = APIRouter()


@router.post("/image", status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: UploadFile = File(..., description="PNG, JPEG, GIF or WEBP, at most 5 MB"),
    current_user: dict = Depends(require_admin),
) -> dict:
    """Store an image and return its public URL as ``{"url": ...}``."""
    # Read one byte past the limit so oversized files are detected without loading them whole.
    content = await image.read(MAX_UPLOAD_BYTES + 1)
    try:
        url = await UploadService.save_image(content, image.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return {"url": url}
