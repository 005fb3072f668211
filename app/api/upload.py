from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from app.api import deps
from app.core.config import settings
from app.core.errors import ErrorCode, UploadError, ValidationError
from app.core.logging_config import get_logger
from app.services.storage import ALLOWED_IMAGE_TYPES, StorageBackend, delete_stored_file

logger = get_logger(__name__)

router = APIRouter()


@router.post("/image")
def upload_image(
    file: Optional[UploadFile] = File(default=None),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
    storage: StorageBackend = Depends(deps.get_storage),
) -> Any:
    """
    Store one image and return where it can be fetched from.

    Type and size are checked before the backend is touched.
    """
    if file is None:
        raise ValidationError("No file provided", field="file")

    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Invalid file type. Allowed: JPG, PNG, WebP, GIF",
            code=ErrorCode.INVALID_FILE_TYPE,
            field="file",
        )

    data = file.file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(data) > settings.UPLOAD_MAX_BYTES:
        max_mb = settings.UPLOAD_MAX_BYTES // (1024 * 1024)
        raise ValidationError(
            f"File too large. Maximum size is {max_mb}MB",
            code=ErrorCode.FILE_TOO_LARGE,
            field="file",
        )

    try:
        stored = storage.save(data, file.filename or "upload", content_type)
    except Exception as e:
        logger.error("Upload failed", backend=storage.name, error=str(e))
        raise UploadError("Failed to upload image", details=str(e))

    logger.info("Image uploaded", backend=storage.name, path=stored.path, size=stored.size, user_id=current_user.id)
    return {"image": stored.to_dict()}


@router.delete("/image")
def delete_image(
    path: Optional[str] = Query(default=None),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    if not path:
        raise ValidationError("File path not provided", field="path")

    try:
        backend = delete_stored_file(path)
    except Exception as e:
        logger.error("Delete failed", path=path, error=str(e))
        raise UploadError("Failed to delete image", details=str(e))

    return {"message": "Image deleted", "backend": backend}
