from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from todo_api.crud.users import UserRepository
from todo_api.database import get_db
from todo_api.dependencies import get_current_user, get_image_store
from todo_api.errors import NotFoundError, StorageError, ValidationError
from todo_api.schemas.common import MessageOut
from todo_api.schemas.user import ProfileImageOut, UserOut, UserSummary
from todo_api.utils.auth import Identity
from todo_api.utils.images import ALLOWED_IMAGE_TYPES, ImageStore, ImageStoreError

router = APIRouter(prefix="/users", tags=["users"])

logger = structlog.get_logger()


@router.get("/me", response_model=UserOut)
def read_me(db: Session = Depends(get_db), identity: Identity = Depends(get_current_user)):
    user = UserRepository(db).get(identity.id)
    if user is None:
        # token outlived the account
        raise NotFoundError("User not found")
    return user


@router.patch("/me/upload-profile", response_model=ProfileImageOut)
def upload_profile_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
    store: ImageStore = Depends(get_image_store),
):
    if image is None:
        logger.warning("profile.upload_missing_file", user_id=str(identity.id))
        raise ValidationError("No image file provided")

    content_type = image.content_type or ""
    if content_type not in ALLOWED_IMAGE_TYPES:
        logger.warning("profile.upload_rejected", user_id=str(identity.id), content_type=content_type)
        raise ValidationError("Invalid file type. Only images are allowed (png, jpeg, gif, webp)")

    max_bytes = request.app.state.max_upload_bytes
    content = image.file.read(max_bytes + 1)
    if len(content) > max_bytes:
        logger.warning("profile.upload_too_large", user_id=str(identity.id))
        raise ValidationError(f"Image exceeds the {max_bytes} byte limit")
    if not content:
        raise ValidationError("No image file provided")

    try:
        url = store.save(image.filename, content, content_type)
    except ImageStoreError as e:
        logger.error("profile.upload_failed", user_id=str(identity.id), error=str(e))
        raise StorageError("Server error while updating profile image") from e

    user = UserRepository(db).set_profile_image(identity.id, url)
    if user is None:
        logger.error("profile.user_missing", user_id=str(identity.id))
        raise NotFoundError("User not found")

    logger.info("profile.image_updated", user_id=str(identity.id), url=url)
    return {"message": "Profile image uploaded successfully", "user": UserSummary.model_validate(user)}


@router.delete("/me", response_model=MessageOut)
def delete_me(db: Session = Depends(get_db), identity: Identity = Depends(get_current_user)):
    if not UserRepository(db).delete(identity.id):
        raise NotFoundError("User not found")
    logger.info("user.deleted", user_id=str(identity.id))
    return {"message": "Account deleted"}
