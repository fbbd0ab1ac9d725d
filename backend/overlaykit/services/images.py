import logging

from sqlalchemy.orm import Session
from fastapi import UploadFile

from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ForbiddenError, NotFoundError, ValidationError
from overlaykit.models.image import Image
from overlaykit.services.file_store import FileStore

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp")

# Served same-origin from the upload mount, so no scriptable formats
BLOCKED_CONTENT_TYPES = ("image/svg+xml",)
BLOCKED_EXTENSIONS = (".svg", ".svgz")


def is_image(upload: UploadFile) -> bool:
    ct = (upload.content_type or "").lower()
    filename = (upload.filename or "").lower()
    if ct in BLOCKED_CONTENT_TYPES or filename.endswith(BLOCKED_EXTENSIONS):
        return False
    if ct.startswith("image/"):
        return True
    # Fallback: simple by extension
    return filename.endswith(IMAGE_EXTENSIONS)


def create_image(db: Session, store: FileStore, session: UserSession, upload: UploadFile) -> Image:
    if not is_image(upload):
        raise ValidationError("Only image files can be uploaded")

    original_name = upload.filename or "upload"
    saved = store.save(upload.file.read(), original_name)

    image = Image(
        filename=saved["filename"],
        original_name=original_name,
        url=saved["url"],
        user_id=session.user_id,
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    logger.info(f"User {session.user_id} uploaded {image.filename}")
    return image


def list_images(db: Session) -> list[Image]:
    return db.query(Image).order_by(Image.created_at.desc()).all()


def delete_image(db: Session, store: FileStore, session: UserSession, image_id: str) -> None:
    image = db.query(Image).filter(Image.id == image_id).first()
    if image is None:
        raise NotFoundError("Image not found")
    if image.user_id != session.user_id:
        raise ForbiddenError()

    store.delete(image.filename)
    db.delete(image)
    db.commit()
    logger.info(f"User {session.user_id} deleted {image.filename}")
