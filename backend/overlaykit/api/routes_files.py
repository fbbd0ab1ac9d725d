from fastapi import APIRouter, UploadFile, File, Depends, Response, status
from sqlalchemy.orm import Session

from overlaykit.api.deps import get_current_session, get_file_store
from overlaykit.core.auth import UserSession
from overlaykit.core.db import get_db
from overlaykit.schemas.image import ImageAssetOut
from overlaykit.services.file_store import FileStore
from overlaykit.services.images import create_image, delete_image, list_images

router = APIRouter()


@router.get("/files", response_model=list[ImageAssetOut])
def list_images_route(db: Session = Depends(get_db)):
    """
    List uploaded images.
    Useful for building a picker in the frontend.
    """
    return list_images(db)


@router.post("/files/upload", response_model=ImageAssetOut, status_code=status.HTTP_201_CREATED)
def upload_image_route(
    file: UploadFile = File(...),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_file_store),
):
    """
    Upload an image that IMAGE elements can reference by its `url`.
    Returns:
      - id
      - url       (use this as the element's `src`)
      - filename
    """
    return create_image(db, store, session, file)


@router.delete("/files/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_image_route(
    image_id: str,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_file_store),
):
    delete_image(db, store, session, image_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
