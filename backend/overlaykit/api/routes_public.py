from fastapi import APIRouter, Depends

from overlaykit.api.deps import get_repository
from overlaykit.schemas.overlay import PublicOverlayOut
from overlaykit.services.overlays import get_public_overlay
from overlaykit.services.repository import SqlAlchemyRepository

router = APIRouter()


@router.get("/public/overlays/{overlay_id}", response_model=PublicOverlayOut)
def get_public_overlay_route(
    overlay_id: str,
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    """
    Read-only overlay for the stream display (e.g. an OBS browser source).
    No session needed; owner and description are left out.
    """
    return get_public_overlay(repo, overlay_id)
