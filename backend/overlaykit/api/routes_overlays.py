from fastapi import APIRouter, Depends, Response, status

from overlaykit.api.deps import get_current_session, get_engine, get_hub, get_repository
from overlaykit.core.auth import UserSession
from overlaykit.schemas.element import ElementCreate
from overlaykit.schemas.overlay import OverlayCreate, OverlayOut, OverlayUpdate
from overlaykit.services import overlays
from overlaykit.services.elements import TreeMutationEngine
from overlaykit.services.realtime import RealtimeHub
from overlaykit.services.repository import SqlAlchemyRepository

router = APIRouter()


@router.get("/overlays", response_model=list[OverlayOut])
def list_overlays_route(
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    """
    List the caller's overlays plus every overlay shared with them
    (global editor grants and per-overlay grants).
    """
    return overlays.list_overlays(repo, session)


@router.post("/overlays", response_model=OverlayOut, status_code=status.HTTP_201_CREATED)
def create_overlay_route(
    body: OverlayCreate,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    """
    Create an overlay.
    - `presetId`: build it from a preset (see `/presets/overlays`)
    - or `name` + `type` + `elementName`: one overlay with a single element
    """
    return overlays.create_overlay(repo, session, body)


@router.get("/overlays/{overlay_id}", response_model=OverlayOut)
def get_overlay_route(
    overlay_id: str,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    return overlays.get_overlay(repo, session, overlay_id)


@router.patch("/overlays/{overlay_id}", response_model=OverlayOut)
async def update_overlay_route(
    overlay_id: str,
    body: OverlayUpdate,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
    hub: RealtimeHub = Depends(get_hub),
):
    return await overlays.update_overlay(repo, hub, session, overlay_id, body)


@router.delete("/overlays/{overlay_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_overlay_route(
    overlay_id: str,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    overlays.delete_overlay(repo, session, overlay_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/overlays/{overlay_id}/elements",
    response_model=OverlayOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_element_route(
    overlay_id: str,
    body: ElementCreate,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    """Add an element as the last child of `parentId` (or of the root level)."""
    return await engine.create_element(session, overlay_id, body)
