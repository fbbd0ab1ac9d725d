from fastapi import APIRouter, Depends, Response, status

from overlaykit.api.deps import get_current_session, get_engine
from overlaykit.core.auth import UserSession
from overlaykit.schemas.element import (
    BulkDeleteRequest,
    ElementOut,
    ElementUpdate,
    ReorderRequest,
    TimerActionRequest,
)
from overlaykit.services.elements import TreeMutationEngine

router = APIRouter()


# Registered before /elements/{element_id} so the literal paths win


@router.post("/elements/delete", status_code=status.HTTP_204_NO_CONTENT)
async def bulk_delete_elements_route(
    body: BulkDeleteRequest,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    """Delete the given elements together with everything nested below them."""
    await engine.delete_elements(session, body.ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/elements/reorder")
async def reorder_elements_route(
    body: ReorderRequest,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    """
    Apply a layout computed by the editor.
    Each `{id, position, parentId}` is written as given.
    """
    await engine.reorder(session, body)
    return {"success": True}


@router.patch("/elements/{element_id}", response_model=ElementOut)
async def update_element_route(
    element_id: str,
    body: ElementUpdate,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    element = await engine.update_element(session, element_id, body)
    return ElementOut.model_validate(element)


@router.post("/elements/{element_id}/timer", response_model=ElementOut)
async def timer_action_route(
    element_id: str,
    body: TimerActionRequest,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    element = await engine.apply_timer_action(session, element_id, body)
    return ElementOut.model_validate(element)


@router.delete("/elements/{element_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_element_route(
    element_id: str,
    session: UserSession = Depends(get_current_session),
    engine: TreeMutationEngine = Depends(get_engine),
):
    await engine.delete_element(session, element_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
