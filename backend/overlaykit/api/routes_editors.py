from fastapi import APIRouter, Depends, Response, status

from overlaykit.api.deps import get_current_session, get_repository
from overlaykit.core.auth import UserSession
from overlaykit.schemas.editor import EditorCreate, EditorGrantOut, OverlayEditorGrantOut, UserOut
from overlaykit.services import editors
from overlaykit.services.repository import SqlAlchemyRepository

router = APIRouter()


@router.get("/editors", response_model=list[EditorGrantOut])
def list_editors_route(
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    return editors.list_editors(repo, session)


@router.post("/editors", response_model=EditorGrantOut, status_code=status.HTTP_201_CREATED)
def add_editor_route(
    body: EditorCreate,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    """
    Let `displayName` edit every overlay of the caller.
    The name does not have to belong to an existing user yet.
    """
    return editors.add_editor(repo, session, body)


@router.delete("/editors/{editor_name}", status_code=status.HTTP_204_NO_CONTENT)
def remove_editor_route(
    editor_name: str,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    editors.remove_editor(repo, session, editor_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/overlays/{overlay_id}/editors", response_model=list[UserOut])
def list_overlay_editors_route(
    overlay_id: str,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    return editors.list_overlay_editors(repo, session, overlay_id)


@router.post(
    "/overlays/{overlay_id}/editors",
    response_model=OverlayEditorGrantOut,
    status_code=status.HTTP_201_CREATED,
)
def add_overlay_editor_route(
    overlay_id: str,
    body: EditorCreate,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    return editors.add_overlay_editor(repo, session, overlay_id, body)


@router.delete("/overlays/{overlay_id}/editors/{editor_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_overlay_editor_route(
    overlay_id: str,
    editor_id: str,
    session: UserSession = Depends(get_current_session),
    repo: SqlAlchemyRepository = Depends(get_repository),
):
    editors.remove_overlay_editor(repo, session, overlay_id, editor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
