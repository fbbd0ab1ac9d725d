import logging

from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ConflictError, NotFoundError, ValidationError
from overlaykit.models.editor import EditorGrant, OverlayEditorGrant
from overlaykit.models.user import User
from overlaykit.schemas.editor import EditorCreate
from overlaykit.services.authorization import get_managed_overlay
from overlaykit.services.repository import Repository

logger = logging.getLogger(__name__)


def _display_name(body: EditorCreate) -> str:
    name = (body.display_name or "").strip()
    if not name:
        raise ValidationError("displayName is required")
    return name


# --- global grants: access to every overlay of the owner ---


def list_editors(repo: Repository, session: UserSession) -> list[EditorGrant]:
    return repo.find_editor_grants(owner_id=session.user_id)


def add_editor(repo: Repository, session: UserSession, body: EditorCreate) -> EditorGrant:
    name = _display_name(body)
    if repo.find_editor_grants(owner_id=session.user_id, editor_name=name):
        raise ConflictError("Editor with this name already exists")

    # Unknown names stay pending until that user signs in
    user = repo.find_user_by_name(name)
    grant = repo.create_editor_grant(
        owner_id=session.user_id,
        editor_name=name,
        editor_id=user.id if user else None,
    )
    logger.info(f"User {session.user_id} granted editor access to {name!r}")
    return grant


def remove_editor(repo: Repository, session: UserSession, editor_name: str) -> None:
    if not repo.delete_editor_grant(owner_id=session.user_id, editor_name=editor_name):
        raise NotFoundError("Editor not found")
    logger.info(f"User {session.user_id} revoked editor access of {editor_name!r}")


# --- per-overlay grants ---


def list_overlay_editors(repo: Repository, session: UserSession, overlay_id: str) -> list[User]:
    overlay = get_managed_overlay(repo, session, overlay_id)
    grants = repo.find_overlay_editor_grants(overlay_id=overlay.id)
    users = {user.id: user for user in repo.find_users([grant.editor_id for grant in grants])}
    return [users[grant.editor_id] for grant in grants if grant.editor_id in users]


def add_overlay_editor(
    repo: Repository, session: UserSession, overlay_id: str, body: EditorCreate
) -> OverlayEditorGrant:
    overlay = get_managed_overlay(repo, session, overlay_id)
    name = _display_name(body)

    user = repo.find_user_by_name(name)
    if user is None:
        raise NotFoundError("User not found")
    if repo.find_overlay_editor_grants(overlay_id=overlay.id, editor_id=user.id):
        raise ConflictError("User is already an editor of this overlay")

    grant = repo.create_overlay_editor_grant(overlay_id=overlay.id, editor_id=user.id)
    logger.info(f"Granted {name!r} editor access to overlay {overlay.id}")
    return grant


def remove_overlay_editor(
    repo: Repository, session: UserSession, overlay_id: str, editor_id: str
) -> None:
    overlay = get_managed_overlay(repo, session, overlay_id)
    if not repo.delete_overlay_editor_grant(overlay_id=overlay.id, editor_id=editor_id):
        raise NotFoundError("Editor not found")
