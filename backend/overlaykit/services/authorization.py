"""
Authorization gate: owner or editor, nothing finer.

Callers that read a specific overlay or element mask a failed check as
"not found" so the existence of other users' overlays does not leak.
"""
from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ForbiddenError, NotFoundError
from overlaykit.models.overlay import Overlay
from overlaykit.services.repository import Repository

OVERLAY_NOT_FOUND = "Overlay not found"


def is_owner(session: UserSession, overlay: Overlay) -> bool:
    return overlay.user_id == session.user_id


def can_edit(repo: Repository, session: UserSession, overlay: Overlay) -> bool:
    if is_owner(session, overlay):
        return True

    # Global grants are matched by id or, while still pending, by name
    grants = repo.find_editor_grants(
        owner_id=overlay.user_id,
        editor_id=session.user_id,
        editor_name=session.display_name,
    )
    if grants:
        return True

    return bool(repo.find_overlay_editor_grants(overlay_id=overlay.id, editor_id=session.user_id))


def authorize(repo: Repository, session: UserSession, overlay_id: str) -> bool:
    overlay = repo.find_overlay(overlay_id)
    return overlay is not None and can_edit(repo, session, overlay)


def get_accessible_overlay(repo: Repository, session: UserSession, overlay_id: str) -> Overlay:
    overlay = repo.find_overlay(overlay_id)
    if overlay is None or not can_edit(repo, session, overlay):
        raise NotFoundError(OVERLAY_NOT_FOUND)
    return overlay


def get_managed_overlay(repo: Repository, session: UserSession, overlay_id: str) -> Overlay:
    """Like ``get_accessible_overlay`` but answers 403 instead of masking."""
    overlay = repo.find_overlay(overlay_id)
    if overlay is None:
        raise NotFoundError(OVERLAY_NOT_FOUND)
    if not can_edit(repo, session, overlay):
        raise ForbiddenError()
    return overlay
