import logging
import uuid

from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ForbiddenError, NotFoundError, ValidationError
from overlaykit.models.overlay import Overlay
from overlaykit.schemas.element import ElementOut
from overlaykit.schemas.overlay import OverlayCreate, OverlayOut, OverlayUpdate, PublicOverlayOut
from overlaykit.services.authorization import (
    OVERLAY_NOT_FOUND,
    can_edit,
    get_accessible_overlay,
    is_owner,
)
from overlaykit.services.payloads import default_payload, parse_element_type
from overlaykit.services.presets import find_preset, flatten_preset_elements
from overlaykit.services.realtime import RealtimeHub, build_overlay_snapshot
from overlaykit.services.repository import Repository

logger = logging.getLogger(__name__)


def list_overlays(repo: Repository, session: UserSession) -> list[OverlayOut]:
    """The caller's own overlays followed by the ones shared with them."""
    overlays: list[Overlay] = list(repo.list_overlays_by_owner(session.user_id))

    grants = repo.find_editor_grants(editor_id=session.user_id, editor_name=session.display_name)
    owner_ids = sorted({grant.owner_id for grant in grants} - {session.user_id})
    overlays.extend(repo.list_overlays_by_owners(owner_ids))

    overlay_grants = repo.find_overlay_editor_grants(editor_id=session.user_id)
    overlays.extend(repo.list_overlays_by_ids([grant.overlay_id for grant in overlay_grants]))

    seen = set()
    snapshots = []
    for overlay in overlays:
        if overlay.id in seen:
            continue
        seen.add(overlay.id)
        snapshots.append(build_overlay_snapshot(repo, overlay.id))
    return snapshots


def get_overlay(repo: Repository, session: UserSession, overlay_id: str) -> OverlayOut:
    overlay = get_accessible_overlay(repo, session, overlay_id)
    return build_overlay_snapshot(repo, overlay.id)


def get_public_overlay(repo: Repository, overlay_id: str) -> PublicOverlayOut:
    overlay = repo.find_overlay(overlay_id)
    if overlay is None:
        raise NotFoundError(OVERLAY_NOT_FOUND)
    return PublicOverlayOut(
        id=overlay.id,
        name=overlay.name,
        global_style=overlay.global_style or {},
        elements=[ElementOut.model_validate(e) for e in repo.find_elements_by_overlay(overlay.id)],
    )


def create_overlay(repo: Repository, session: UserSession, body: OverlayCreate) -> OverlayOut:
    if body.preset_id:
        preset = find_preset(body.preset_id)
        if preset is None:
            raise ValidationError("Invalid preset ID")
        overlay = repo.create_overlay(
            user_id=session.user_id,
            name=body.name or preset.name,
            description=body.description,
            global_style=preset.global_style or {},
            elements=flatten_preset_elements(preset.elements),
        )
        logger.info(f"Created overlay {overlay.id} from preset {preset.id}")

    elif body.name and body.type and body.element_name:
        element_type = parse_element_type(body.type)
        overlay = repo.create_overlay(
            user_id=session.user_id,
            name=body.name,
            description=body.description,
            global_style={},
            elements=[
                {
                    "id": str(uuid.uuid4()),
                    "name": body.element_name,
                    "type": element_type,
                    "style": {},
                    "position": 0,
                    "parent_id": None,
                    "payload": default_payload(element_type),
                }
            ],
        )
        logger.info(f"Created overlay {overlay.id} with a single {element_type.value} element")

    else:
        raise ValidationError("Either presetId or name, type, and elementName are required")

    return build_overlay_snapshot(repo, overlay.id)


async def update_overlay(
    repo: Repository,
    hub: RealtimeHub,
    session: UserSession,
    overlay_id: str,
    body: OverlayUpdate,
) -> OverlayOut:
    overlay = get_accessible_overlay(repo, session, overlay_id)

    patch = body.model_dump(exclude_unset=True)
    # name and globalStyle are not nullable; description is
    for key in ("name", "global_style"):
        if patch.get(key, True) is None:
            del patch[key]
    if not patch:
        raise ValidationError("No valid fields to update")

    repo.update_overlay(overlay.id, patch)
    return await hub.broadcast_overlay(repo, overlay.id)


def delete_overlay(repo: Repository, session: UserSession, overlay_id: str) -> None:
    overlay = repo.find_overlay(overlay_id)
    if overlay is None or not can_edit(repo, session, overlay):
        raise NotFoundError(OVERLAY_NOT_FOUND)
    if not is_owner(session, overlay):
        raise ForbiddenError("Only the owner can delete this overlay")

    repo.delete_overlay(overlay.id)
    logger.info(f"Deleted overlay {overlay_id}")
