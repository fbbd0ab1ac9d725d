"""
Tree mutation engine: the only code that changes element structure.

Every accepted write ends with a full snapshot broadcast of the overlay.
"""
import logging
from typing import Sequence

from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ForbiddenError, NotFoundError, ValidationError
from overlaykit.models.element import Element, ElementType
from overlaykit.models.overlay import Overlay
from overlaykit.schemas.element import (
    ElementCreate,
    ElementUpdate,
    ReorderRequest,
    TimerActionRequest,
)
from overlaykit.schemas.overlay import OverlayOut
from overlaykit.services import timer
from overlaykit.services.authorization import authorize, can_edit, get_accessible_overlay
from overlaykit.services.payloads import (
    default_payload,
    parse_element_type,
    parse_payload_patch,
    timer_state,
    timer_values,
)
from overlaykit.services.realtime import RealtimeHub
from overlaykit.services.repository import Repository
from overlaykit.services.tree import (
    depth_map,
    descendants_of,
    has_cycle,
    next_position,
    renumber,
    would_create_cycle,
)

logger = logging.getLogger(__name__)

ELEMENT_NOT_FOUND = "Element not found"


class TreeMutationEngine:
    def __init__(self, repo: Repository, hub: RealtimeHub):
        self.repo = repo
        self.hub = hub

    # --- lookups ---

    def _accessible_element(self, session: UserSession, element_id: str) -> tuple[Element, Overlay]:
        element = self.repo.find_element(element_id)
        if element is None:
            raise NotFoundError(ELEMENT_NOT_FOUND)
        overlay = self.repo.find_overlay(element.overlay_id)
        if overlay is None or not can_edit(self.repo, session, overlay):
            raise NotFoundError(ELEMENT_NOT_FOUND)
        return element, overlay

    @staticmethod
    def _check_parent(elements: Sequence[Element], parent_id: str) -> None:
        parent = next((e for e in elements if e.id == parent_id), None)
        if parent is None:
            raise ValidationError("Parent element not found in this overlay")
        if parent.type != ElementType.CONTAINER:
            raise ValidationError("Parent element must be a container")

    # --- operations ---

    async def create_element(
        self, session: UserSession, overlay_id: str, body: ElementCreate
    ) -> OverlayOut | None:
        overlay = get_accessible_overlay(self.repo, session, overlay_id)

        if not body.name or not body.type:
            raise ValidationError("Name and type are required")
        element_type = parse_element_type(body.type)

        elements = self.repo.find_elements_by_overlay(overlay.id)
        if body.parent_id is not None:
            self._check_parent(elements, body.parent_id)

        element = self.repo.create_element(
            overlay_id=overlay.id,
            name=body.name,
            element_type=element_type,
            style={},
            position=next_position(elements, body.parent_id),
            parent_id=body.parent_id,
            payload=default_payload(element_type),
        )
        logger.info(f"Created {element_type.value} element {element.id} in overlay {overlay.id}")
        return await self.hub.broadcast_overlay(self.repo, overlay.id)

    async def update_element(
        self, session: UserSession, element_id: str, body: ElementUpdate
    ) -> Element:
        element, overlay = self._accessible_element(session, element_id)
        fields = body.model_fields_set
        patch = {}

        if "name" in fields:
            if not body.name:
                raise ValidationError("Name cannot be empty")
            patch["name"] = body.name

        if "style" in fields:
            patch["style"] = body.style or {}

        old_parent_id = element.parent_id
        moving = "parent_id" in fields and body.parent_id != old_parent_id
        if moving:
            elements = self.repo.find_elements_by_overlay(overlay.id)
            if body.parent_id is not None:
                self._check_parent(elements, body.parent_id)
                if would_create_cycle(elements, element.id, body.parent_id):
                    raise ValidationError("Cannot move an element into itself or its descendants")
            patch["parent_id"] = body.parent_id
            patch["position"] = next_position(elements, body.parent_id)

        if "position" in fields and body.position is not None:
            patch["position"] = body.position

        if "data" in fields:
            payload = parse_payload_patch(element.type, body.data)
            if payload:
                patch["payload"] = payload

        if not patch:
            return element

        updated = self.repo.update_element(element.id, patch)

        if moving:
            # Close the gap left in the old sibling group
            old_siblings = self.repo.find_elements_by_parents(overlay.id, [old_parent_id])
            for sibling_id, position in renumber(old_siblings).items():
                self.repo.update_element(sibling_id, {"position": position})

        await self.hub.broadcast_overlay(self.repo, overlay.id)
        return updated

    async def apply_timer_action(
        self, session: UserSession, element_id: str, body: TimerActionRequest
    ) -> Element:
        element, overlay = self._accessible_element(session, element_id)
        if element.type != ElementType.TIMER:
            raise ValidationError("Element is not a timer")

        state = timer_state(element.timer)
        now = timer.utcnow()
        if body.action == "toggle":
            state = timer.toggle(state, now)
        elif body.action == "reset":
            state = timer.reset()
        elif body.action == "set_direction":
            if body.count_down is None:
                raise ValidationError("countDown is required")
            state = timer.set_direction(state, body.count_down, now)
        else:
            if body.delta_ms is None:
                raise ValidationError("deltaMs is required")
            state = timer.add_time(state, body.delta_ms)

        updated = self.repo.update_element(element.id, {"payload": timer_values(state)})
        await self.hub.broadcast_overlay(self.repo, overlay.id)
        return updated

    async def reorder(self, session: UserSession, body: ReorderRequest) -> None:
        """Apply a client-computed layout.

        Positions are taken as given; only structure (membership, container
        parents, acyclicity) is checked before anything is written.
        """
        overlay = get_accessible_overlay(self.repo, session, body.overlay_id)
        elements = self.repo.find_elements_by_overlay(overlay.id)
        by_id = {e.id: e for e in elements}
        parents = {e.id: e.parent_id for e in elements}

        for item in body.elements:
            if item.id not in by_id:
                raise ValidationError("Element does not belong to this overlay")
            if item.parent_id is not None:
                parent = by_id.get(item.parent_id)
                if parent is None or parent.type != ElementType.CONTAINER:
                    raise ValidationError("Parent element must be a container in the same overlay")
            parents[item.id] = item.parent_id

        if has_cycle(parents):
            raise ValidationError("Layout would create a cycle")

        for item in body.elements:
            self.repo.update_element(item.id, {"position": item.position, "parent_id": item.parent_id})

        await self.hub.broadcast_overlay(self.repo, overlay.id)

    async def delete_element(self, session: UserSession, element_id: str) -> None:
        """Delete one element. Its children are detached to the root level.

        Detached children are appended after the existing root elements in
        their previous order.
        """
        element, overlay = self._accessible_element(session, element_id)
        elements = self.repo.find_elements_by_overlay(overlay.id)
        remaining = [e for e in elements if e.id != element.id]
        children = sorted((e for e in remaining if e.parent_id == element.id), key=lambda e: e.position)

        start = next_position([e for e in remaining if e.parent_id != element.id], None)
        for offset, child in enumerate(children):
            self.repo.update_element(child.id, {"parent_id": None, "position": start + offset})

        self.repo.delete_elements([element.id])
        logger.info(f"Deleted element {element_id} from overlay {overlay.id}")
        await self.hub.broadcast_overlay(self.repo, overlay.id)

    async def delete_elements(self, session: UserSession, ids: Sequence[str]) -> list[str]:
        """Delete ``ids`` and everything below them; returns the deleted ids.

        Rows go one depth level per repository call, deepest first, so no
        parent is removed while one of its deleted children still exists.
        """
        if not ids:
            raise ValidationError("No element ids provided")
        root_ids = list(dict.fromkeys(ids))

        roots = [self.repo.find_element(element_id) for element_id in root_ids]
        if any(root is None for root in roots):
            raise NotFoundError(ELEMENT_NOT_FOUND)

        overlay_ids = {root.overlay_id for root in roots}
        if len(overlay_ids) != 1:
            raise ValidationError("Elements must belong to the same overlay")
        overlay_id = overlay_ids.pop()

        if not authorize(self.repo, session, overlay_id):
            raise ForbiddenError("Not allowed to delete elements of this overlay")

        elements = self.repo.find_elements_by_overlay(overlay_id)
        doomed = descendants_of(elements, root_ids)
        depths = depth_map(elements, doomed)

        deleted: list[str] = []
        for depth in sorted(set(depths.values()), reverse=True):
            level = sorted(element_id for element_id in doomed if depths[element_id] == depth)
            self.repo.delete_elements(level)
            deleted.extend(level)

        logger.info(f"Deleted {len(deleted)} element(s) from overlay {overlay_id}")
        await self.hub.broadcast_overlay(self.repo, overlay_id)
        return deleted
