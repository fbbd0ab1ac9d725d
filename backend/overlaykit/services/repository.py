"""
Repository: the only component that performs durable writes.

``Repository`` is the interface the services depend on;
``SqlAlchemyRepository`` implements it on a SQLAlchemy session. Every write
method commits, so each call is its own transaction.
"""
from typing import Any, Protocol, Sequence, runtime_checkable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from overlaykit.models.editor import EditorGrant, OverlayEditorGrant
from overlaykit.models.element import (
    CounterData,
    Element,
    ElementType,
    ImageData,
    TimerData,
    TitleData,
)
from overlaykit.models.overlay import Overlay
from overlaykit.models.user import User
from overlaykit.services.payloads import PAYLOAD_ATTRIBUTE

_PAYLOAD_MODELS = {
    ElementType.TITLE: TitleData,
    ElementType.COUNTER: CounterData,
    ElementType.TIMER: TimerData,
    ElementType.IMAGE: ImageData,
}


@runtime_checkable
class Repository(Protocol):
    """Persistence operations used by the overlay services."""

    # --- Overlays ---

    def find_overlay(self, overlay_id: str) -> Overlay | None:
        ...

    def list_overlays_by_owner(self, user_id: str) -> list[Overlay]:
        ...

    def list_overlays_by_owners(self, user_ids: Sequence[str]) -> list[Overlay]:
        ...

    def list_overlays_by_ids(self, overlay_ids: Sequence[str]) -> list[Overlay]:
        ...

    def create_overlay(
        self,
        user_id: str,
        name: str,
        description: str | None,
        global_style: dict[str, Any],
        elements: Sequence[dict[str, Any]] = (),
    ) -> Overlay:
        """
        Create an overlay together with its initial elements.

        Args:
            elements: dicts with ``id``, ``name``, ``type``, ``style``,
                ``position``, ``parent_id`` and ``payload``; parents must
                come before their children.
        """
        ...

    def update_overlay(self, overlay_id: str, patch: dict[str, Any]) -> Overlay:
        ...

    def delete_overlay(self, overlay_id: str) -> None:
        """Delete an overlay and every element in it."""
        ...

    # --- Elements ---

    def find_element(self, element_id: str) -> Element | None:
        ...

    def find_elements_by_overlay(self, overlay_id: str) -> list[Element]:
        """All elements of an overlay in insertion order."""
        ...

    def find_elements_by_parents(
        self, overlay_id: str, parent_ids: Sequence[str | None]
    ) -> list[Element]:
        """Elements whose parent is one of ``parent_ids`` (None = root level)."""
        ...

    def create_element(
        self,
        overlay_id: str,
        name: str,
        element_type: ElementType,
        style: dict[str, Any],
        position: int,
        parent_id: str | None,
        payload: dict[str, Any] | None,
    ) -> Element:
        ...

    def update_element(self, element_id: str, patch: dict[str, Any]) -> Element:
        """
        Apply ``patch`` to one element.

        Column keys (``name``, ``style``, ``position``, ``parent_id``) are set
        directly; a ``payload`` key holds values for the typed payload row.
        """
        ...

    def delete_elements(self, element_ids: Sequence[str]) -> None:
        """Delete exactly these rows. Children of a deleted row are detached."""
        ...

    # --- Editor grants ---

    def find_editor_grants(
        self,
        owner_id: str | None = None,
        editor_id: str | None = None,
        editor_name: str | None = None,
    ) -> list[EditorGrant]:
        """Global grants, filtered by owner and matched by editor id OR name."""
        ...

    def create_editor_grant(
        self, owner_id: str, editor_name: str, editor_id: str | None
    ) -> EditorGrant:
        ...

    def delete_editor_grant(self, owner_id: str, editor_name: str) -> bool:
        ...

    def resolve_pending_grants(self, user_id: str, name: str) -> int:
        """Bind name-only grants for ``name`` to ``user_id``."""
        ...

    def find_overlay_editor_grants(
        self, overlay_id: str | None = None, editor_id: str | None = None
    ) -> list[OverlayEditorGrant]:
        ...

    def create_overlay_editor_grant(self, overlay_id: str, editor_id: str) -> OverlayEditorGrant:
        ...

    def delete_overlay_editor_grant(self, overlay_id: str, editor_id: str) -> bool:
        ...

    # --- Users ---

    def find_user_by_name(self, name: str) -> User | None:
        ...

    def find_users(self, user_ids: Sequence[str]) -> list[User]:
        ...


def _build_payload(element_type: ElementType, payload: dict[str, Any] | None):
    model = _PAYLOAD_MODELS.get(element_type)
    if model is None or payload is None:
        return None
    return model(**payload)


def _attach_payload(element: Element, payload: dict[str, Any] | None) -> None:
    row = _build_payload(element.type, payload)
    if row is not None:
        setattr(element, PAYLOAD_ATTRIBUTE[element.type], row)


class SqlAlchemyRepository:
    """Repository backed by a SQLAlchemy session (one per request)."""

    def __init__(self, db: Session):
        self.db = db

    # --- Overlays ---

    def find_overlay(self, overlay_id: str) -> Overlay | None:
        return self.db.query(Overlay).filter(Overlay.id == overlay_id).first()

    def list_overlays_by_owner(self, user_id: str) -> list[Overlay]:
        return self.list_overlays_by_owners([user_id])

    def list_overlays_by_owners(self, user_ids: Sequence[str]) -> list[Overlay]:
        if not user_ids:
            return []
        return (
            self.db.query(Overlay)
            .filter(Overlay.user_id.in_(list(user_ids)))
            .order_by(Overlay.created_at)
            .all()
        )

    def list_overlays_by_ids(self, overlay_ids: Sequence[str]) -> list[Overlay]:
        if not overlay_ids:
            return []
        return (
            self.db.query(Overlay)
            .filter(Overlay.id.in_(list(overlay_ids)))
            .order_by(Overlay.created_at)
            .all()
        )

    def create_overlay(
        self,
        user_id: str,
        name: str,
        description: str | None,
        global_style: dict[str, Any],
        elements: Sequence[dict[str, Any]] = (),
    ) -> Overlay:
        overlay = Overlay(
            user_id=user_id,
            name=name,
            description=description,
            global_style=global_style or {},
        )
        self.db.add(overlay)
        self.db.flush()

        for spec in elements:
            element = Element(
                id=spec["id"],
                overlay_id=overlay.id,
                name=spec["name"],
                type=spec["type"],
                style=spec.get("style") or {},
                position=spec["position"],
                parent_id=spec.get("parent_id"),
            )
            _attach_payload(element, spec.get("payload"))
            self.db.add(element)
            # Parents are inserted before their children
            self.db.flush()

        self.db.commit()
        self.db.refresh(overlay)
        return overlay

    def update_overlay(self, overlay_id: str, patch: dict[str, Any]) -> Overlay:
        overlay = self.find_overlay(overlay_id)
        for key, value in patch.items():
            setattr(overlay, key, value)
        self.db.commit()
        self.db.refresh(overlay)
        return overlay

    def delete_overlay(self, overlay_id: str) -> None:
        elements = self.db.query(Element).filter(Element.overlay_id == overlay_id)
        elements.update({Element.parent_id: None}, synchronize_session=False)
        elements.delete(synchronize_session=False)
        self.db.query(Overlay).filter(Overlay.id == overlay_id).delete(synchronize_session=False)
        self.db.commit()

    # --- Elements ---

    def find_element(self, element_id: str) -> Element | None:
        return self.db.query(Element).filter(Element.id == element_id).first()

    def find_elements_by_overlay(self, overlay_id: str) -> list[Element]:
        return (
            self.db.query(Element)
            .filter(Element.overlay_id == overlay_id)
            .order_by(Element.created_at, Element.id)
            .all()
        )

    def find_elements_by_parents(
        self, overlay_id: str, parent_ids: Sequence[str | None]
    ) -> list[Element]:
        ids = [parent_id for parent_id in parent_ids if parent_id is not None]
        conditions = []
        if ids:
            conditions.append(Element.parent_id.in_(ids))
        if any(parent_id is None for parent_id in parent_ids):
            conditions.append(Element.parent_id.is_(None))
        if not conditions:
            return []
        return (
            self.db.query(Element)
            .filter(Element.overlay_id == overlay_id, or_(*conditions))
            .order_by(Element.created_at, Element.id)
            .all()
        )

    def create_element(
        self,
        overlay_id: str,
        name: str,
        element_type: ElementType,
        style: dict[str, Any],
        position: int,
        parent_id: str | None,
        payload: dict[str, Any] | None,
    ) -> Element:
        element = Element(
            overlay_id=overlay_id,
            name=name,
            type=element_type,
            style=style or {},
            position=position,
            parent_id=parent_id,
        )
        _attach_payload(element, payload)
        self.db.add(element)
        self.db.commit()
        self.db.refresh(element)
        return element

    def update_element(self, element_id: str, patch: dict[str, Any]) -> Element:
        element = self.find_element(element_id)
        payload = patch.get("payload")
        for key, value in patch.items():
            if key != "payload":
                setattr(element, key, value)

        if payload and element.type in PAYLOAD_ATTRIBUTE:
            row = getattr(element, PAYLOAD_ATTRIBUTE[element.type])
            if row is None:
                _attach_payload(element, payload)
            else:
                for key, value in payload.items():
                    setattr(row, key, value)

        self.db.commit()
        self.db.refresh(element)
        return element

    def delete_elements(self, element_ids: Sequence[str]) -> None:
        if not element_ids:
            return
        # Payload rows go with the element through ON DELETE CASCADE
        self.db.query(Element).filter(Element.id.in_(list(element_ids))).delete(
            synchronize_session=False
        )
        self.db.commit()

    # --- Editor grants ---

    def find_editor_grants(
        self,
        owner_id: str | None = None,
        editor_id: str | None = None,
        editor_name: str | None = None,
    ) -> list[EditorGrant]:
        query = self.db.query(EditorGrant)
        if owner_id is not None:
            query = query.filter(EditorGrant.owner_id == owner_id)
        matches = []
        if editor_id is not None:
            matches.append(EditorGrant.editor_id == editor_id)
        if editor_name is not None:
            matches.append(EditorGrant.editor_name == editor_name)
        if matches:
            query = query.filter(or_(*matches))
        return query.order_by(EditorGrant.created_at).all()

    def create_editor_grant(
        self, owner_id: str, editor_name: str, editor_id: str | None
    ) -> EditorGrant:
        grant = EditorGrant(owner_id=owner_id, editor_name=editor_name, editor_id=editor_id)
        self.db.add(grant)
        self.db.commit()
        self.db.refresh(grant)
        return grant

    def delete_editor_grant(self, owner_id: str, editor_name: str) -> bool:
        deleted = (
            self.db.query(EditorGrant)
            .filter(EditorGrant.owner_id == owner_id, EditorGrant.editor_name == editor_name)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    def resolve_pending_grants(self, user_id: str, name: str) -> int:
        updated = (
            self.db.query(EditorGrant)
            .filter(EditorGrant.editor_id.is_(None), EditorGrant.editor_name == name)
            .update({EditorGrant.editor_id: user_id}, synchronize_session=False)
        )
        if updated:
            self.db.commit()
        return updated

    def find_overlay_editor_grants(
        self, overlay_id: str | None = None, editor_id: str | None = None
    ) -> list[OverlayEditorGrant]:
        query = self.db.query(OverlayEditorGrant)
        if overlay_id is not None:
            query = query.filter(OverlayEditorGrant.overlay_id == overlay_id)
        if editor_id is not None:
            query = query.filter(OverlayEditorGrant.editor_id == editor_id)
        return query.order_by(OverlayEditorGrant.created_at).all()

    def create_overlay_editor_grant(self, overlay_id: str, editor_id: str) -> OverlayEditorGrant:
        grant = OverlayEditorGrant(overlay_id=overlay_id, editor_id=editor_id)
        self.db.add(grant)
        self.db.commit()
        self.db.refresh(grant)
        return grant

    def delete_overlay_editor_grant(self, overlay_id: str, editor_id: str) -> bool:
        deleted = (
            self.db.query(OverlayEditorGrant)
            .filter(
                OverlayEditorGrant.overlay_id == overlay_id,
                OverlayEditorGrant.editor_id == editor_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    # --- Users ---

    def find_user_by_name(self, name: str) -> User | None:
        return self.db.query(User).filter(User.name == name).first()

    def find_users(self, user_ids: Sequence[str]) -> list[User]:
        if not user_ids:
            return []
        return self.db.query(User).filter(User.id.in_(list(user_ids))).all()
