"""
Tree mutation engine against an in-memory repository.

The fake store can be made strict: deleting a row while one of its children
still exists then fails, which is how the bulk delete ordering is checked.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest

from overlaykit.core.auth import UserSession
from overlaykit.core.errors import ForbiddenError, NotFoundError, ValidationError
from overlaykit.models.element import ElementType
from overlaykit.schemas.element import ElementCreate, ElementUpdate, ReorderRequest
from overlaykit.services.elements import TreeMutationEngine

OWNER = UserSession(user_id="u-owner", display_name="alice")
EDITOR = UserSession(user_id="u-editor", display_name="bob")
STRANGER = UserSession(user_id="u-stranger", display_name="mallory")


@dataclass
class FakeElement:
    id: str
    overlay_id: str
    name: str
    type: ElementType
    position: int = 0
    parent_id: str | None = None
    style: dict[str, Any] = field(default_factory=dict)
    title: Any = None
    counter: Any = None
    timer: Any = None
    image: Any = None


class FakeRepository:
    def __init__(self, strict: bool = False):
        self.strict = strict
        self.overlays: dict[str, SimpleNamespace] = {}
        self.elements: list[FakeElement] = []
        self.editor_grants: list[SimpleNamespace] = []
        self.delete_calls: list[list[str]] = []

    # --- setup helpers ---

    def add_overlay(self, overlay_id: str, user_id: str = OWNER.user_id):
        self.overlays[overlay_id] = SimpleNamespace(id=overlay_id, user_id=user_id)

    def add(self, element_id, overlay_id, element_type, position=0, parent_id=None):
        element = FakeElement(element_id, overlay_id, element_id, ElementType(element_type), position, parent_id)
        self.elements.append(element)
        return element

    def get(self, element_id) -> FakeElement | None:
        return next((e for e in self.elements if e.id == element_id), None)

    # --- Repository ---

    def find_overlay(self, overlay_id):
        return self.overlays.get(overlay_id)

    def find_element(self, element_id):
        return self.get(element_id)

    def find_elements_by_overlay(self, overlay_id):
        return [e for e in self.elements if e.overlay_id == overlay_id]

    def find_elements_by_parents(self, overlay_id, parent_ids):
        return [e for e in self.find_elements_by_overlay(overlay_id) if e.parent_id in parent_ids]

    def create_element(self, overlay_id, name, element_type, style, position, parent_id, payload):
        element = FakeElement(str(uuid.uuid4()), overlay_id, name, element_type, position, parent_id, style)
        self.elements.append(element)
        return element

    def update_element(self, element_id, patch):
        element = self.get(element_id)
        for key, value in patch.items():
            if key == "payload":
                continue
            setattr(element, key, value)
        return element

    def delete_elements(self, element_ids):
        ids = set(element_ids)
        self.delete_calls.append(sorted(ids))
        survivors = [e for e in self.elements if e.id not in ids]
        for child in survivors:
            if child.parent_id in ids:
                if self.strict:
                    raise AssertionError(f"{child.parent_id} deleted before its child {child.id}")
                child.parent_id = None
        self.elements = survivors

    def find_editor_grants(self, owner_id=None, editor_id=None, editor_name=None):
        return [
            g
            for g in self.editor_grants
            if (owner_id is None or g.owner_id == owner_id)
            and (g.editor_id == editor_id or g.editor_name == editor_name)
        ]

    def find_overlay_editor_grants(self, overlay_id=None, editor_id=None):
        return []


class RecordingHub:
    def __init__(self):
        self.broadcasts: list[str] = []

    async def broadcast_overlay(self, repo, overlay_id):
        self.broadcasts.append(overlay_id)
        return None


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def repo():
    store = FakeRepository()
    store.add_overlay("o1")
    store.add_overlay("o2")
    store.editor_grants.append(
        SimpleNamespace(owner_id=OWNER.user_id, editor_id=None, editor_name=EDITOR.display_name)
    )
    return store


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def engine(repo, hub):
    return TreeMutationEngine(repo, hub)


def _positions(repo, parent_id, overlay_id="o1"):
    children = [e for e in repo.elements if e.parent_id == parent_id and e.overlay_id == overlay_id]
    return sorted(e.position for e in children)


# --- bulk delete ---


def test_bulk_delete_scenario_keeps_sibling_positions(repo, hub):
    repo.strict = True
    repo.add("A", "o1", "CONTAINER", 0)
    repo.add("B", "o1", "TITLE", 0, "A")
    repo.add("C", "o1", "COUNTER", 1)
    engine = TreeMutationEngine(repo, hub)

    deleted = run(engine.delete_elements(OWNER, ["A"]))

    assert set(deleted) == {"A", "B"}
    assert repo.delete_calls == [["B"], ["A"]]
    assert [(e.id, e.position) for e in repo.elements] == [("C", 1)]
    assert hub.broadcasts == ["o1"]


def test_bulk_delete_removes_exact_closure_deepest_first(repo, hub):
    repo.strict = True
    repo.add("root", "o1", "CONTAINER", 0)
    repo.add("l1", "o1", "CONTAINER", 0, "root")
    repo.add("l2", "o1", "CONTAINER", 0, "l1")
    repo.add("l3", "o1", "TITLE", 0, "l2")
    repo.add("l1b", "o1", "COUNTER", 1, "root")
    repo.add("keep", "o1", "CONTAINER", 1)
    repo.add("keep-child", "o1", "TITLE", 0, "keep")
    engine = TreeMutationEngine(repo, hub)

    run(engine.delete_elements(OWNER, ["root"]))

    assert {e.id for e in repo.elements} == {"keep", "keep-child"}
    assert repo.delete_calls == [["l3"], ["l2"], ["l1", "l1b"], ["root"]]
    assert len(hub.broadcasts) == 1


def test_bulk_delete_of_nested_roots_does_not_double_delete(repo, engine):
    repo.add("A", "o1", "CONTAINER", 0)
    repo.add("B", "o1", "TITLE", 0, "A")
    deleted = run(engine.delete_elements(OWNER, ["B", "A", "A"]))
    assert sorted(deleted) == ["A", "B"]
    assert repo.elements == []


def test_bulk_delete_validation(repo, engine, hub):
    repo.add("x", "o1", "TITLE")
    repo.add("y", "o2", "TITLE")

    with pytest.raises(ValidationError):
        run(engine.delete_elements(OWNER, []))
    with pytest.raises(NotFoundError):
        run(engine.delete_elements(OWNER, ["x", "nope"]))
    with pytest.raises(ValidationError):
        run(engine.delete_elements(OWNER, ["x", "y"]))
    with pytest.raises(ForbiddenError):
        run(engine.delete_elements(STRANGER, ["x"]))

    assert {e.id for e in repo.elements} == {"x", "y"}
    assert hub.broadcasts == []


def test_editor_can_bulk_delete(repo, engine):
    repo.add("x", "o1", "TITLE")
    run(engine.delete_elements(EDITOR, ["x"]))
    assert repo.elements == []


# --- single delete ---


def test_single_delete_detaches_children(repo, engine, hub):
    repo.add("box", "o1", "CONTAINER", 0)
    repo.add("inner", "o1", "TITLE", 0, "box")

    run(engine.delete_element(EDITOR, "box"))

    inner = repo.get("inner")
    assert repo.get("box") is None
    assert inner is not None and inner.parent_id is None
    assert hub.broadcasts == ["o1"]


def test_single_delete_appends_detached_children_to_root(repo, engine):
    repo.add("headline", "o1", "TITLE", 0)
    repo.add("box", "o1", "CONTAINER", 1)
    repo.add("second", "o1", "TITLE", 1, "box")
    repo.add("first", "o1", "TITLE", 0, "box")

    run(engine.delete_element(OWNER, "box"))

    roots = sorted((e.position, e.id) for e in repo.elements if e.parent_id is None)
    assert roots == [(0, "headline"), (1, "first"), (2, "second")]


def test_single_delete_masks_inaccessible_elements(repo, engine):
    repo.add("x", "o1", "TITLE")
    with pytest.raises(NotFoundError):
        run(engine.delete_element(STRANGER, "x"))
    assert repo.get("x") is not None


# --- create ---


def test_created_siblings_are_contiguous(repo, engine):
    for name in ("one", "two", "three"):
        run(engine.create_element(OWNER, "o1", ElementCreate(name=name, type="TITLE")))
    assert _positions(repo, None) == [0, 1, 2]

    box = next(e for e in repo.elements if e.name == "one")
    box.type = ElementType.CONTAINER
    run(engine.create_element(OWNER, "o1", ElementCreate(name="nested", type="COUNTER", parentId=box.id)))
    assert _positions(repo, box.id) == [0]


def test_create_validates_input(repo, engine, hub):
    repo.add("title", "o1", "TITLE")
    repo.add("other-box", "o2", "CONTAINER")

    with pytest.raises(ValidationError, match="Name and type are required"):
        run(engine.create_element(OWNER, "o1", ElementCreate(type="TITLE")))
    with pytest.raises(ValidationError, match="Invalid element type"):
        run(engine.create_element(OWNER, "o1", ElementCreate(name="x", type="VIDEO")))
    with pytest.raises(ValidationError):
        run(engine.create_element(OWNER, "o1", ElementCreate(name="x", type="TITLE", parentId="title")))
    with pytest.raises(ValidationError):
        run(engine.create_element(OWNER, "o1", ElementCreate(name="x", type="TITLE", parentId="other-box")))
    with pytest.raises(NotFoundError):
        run(engine.create_element(STRANGER, "o1", ElementCreate(name="x", type="TITLE")))

    assert len(repo.elements) == 2
    assert hub.broadcasts == []


# --- update ---


def test_update_applies_only_present_fields(repo, engine):
    element = repo.add("t", "o1", "TITLE", 3)
    element.style = {"color": "red"}

    run(engine.update_element(OWNER, "t", ElementUpdate(name="Renamed")))

    assert element.name == "Renamed"
    assert element.style == {"color": "red"}
    assert element.position == 3


def test_move_appends_to_new_parent_and_closes_old_gap(repo, engine):
    repo.add("a", "o1", "TITLE", 0)
    repo.add("b", "o1", "TITLE", 1)
    repo.add("c", "o1", "TITLE", 2)
    repo.add("box", "o1", "CONTAINER", 3)
    repo.add("inside", "o1", "TITLE", 0, "box")

    run(engine.update_element(OWNER, "b", ElementUpdate(parentId="box")))

    assert repo.get("b").parent_id == "box"
    assert repo.get("b").position == 1
    assert {e.id: e.position for e in repo.elements if e.parent_id is None} == {"a": 0, "c": 1, "box": 2}


def test_move_rejects_cycles_and_non_containers(repo, engine):
    repo.add("outer", "o1", "CONTAINER", 0)
    repo.add("inner", "o1", "CONTAINER", 0, "outer")
    repo.add("leaf", "o1", "TITLE", 1)

    with pytest.raises(ValidationError):
        run(engine.update_element(OWNER, "outer", ElementUpdate(parentId="inner")))
    with pytest.raises(ValidationError):
        run(engine.update_element(OWNER, "outer", ElementUpdate(parentId="outer")))
    with pytest.raises(ValidationError):
        run(engine.update_element(OWNER, "inner", ElementUpdate(parentId="leaf")))

    assert repo.get("outer").parent_id is None
    assert repo.get("inner").parent_id == "outer"


def test_move_to_root_with_explicit_null(repo, engine):
    repo.add("box", "o1", "CONTAINER", 0)
    repo.add("x", "o1", "TITLE", 0, "box")

    run(engine.update_element(OWNER, "x", ElementUpdate.model_validate({"parentId": None})))

    assert repo.get("x").parent_id is None
    assert repo.get("x").position == 1


# --- reorder ---


def test_reorder_trusts_client_positions(repo, engine, hub):
    repo.add("box", "o1", "CONTAINER", 0)
    repo.add("a", "o1", "TITLE", 1)
    repo.add("b", "o1", "TITLE", 2)

    body = ReorderRequest.model_validate(
        {
            "overlayId": "o1",
            "elements": [
                {"id": "a", "position": 5, "parentId": "box"},
                {"id": "b", "position": 7, "parentId": None},
            ],
        }
    )
    run(engine.reorder(OWNER, body))

    assert (repo.get("a").parent_id, repo.get("a").position) == ("box", 5)
    assert (repo.get("b").parent_id, repo.get("b").position) == (None, 7)
    assert hub.broadcasts == ["o1"]


@pytest.mark.parametrize(
    "items",
    [
        [{"id": "ghost", "position": 0, "parentId": None}],
        [{"id": "a", "position": 0, "parentId": "b"}],
        [{"id": "box", "position": 0, "parentId": "inner"}, {"id": "inner", "position": 0, "parentId": "box"}],
        [{"id": "foreign", "position": 0, "parentId": None}],
    ],
)
def test_reorder_rejects_unsafe_layouts_without_writing(repo, engine, hub, items):
    repo.add("box", "o1", "CONTAINER", 0)
    repo.add("inner", "o1", "CONTAINER", 0, "box")
    repo.add("a", "o1", "TITLE", 1)
    repo.add("b", "o1", "TITLE", 2)
    repo.add("foreign", "o2", "TITLE", 0)
    before = [(e.id, e.parent_id, e.position) for e in repo.elements]

    with pytest.raises(ValidationError):
        run(engine.reorder(OWNER, ReorderRequest.model_validate({"overlayId": "o1", "elements": items})))

    assert [(e.id, e.parent_id, e.position) for e in repo.elements] == before
    assert hub.broadcasts == []


def test_reorder_of_inaccessible_overlay_is_masked(repo, engine):
    with pytest.raises(NotFoundError):
        run(engine.reorder(STRANGER, ReorderRequest.model_validate({"overlayId": "o1", "elements": []})))
