"""
Element tree model.

Pure functions over a flat list of element records (anything with ``id``,
``parent_id`` and ``position`` attributes). The list order is treated as
insertion order and is used to break ``position`` ties.
"""
from collections import deque
from typing import Iterable, Protocol, Sequence


class TreeNode(Protocol):
    id: str
    parent_id: str | None
    position: int


def children_of(elements: Sequence[TreeNode], parent_id: str | None) -> list[TreeNode]:
    """Children of ``parent_id`` (None = root level) ordered by position.

    ``sorted`` is stable, so equal positions keep their input order.
    """
    children = [e for e in elements if e.parent_id == parent_id]
    return sorted(children, key=lambda e: e.position)


def descendants_of(elements: Sequence[TreeNode], root_ids: Iterable[str]) -> set[str]:
    """Ids of ``root_ids`` plus everything nested below them.

    Breadth-first over parent -> children edges; the visited set makes it
    terminate even when the parent graph contains a cycle.
    """
    children_by_parent: dict[str, list[str]] = {}
    for element in elements:
        if element.parent_id is not None:
            children_by_parent.setdefault(element.parent_id, []).append(element.id)

    visited: set[str] = set()
    queue = deque(root_ids)
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        queue.extend(children_by_parent.get(current, []))
    return visited


class DepthIndex:
    """Memoized depth lookup (0 = top level).

    Cycles and dangling parent references never raise: a chain that runs
    into a cycle gets depth 0 for every member, and an element whose parent
    does not exist is treated as top level.
    """

    def __init__(self, elements: Sequence[TreeNode]):
        self._parents: dict[str, str | None] = {e.id: e.parent_id for e in elements}
        self._memo: dict[str, int] = {}

    def depth(self, element_id: str) -> int:
        if element_id in self._memo:
            return self._memo[element_id]

        chain: list[str] = []
        on_chain: set[str] = set()
        current: str | None = element_id
        base = -1
        while True:
            if current is None or current not in self._parents:
                # Reached the root (or a dangling reference)
                break
            if current in self._memo:
                base = self._memo[current]
                break
            if current in on_chain:
                # Cycle: degrade the whole chain to depth 0
                for node in chain:
                    self._memo[node] = 0
                return self._memo.get(element_id, 0)
            chain.append(current)
            on_chain.add(current)
            current = self._parents[current]

        for offset, node in enumerate(reversed(chain), start=1):
            self._memo[node] = base + offset
        return self._memo.get(element_id, 0)


def depth_map(elements: Sequence[TreeNode], element_ids: Iterable[str]) -> dict[str, int]:
    index = DepthIndex(elements)
    return {element_id: index.depth(element_id) for element_id in element_ids}


def ancestors_of(elements: Sequence[TreeNode], element_id: str) -> list[str]:
    """Parent chain of ``element_id``, nearest first. Stops on cycles."""
    parents = {e.id: e.parent_id for e in elements}
    result: list[str] = []
    seen = {element_id}
    current = parents.get(element_id)
    while current is not None and current not in seen:
        result.append(current)
        seen.add(current)
        current = parents.get(current)
    return result


def would_create_cycle(
    elements: Sequence[TreeNode], element_id: str, new_parent_id: str | None
) -> bool:
    """True if making ``new_parent_id`` the parent of ``element_id`` closes a loop."""
    if new_parent_id is None:
        return False
    if new_parent_id == element_id:
        return True
    return new_parent_id in descendants_of(elements, [element_id])


def has_cycle(parents: dict[str, str | None]) -> bool:
    """Check a complete ``id -> parent_id`` mapping for loops."""
    cleared: set[str] = set()
    for start in parents:
        path: set[str] = set()
        current: str | None = start
        while current is not None and current in parents and current not in cleared:
            if current in path:
                return True
            path.add(current)
            current = parents[current]
        cleared.update(path)
    return False


def next_position(elements: Sequence[TreeNode], parent_id: str | None) -> int:
    """Position for a new last child of ``parent_id``."""
    positions = [e.position for e in elements if e.parent_id == parent_id]
    return max(positions) + 1 if positions else 0


def renumber(children: Sequence[TreeNode]) -> dict[str, int]:
    """Contiguous 0..n-1 positions for ``children``, keeping their current order.

    Returns only the ids whose position actually changes.
    """
    ordered = sorted(children, key=lambda e: e.position)
    return {e.id: index for index, e in enumerate(ordered) if e.position != index}
