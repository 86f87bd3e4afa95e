"""Outline tree construction and state carry-over helpers."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Iterator, Sequence

from .models import OutlineItem, OutlineNode, TreeState

__all__ = [
    "build_tree",
    "iter_nodes",
    "flatten",
    "find_node",
    "find_path",
    "compute_level_counts",
    "min_heading_level",
    "max_actual_level",
    "outline_key",
    "capture_tree_state",
    "restore_tree_state",
]


def build_tree(items: Sequence[OutlineItem], min_level: int) -> list[OutlineNode]:
    """Fold a flat, ordered item list into a forest.

    ``index`` is the item's position in ``items`` and ``query_index`` counts
    user queries from 1 in document order.
    """

    tree: list[OutlineNode] = []
    stack: list[OutlineNode] = []
    query_count = 0
    for index, item in enumerate(items):
        relative_level = 0 if item.is_user_query else item.level - min_level + 1
        query_index: int | None = None
        if item.is_user_query:
            query_count += 1
            query_index = query_count
        node = OutlineNode(
            level=item.level,
            text=item.text,
            relative_level=relative_level,
            index=index,
            element=item.element,
            is_user_query=item.is_user_query,
            is_truncated=item.is_truncated,
            query_index=query_index,
        )
        while stack and stack[-1].relative_level >= relative_level:
            stack.pop()
        if stack:
            stack[-1].children.append(node)
        else:
            tree.append(node)
        stack.append(node)
    return tree


def iter_nodes(nodes: Iterable[OutlineNode]) -> Iterator[OutlineNode]:
    """Yield nodes in pre-order (document order)."""

    for node in nodes:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def flatten(nodes: Iterable[OutlineNode]) -> list[OutlineNode]:
    return list(iter_nodes(nodes))


def find_path(nodes: Sequence[OutlineNode], index: int) -> list[OutlineNode] | None:
    """Return ``[root, ..., target]`` for the node with ``index`` or ``None``."""

    for node in nodes:
        if node.index == index:
            return [node]
        if node.children:
            path = find_path(node.children, index)
            if path is not None:
                return [node, *path]
    return None


def find_node(nodes: Sequence[OutlineNode], index: int) -> OutlineNode | None:
    path = find_path(nodes, index)
    return path[-1] if path else None


def compute_level_counts(items: Iterable[OutlineItem]) -> dict[int, int]:
    """Histogram of raw levels, user queries included under their sentinel."""

    return dict(Counter(item.level for item in items))


def min_heading_level(items: Iterable[OutlineItem]) -> int:
    levels = [item.level for item in items if not item.is_user_query]
    return min(levels) if levels else 1


def max_actual_level(level_counts: dict[int, int] | Iterable[int]) -> int:
    return max([*level_counts, 1])


def outline_key(items: Iterable[OutlineItem]) -> str:
    """Content signature used to detect structural changes."""

    return "|".join(item.text for item in items)


def capture_tree_state(nodes: Iterable[OutlineNode], state_map: dict[str, TreeState] | None = None) -> dict[str, TreeState]:
    """Record UI flags keyed by ``level_text``.

    Duplicate keys collapse into one entry; the last node in pre-order wins.
    """

    if state_map is None:
        state_map = {}
    for node in iter_nodes(nodes):
        state_map[node.state_key] = TreeState(
            collapsed=node.collapsed,
            had_children=node.has_children,
            force_expanded=node.force_expanded,
        )
    return state_map


def restore_tree_state(nodes: Iterable[OutlineNode], state_map: dict[str, TreeState]) -> None:
    """Overlay captured flags onto a freshly built tree.

    A node that gained children since capture keeps its derived collapse
    state so new content is not hidden behind a flag recorded for a leaf.
    """

    for node in iter_nodes(nodes):
        state = state_map.get(node.state_key)
        if state is None:
            continue
        if state.had_children or not node.has_children:
            node.collapsed = state.collapsed
        node.force_expanded = state.force_expanded
