"""Collapse derivation, reveal paths, and render-time visibility rules."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from .models import OutlineNode, OutlineSnapshot
from .tree import find_path, iter_nodes

__all__ = [
    "SEARCH_DISPLAY_LEVEL",
    "initialize_collapsed_state",
    "clear_force_expanded_state",
    "mark_reveal_path",
    "clear_force_visible",
    "is_node_visible",
    "iter_visible_nodes",
]

# Display level used while searching without a manual level override.
SEARCH_DISPLAY_LEVEL = 100


def _children_beyond(node: OutlineNode, display_level: int) -> bool:
    # Raw heading levels are compared on purpose; display_level comes from
    # the persisted setting, which is expressed in raw levels.
    return all(child.level > display_level for child in node.children)


def initialize_collapsed_state(nodes: Iterable[OutlineNode], display_level: int) -> None:
    for node in iter_nodes(nodes):
        node.collapsed = node.has_children and _children_beyond(node, display_level)


def clear_force_expanded_state(nodes: Iterable[OutlineNode], display_level: int) -> None:
    for node in iter_nodes(nodes):
        node.force_expanded = False
        node.collapsed = node.has_children and _children_beyond(node, display_level)


def mark_reveal_path(nodes: Sequence[OutlineNode], index: int) -> bool:
    """Pin the node with ``index`` and its ancestors visible.

    Earlier reveal marks are dropped first. Returns ``False`` when no node
    carries ``index``.
    """

    for node in iter_nodes(nodes):
        node.force_visible = False
    path = find_path(nodes, index)
    if path is None:
        return False
    *ancestors, target = path
    for ancestor in ancestors:
        ancestor.collapsed = False
        ancestor.force_expanded = True
        ancestor.force_visible = True
    target.force_visible = True
    return True


def clear_force_visible(nodes: Iterable[OutlineNode], expand_level: int) -> int:
    """Undo reveal marks, leaving manually toggled nodes alone.

    Returns the number of nodes that were reset.
    """

    reset = 0
    for node in iter_nodes(nodes):
        if not node.force_visible:
            continue
        node.force_visible = False
        node.force_expanded = False
        if node.children:
            node.collapsed = all(child.relative_level > expand_level for child in node.children)
        reset += 1
    return reset


def is_node_visible(
    node: OutlineNode,
    *,
    search_query: str,
    display_level: int,
    min_relative_level: int,
    search_level_manual: bool,
    parent_collapsed: bool = False,
    parent_force_expanded: bool = False,
) -> bool:
    """Decide whether ``node`` should be rendered.

    ``parent_collapsed`` and ``parent_force_expanded`` are accumulated over the
    whole ancestor chain by the caller.
    """

    if node.force_visible:
        return True
    if parent_collapsed:
        return False
    if node.relative_level == min_relative_level:
        if search_query:
            return node.is_match or node.has_matched_descendant
        return True
    level_allowed = node.relative_level <= display_level or parent_force_expanded
    if not search_query:
        return level_allowed
    relevant = node.is_match or node.has_matched_descendant or parent_force_expanded
    if search_level_manual:
        return relevant and level_allowed
    return relevant


def iter_visible_nodes(snapshot: OutlineSnapshot) -> Iterator[tuple[OutlineNode, int]]:
    """Yield ``(node, depth)`` for every node a renderer should show."""

    def _walk(
        nodes: Sequence[OutlineNode],
        depth: int,
        parent_collapsed: bool,
        parent_force_expanded: bool,
    ) -> Iterator[tuple[OutlineNode, int]]:
        for node in nodes:
            if is_node_visible(
                node,
                search_query=snapshot.search_query,
                display_level=snapshot.display_level,
                min_relative_level=snapshot.min_relative_level,
                search_level_manual=snapshot.search_level_manual,
                parent_collapsed=parent_collapsed,
                parent_force_expanded=parent_force_expanded,
            ):
                yield node, depth
            if node.children:
                yield from _walk(
                    node.children,
                    depth + 1,
                    node.collapsed or parent_collapsed,
                    node.force_expanded or parent_force_expanded,
                )

    yield from _walk(snapshot.tree, 0, False, False)
