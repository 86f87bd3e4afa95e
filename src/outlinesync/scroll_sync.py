"""Map a viewport range to the outline node currently in view."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .adapter import SiteAdapter
from .models import Element, OutlineNode
from .tree import iter_nodes

__all__ = ["ScrollMatch", "scan_viewport", "resolve_element", "find_visible_item_index"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScrollMatch:
    """Outcome of one pass over the tree."""

    node: OutlineNode | None
    invalid_count: int

    @property
    def index(self) -> int | None:
        return self.node.index if self.node is not None else None


def _is_live(element: Element | None) -> bool:
    return element is not None and bool(element.is_connected)


def resolve_element(node: OutlineNode, adapter: SiteAdapter) -> Element | None:
    """Return a connected element for ``node``, re-resolving through the adapter.

    A freshly found element replaces the stale reference on the node.
    """

    element = node.element
    if _is_live(element):
        return element
    if node.is_user_query and node.query_index is not None:
        found = adapter.find_user_query_element(node.query_index, node.text)
    else:
        found = adapter.find_element_by_heading(node.level, node.text)
    if found is not None:
        node.element = found
    return found if _is_live(found) else None


def scan_viewport(
    tree: Sequence[OutlineNode],
    adapter: SiteAdapter,
    viewport_top: float,
    viewport_bottom: float,
) -> ScrollMatch:
    invalid_count = 0
    for node in iter_nodes(tree):
        element = resolve_element(node, adapter)
        if element is None:
            invalid_count += 1
            continue
        rect = element.bounding_rect()
        if viewport_top <= rect.top < viewport_bottom:
            return ScrollMatch(node, invalid_count)
        if rect.top < viewport_top and rect.bottom > viewport_top:
            return ScrollMatch(node, invalid_count)
    return ScrollMatch(None, invalid_count)


def find_visible_item_index(
    tree_provider: Callable[[], Sequence[OutlineNode]],
    adapter: SiteAdapter,
    viewport_top: float,
    viewport_bottom: float,
    *,
    refresh: Callable[[], object] | None = None,
) -> int | None:
    """Return the flat-list index of the node in view.

    When nothing matched and some elements could not be resolved, ``refresh``
    runs once and the scan is retried exactly once. ``tree_provider`` is
    re-read after the refresh since a rebuild replaces the tree.
    """

    result = scan_viewport(tree_provider(), adapter, viewport_top, viewport_bottom)
    if result.node is None and result.invalid_count > 0 and refresh is not None:
        LOGGER.debug("Scroll sync found %d stale element(s); refreshing once", result.invalid_count)
        refresh()
        result = scan_viewport(tree_provider(), adapter, viewport_top, viewport_bottom)
    return result.index
