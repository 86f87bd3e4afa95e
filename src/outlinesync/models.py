"""Outline data structures shared by the builder, controllers, and consumers."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Protocol, runtime_checkable

__all__ = [
    "USER_QUERY_LEVEL",
    "Rect",
    "Element",
    "OutlineItem",
    "OutlineNode",
    "TreeState",
    "OutlineSnapshot",
]

# Adapters report user queries with this level; headings use 1-6.
USER_QUERY_LEVEL = 0


class Rect(NamedTuple):
    """Vertical extent of an element relative to the viewport."""

    top: float
    bottom: float


@runtime_checkable
class Element(Protocol):
    """Page node referenced by an outline item.

    The page owns the node. The engine only asks whether it is still attached
    and where it currently sits.
    """

    @property
    def is_connected(self) -> bool:  # pragma: no cover - protocol stub
        ...

    def bounding_rect(self) -> Rect:  # pragma: no cover - protocol stub
        ...


@dataclass(frozen=True, slots=True)
class OutlineItem:
    """One row extracted by a site adapter, in document order."""

    level: int
    text: str
    element: Element | None = None
    is_user_query: bool = False
    is_truncated: bool = False


@dataclass(slots=True, eq=False)
class OutlineNode:
    """A node of the outline forest.

    Nodes are recreated on every structural rebuild; references held across a
    rebuild are stale. ``element`` may be swapped for a freshly resolved node
    by the scroll-sync resolver.
    """

    level: int
    text: str
    relative_level: int
    index: int
    element: Element | None = None
    is_user_query: bool = False
    is_truncated: bool = False
    query_index: int | None = None
    children: list["OutlineNode"] = field(default_factory=list)
    collapsed: bool = False
    force_expanded: bool = False
    force_visible: bool = False
    is_match: bool = False
    has_matched_descendant: bool = False

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def state_key(self) -> str:
        """Identity used to carry UI state across rebuilds."""
        return f"{self.level}_{self.text}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "text": self.text,
            "relative_level": self.relative_level,
            "index": self.index,
            "is_user_query": self.is_user_query,
            "is_truncated": self.is_truncated,
            "query_index": self.query_index,
            "collapsed": self.collapsed,
            "force_expanded": self.force_expanded,
            "force_visible": self.force_visible,
            "is_match": self.is_match,
            "has_matched_descendant": self.has_matched_descendant,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True, slots=True)
class TreeState:
    """Per-node UI flags captured before a rebuild."""

    collapsed: bool
    had_children: bool
    force_expanded: bool = False


@dataclass(frozen=True, slots=True)
class OutlineSnapshot:
    """Read-only view of the manager state handed to subscribers."""

    tree: tuple[OutlineNode, ...]
    expand_level: int
    level_counts: Mapping[int, int]
    is_all_expanded: bool
    include_user_queries: bool
    min_relative_level: int
    display_level: int
    search_level_manual: bool
    match_count: int
    search_query: str = ""

    @classmethod
    def build(cls, *, tree: list[OutlineNode], level_counts: Mapping[int, int], **values: Any) -> "OutlineSnapshot":
        return cls(
            tree=tuple(tree),
            level_counts=MappingProxyType(dict(level_counts)),
            **values,
        )

    @property
    def is_searching(self) -> bool:
        return bool(self.search_query)
