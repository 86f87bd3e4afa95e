"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence

from outlinesync.models import USER_QUERY_LEVEL, OutlineItem, Rect


@dataclass(eq=False)
class FakeElement:
    """Page node stand-in with a fixed position."""

    top: float = 0.0
    bottom: float = 0.0
    is_connected: bool = True
    label: str = ""

    def bounding_rect(self) -> Rect:
        return Rect(self.top, self.bottom)


def heading(level: int, text: str, element: FakeElement | None = None) -> OutlineItem:
    return OutlineItem(level=level, text=text, element=element)


def query(text: str, element: FakeElement | None = None) -> OutlineItem:
    return OutlineItem(level=USER_QUERY_LEVEL, text=text, element=element, is_user_query=True)


def items_from(*pairs: tuple[int, str]) -> list[OutlineItem]:
    return [heading(level, text) for level, text in pairs]


@dataclass
class FakeAdapter:
    """In-memory site adapter.

    ``items`` is what the page "contains"; user queries are filtered out when
    the manager asks for headings only, like the real adapters do.
    """

    items: list[OutlineItem] = field(default_factory=list)
    generating: bool = False
    headings: dict[tuple[int, str], FakeElement] = field(default_factory=dict)
    user_queries: dict[int, FakeElement] = field(default_factory=dict)
    scroll_container: FakeElement | None = None
    extract_calls: int = 0
    probe_calls: int = 0
    lookups: list[tuple[str, object, str]] = field(default_factory=list)

    def extract_outline(self, max_level: int, include_user_queries: bool) -> Sequence[OutlineItem]:
        self.extract_calls += 1
        return [
            item
            for item in self.items
            if (item.is_user_query and include_user_queries) or (not item.is_user_query and item.level <= max_level)
        ]

    def is_generating(self) -> bool:
        self.probe_calls += 1
        return self.generating

    def find_element_by_heading(self, level: int, text: str) -> FakeElement | None:
        self.lookups.append(("heading", level, text))
        return self.headings.get((level, text))

    def find_user_query_element(self, query_index: int, text: str) -> FakeElement | None:
        self.lookups.append(("query", query_index, text))
        return self.user_queries.get(query_index)

    def get_scroll_container(self) -> FakeElement | None:
        return self.scroll_container

    def extract_user_query_text(self, element: FakeElement) -> str:
        return element.label


class FakeMutationSource:
    """Mutation signal the test fires by hand."""

    def __init__(self) -> None:
        self.callbacks: list[Callable[[], None]] = []
        self.disconnects = 0

    def connect(self, callback: Callable[[], None]) -> Callable[[], None]:
        self.callbacks.append(callback)

        def _disconnect() -> None:
            self.disconnects += 1
            self.callbacks.remove(callback)

        return _disconnect

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for callback in list(self.callbacks):
                callback()
