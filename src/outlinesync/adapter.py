"""Protocols describing what the host page must provide to the engine."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence, runtime_checkable

from .models import Element, OutlineItem

__all__ = ["SiteAdapter", "MutationSource", "Disconnect"]

Disconnect = Callable[[], None]


@runtime_checkable
class SiteAdapter(Protocol):
    """Site-specific bridge to the transcript.

    Implementations own every page lookup; the engine only consumes the
    results. ``extract_outline`` must return items in document order and may
    return an empty sequence.
    """

    def extract_outline(self, max_level: int, include_user_queries: bool) -> Sequence[OutlineItem]:  # pragma: no cover - protocol stub
        ...

    def is_generating(self) -> bool:  # pragma: no cover - protocol stub
        ...

    def find_element_by_heading(self, level: int, text: str) -> Element | None:  # pragma: no cover - protocol stub
        ...

    def find_user_query_element(self, query_index: int, text: str) -> Element | None:  # pragma: no cover - protocol stub
        ...

    def get_scroll_container(self) -> Element | None:  # pragma: no cover - protocol stub
        ...

    def extract_user_query_text(self, element: Element) -> str:  # pragma: no cover - protocol stub
        ...


class MutationSource(Protocol):
    """High-frequency "the transcript changed" signal."""

    def connect(self, callback: Callable[[], None]) -> Disconnect:  # pragma: no cover - protocol stub
        ...
