"""Outline search: match annotation and highlight splitting."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from .models import OutlineNode

__all__ = ["perform_search", "clear_search_marks", "highlight_segments"]

LOGGER = logging.getLogger(__name__)


def perform_search(nodes: Sequence[OutlineNode], query: str) -> int:
    """Annotate ``nodes`` with match flags and return the matching node count.

    Matching is a case-insensitive substring test. Any node with a matching
    descendant is expanded so the match can be reached.
    """

    needle = query.lower()

    def _traverse(level_nodes: Sequence[OutlineNode]) -> tuple[bool, int]:
        any_match = False
        count = 0
        for node in level_nodes:
            node.is_match = needle in node.text.lower()
            if node.is_match:
                count += 1
            if node.children:
                node.has_matched_descendant, child_count = _traverse(node.children)
                count += child_count
            else:
                node.has_matched_descendant = False
            if node.has_matched_descendant:
                node.collapsed = False
            if node.is_match or node.has_matched_descendant:
                any_match = True
        return any_match, count

    _, match_count = _traverse(nodes)
    return match_count


def clear_search_marks(nodes: Sequence[OutlineNode]) -> None:
    for node in nodes:
        node.is_match = False
        node.has_matched_descendant = False
        if node.children:
            clear_search_marks(node.children)


def highlight_segments(text: str, query: str) -> list[tuple[str, bool]]:
    """Split ``text`` into ``(segment, highlighted)`` pairs for rendering.

    Falls back to a single unhighlighted segment when no pattern can be built.
    """

    if not query or not text:
        return [(text, False)]
    try:
        pattern = re.compile(f"({re.escape(query)})", re.IGNORECASE)
    except (re.error, OverflowError):
        LOGGER.debug("Unable to build highlight pattern for %r", query, exc_info=True)
        return [(text, False)]
    # The single capture group puts matches at odd indices.
    segments: list[tuple[str, bool]] = []
    for index, part in enumerate(pattern.split(text)):
        if part:
            segments.append((part, index % 2 == 1))
    return segments or [(text, False)]
