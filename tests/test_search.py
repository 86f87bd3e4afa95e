"""Tests for outline search and highlight splitting."""

from __future__ import annotations

import pytest

from outlinesync.search import clear_search_marks, highlight_segments, perform_search
from outlinesync.tree import build_tree, flatten

from tests.helpers import items_from


def _tree():
    return build_tree(
        items_from((1, "Setup"), (2, "Install deps"), (3, "Pip cache"), (2, "Configure"), (1, "Usage")),
        min_level=1,
    )


def test_search_is_case_insensitive_substring() -> None:
    tree = _tree()

    count = perform_search(tree, "PIP")

    assert count == 1
    assert [node.text for node in flatten(tree) if node.is_match] == ["Pip cache"]


def test_matched_descendants_propagate_and_expand() -> None:
    tree = _tree()
    for node in flatten(tree):
        node.collapsed = bool(node.children)

    perform_search(tree, "cache")

    setup, install, cache, configure, usage = flatten(tree)
    assert setup.has_matched_descendant and install.has_matched_descendant
    assert not cache.has_matched_descendant
    assert not configure.has_matched_descendant and not usage.has_matched_descendant
    assert setup.collapsed is False
    assert install.collapsed is False


def test_node_matching_itself_and_below_counts_both() -> None:
    tree = build_tree(items_from((1, "Notes"), (2, "More notes")), min_level=1)

    assert perform_search(tree, "notes") == 2
    assert tree[0].is_match and tree[0].has_matched_descendant


def test_new_search_replaces_previous_marks() -> None:
    tree = _tree()
    perform_search(tree, "usage")

    perform_search(tree, "configure")

    assert [node.text for node in flatten(tree) if node.is_match] == ["Configure"]
    assert tree[1].is_match is False


def test_clear_search_marks() -> None:
    tree = _tree()
    perform_search(tree, "cache")

    clear_search_marks(tree)

    assert not any(node.is_match or node.has_matched_descendant for node in flatten(tree))


@pytest.mark.parametrize(
    ("text", "query", "expected"),
    [
        ("Hello World", "o", [("Hell", False), ("o", True), (" W", False), ("o", True), ("rld", False)]),
        ("Hello World", "WORLD", [("Hello ", False), ("World", True)]),
        ("a.b axb", "a.b", [("a.b", True), (" axb", False)]),
        ("(1+1)", "(1+1)", [("(1+1)", True)]),
        ("Nothing here", "zzz", [("Nothing here", False)]),
        ("Anything", "", [("Anything", False)]),
        ("ſtar", "s", [("ſ", True), ("tar", False)]),
        ("İx", "i", [("İ", True), ("x", False)]),
    ],
)
def test_highlight_segments(text: str, query: str, expected: list[tuple[str, bool]]) -> None:
    assert highlight_segments(text, query) == expected


def test_highlight_segments_rejoin_to_input_text() -> None:
    text = "Search the searchable SEARCH index"

    segments = highlight_segments(text, "search")

    assert "".join(part for part, _ in segments) == text
    assert sum(1 for _, hit in segments if hit) == 3
