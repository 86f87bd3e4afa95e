"""Tests for collapse derivation, reveal marks, and render visibility."""

from __future__ import annotations

from outlinesync.models import OutlineSnapshot
from outlinesync.tree import build_tree, flatten
from outlinesync.visibility import (
    SEARCH_DISPLAY_LEVEL,
    clear_force_expanded_state,
    clear_force_visible,
    initialize_collapsed_state,
    is_node_visible,
    iter_visible_nodes,
    mark_reveal_path,
)

from tests.helpers import items_from


def _tree():
    return build_tree(items_from((1, "A"), (2, "B"), (3, "B1"), (2, "C"), (1, "D")), min_level=1)


def _snapshot(tree, **overrides) -> OutlineSnapshot:
    values = dict(
        expand_level=6,
        is_all_expanded=True,
        include_user_queries=False,
        min_relative_level=1,
        display_level=6,
        search_level_manual=False,
        match_count=0,
        search_query="",
    )
    values.update(overrides)
    return OutlineSnapshot.build(tree=tree, level_counts={}, **values)


def test_initialize_collapsed_state_uses_heading_levels() -> None:
    tree = _tree()

    initialize_collapsed_state(tree, 2)

    a, b, b1, c, d = flatten(tree)
    assert a.collapsed is False
    assert b.collapsed is True
    assert not any(node.collapsed for node in (b1, c, d))


def test_clear_force_expanded_state_resets_flags() -> None:
    tree = _tree()
    for node in flatten(tree):
        node.force_expanded = True

    clear_force_expanded_state(tree, 1)

    assert not any(node.force_expanded for node in flatten(tree))
    assert tree[0].collapsed is True


def test_mark_reveal_path_drops_previous_marks() -> None:
    tree = _tree()
    mark_reveal_path(tree, 4)

    assert mark_reveal_path(tree, 2) is True

    marked = [node.text for node in flatten(tree) if node.force_visible]
    assert marked == ["A", "B", "B1"]


def test_clear_force_visible_compares_relative_levels() -> None:
    tree = build_tree(items_from((2, "A"), (3, "B")), min_level=2)
    mark_reveal_path(tree, 1)

    reset = clear_force_visible(tree, 1)

    assert reset == 2
    # B has relative level 2 (raw level 3)
    assert tree[0].collapsed is True
    assert tree[0].force_expanded is False


def test_clear_force_visible_leaves_unmarked_nodes_alone() -> None:
    tree = _tree()
    tree[1].collapsed = True

    assert clear_force_visible(tree, 6) == 0
    assert tree[1].collapsed is True


def test_force_visible_beats_collapsed_parent() -> None:
    tree = _tree()
    node = tree[0].children[0]
    node.force_visible = True

    assert is_node_visible(
        node,
        search_query="",
        display_level=1,
        min_relative_level=1,
        search_level_manual=False,
        parent_collapsed=True,
    )


def test_root_level_shown_unless_search_misses() -> None:
    root = _tree()[0]
    common = dict(display_level=1, min_relative_level=1, search_level_manual=False)

    assert is_node_visible(root, search_query="", **common)
    assert not is_node_visible(root, search_query="zzz", **common)
    root.has_matched_descendant = True
    assert is_node_visible(root, search_query="zzz", **common)


def test_search_with_manual_level_requires_both_rules() -> None:
    node = _tree()[0].children[0]
    node.is_match = True
    common = dict(search_query="b", min_relative_level=1)

    assert is_node_visible(node, display_level=SEARCH_DISPLAY_LEVEL, search_level_manual=False, **common)
    assert not is_node_visible(node, display_level=1, search_level_manual=True, **common)
    assert is_node_visible(node, display_level=1, search_level_manual=True, parent_force_expanded=True, **common)


def test_iter_visible_nodes_respects_collapse_and_depth() -> None:
    tree = _tree()
    initialize_collapsed_state(tree, 2)

    visible = [(node.text, depth) for node, depth in iter_visible_nodes(_snapshot(tree, display_level=2))]

    assert visible == [("A", 0), ("B", 1), ("C", 1), ("D", 0)]


def test_iter_visible_nodes_force_expanded_reveals_deeper_levels() -> None:
    tree = _tree()
    tree[0].force_expanded = True

    visible = [node.text for node, _ in iter_visible_nodes(_snapshot(tree, display_level=1))]

    assert visible == ["A", "B", "B1", "C", "D"]
