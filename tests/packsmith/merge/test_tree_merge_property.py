# tests/packsmith/merge/test_tree_merge_property.py
from __future__ import annotations
import copy
from typing import Any

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import HealthCheck, given, settings, strategies as st

from packsmith.merge.tree_merge import mergeTrees


# Mapping keys and leaf keys come from disjoint alphabets so two generated
# trees never disagree about whether a key holds a mapping
leaf_key = st.sampled_from(["x", "y", "z"])
node_key = st.sampled_from(["a", "b", "c"])
leaf = st.one_of(st.integers(-5, 5), st.text("ab", max_size=2), st.booleans(), st.lists(st.integers(0, 3), max_size=2))
leaves = st.dictionaries(leaf_key, leaf, max_size=2)

tree = st.recursive(
    leaves,
    lambda children: st.builds(
        lambda flat, nested: {**flat, **nested},
        leaves,
        st.dictionaries(node_key, children, max_size=2),
    ),
    max_leaves=6,
)

# Two nested trees per example are slow to draw on a cold example database
treeSettings = settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])


def _merge(src: dict[str, Any], dst: dict[str, Any], overwrite: bool) -> dict[str, Any]:
    return mergeTrees(copy.deepcopy(src), copy.deepcopy(dst), overwrite)


def _leaves(node: dict[str, Any], prefix: tuple[str, ...] = ()):
    for key, value in node.items():
        if isinstance(value, dict):
            yield from _leaves(value, prefix + (key,))
        else:
            yield prefix + (key,), value


def _lookup(node: dict[str, Any], path: tuple[str, ...]) -> Any:
    for part in path:
        node = node[part]
    return node


@treeSettings
@given(tree, tree, st.booleans())
def test_merge_is_idempotent(src: dict[str, Any], dst: dict[str, Any], overwrite: bool) -> None:
    once = _merge(src, dst, overwrite)
    assert _merge(src, once, overwrite) == once


@treeSettings
@given(tree, tree)
def test_overwrite_takes_every_source_leaf(src: dict[str, Any], dst: dict[str, Any]) -> None:
    merged = _merge(src, dst, True)
    for path, value in _leaves(src):
        assert _lookup(merged, path) == value


@treeSettings
@given(tree, tree)
def test_retain_keeps_every_destination_leaf(src: dict[str, Any], dst: dict[str, Any]) -> None:
    merged = _merge(src, dst, False)
    for path, value in _leaves(dst):
        assert _lookup(merged, path) == value
    for path, _ in _leaves(src):
        _lookup(merged, path)
