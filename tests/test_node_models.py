"""Tests for the node model and leaf counting."""

from node_models import ModelNode, count_leaves


def _leaf_nodes(node):
    if not node.children:
        return 1
    return sum(_leaf_nodes(child) for child in node.children)


def test_leaf_counts_as_one():
    assert count_leaves(ModelNode(name="solo")) == 1


def test_flags_do_not_change_leaf_count():
    node = ModelNode(name="x", dead=True, is_section=True, collapsed=True)
    assert count_leaves(node) == 1


def test_branch_sums_children(meta_forest):
    root = meta_forest[0]
    # Llama 2, Llama 3, OPT
    assert count_leaves(root) == 3
    assert count_leaves(root.children[0]) == 2


def test_count_matches_childless_nodes_in_subtree():
    root = ModelNode(
        name="r",
        children=[
            ModelNode(name="a", children=[ModelNode(name="a1"), ModelNode(name="a2", children=[ModelNode(name="deep")])]),
            ModelNode(name="b"),
            ModelNode(name="c", children=[ModelNode(name="c1")]),
        ],
    )
    assert count_leaves(root) == _leaf_nodes(root) == 4


def test_is_branch():
    assert ModelNode(name="b", children=[ModelNode(name="c")]).is_branch
    assert not ModelNode(name="leaf").is_branch


def test_count_is_not_cached():
    root = ModelNode(name="r", children=[ModelNode(name="a")])
    assert count_leaves(root) == 1
    root.children.append(ModelNode(name="b"))
    assert count_leaves(root) == 2
