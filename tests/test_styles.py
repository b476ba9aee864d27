"""Tests for style variables, group colours and the shared style registry."""

import pytest
from pydantic import ValidationError

from node_models import ModelNode
from styles import (
    DEAD_COLOR,
    GROUP_PALETTE,
    StyleVariables,
    group_color,
    name_style,
    register_style,
    registered_styles,
)
from tree_builder import build


def test_defaults_and_css_variables():
    variables = StyleVariables().css_variables()
    assert variables["mt-node-color"] == "#999999"
    assert variables["mt-note-color"] == "#ef4444"
    assert "mt-font" not in variables


def test_custom_properties_cover_every_variable():
    props = StyleVariables(node_color="#123456").custom_properties()
    assert props["--mt-node-color"] == "#123456"
    assert props["--mt-font-size"] == "15px"
    assert len(props) == len(StyleVariables.model_fields)


def test_invalid_colour_rejected():
    with pytest.raises(ValidationError):
        StyleVariables(note_color="not-a-colour")


def test_group_color_falls_back_to_node_color():
    assert group_color("meta") == GROUP_PALETTE["meta"][0]
    assert group_color("unknown-co") == "#999999"
    assert group_color(None, StyleVariables(node_color="#abcdef")) == "#abcdef"


def test_inherited_group_styles_like_explicit_group():
    roots = [
        ModelNode(
            name="Meta",
            group="meta",
            children=[ModelNode(name="Llama"), ModelNode(name="OPT", group="meta")],
        )
    ]
    tree = build(roots)
    inherited, explicit = tree.roots[0].children
    assert inherited.group == "meta"
    assert name_style(inherited) == name_style(explicit)
    assert name_style(inherited).color == name_style(tree.roots[0]).color


def test_dead_and_section_styles():
    roots = [
        ModelNode(
            name="R",
            group="openai",
            children=[ModelNode(name="old", dead=True), ModelNode(name="Sec", is_section=True)],
        )
    ]
    dead, section = build(roots).roots[0].children
    assert name_style(dead).strike
    assert name_style(dead).color.name == DEAD_COLOR
    assert not name_style(section).bold


def test_register_style_is_idempotent():
    assert register_style("test-style-once", ".a{}") is True
    assert register_style("test-style-once", ".b{}") is False
    assert registered_styles()["test-style-once"] == ".a{}"
