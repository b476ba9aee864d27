"""Tests for the expand/collapse and tooltip controllers."""

import pytest
from textual.geometry import Region, Size

from controllers import (
    TOOLTIP_MARGIN,
    ExpandCollapseController,
    TooltipController,
    place_tooltip,
)


@pytest.fixture()
def controller():
    c = ExpandCollapseController()
    c.register("n0", top_level=True)
    c.register("n0-0")
    c.register("n0-0-1", collapsed=True)
    c.register("n1", collapsed=True, top_level=True)
    c.register("n1-0")
    return c


def test_initial_state(controller):
    assert controller.state("n0") == "expanded"
    assert controller.state("n0-0-1") == "collapsed"
    assert controller.badge_visible("n1")
    assert not controller.children_visible("n1")


def test_toggle_flips_only_one_branch(controller):
    assert controller.toggle("n0-0") is True
    assert controller.is_collapsed("n0-0")
    assert not controller.is_collapsed("n0")
    assert controller.is_collapsed("n0-0-1")
    assert not controller.is_collapsed("n1-0")


def test_double_toggle_is_identity(controller):
    before = {node_id: controller.is_collapsed(node_id) for node_id in controller.branch_ids}
    for node_id in controller.branch_ids:
        controller.toggle(node_id)
        controller.toggle(node_id)
    after = {node_id: controller.is_collapsed(node_id) for node_id in controller.branch_ids}
    assert before == after


def test_expand_all(controller):
    changed = controller.expand_all()
    assert sorted(changed) == ["n0-0-1", "n1"]
    assert not any(controller.is_collapsed(node_id) for node_id in controller.branch_ids)


def test_collapse_all_spares_top_level(controller):
    changed = controller.collapse_all()
    assert sorted(changed) == ["n0-0", "n1-0"]
    assert not controller.is_collapsed("n0")
    # A top-level container that starts collapsed is left alone.
    assert controller.is_collapsed("n1")


def test_expand_then_collapse_never_collapses_roots(controller):
    controller.expand_all()
    controller.collapse_all()
    assert not controller.is_collapsed("n0")
    assert not controller.is_collapsed("n1")
    assert controller.is_collapsed("n0-0")
    assert controller.is_collapsed("n0-0-1")


def test_unknown_ids_are_ignored(controller):
    assert controller.toggle("nope") is False
    assert controller.state("nope") == "expanded"
    assert "nope" not in controller


def test_listeners_receive_changes(controller):
    seen = []
    controller.subscribe(lambda node_id, collapsed: seen.append((node_id, collapsed)))
    controller.toggle("n0-0")
    controller.expand_all()
    assert seen == [("n0-0", True), ("n0-0", False), ("n0-0-1", False), ("n1", False)]


def test_failing_listener_does_not_escape(controller, caplog):
    def broken(node_id, collapsed):
        raise RuntimeError("boom")

    controller.subscribe(broken)
    assert controller.toggle("n0") is True
    assert controller.is_collapsed("n0")
    assert "Collapse listener failed" in caplog.text


def test_unsubscribe(controller):
    seen = []
    listener = lambda node_id, collapsed: seen.append(node_id)  # noqa: E731
    controller.subscribe(listener)
    controller.unsubscribe(listener)
    controller.toggle("n0")
    assert seen == []


VIEWPORT = Size(120, 40)
PANEL = Size(40, 5)


def test_tooltip_above_anchor_by_default():
    anchor = Region(20, 20, 10, 1)
    assert place_tooltip(anchor, PANEL, VIEWPORT, gap=1) == (20, 14)


def test_tooltip_flips_below_near_top():
    anchor = Region(20, 2, 10, 1)
    assert place_tooltip(anchor, PANEL, VIEWPORT, gap=1) == (20, 4)


def test_tooltip_flips_below_inside_the_top_margin():
    anchor = Region(20, 15, 10, 1)
    # 15 - 5 - 1 = 9 rows above: clear of the top but inside the 12-unit margin.
    assert place_tooltip(anchor, PANEL, VIEWPORT, gap=1) == (20, 17)
    assert place_tooltip(anchor, PANEL, VIEWPORT, gap=1, top_margin=1) == (20, 9)


def test_tooltip_controller_uses_a_one_row_top_margin():
    tips = TooltipController()
    state = tips.hover("a", "tip", Region(20, 5, 10, 1), 3, VIEWPORT)
    assert state.y == 1
    state = tips.hover("a", "tip", Region(20, 4, 10, 1), 3, VIEWPORT)
    assert state.y == 6


def test_tooltip_clamped_to_right_edge():
    anchor = Region(100, 20, 10, 1)
    left, _ = place_tooltip(anchor, PANEL, VIEWPORT)
    assert left == VIEWPORT.width - PANEL.width - TOOLTIP_MARGIN
    assert left + PANEL.width <= VIEWPORT.width - TOOLTIP_MARGIN


def test_tooltip_clamped_to_left_edge():
    anchor = Region(3, 20, 10, 1)
    left, _ = place_tooltip(anchor, PANEL, VIEWPORT)
    assert left == TOOLTIP_MARGIN


def test_tooltip_left_margin_wins_on_narrow_viewport():
    left, _ = place_tooltip(Region(30, 20, 5, 1), PANEL, Size(50, 40))
    assert left == TOOLTIP_MARGIN


def test_tooltip_controller_show_and_leave():
    tips = TooltipController()
    state = tips.hover("n0-name", "<b>hi</b>", Region(20, 20, 10, 1), 3, VIEWPORT)
    assert state.visible and state.content == "<b>hi</b>" and state.target_id == "n0-name"

    # Leaving an element that is not the current target keeps the panel.
    tips.leave("n1-name")
    assert tips.visible
    tips.leave("n0-name")
    assert not tips.visible


def test_tooltip_hover_without_target_hides():
    tips = TooltipController()
    tips.hover("a", "tip", Region(20, 20, 10, 1), 3, VIEWPORT)
    tips.hover(None, None, Region(0, 0, 1, 1), 0, VIEWPORT)
    assert not tips.visible


def test_tooltip_rapid_hover_keeps_single_state():
    tips = TooltipController()
    for index in range(20):
        tips.hover(f"n{index}-name", f"tip {index}", Region(20, 20, 10, 1), 3, VIEWPORT)
    assert tips.state.target_id == "n19-name"
    assert tips.state.content == "tip 19"


def test_tooltip_dispose_makes_calls_noops():
    tips = TooltipController()
    tips.hover("a", "tip", Region(20, 20, 10, 1), 3, VIEWPORT)
    tips.dispose()
    assert tips.disposed and not tips.visible
    tips.hover("a", "tip", Region(20, 20, 10, 1), 3, VIEWPORT)
    assert not tips.visible
