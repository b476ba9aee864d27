from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Literal, Optional

from textual.geometry import Region, Size


logger = logging.getLogger(__name__)

BranchState = Literal["expanded", "collapsed"]
CollapseListener = Callable[[str, bool], None]

TOOLTIP_WIDTH = 40
TOOLTIP_MARGIN = 12
TOOLTIP_GAP = 1
# rows kept free above a panel before it flips below its anchor
TOOLTIP_TOP_MARGIN = 1


class ExpandCollapseController:
    """Collapsed/expanded flag for every branch of one rendered tree.

    The flags live here rather than on the nodes so that they can be thrown
    away with the widget. Every operation is total: unknown ids are ignored.
    """

    def __init__(self) -> None:
        self._collapsed: dict[str, bool] = {}
        self._top_level: set[str] = set()
        self._listeners: list[CollapseListener] = []

    def register(self, node_id: str, *, collapsed: bool = False, top_level: bool = False) -> None:
        self._collapsed[node_id] = bool(collapsed)
        if top_level:
            self._top_level.add(node_id)
        else:
            self._top_level.discard(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._collapsed

    @property
    def branch_ids(self) -> list[str]:
        return list(self._collapsed)

    def is_top_level(self, node_id: str) -> bool:
        return node_id in self._top_level

    def is_collapsed(self, node_id: str) -> bool:
        return self._collapsed.get(node_id, False)

    def state(self, node_id: str) -> BranchState:
        return "collapsed" if self.is_collapsed(node_id) else "expanded"

    def children_visible(self, node_id: str) -> bool:
        return not self.is_collapsed(node_id)

    def badge_visible(self, node_id: str) -> bool:
        # The leaf-count badge stands in for the hidden subtree.
        return self.is_collapsed(node_id)

    def subscribe(self, listener: CollapseListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: CollapseListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set(self, node_id: str, collapsed: bool) -> bool:
        if self._collapsed.get(node_id) == collapsed:
            return False
        self._collapsed[node_id] = collapsed
        for listener in list(self._listeners):
            try:
                listener(node_id, collapsed)
            except Exception:
                logger.exception("Collapse listener failed for %s", node_id)
        return True

    def toggle(self, node_id: str) -> bool:
        """Flip one branch. Returns the new collapsed flag."""
        if node_id not in self._collapsed:
            return False
        collapsed = not self._collapsed[node_id]
        self._set(node_id, collapsed)
        return collapsed

    def expand_all(self) -> list[str]:
        changed = [node_id for node_id, collapsed in self._collapsed.items() if collapsed]
        for node_id in changed:
            self._set(node_id, False)
        return changed

    def collapse_all(self) -> list[str]:
        """Collapse every branch except the top-level group containers."""
        changed = [
            node_id
            for node_id, collapsed in self._collapsed.items()
            if not collapsed and node_id not in self._top_level
        ]
        for node_id in changed:
            self._set(node_id, True)
        return changed


def place_tooltip(
    anchor: Region,
    panel: Size,
    viewport: Size,
    *,
    margin: int = TOOLTIP_MARGIN,
    gap: int = TOOLTIP_GAP,
    top_margin: Optional[int] = None,
) -> tuple[int, int]:
    """Top-left corner for a panel of size ``panel`` next to ``anchor``.

    Prefers the space above the anchor and falls back to below it when the
    panel would come closer than ``top_margin`` (``margin`` unless given)
    to the top of the viewport. The horizontal position keeps
    ``margin`` free on both sides where the viewport allows it; the left
    margin wins when it does not.
    """
    left = anchor.x
    top = anchor.y - panel.height - gap
    if left + panel.width > viewport.width - margin:
        left = viewport.width - panel.width - margin
    if left < margin:
        left = margin
    if top < (margin if top_margin is None else top_margin):
        top = anchor.bottom + gap
    return left, top


@dataclass
class TooltipState:
    visible: bool = False
    content: str = ""
    target_id: Optional[str] = None
    x: int = 0
    y: int = 0


class TooltipController:
    """Owns the state of the single hover panel of one widget instance."""

    def __init__(
        self,
        *,
        width: int = TOOLTIP_WIDTH,
        margin: int = TOOLTIP_MARGIN,
        gap: int = TOOLTIP_GAP,
        top_margin: int = TOOLTIP_TOP_MARGIN,
    ) -> None:
        self.width = width
        self.margin = margin
        self.gap = gap
        self.top_margin = top_margin
        self.state = TooltipState()
        self._disposed = False

    @property
    def visible(self) -> bool:
        return self.state.visible

    @property
    def disposed(self) -> bool:
        return self._disposed

    def hover(
        self,
        target_id: Optional[str],
        content: Optional[str],
        anchor: Region,
        panel_height: int,
        viewport: Size,
    ) -> TooltipState:
        """Pointer is over ``target_id``; ``None`` means no tooltip-bearing element."""
        if self._disposed:
            return self.state
        if target_id is None or not content:
            return self.hide()
        x, y = place_tooltip(
            anchor,
            Size(self.width, panel_height),
            viewport,
            margin=self.margin,
            gap=self.gap,
            top_margin=self.top_margin,
        )
        self.state = TooltipState(visible=True, content=content, target_id=target_id, x=x, y=y)
        return self.state

    def leave(self, target_id: Optional[str]) -> TooltipState:
        """Pointer left ``target_id``. Only hides the panel if it belongs to it."""
        if self._disposed:
            return self.state
        if target_id is not None and target_id == self.state.target_id:
            return self.hide()
        return self.state

    def hide(self) -> TooltipState:
        if self._disposed:
            return self.state
        self.state = TooltipState(x=self.state.x, y=self.state.y)
        return self.state

    def dispose(self) -> None:
        self.state = TooltipState()
        self._disposed = True
