from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from html.parser import HTMLParser
import logging
from pathlib import Path
from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.dom import DOMNode
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, Footer, Header, Static
from rich.style import Style
from rich.text import Text

from config import TreeConfig, load_config
from controllers import TOOLTIP_WIDTH, ExpandCollapseController, TooltipController
from html_export import open_preview, write_preview
from node_models import ModelNode
from styles import BADGE_COLOR, DIM_NOTE_COLOR, StyleVariables, name_style, rich_color
from tree_builder import VisualRow, VisualTree, build
from yaml_io import load_document


logger = logging.getLogger(__name__)

CHEVRON_EXPANDED = "▾"
CHEVRON_COLLAPSED = "▸"
TOOLTIP_LAYER = "tooltip"


class _TooltipMarkup(HTMLParser):
    """Converts the light HTML used in tooltips into a Rich ``Text``."""

    _TAG_STYLES = {
        "strong": "bold",
        "b": "bold",
        "em": "italic",
        "i": "italic",
        "u": "underline",
        "a": "underline",
        "code": "bold cyan",
    }

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.text = Text()
        self._open_tags: list[tuple[str, str]] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, Optional[str]]]) -> None:
        if tag == "br":
            self.text.append("\n")
            return
        if tag == "p" and self.text.plain:
            self.text.append("\n")
        self._open_tags.append((tag, self._TAG_STYLES.get(tag, "")))

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._open_tags) - 1, -1, -1):
            if self._open_tags[index][0] == tag:
                del self._open_tags[index:]
                return

    def handle_data(self, data: str) -> None:
        style = " ".join(style for _, style in self._open_tags if style)
        self.text.append(data, style=style or None)


def tooltip_text(markup: str) -> Text:
    parser = _TooltipMarkup()
    parser.feed(markup)
    parser.close()
    return parser.text


def closest_with_tooltip(node: Optional[DOMNode], stop: Optional[DOMNode] = None) -> Optional["RowPart"]:
    """``node`` or its nearest ancestor that carries tooltip content."""
    while node is not None and node is not stop:
        if isinstance(node, RowPart) and node.tip_markup:
            return node
        node = node.parent
    return None


class RowPart(Static):
    """One piece of a tree row: toggle, label, date, notes or leaf badge."""

    def __init__(self, content: Text | str, *, row: VisualRow, kind: str, **kwargs: object) -> None:
        super().__init__(content, **kwargs)
        self.row = row
        self.kind = kind

    @property
    def tip_markup(self) -> Optional[str]:
        return self.row.tooltip if self.kind == "name" else None

    def _owner_view(self) -> Optional["ModelTreeView"]:
        for ancestor in self.ancestors:
            if isinstance(ancestor, ModelTreeView):
                return ancestor
        return None

    def on_enter(self, event: events.Enter) -> None:
        view = self._owner_view()
        if view is not None:
            view.pointer_over(self)

    def on_leave(self, event: events.Leave) -> None:
        view = self._owner_view()
        if view is not None:
            view.pointer_left(self)


class ToggleControl(RowPart):
    def on_click(self, event: events.Click) -> None:
        event.stop()
        if self.row.toggle_hook is not None:
            self.row.toggle_hook()


class DateLink(RowPart):
    def on_click(self, event: events.Click) -> None:
        hook = self.row.link_hook
        if hook is None:
            return
        if hook.stops_propagation:
            event.stop()
        hook()


class TreeRow(Horizontal):
    """The visible line of one node."""

    def __init__(
        self,
        row: VisualRow,
        *,
        collapsed: bool,
        style_variables: StyleVariables,
    ) -> None:
        super().__init__(classes="tree-row")
        self.row = row
        self.toggle_part: Optional[ToggleControl] = None
        self.badge_part: Optional[RowPart] = None
        self._is_collapsed = collapsed
        self._style_variables = style_variables

    def compose(self) -> ComposeResult:
        row = self.row
        variables = self._style_variables
        for kind in row.parts:
            part_id = f"{row.node_id}-{kind.replace('_', '-')}"
            if kind == "toggle":
                chevron = CHEVRON_COLLAPSED if self._is_collapsed else CHEVRON_EXPANDED
                self.toggle_part = ToggleControl(chevron, row=row, kind=kind, id=part_id, classes="n-toggle")
                yield self.toggle_part
            elif kind == "name":
                label = row.label.upper() if row.is_section else row.label
                yield RowPart(
                    Text(label, style=name_style(row, variables)),
                    row=row,
                    kind=kind,
                    id=part_id,
                    classes="n-section" if row.is_section else "n-name",
                )
            elif kind == "date":
                date_style = Style(color=rich_color(variables.date_color), underline=bool(row.link))
                part_class = DateLink if row.link_hook is not None else RowPart
                yield part_class(
                    Text(row.date or "", style=date_style), row=row, kind=kind, id=part_id, classes="n-date"
                )
            elif kind == "note":
                yield RowPart(
                    Text(f"← {row.note}", style=Style(color=rich_color(variables.note_color), italic=True)),
                    row=row,
                    kind=kind,
                    id=part_id,
                    classes="n-note",
                )
            elif kind == "dim_note":
                yield RowPart(
                    Text(row.dim_note or "", style=Style(color=DIM_NOTE_COLOR, italic=True)),
                    row=row,
                    kind=kind,
                    id=part_id,
                    classes="n-note-dim",
                )
            elif kind == "count":
                badge = RowPart(
                    Text(str(row.leaf_count), style=Style(color=BADGE_COLOR)),
                    row=row,
                    kind=kind,
                    id=part_id,
                    classes="n-count",
                )
                badge.display = self._is_collapsed
                self.badge_part = badge
                yield badge

    def show_collapsed(self, collapsed: bool) -> None:
        self._is_collapsed = collapsed
        if self.toggle_part is not None:
            self.toggle_part.update(CHEVRON_COLLAPSED if collapsed else CHEVRON_EXPANDED)
        if self.badge_part is not None:
            self.badge_part.display = collapsed


class BranchItem(Vertical):
    """A node's row plus, for branches, the container of its children."""

    def __init__(
        self,
        row: VisualRow,
        *,
        controller: ExpandCollapseController,
        style_variables: StyleVariables,
    ) -> None:
        classes = "company" if row.is_group_container else ""
        super().__init__(id=row.node_id, classes=classes)
        self.row = row
        self._controller = controller
        self._style_variables = style_variables
        self._tree_row: Optional[TreeRow] = None
        self._children_box: Optional[Vertical] = None

    @property
    def collapsed(self) -> bool:
        return self._controller.is_collapsed(self.row.node_id)

    @property
    def children_box(self) -> Optional[Vertical]:
        return self._children_box

    def compose(self) -> ComposeResult:
        collapsed = self.collapsed
        self.set_class(collapsed, "-collapsed")
        self._tree_row = TreeRow(self.row, collapsed=collapsed, style_variables=self._style_variables)
        yield self._tree_row
        if self.row.children:
            box = Vertical(
                *[
                    BranchItem(child, controller=self._controller, style_variables=self._style_variables)
                    for child in self.row.children
                ],
                id=f"{self.row.node_id}-children",
                classes="children",
            )
            box.display = not collapsed
            self._children_box = box
            yield box

    def set_collapsed(self, collapsed: bool) -> None:
        self.set_class(collapsed, "-collapsed")
        if self._children_box is not None:
            # display: none, so a collapsed subtree takes no space at all.
            self._children_box.display = not collapsed
        if self._tree_row is not None:
            self._tree_row.show_collapsed(collapsed)


class Toolbar(Horizontal):
    def __init__(self, title: str) -> None:
        super().__init__(classes="tree-toolbar")
        self._toolbar_title = title

    def compose(self) -> ComposeResult:
        yield Static(Text(self._toolbar_title.upper()), classes="tree-toolbar-title")
        yield Button("Expand all", id="expand-all")
        yield Button("Collapse all", id="collapse-all")


class TooltipPanel(Static):
    """Floating panel shared by every tooltip-bearing label of one view."""

    DEFAULT_CSS = f"""
    TooltipPanel {{
        layer: {TOOLTIP_LAYER};
        position: absolute;
        width: {TOOLTIP_WIDTH};
        height: auto;
        padding: 0 1;
        border: round $secondary;
        background: $panel;
    }}
    """


@dataclass
class MountState:
    """Resources held between mount and unmount of a ``ModelTreeView``."""

    panel: TooltipPanel
    tooltips: TooltipController
    load_task: Optional[asyncio.Task[None]] = None


class ModelTreeView(Widget):
    """Loads a tree document and renders it as a collapsible tree."""

    DEFAULT_CSS = """
    ModelTreeView {
        height: 1fr;
    }
    ModelTreeView .tree-toolbar {
        height: auto;
        padding: 0 1;
    }
    ModelTreeView .tree-toolbar-title {
        width: 1fr;
        color: $text-muted;
    }
    ModelTreeView .tree-scroll {
        height: 1fr;
        padding: 1 2;
    }
    ModelTreeView BranchItem {
        height: auto;
    }
    ModelTreeView BranchItem.company {
        margin-bottom: 1;
    }
    ModelTreeView .children {
        height: auto;
        padding-left: 2;
    }
    ModelTreeView .tree-row {
        height: auto;
    }
    ModelTreeView .tree-row > RowPart {
        width: auto;
        margin-right: 1;
    }
    ModelTreeView .n-toggle {
        color: $text-muted;
    }
    """

    class Rendered(Message):
        def __init__(self, view: "ModelTreeView", visual_tree: VisualTree) -> None:
            super().__init__()
            self.view = view
            self.visual_tree = visual_tree

    class LoadFailed(Message):
        def __init__(self, view: "ModelTreeView", reason: str) -> None:
            super().__init__()
            self.view = view
            self.reason = reason

    def __init__(
        self,
        src: str | None = None,
        *,
        toolbar_title: str = "",
        style_variables: StyleVariables | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.src = src
        self.toolbar_title = toolbar_title
        self.style_variables = style_variables or StyleVariables()
        self.roots: list[ModelNode] = []
        self.visual_tree: Optional[VisualTree] = None
        self.collapse_controller: Optional[ExpandCollapseController] = None
        self.mount_state: Optional[MountState] = None
        self.load_finished = asyncio.Event()
        self._branch_items: dict[str, BranchItem] = {}

    # Lifecycle

    def on_mount(self) -> None:
        self.mount_state = self._open_mount_state()

    def on_unmount(self) -> None:
        state, self.mount_state = self.mount_state, None
        if state is not None:
            self._close_mount_state(state)

    def _open_mount_state(self) -> MountState:
        screen = self.screen
        layers = tuple(screen.styles.layers)
        if TOOLTIP_LAYER not in layers:
            screen.styles.layers = (*(layers or ("default",)), TOOLTIP_LAYER)
        panel = TooltipPanel()
        panel.display = False
        screen.mount(panel)
        state = MountState(panel=panel, tooltips=TooltipController())
        self.load_finished.clear()
        task: asyncio.Task[None] = asyncio.create_task(self._load_and_render())
        state.load_task = task

        def _on_done(completed: asyncio.Task[None]) -> None:
            if completed.cancelled():
                return
            exc = completed.exception()
            if exc is not None:
                logger.error("model-tree: rendering failed", exc_info=exc)

        task.add_done_callback(_on_done)
        return state

    def _close_mount_state(self, state: MountState) -> None:
        try:
            if state.load_task is not None and not state.load_task.done():
                state.load_task.cancel()
            if self.collapse_controller is not None:
                self.collapse_controller.unsubscribe(self._on_branch_changed)
        finally:
            state.tooltips.dispose()
            if state.panel.is_attached:
                state.panel.remove()

    # Loading and rendering

    async def _load_and_render(self) -> None:
        try:
            try:
                roots = await load_document(self.src or "")
            except (OSError, ValueError) as exc:
                logger.error("model-tree: failed to load %s: %s", self.src, exc)
                self.post_message(self.LoadFailed(self, str(exc)))
                return
            await self._show_tree(roots)
        finally:
            self.load_finished.set()

    async def _show_tree(self, roots: list[ModelNode]) -> None:
        controller = ExpandCollapseController()
        visual_tree = build(roots, controller)
        controller.subscribe(self._on_branch_changed)
        self.roots = roots
        self.visual_tree = visual_tree
        self.collapse_controller = controller
        items = [
            BranchItem(root, controller=controller, style_variables=self.style_variables)
            for root in visual_tree.roots
        ]
        await self.mount(
            Toolbar(self.toolbar_title),
            VerticalScroll(*items, classes="tree-scroll"),
        )
        self._branch_items = {item.row.node_id: item for item in self.query(BranchItem)}
        self.post_message(self.Rendered(self, visual_tree))

    def _on_branch_changed(self, node_id: str, collapsed: bool) -> None:
        item = self._branch_items.get(node_id)
        if item is not None:
            item.set_collapsed(collapsed)

    # Host surface

    def expand_all(self) -> None:
        if self.collapse_controller is None:
            return
        self.collapse_controller.expand_all()

    def collapse_all(self) -> None:
        if self.collapse_controller is None:
            return
        self.collapse_controller.collapse_all()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "expand-all":
            event.stop()
            self.expand_all()
        elif event.button.id == "collapse-all":
            event.stop()
            self.collapse_all()

    # Tooltip

    def pointer_over(self, widget: Widget) -> None:
        state = self.mount_state
        if state is None:
            return
        target = closest_with_tooltip(widget, stop=self)
        if target is None or not target.tip_markup:
            state.tooltips.hover(None, None, widget.region, 0, self.screen.size)
        else:
            text = tooltip_text(target.tip_markup)
            # Border and padding take two columns on each side.
            lines = text.wrap(self.app.console, TOOLTIP_WIDTH - 4)
            state.panel.update(text)
            state.tooltips.hover(
                target.id,
                target.tip_markup,
                target.region,
                len(lines) + 2,
                self.screen.size,
            )
        self._sync_panel(state)

    def pointer_left(self, widget: Widget) -> None:
        state = self.mount_state
        if state is None:
            return
        target = closest_with_tooltip(widget, stop=self)
        state.tooltips.leave(target.id if target is not None else None)
        self._sync_panel(state)

    def _sync_panel(self, state: MountState) -> None:
        tip = state.tooltips.state
        if tip.visible:
            state.panel.styles.offset = (tip.x, tip.y)
        state.panel.display = tip.visible


class ModelTreeApp(App[None]):
    """Textual user interface for a YAML-backed model tree."""

    TITLE = "model-tree"

    CSS = """
    Screen {
        layers: base tooltip;
    }
    #model-tree {
        background: $mt-background;
        border: round $mt-border;
    }
    #model-tree .tree-toolbar {
        background: $mt-toolbar-background;
        border-bottom: solid $mt-border;
    }
    #model-tree .tree-toolbar Button {
        color: $mt-button-color;
        background: $mt-button-background;
        margin-left: 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=False),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse all"),
        Binding("p", "preview_html", "HTML"),
    ]

    def __init__(self, config: TreeConfig | None = None) -> None:
        # get_css_variables() is consulted while App.__init__ runs.
        self.tree_config = config or TreeConfig()
        super().__init__()
        self.title = "model-tree"

    def get_css_variables(self) -> dict[str, str]:
        variables = super().get_css_variables()
        variables.update(self.tree_config.styles.css_variables())
        return variables

    def compose(self) -> ComposeResult:
        yield Header()
        yield ModelTreeView(
            self.tree_config.src,
            toolbar_title=self.tree_config.title,
            style_variables=self.tree_config.styles,
            id="model-tree",
        )
        yield Footer()

    def require_view(self) -> ModelTreeView:
        return self.query_one("#model-tree", ModelTreeView)

    def on_model_tree_view_rendered(self, message: ModelTreeView.Rendered) -> None:
        tree = message.visual_tree
        leaves = sum(1 for row in tree.walk() if not row.is_branch)
        self.sub_title = f"{len(tree.roots)} groups · {leaves} entries"

    def action_expand_all(self) -> None:
        self.require_view().expand_all()

    def action_collapse_all(self) -> None:
        self.require_view().collapse_all()

    def action_preview_html(self) -> None:
        view = self.require_view()
        if view.visual_tree is None:
            self.bell()
            return
        path = write_preview(
            view.visual_tree,
            Path(self.tree_config.preview_path),
            self.tree_config.styles,
            self.tree_config.title,
        )
        open_preview(path)
        self.sub_title = f"Opened {path} in a browser tab."


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Collapsible tree viewer for YAML documents")
    parser.add_argument("src", nargs="?", help="Path or URL of the tree document")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    config = load_config(args.config, src=args.src)
    logging.basicConfig(
        filename=config.log_path,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ModelTreeApp(config).run()


if __name__ == "__main__":
    main()
