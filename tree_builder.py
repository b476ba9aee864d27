"""Turn a ``ModelNode`` forest into an immutable description of the rendered tree.

The description (``VisualTree``) is what presentations consume: the Textual
view in ``app.py`` and the static page in ``html_export.py``. Collapse state is
not part of it; it lives in the ``ExpandCollapseController`` the builder
registers every branch with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, ClassVar, Iterator, Optional, Sequence
import webbrowser

from controllers import ExpandCollapseController
from node_models import ModelNode, count_leaves


logger = logging.getLogger(__name__)

PartKind = str
PART_ORDER: tuple[PartKind, ...] = ("toggle", "name", "date", "note", "dim_note", "count")


@dataclass(frozen=True)
class ToggleHook:
    """Click handler of a branch toggle."""

    controller: ExpandCollapseController
    node_id: str

    def __call__(self) -> bool:
        return self.controller.toggle(self.node_id)


@dataclass(frozen=True)
class LinkHook:
    """Click handler of a date link: opens the URL and nothing else."""

    url: str
    opener: Optional[Callable[[str], object]] = None
    stops_propagation: ClassVar[bool] = True

    def __call__(self) -> bool:
        opener = self.opener or webbrowser.open
        try:
            opener(self.url)
        except Exception:
            logger.exception("Could not open %s", self.url)
            return False
        return True


@dataclass(frozen=True)
class VisualRow:
    node_id: str
    label: str
    depth: int
    group: Optional[str] = None
    is_group_container: bool = False
    is_section: bool = False
    dead: bool = False
    tooltip: Optional[str] = None
    date: Optional[str] = None
    link: Optional[str] = None
    note: Optional[str] = None
    dim_note: Optional[str] = None
    leaf_count: Optional[int] = None
    initially_collapsed: bool = False
    toggle_hook: Optional[ToggleHook] = None
    link_hook: Optional[LinkHook] = None
    children: tuple["VisualRow", ...] = ()

    @property
    def is_branch(self) -> bool:
        return bool(self.children)

    @property
    def parts(self) -> tuple[PartKind, ...]:
        present = {
            "toggle": self.is_branch,
            "name": True,
            "date": self.date is not None,
            "note": bool(self.note),
            "dim_note": bool(self.dim_note),
            "count": self.is_branch,
        }
        return tuple(kind for kind in PART_ORDER if present[kind])

    def walk(self) -> Iterator["VisualRow"]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class VisualTree:
    roots: tuple[VisualRow, ...]
    controller: ExpandCollapseController = field(compare=False)

    def walk(self) -> Iterator[VisualRow]:
        for root in self.roots:
            yield from root.walk()

    def branches(self) -> Iterator[VisualRow]:
        return (row for row in self.walk() if row.is_branch)

    def find(self, node_id: str) -> Optional[VisualRow]:
        for row in self.walk():
            if row.node_id == node_id:
                return row
        return None

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())


def propagate_group(parent: ModelNode) -> None:
    """Hand ``parent``'s group down to direct children that have none."""
    if not parent.group:
        return
    for child in parent.children:
        if not child.group:
            child.group = parent.group


def build(
    roots: Sequence[ModelNode],
    controller: Optional[ExpandCollapseController] = None,
    *,
    opener: Optional[Callable[[str], object]] = None,
) -> VisualTree:
    """Build the visual tree for ``roots``.

    Group tags are propagated in place on the way down, so the node forest
    carries the resolved groups once this returns. Every branch is registered
    with ``controller`` (a fresh one when omitted) using its initial state.
    """
    if controller is None:
        controller = ExpandCollapseController()

    def build_row(node: ModelNode, node_id: str, depth: int, top_level: bool) -> VisualRow:
        is_branch = node.is_branch
        if is_branch:
            propagate_group(node)
            controller.register(node_id, collapsed=node.collapsed, top_level=top_level)
        children = tuple(
            build_row(child, f"{node_id}-{index}", depth + 1, False)
            for index, child in enumerate(node.children)
        )
        link_hook = None
        if node.date is not None and node.link:
            link_hook = LinkHook(node.link, opener)
        return VisualRow(
            node_id=node_id,
            label=node.name if isinstance(node.name, str) else str(node.name or ""),
            depth=depth,
            group=node.group,
            is_group_container=top_level,
            is_section=node.is_section,
            dead=node.dead,
            tooltip=node.tooltip or None,
            date=node.date,
            link=node.link if link_hook else None,
            note=node.note,
            dim_note=node.dim_note,
            leaf_count=count_leaves(node) if is_branch else None,
            initially_collapsed=node.collapsed if is_branch else False,
            toggle_hook=ToggleHook(controller, node_id) if is_branch else None,
            link_hook=link_hook,
            children=children,
        )

    visual_roots = tuple(build_row(root, f"n{index}", 0, True) for index, root in enumerate(roots))
    logger.debug("Built visual tree with %d roots", len(visual_roots))
    return VisualTree(roots=visual_roots, controller=controller)
