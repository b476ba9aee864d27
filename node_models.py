from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ModelNode:
    name: str
    children: List["ModelNode"] = field(default_factory=list)
    # Grouping tag (organisation id). Children without one inherit the
    # parent's value when the tree is built.
    group: Optional[str] = None
    collapsed: bool = False
    dead: bool = False
    is_section: bool = False
    # Author-controlled markup, shown in the hover panel.
    tooltip: Optional[str] = None
    date: Optional[str] = None
    link: Optional[str] = None
    note: Optional[str] = None
    dim_note: Optional[str] = None

    @property
    def is_branch(self) -> bool:
        return bool(self.children)


def count_leaves(node: ModelNode) -> int:
    """Number of childless nodes under ``node`` (1 for a leaf)."""
    if not node.children:
        return 1
    return sum(count_leaves(child) for child in node.children)
