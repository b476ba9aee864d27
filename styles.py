"""Named style variables, the group palette and the shared style registry."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator
from rich.color import Color as RichColor
from rich.style import Style
from textual.color import Color, ColorParseError

from tree_builder import VisualRow


# group -> (node colour, connector colour)
GROUP_PALETTE: dict[str, tuple[str, str]] = {
    "openai": ("#34d399", "rgba(52,211,153,.18)"),
    "google": ("#60a5fa", "rgba(96,165,250,.18)"),
    "anthropic": ("#d4a574", "rgba(212,165,116,.18)"),
    "meta": ("#818cf8", "rgba(129,140,248,.18)"),
    "mistral": ("#fb923c", "rgba(251,146,60,.18)"),
    "microsoft": ("#38bdf8", "rgba(56,189,248,.18)"),
    "xai": ("#d4d4d8", "rgba(212,212,216,.18)"),
    "amazon": ("#fbbf24", "rgba(251,191,36,.18)"),
    "apple": ("#94a3b8", "rgba(148,163,184,.18)"),
    "deepseek": ("#f472b6", "rgba(244,114,182,.18)"),
    "stability": ("#c084fc", "rgba(192,132,252,.18)"),
    "alibaba": ("#ff6a00", "rgba(255,106,0,.18)"),
    "nvidia": ("#76b900", "rgba(118,185,0,.18)"),
    "zhipu": ("#4fc3f7", "rgba(79,195,247,.18)"),
    "moonshot": ("#b388ff", "rgba(179,136,255,.18)"),
    "minimax": ("#ff8a65", "rgba(255,138,101,.18)"),
    "perplexity": ("#20b2aa", "rgba(32,178,170,.18)"),
    "samsung": ("#1428a0", "rgba(20,40,160,.18)"),
    "allenai": ("#4caf50", "rgba(76,175,80,.18)"),
    "ibm": ("#0f62fe", "rgba(15,98,254,.18)"),
    "xiaomi": ("#ff6900", "rgba(255,105,0,.18)"),
}

DEAD_COLOR = "#555555"
SECTION_COLOR = "#666666"
DIM_NOTE_COLOR = "#555555"
BADGE_COLOR = "#555555"

_COLOR_FIELDS = (
    "background",
    "border",
    "toolbar_background",
    "node_color",
    "date_color",
    "note_color",
    "button_color",
    "button_background",
)


class StyleVariables(BaseModel):
    """Overridable look of the widget.

    Colour fields must be parseable by Textual since they are handed to the
    terminal stylesheet as ``$mt-*`` variables; the HTML page gets the same
    values as ``--mt-*`` custom properties.
    """

    font: str = "'Commit Mono','SF Mono','Consolas','Monaco',monospace"
    font_size: str = "15px"
    background: str = "#121218"
    border: str = "#26262e"
    toolbar_background: str = "#16161d"
    node_color: str = "#999999"
    date_color: str = "#4a4a5a"
    note_color: str = "#ef4444"
    button_color: str = "#666666"
    button_background: str = "#1d1d24"

    @field_validator(*_COLOR_FIELDS)
    @classmethod
    def _check_color(cls, value: str) -> str:
        try:
            Color.parse(value)
        except ColorParseError as exc:
            raise ValueError(f"not a colour: {value!r}") from exc
        return value

    def css_variables(self) -> dict[str, str]:
        """Colour variables for the Textual stylesheet (``$mt-node-color`` ...)."""
        return {
            f"mt-{name.replace('_', '-')}": getattr(self, name) for name in _COLOR_FIELDS
        }

    def custom_properties(self) -> dict[str, str]:
        """Every variable as an HTML custom property (``--mt-node-color`` ...)."""
        return {
            f"--mt-{name.replace('_', '-')}": value for name, value in self.model_dump().items()
        }


def group_color(group: Optional[str], styles: StyleVariables | None = None) -> str:
    if group and group in GROUP_PALETTE:
        return GROUP_PALETTE[group][0]
    return (styles or StyleVariables()).node_color


def rich_color(value: str) -> RichColor:
    """Textual colour syntax (which Rich does not fully share) as a Rich colour."""
    return Color.parse(value).rich_color


def name_style(row: VisualRow, styles: StyleVariables | None = None) -> Style:
    """Rich style of a row label: group colour, defunct and section treatments."""
    if row.dead:
        return Style(color=DEAD_COLOR, strike=True)
    if row.is_section:
        return Style(color=SECTION_COLOR)
    return Style(color=rich_color(group_color(row.group, styles)), bold=True)


_registered_styles: dict[str, str] = {}


def register_style(style_id: str, css: str) -> bool:
    """Register a process-wide style block once. Returns False if already there."""
    if style_id in _registered_styles:
        return False
    _registered_styles[style_id] = css
    return True


def registered_styles() -> dict[str, str]:
    return dict(_registered_styles)
