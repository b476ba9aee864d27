"""Apply a ``VisualTree`` to a standalone HTML page."""

from __future__ import annotations

import html
import logging
from pathlib import Path
import re
import subprocess
import sys
import webbrowser

from styles import GROUP_PALETTE, StyleVariables, register_style, registered_styles
from tree_builder import VisualRow, VisualTree


logger = logging.getLogger(__name__)

TIP_STYLE_ID = "model-tree-tip-style"
TIP_WIDTH_PX = 280
TIP_MARGIN_PX = 12
TIP_GAP_PX = 8

_CHEVRON = '<svg viewBox="0 0 10 10"><path d="M3 1l4 4-4 4"/></svg>'

_TIP_CSS = (
    ".model-tree-tip{display:none;position:fixed;background:rgba(16,16,24,.95);"
    "border:1px solid rgba(255,255,255,.1);border-radius:6px;padding:10px 14px;"
    f"font-size:12px;color:#bbb;line-height:1.5;width:{TIP_WIDTH_PX}px;z-index:9999;"
    "pointer-events:none;box-shadow:0 8px 32px rgba(0,0,0,.5);font-family:var(--mt-font)}"
    ".model-tree-tip strong{color:#e0e0e0}"
)

_TREE_CSS = """
body{margin:0;padding:24px;background:#0b0b10;color:#bbb}
.tree-outer{font-family:var(--mt-font);font-size:var(--mt-font-size);background:var(--mt-background);
  border:1px solid var(--mt-border);border-radius:8px;overflow:hidden}
.tree-toolbar{display:flex;align-items:center;justify-content:space-between;padding:10px 16px;
  border-bottom:1px solid var(--mt-border);background:var(--mt-toolbar-background)}
.tree-toolbar-title{font-size:11px;color:#555;letter-spacing:.08em;text-transform:uppercase}
.tree-toolbar-actions{display:flex;gap:8px}
.tree-toolbar-actions button{font-family:var(--mt-font);font-size:11px;color:var(--mt-button-color);
  background:var(--mt-button-background);border:1px solid rgba(255,255,255,.08);border-radius:4px;
  padding:4px 10px;cursor:pointer}
.tree-scroll{overflow-x:auto;padding:16px}
.t{list-style:none;padding-left:0;margin:0;font-size:13px}
.t .t{padding-left:20px}
.t li{position:relative;padding:0 0 0 16px}
.t .t>li::before{content:'';position:absolute;left:0;top:0;bottom:0;width:1px;background:var(--cc,#2a2a3a)}
.t .t>li::after{content:'';position:absolute;left:0;top:12px;width:12px;height:1px;background:var(--cc,#2a2a3a)}
.t .t>li:last-child::before{height:13px}
.n{display:flex;align-items:baseline;gap:6px;padding:1px 0;min-height:22px;line-height:1.4}
.n-name{font-weight:700;padding:1px 7px;color:var(--nc,var(--mt-node-color));white-space:nowrap}
.n-toggle{width:16px;height:16px;display:inline-flex;align-items:center;justify-content:center;
  cursor:pointer;color:#555;user-select:none}
.n-toggle svg{width:10px;height:10px;fill:currentColor;transform:rotate(90deg);transition:transform .2s}
.collapsed>.n .n-toggle svg{transform:none}
.n-date{color:var(--mt-date-color);font-size:11px;white-space:nowrap;text-decoration:none}
.n-date[href]:hover{text-decoration:underline}
.n-dead .n-name{color:#555;text-decoration:line-through}
.n-note{color:var(--mt-note-color);font-size:11px;font-style:italic;white-space:nowrap}
.n-note-dim{color:#555;font-size:11px;font-style:italic}
.n-section{color:#666;font-size:11px;text-transform:uppercase;letter-spacing:.08em}
.t>.company{padding-left:0;margin-top:12px}
.t>.company:first-child{margin-top:0}
.n-count{font-size:10px;color:#555;padding:1px 5px;display:none}
.collapsed>.n .n-count{display:inline}
.collapsed>.t{display:none}
"""

_SCRIPT = f"""
(() => {{
  const outer = document.querySelector('.tree-outer');
  outer.addEventListener('click', (e) => {{
    if (e.target.closest('.n-date[href]')) return;
    const toggle = e.target.closest('.n-toggle');
    if (toggle) toggle.closest('li').classList.toggle('collapsed');
  }});
  outer.querySelector('[data-action="expand"]').addEventListener('click', () => {{
    outer.querySelectorAll('li.collapsed').forEach((li) => li.classList.remove('collapsed'));
  }});
  outer.querySelector('[data-action="collapse"]').addEventListener('click', () => {{
    outer.querySelectorAll('li.branch:not(.company)').forEach((li) => li.classList.add('collapsed'));
  }});

  const tip = document.createElement('div');
  tip.className = 'model-tree-tip';
  document.body.appendChild(tip);
  outer.addEventListener('mouseover', (e) => {{
    const target = e.target.closest('[data-tip]');
    if (!target) {{ tip.style.display = 'none'; return; }}
    tip.innerHTML = target.dataset.tip;
    tip.style.display = 'block';
    const r = target.getBoundingClientRect();
    let left = r.left;
    let top = r.top - tip.offsetHeight - {TIP_GAP_PX};
    if (left + {TIP_WIDTH_PX} > window.innerWidth - {TIP_MARGIN_PX}) left = window.innerWidth - {TIP_WIDTH_PX} - {TIP_MARGIN_PX};
    if (left < {TIP_MARGIN_PX}) left = {TIP_MARGIN_PX};
    if (top < {TIP_MARGIN_PX}) top = r.bottom + {TIP_GAP_PX};
    tip.style.left = left + 'px';
    tip.style.top = top + 'px';
  }});
  outer.addEventListener('mouseout', (e) => {{
    if (e.target.closest('[data-tip]')) tip.style.display = 'none';
  }});
}})();
"""


def _escape(value: str) -> str:
    return html.escape(value, quote=True)


_UNSAFE_CLASS_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def group_class(group: str) -> str:
    """CSS class of a group tag, reduced to characters safe in a class name."""
    slug = _UNSAFE_CLASS_CHARS.sub("-", group).strip("-")
    return f"co-{slug}" if slug else ""


def _group_css() -> str:
    return "\n".join(
        f".{group_class(group)}{{--nc:{node};--cc:{connector}}}"
        for group, (node, connector) in GROUP_PALETTE.items()
    )


def _row_classes(row: VisualRow) -> str:
    classes: list[str] = []
    if row.is_group_container:
        classes.append("company")
    if row.is_branch:
        classes.append("branch")
    if row.group and group_class(row.group):
        classes.append(group_class(row.group))
    if row.initially_collapsed:
        classes.append("collapsed")
    if row.dead:
        classes.append("n-dead")
    return " ".join(classes)


def _render_row(row: VisualRow, indent: int) -> list[str]:
    pad = "  " * indent
    parts: list[str] = []
    for kind in row.parts:
        if kind == "toggle":
            parts.append(f'<span class="n-toggle">{_CHEVRON}</span>')
        elif kind == "name":
            css_class = "n-section" if row.is_section else "n-name"
            # Tooltip markup is author-controlled and is inserted as HTML.
            tip = f' data-tip="{_escape(row.tooltip)}" style="cursor:help"' if row.tooltip else ""
            parts.append(f'<span class="{css_class}"{tip}>{_escape(row.label)}</span>')
        elif kind == "date":
            if row.link:
                parts.append(
                    f'<a class="n-date" href="{_escape(row.link)}" target="_blank" '
                    f'rel="noopener">{_escape(row.date or "")}</a>'
                )
            else:
                parts.append(f'<span class="n-date">{_escape(row.date or "")}</span>')
        elif kind == "note":
            parts.append(f'<span class="n-note">← {_escape(row.note or "")}</span>')
        elif kind == "dim_note":
            parts.append(f'<span class="n-note-dim">{_escape(row.dim_note or "")}</span>')
        elif kind == "count":
            parts.append(f'<span class="n-count">{row.leaf_count}</span>')

    lines = [
        f'{pad}<li id="{row.node_id}" class="{_escape(_row_classes(row))}">',
        f'{pad}  <div class="n">{"".join(parts)}</div>',
    ]
    if row.children:
        lines.append(f'{pad}  <ul class="t">')
        for child in row.children:
            lines.extend(_render_row(child, indent + 2))
        lines.append(f"{pad}  </ul>")
    lines.append(f"{pad}</li>")
    return lines


def render_html(tree: VisualTree, styles: StyleVariables | None = None, title: str = "") -> str:
    """Standalone page showing ``tree`` with toolbar, toggles and tooltips."""
    styles = styles or StyleVariables()
    register_style(TIP_STYLE_ID, _TIP_CSS)
    custom_properties = ";".join(
        f"{name}:{value}" for name, value in styles.custom_properties().items()
    )
    shared = "\n".join(
        f'<style id="{style_id}">{css}</style>' for style_id, css in registered_styles().items()
    )
    rows: list[str] = []
    for root in tree.roots:
        rows.extend(_render_row(root, 4))
    body = "\n".join(rows)
    escaped_title = _escape(title)
    page_title = escaped_title or "model-tree"
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{page_title}</title>
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <style>
:root{{{custom_properties}}}
{_TREE_CSS}
{_group_css()}
    </style>
    {shared}
  </head>
  <body>
    <div class="tree-outer">
      <div class="tree-toolbar">
        <span class="tree-toolbar-title">{escaped_title}</span>
        <div class="tree-toolbar-actions">
          <button data-action="expand">Expand all</button>
          <button data-action="collapse">Collapse all</button>
        </div>
      </div>
      <div class="tree-scroll">
        <ul class="t">
{body}
        </ul>
      </div>
    </div>
    <script>{_SCRIPT}</script>
  </body>
</html>
"""


def write_preview(
    tree: VisualTree,
    path: Path,
    styles: StyleVariables | None = None,
    title: str = "",
) -> Path:
    path.write_text(render_html(tree, styles, title), encoding="utf-8")
    logger.info("Wrote HTML preview to %s", path)
    return path


def open_preview(path: Path) -> None:
    uri = path.resolve().as_uri()
    if sys.platform == "darwin":
        try:
            subprocess.Popen(["open", "-g", uri])
            return
        except OSError:
            logger.debug("'open' failed, falling back to webbrowser", exc_info=True)
    webbrowser.open(uri, new=2)
