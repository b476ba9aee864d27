import asyncio
import logging
from pathlib import Path
from typing import Any, List, Mapping
from urllib import request
from urllib.parse import urlparse

import yaml

from node_models import ModelNode


logger = logging.getLogger(__name__)

_FETCH_TIMEOUT = 15

# Document key -> accepted spellings, preferred first.
_KEY_ALIASES = {
    "group": ("group", "company"),
    "is_section": ("isSection", "section"),
    "tooltip": ("tooltip", "tip"),
    "link": ("link", "url"),
    "dim_note": ("dimNote", "note_dim"),
}


class DocumentError(ValueError):
    """The tree document could not be turned into a node forest."""


def _lookup(entry: Mapping[str, Any], field_name: str) -> Any:
    for key in _KEY_ALIASES.get(field_name, (field_name,)):
        if key in entry:
            return entry[key]
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def node_from_data(entry: Any, path: str = "0") -> ModelNode:
    """Build one ``ModelNode`` (and its subtree) from parsed YAML data.

    Scalars become leaves labelled with the scalar. A mapping without a
    usable ``name`` still renders, with an empty label.
    """
    if not isinstance(entry, Mapping):
        if entry is None or isinstance(entry, (list, tuple)):
            logger.warning("Entry %s is not a mapping; rendering it with an empty label", path)
            return ModelNode(name="")
        return ModelNode(name=str(entry))

    raw_name = entry.get("name")
    if raw_name is None:
        logger.warning("Entry %s has no name", path)
        name = ""
    else:
        name = str(raw_name)

    raw_children = entry.get("children") or []
    if not isinstance(raw_children, list):
        logger.warning("Children of %r (%s) are not a list; ignoring them", name, path)
        raw_children = []

    return ModelNode(
        name=name,
        children=[
            node_from_data(child, f"{path}.{index}") for index, child in enumerate(raw_children)
        ],
        group=_optional_text(_lookup(entry, "group")),
        collapsed=bool(entry.get("collapsed", False)),
        dead=bool(entry.get("dead", False)),
        is_section=bool(_lookup(entry, "is_section")),
        tooltip=_optional_text(_lookup(entry, "tooltip")),
        date=_optional_text(entry.get("date")),
        link=_optional_text(_lookup(entry, "link")),
        note=_optional_text(entry.get("note")),
        dim_note=_optional_text(_lookup(entry, "dim_note")),
    )


def nodes_from_data(data: Any) -> List[ModelNode]:
    """Turn the parsed document into root nodes. Only the document shape is fatal."""
    if isinstance(data, Mapping):
        data = [data]
    if not isinstance(data, list):
        raise DocumentError(f"Expected a list of root entries, got {type(data).__name__}")

    roots: List[ModelNode] = []
    for index, entry in enumerate(data):
        root = node_from_data(entry, str(index))
        if not root.group:
            # rendered untagged
            logger.warning("Root entry %d (%r) has no group", index, root.name)
        roots.append(root)
    return roots


def parse_document(text: str) -> List[ModelNode]:
    """Parse YAML text into the root nodes of the tree."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DocumentError(f"Invalid YAML: {exc}") from exc
    if data is None:
        raise DocumentError("Document is empty")
    return nodes_from_data(data)


def read_location(location: str) -> str:
    """Return the raw text at ``location`` (path, file:// or http(s):// URL)."""
    parsed = urlparse(location)
    if parsed.scheme in {"http", "https", "file"}:
        req = request.Request(
            location,
            headers={
                "User-Agent": "model-tree/1.0",
                "Accept": "application/yaml, text/yaml, text/plain;q=0.9, */*;q=0.5",
            },
        )
        with request.urlopen(req, timeout=_FETCH_TIMEOUT) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            return response.read().decode(charset, errors="replace")
    return Path(location).expanduser().read_text(encoding="utf-8")


async def load_document(location: str) -> List[ModelNode]:
    """Fetch and parse the document without blocking the event loop."""
    if not location or not location.strip():
        raise DocumentError("No document location configured")
    text = await asyncio.to_thread(read_location, location.strip())
    roots = parse_document(text)
    logger.info("Loaded %d root entries from %s", len(roots), location)
    return roots
