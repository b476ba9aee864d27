"""Configuration loading for model-tree."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from styles import StyleVariables


DEFAULT_CONFIG_PATH = Path("model_tree.yaml")
SRC_ENV_VAR = "MODEL_TREE_SRC"


class TreeConfig(BaseModel):
    src: Optional[str] = None
    title: str = "the complete tree of (bad) naming"
    styles: StyleVariables = Field(default_factory=StyleVariables)
    preview_path: str = "model_tree_preview.html"
    log_path: str = "model_tree.log"


def load_config(config_path: Path | None = None, *, src: str | None = None) -> TreeConfig:
    """Load config from YAML. Falls back to defaults if the file is missing.

    ``src`` (the CLI argument) wins over ``MODEL_TREE_SRC``, which wins over
    the file.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    raw: dict[str, Any] = {}
    if config_path.exists():
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}

    config = TreeConfig(**raw)
    override = src or os.environ.get(SRC_ENV_VAR)
    if override:
        config.src = override
    return config
