from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_settings(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError("settings.yaml must be a mapping/object")

    return data


def section(settings: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Walk nested mapping keys, treating missing or null levels as empty."""
    node: Any = settings
    for key in keys:
        if not isinstance(node, dict):
            return {}
        node = node.get(key) or {}
    if not isinstance(node, dict):
        raise ValueError(f"settings section {'.'.join(keys)} must be a mapping")
    return node
