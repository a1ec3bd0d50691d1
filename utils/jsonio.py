from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def write_json(path: Path, obj: Any, *, sort_keys: bool = True) -> int:
    """Write ``obj`` as pretty UTF-8 JSON and return the file size in bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2, sort_keys=sort_keys)
        f.write("\n")
    return path.stat().st_size


def file_entry(path: Path, **extra: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "path": str(path.as_posix()),
        "sha256": sha256_file(path),
        "bytes": path.stat().st_size,
    }
    entry.update(extra)
    return entry
