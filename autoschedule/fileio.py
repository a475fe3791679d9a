"""Reading and replacing the workspace data files.

Stores rewrite a whole file on every change (time_blocks.json,
completions.json, tasks.yaml). A write goes to a sibling temp file that is
fsynced and renamed over the target, so a reader sees either the old
document or the new one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml


def _load_text(path: Path) -> str | None:
    if not path.exists():
        return None
    text = path.read_text(encoding="utf-8")
    return text if text.strip() else None


def read_json(path: Path, default: Any = None) -> Any:
    """Parsed JSON document, or *default* for a missing or blank file."""
    text = _load_text(path)
    return default if text is None else json.loads(text)


def read_yaml(path: Path) -> dict[str, Any]:
    """Top-level YAML mapping; {} when the file is missing, blank or not a mapping."""
    text = _load_text(path)
    data = yaml.safe_load(text) if text is not None else None
    return data if isinstance(data, dict) else {}


def _replace(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
    )
    try:
        with tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except Exception:
        if os.path.exists(tmp.name):
            os.unlink(tmp.name)
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    _replace(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def write_yaml_atomic(path: Path, data: dict[str, Any]) -> None:
    _replace(path, yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))
