"""Workspace root, timezone and path helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from autoschedule.fileio import read_yaml

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Directory holding settings.yaml and the scheduling data files."""
    return Path(
        os.environ.get("AUTOSCHEDULE_ROOT", str(Path.home() / "autoschedule"))
    ).expanduser().resolve()


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Timezone from settings.yaml, defaulting to UTC."""
    settings = read_yaml(settings_path(root))
    name = settings.get("timezone")
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r in settings, using UTC", name)
        return ZoneInfo("UTC")


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def working_hours_path(user_id: str, root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "users" / user_id / "working_hours.yaml"


def tasks_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "tasks.yaml"


def time_blocks_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "time_blocks.json"


def completions_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "completions.json"
