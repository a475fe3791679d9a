"""Storage collaborator contract and two implementations.

The scheduler only talks to storage through ``SchedulingStore``. Any
exception a store raises is turned into ``RetrievalFailed`` or
``PersistenceFailed`` by the caller, so implementations are free to let
their own errors propagate.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Protocol

from autoschedule.errors import BlockConflict
from autoschedule.fileio import read_json, read_yaml, write_json_atomic, write_yaml_atomic
from autoschedule.models import Task, TaskCompletion, TimeBlock, WorkingHours
from autoschedule.workspace import (
    completions_path,
    get_user_timezone,
    tasks_path,
    time_blocks_path,
    working_hours_path,
    workspace_root,
)

logger = logging.getLogger(__name__)


class SchedulingStore(Protocol):
    def get_working_hours(self, user_id: str) -> WorkingHours | None: ...

    def get_time_blocks(self, user_id: str, range_start: datetime, range_end: datetime) -> list[TimeBlock]: ...

    def create_time_block(self, block: TimeBlock) -> TimeBlock: ...

    def delete_time_block(self, task_id: str) -> int: ...

    def get_task(self, task_id: str) -> Task | None: ...

    def get_completion_history(self, user_id: str) -> list[TaskCompletion]: ...

    def append_completion(self, user_id: str, completion: TaskCompletion) -> None: ...


def _check_no_overlap(existing: list[TimeBlock], block: TimeBlock) -> None:
    for other in existing:
        if other.user_id == block.user_id and other.overlaps(block.start_time, block.end_time):
            raise BlockConflict(
                f"Block for task {block.task_id!r} overlaps block {other.id!r} of task {other.task_id!r}"
            )


# ── In-memory ─────────────────────────────────────────────────


class InMemoryStore:
    """Dict-backed store. The overlap check and insert happen under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.working_hours: dict[str, WorkingHours] = {}
        self.tasks: dict[str, Task] = {}
        self.blocks: list[TimeBlock] = []
        self.completions: dict[str, list[TaskCompletion]] = {}

    def set_working_hours(self, user_id: str, hours: WorkingHours) -> None:
        self.working_hours[user_id] = hours

    def add_task(self, task: Task) -> Task:
        self.tasks[task.id] = task
        return task

    def get_working_hours(self, user_id: str) -> WorkingHours | None:
        return self.working_hours.get(user_id)

    def get_time_blocks(self, user_id: str, range_start: datetime, range_end: datetime) -> list[TimeBlock]:
        return [
            b for b in self.blocks
            if b.user_id == user_id and b.overlaps(range_start, range_end)
        ]

    def create_time_block(self, block: TimeBlock) -> TimeBlock:
        with self._lock:
            _check_no_overlap(self.blocks, block)
            self.blocks.append(block)
        return block

    def delete_time_block(self, task_id: str) -> int:
        with self._lock:
            before = len(self.blocks)
            self.blocks = [b for b in self.blocks if b.task_id != task_id]
            return before - len(self.blocks)

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def get_completion_history(self, user_id: str) -> list[TaskCompletion]:
        return list(self.completions.get(user_id, []))

    def append_completion(self, user_id: str, completion: TaskCompletion) -> None:
        with self._lock:
            self.completions.setdefault(user_id, []).append(completion)


# ── Workspace files ───────────────────────────────────────────


class WorkspaceStore:
    """File-backed store under the workspace root.

    Layout::

        users/<user_id>/working_hours.yaml
        tasks.yaml            {tasks: [...]}
        time_blocks.json      [...]
        completions.json      {<user_id>: [...]}
    """

    def __init__(self, root: Path | None = None, tz: tzinfo | None = None) -> None:
        self.root = root if root is not None else workspace_root()
        self.tz = tz or get_user_timezone(self.root)
        self._lock = threading.Lock()

    # working hours

    def get_working_hours(self, user_id: str) -> WorkingHours | None:
        data = read_yaml(working_hours_path(user_id, self.root))
        if not data:
            return None
        return WorkingHours.from_dict(data)

    def save_working_hours(self, user_id: str, hours: WorkingHours) -> None:
        write_yaml_atomic(working_hours_path(user_id, self.root), hours.to_dict())

    # tasks

    def _load_task_dicts(self) -> list[dict]:
        return list(read_yaml(tasks_path(self.root)).get("tasks") or [])

    def get_task(self, task_id: str) -> Task | None:
        for d in self._load_task_dicts():
            if str(d.get("id")) == task_id:
                return Task.from_dict(d, self.tz)
        return None

    def save_task(self, task: Task) -> None:
        with self._lock:
            tasks = [d for d in self._load_task_dicts() if str(d.get("id")) != task.id]
            tasks.append(task.to_dict())
            write_yaml_atomic(tasks_path(self.root), {"tasks": tasks})

    # time blocks

    def _load_blocks(self) -> list[TimeBlock]:
        return [TimeBlock.from_dict(d, self.tz) for d in read_json(time_blocks_path(self.root), [])]

    def _save_blocks(self, blocks: list[TimeBlock]) -> None:
        blocks = sorted(blocks, key=lambda b: (b.start_time, b.id))
        write_json_atomic(time_blocks_path(self.root), [b.to_dict() for b in blocks])

    def get_time_blocks(self, user_id: str, range_start: datetime, range_end: datetime) -> list[TimeBlock]:
        return [
            b for b in self._load_blocks()
            if b.user_id == user_id and b.overlaps(range_start, range_end)
        ]

    def create_time_block(self, block: TimeBlock) -> TimeBlock:
        with self._lock:
            blocks = self._load_blocks()
            _check_no_overlap(blocks, block)
            blocks.append(block)
            self._save_blocks(blocks)
        return block

    def delete_time_block(self, task_id: str) -> int:
        with self._lock:
            blocks = self._load_blocks()
            kept = [b for b in blocks if b.task_id != task_id]
            removed = len(blocks) - len(kept)
            if removed:
                self._save_blocks(kept)
        return removed

    # completion history

    def get_completion_history(self, user_id: str) -> list[TaskCompletion]:
        data = read_json(completions_path(self.root), {})
        return [TaskCompletion.from_dict(d, self.tz) for d in data.get(user_id, [])]

    def append_completion(self, user_id: str, completion: TaskCompletion) -> None:
        with self._lock:
            path = completions_path(self.root)
            data = read_json(path, {})
            data.setdefault(user_id, []).append(completion.to_dict())
            write_json_atomic(path, data)
        logger.debug("Recorded completion of %s for %s", completion.task_id, user_id)
