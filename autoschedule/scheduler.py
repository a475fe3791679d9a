"""Task scheduling: earliest-fit placement of tasks into free time.

Each call is a read-compute-write sequence against the store: resolve
availability, pick the first free slot long enough for the task, persist a
time block. The write is the last step, so a failure anywhere before it
leaves nothing behind.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from autoschedule.availability import resolve_availability
from autoschedule.clock import Clock, SystemClock
from autoschedule.config import SchedulerSettings
from autoschedule.errors import (
    DependenciesIncomplete,
    NoAvailability,
    NoSuitableSlot,
    PersistenceFailed,
    RetrievalFailed,
    SchedulingError,
    TaskNotFound,
)
from autoschedule.models import AvailabilitySlot, Task, TimeBlock
from autoschedule.priority import dependency_order
from autoschedule.storage import SchedulingStore

logger = logging.getLogger(__name__)


def select_earliest_fit(slots: list[AvailabilitySlot], minutes: int) -> AvailabilitySlot | None:
    """First slot (by start time) at least *minutes* long, or None."""
    fitting = [s for s in slots if s.duration_minutes() >= minutes]
    if not fitting:
        return None
    return min(fitting, key=lambda s: s.start_time)


def clip_slots(slots: list[AvailabilitySlot], not_before: datetime) -> list[AvailabilitySlot]:
    return [
        AvailabilitySlot(max(s.start_time, not_before), s.end_time, s.is_recurring)
        for s in slots
        if s.end_time > not_before
    ]


@dataclass
class BatchResult:
    scheduled: dict[str, TimeBlock] = field(default_factory=dict)
    failures: dict[str, SchedulingError] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scheduled": {tid: b.to_dict() for tid, b in self.scheduled.items()},
            "failures": {
                tid: {"error": type(e).__name__, "notice": e.notice}
                for tid, e in self.failures.items()
            },
        }


class TaskScheduler:
    def __init__(
        self,
        store: SchedulingStore,
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock(getattr(store, "tz", None))
        self.settings = settings or SchedulerSettings()

    # ── Public API ────────────────────────────────────────────

    def schedule_task(self, user_id: str, task: Task, preferred_date: date | None = None) -> TimeBlock:
        """Book the earliest free slot on *preferred_date* (default today) that fits *task*.

        Raises DependenciesIncomplete, NoAvailability, NoSuitableSlot,
        RetrievalFailed or PersistenceFailed.
        """
        self._check_dependencies(task)
        target = preferred_date or self.clock.today()
        return self._place(user_id, task, target)

    def reschedule_task(self, user_id: str, task_id: str, new_date: date) -> TimeBlock:
        """Drop the task's current block and schedule it again on *new_date*.

        The current block stays in place if the task is unknown or its
        dependencies are not completed.
        """
        try:
            task = self.store.get_task(task_id)
        except Exception as exc:
            raise RetrievalFailed(f"Could not load task {task_id}: {exc}", task_id=task_id) from exc
        if task is None:
            raise TaskNotFound(f"Task not found: {task_id}", task_id=task_id)
        self._check_dependencies(task)

        try:
            removed = self.store.delete_time_block(task_id)
        except Exception as exc:
            raise PersistenceFailed(f"Could not remove block of {task_id}: {exc}", task_id=task_id) from exc
        logger.info("Removed %s existing block(s) of task %s", removed, task_id)

        return self._place(user_id, task, new_date)

    def schedule_batch(
        self, user_id: str, tasks: list[Task], preferred_date: date | None = None
    ) -> BatchResult:
        """Schedule several tasks on one date, dependencies first, then by score.

        A task whose in-batch dependency could not be placed is reported as
        DependenciesIncomplete; a dependent never starts before its
        dependencies end. Per-task failures do not stop the batch.
        """
        target = preferred_date or self.clock.today()
        batch_ids = {t.id for t in tasks}
        result = BatchResult()

        for task in dependency_order(tasks, self.clock.now(), self.settings):
            in_batch = [dep for dep in task.dependencies if dep in batch_ids]
            try:
                unplaced = [dep for dep in in_batch if dep not in result.scheduled]
                if unplaced:
                    raise DependenciesIncomplete(unplaced, task_id=task.id)
                self._check_dependencies(task, satisfied=set(in_batch))
                not_before = max((result.scheduled[dep].end_time for dep in in_batch), default=None)
                result.scheduled[task.id] = self._place(user_id, task, target, not_before)
            except SchedulingError as exc:
                logger.info("Batch: task %s not scheduled (%s)", task.id, type(exc).__name__)
                result.failures[task.id] = exc

        return result

    # ── Internals ─────────────────────────────────────────────

    def _check_dependencies(self, task: Task, satisfied: set[str] | None = None) -> None:
        pending = []
        for dep_id in task.dependencies:
            if satisfied and dep_id in satisfied:
                continue
            try:
                dep = self.store.get_task(dep_id)
            except Exception as exc:
                raise RetrievalFailed(f"Could not load dependency {dep_id}: {exc}", task_id=task.id) from exc
            if dep is None:
                logger.warning("Task %s depends on unknown task %s; ignoring", task.id, dep_id)
                continue
            if dep.status != "completed":
                pending.append(dep_id)
        if pending:
            raise DependenciesIncomplete(pending, task_id=task.id)

    def _place(
        self,
        user_id: str,
        task: Task,
        target: date,
        not_before: datetime | None = None,
    ) -> TimeBlock:
        slots = resolve_availability(self.store, user_id, target, self.clock.tz, self.settings)
        if not slots:
            raise NoAvailability(f"No free time for {user_id} on {target:%Y-%m-%d}", task_id=task.id)

        if not_before is not None:
            slots = clip_slots(slots, not_before)

        slot = select_earliest_fit(slots, task.estimated_duration)
        if slot is None:
            raise NoSuitableSlot(
                f"No free slot of {task.estimated_duration} min for {user_id} on {target:%Y-%m-%d}",
                task_id=task.id,
            )

        block = TimeBlock(
            id=uuid.uuid4().hex,
            task_id=task.id,
            user_id=user_id,
            start_time=slot.start_time,
            end_time=slot.start_time + timedelta(minutes=task.estimated_duration),
            is_focus_time=task.priority == "high",
        )
        try:
            created = self.store.create_time_block(block)
        except Exception as exc:
            raise PersistenceFailed(f"Could not save block for {task.id}: {exc}", task_id=task.id) from exc

        logger.info(
            "Scheduled task %s for %s at %s-%s",
            task.id, user_id, block.start_time.isoformat(), block.end_time.strftime("%H:%M"),
        )
        return created or block
