"""Named scheduling outcomes.

Every failure the scheduler can report is its own exception class so that
callers can tell "no free time today" apart from "could not save". Each
class carries a short ``notice`` suitable for showing to the user.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    notice = "The task could not be scheduled."

    def __init__(self, message: str | None = None, *, task_id: str | None = None) -> None:
        super().__init__(message or self.notice)
        self.task_id = task_id


class NoAvailability(SchedulingError):
    """The date has no free time at all (non-working day or fully booked)."""

    notice = "No free time on that day. Pick another date."


class NoSuitableSlot(SchedulingError):
    """Free time exists but no contiguous interval is long enough."""

    notice = "No free slot is long enough for this task. Pick another date or shorten the task."


class TaskNotFound(SchedulingError):
    notice = "The task no longer exists."


class RetrievalFailed(SchedulingError):
    """A storage read failed."""

    notice = "Could not load your calendar. Try again."


class PersistenceFailed(SchedulingError):
    """The time block write failed; no block should be assumed to exist."""

    notice = "Could not save the scheduled block. Try again."


class DependenciesIncomplete(SchedulingError):
    """The task depends on tasks that are not completed yet."""

    notice = "Finish the tasks this one depends on first."

    def __init__(self, pending: list[str], *, task_id: str | None = None) -> None:
        super().__init__(
            f"Cannot schedule task: dependencies not completed ({', '.join(pending)})",
            task_id=task_id,
        )
        self.pending = pending


class DependencyCycle(SchedulingError):
    notice = "These tasks depend on each other in a loop."

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(f"Dependency cycle: {' -> '.join(cycle)}")
        self.cycle = cycle


class BlockConflict(ValueError):
    """Raised by stores when a new block overlaps an existing one."""
