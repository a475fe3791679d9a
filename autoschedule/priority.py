"""Priority scoring and scheduling order for tasks."""

from __future__ import annotations

from datetime import datetime
from graphlib import CycleError, TopologicalSorter

from autoschedule.config import SchedulerSettings
from autoschedule.errors import DependencyCycle
from autoschedule.models import Task


def deadline_bonus(task: Task, now: datetime, settings: SchedulerSettings) -> float:
    """Urgency bonus from the first deadline window the task falls into.

    Overdue tasks fall into the tightest window.
    """
    if task.deadline is None:
        return 0.0
    hours_left = (task.deadline - now).total_seconds() / 3600
    for within_hours, bonus in settings.deadline_bonuses:
        if hours_left <= within_hours:
            return bonus
    return 0.0


def compute_task_priority_score(
    task: Task, now: datetime, settings: SchedulerSettings | None = None
) -> float:
    """Compute the ranking score of a task.

    Components:
    - Priority tier base (high 100, medium 50, low 25)
    - Deadline urgency: +100 within 24h, +50 within 72h, +25 within a week
    - Dependency bonus when the task declares any dependency
    - Tie-break favouring shorter tasks: 10 / estimated minutes
    """
    settings = settings or SchedulerSettings()
    score = settings.tier_base.get(task.priority, 0.0)
    score += deadline_bonus(task, now, settings)
    if task.dependencies:
        score += settings.dependency_bonus
    score += settings.short_task_numerator / task.estimated_duration
    return score


def rank_tasks(
    tasks: list[Task], now: datetime, settings: SchedulerSettings | None = None
) -> list[Task]:
    """Tasks sorted by descending score; equal scores keep input order."""
    return sorted(tasks, key=lambda t: compute_task_priority_score(t, now, settings), reverse=True)


def dependency_order(
    tasks: list[Task], now: datetime, settings: SchedulerSettings | None = None
) -> list[Task]:
    """Order tasks so every task comes after the tasks it depends on.

    Only dependencies within *tasks* constrain the order. Among tasks that
    are ready at the same time, the higher score goes first.
    """
    by_id = {t.id: t for t in tasks}
    scores = {t.id: compute_task_priority_score(t, now, settings) for t in tasks}
    position = {t.id: i for i, t in enumerate(tasks)}

    sorter: TopologicalSorter[str] = TopologicalSorter()
    for task in tasks:
        sorter.add(task.id, *[dep for dep in task.dependencies if dep in by_id])
    try:
        sorter.prepare()
    except CycleError as exc:
        raise DependencyCycle(list(exc.args[1])) from exc

    ordered: list[Task] = []
    ready: list[str] = list(sorter.get_ready())
    while ready:
        ready.sort(key=lambda tid: (-scores[tid], position[tid]))
        best = ready.pop(0)
        ordered.append(by_id[best])
        sorter.done(best)
        ready.extend(sorter.get_ready())
    return ordered
