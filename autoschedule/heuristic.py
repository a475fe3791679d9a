"""Adaptive time-of-day suggestions learned from completion history.

The per-hour productivity model is rebuilt from the history snapshot on
every call; nothing here keeps state between suggestions. Output is
advisory: an empty or unreadable history falls back to the priors and a
confidence of zero instead of failing.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from datetime import datetime, time, timedelta, timezone, tzinfo

from autoschedule.availability import resolve_availability
from autoschedule.clock import Clock, SystemClock
from autoschedule.config import SchedulerSettings
from autoschedule.errors import RetrievalFailed
from autoschedule.models import (
    ProductivityPattern,
    Suggestion,
    Task,
    TaskCompletion,
    TimeBlock,
    minutes_between,
)
from autoschedule.scheduler import clip_slots, select_earliest_fit
from autoschedule.storage import SchedulingStore

logger = logging.getLogger(__name__)

HOURS = range(24)


# ── Productivity model ────────────────────────────────────────


def prior_productivity(hour: int, settings: SchedulerSettings) -> float:
    """Baseline productivity for an hour: a sinusoid peaking at noon, or flat."""
    if settings.productivity_prior == "uniform":
        return 1.0
    return math.sin((hour - 6) * math.pi / 12) * 0.5 + 0.5


def prior_type_rate(task_type: str, hour: int, settings: SchedulerSettings) -> float:
    prior = settings.type_priors.get(task_type)
    return prior.rate(hour) if prior else settings.default_type_rate


def _blend(successes: int, total: int, prior: float, weight: float) -> float:
    """Observed success rate pulled toward *prior* by *weight* pseudo-observations."""
    if total + weight <= 0:
        return prior
    return min(1.0, max(0.0, (successes + weight * prior) / (total + weight)))


def build_productivity_model(
    history: list[TaskCompletion],
    settings: SchedulerSettings | None = None,
    tz: tzinfo | None = None,
) -> list[ProductivityPattern]:
    """One ProductivityPattern per hour 0-23, keyed by the hour a task was started."""
    settings = settings or SchedulerSettings()
    tz = tz or timezone.utc

    hour_total: Counter[int] = Counter()
    hour_done: Counter[int] = Counter()
    type_total: Counter[tuple[str, int]] = Counter()
    type_done: Counter[tuple[str, int]] = Counter()

    for c in history:
        hour = c.start_time.astimezone(tz).hour
        hour_total[hour] += 1
        type_total[(c.task_type, hour)] += 1
        if c.success:
            hour_done[hour] += 1
            type_done[(c.task_type, hour)] += 1

    task_types = set(settings.type_priors) | {c.task_type for c in history}
    weight = settings.prior_weight

    model = []
    for hour in HOURS:
        productivity = _blend(hour_done[hour], hour_total[hour], prior_productivity(hour, settings), weight)
        rates = {
            t: _blend(type_done[(t, hour)], type_total[(t, hour)], prior_type_rate(t, hour, settings), weight)
            for t in sorted(task_types)
        }
        model.append(ProductivityPattern(hour=hour, productivity=productivity, task_types=rates))
    return model


def success_rate(
    model: list[ProductivityPattern],
    task_type: str,
    hour: int,
    duration: float,
    settings: SchedulerSettings | None = None,
) -> float:
    """type rate x productivity x exp(-duration / decay)."""
    settings = settings or SchedulerSettings()
    pattern = model[hour]
    type_rate = pattern.task_types.get(task_type, settings.default_type_rate)
    duration_factor = math.exp(-duration / settings.duration_decay_minutes)
    return type_rate * pattern.productivity * duration_factor


def choose_optimal_hour(
    model: list[ProductivityPattern],
    task_type: str,
    duration: float,
    settings: SchedulerSettings | None = None,
) -> int:
    """Hour with the highest success rate; the earliest hour wins ties."""
    best_hour, best_score = 0, -1.0
    for hour in HOURS:
        score = success_rate(model, task_type, hour, duration, settings)
        if score > best_score:
            best_hour, best_score = hour, score
    return best_hour


def _similar(task: Task, history: list[TaskCompletion]) -> list[TaskCompletion]:
    """Completions of the same type with usable durations; these drive both
    the duration ratio and the confidence."""
    return [
        c for c in history
        if c.task_type == task.task_type and c.estimated_duration > 0 and c.actual_duration > 0
    ]


def expected_duration(task: Task, history: list[TaskCompletion]) -> float:
    """Estimate scaled by the mean actual/estimated ratio of similar tasks."""
    ratios = [c.actual_duration / c.estimated_duration for c in _similar(task, history)]
    ratio = sum(ratios) / len(ratios) if ratios else 1.0
    return task.estimated_duration * ratio


def history_confidence(sample_count: int, settings: SchedulerSettings | None = None) -> float:
    settings = settings or SchedulerSettings()
    return min(sample_count / settings.confidence_saturation, 1.0)


# ── Suggestion ────────────────────────────────────────────────


def _format_clock(t: datetime) -> str:
    return f"{t.hour % 12 or 12}:{t.minute:02d} {'AM' if t.hour < 12 else 'PM'}"


def _explain(
    task: Task, start: datetime, confidence: float, expected: float, settings: SchedulerSettings
) -> str:
    what = f"{task.category} tasks" if task.category else "this type of task"
    parts = [f"Based on your productivity patterns, you're most effective at {_format_clock(start)} for {what}."]
    if confidence > settings.strong_confidence:
        parts.append("This suggestion is based on strong historical data.")
    else:
        parts.append("This is an initial suggestion that will improve as you complete more tasks.")
    if expected > task.estimated_duration:
        extra = round(expected - task.estimated_duration)
        parts.append(f"Note: similar tasks typically take about {extra} minutes longer than estimated.")
    return " ".join(parts)


def suggest_time_block(
    task: Task,
    history: list[TaskCompletion],
    clock: Clock,
    settings: SchedulerSettings | None = None,
) -> Suggestion:
    """Suggest a start hour and duration for *task*. Never in the past."""
    settings = settings or SchedulerSettings()
    model = build_productivity_model(history, settings, clock.tz)
    hour = choose_optimal_hour(model, task.task_type, task.estimated_duration, settings)
    expected = expected_duration(task, history)
    confidence = history_confidence(len(_similar(task, history)), settings)

    now = clock.now()
    today = now.astimezone(clock.tz).date()
    start = datetime.combine(today, time(hour), tzinfo=clock.tz)
    if start < now:
        start = datetime.combine(today + timedelta(days=1), time(hour), tzinfo=clock.tz)

    block = TimeBlock(
        id=uuid.uuid4().hex,
        task_id=task.id,
        user_id=task.created_by,
        start_time=start,
        end_time=start + timedelta(minutes=expected),
        is_focus_time=task.priority == "high",
    )
    return Suggestion(
        suggested_block=block,
        explanation=_explain(task, start, confidence, expected, settings),
        confidence=confidence,
        optimal_hour=hour,
        expected_duration=expected,
    )


class AdaptiveScheduler:
    """Store-backed front for suggestions and completion recording."""

    def __init__(
        self,
        store: SchedulingStore,
        clock: Clock | None = None,
        settings: SchedulerSettings | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock(getattr(store, "tz", None))
        self.settings = settings or SchedulerSettings()

    def history(self, user_id: str) -> list[TaskCompletion]:
        try:
            return list(self.store.get_completion_history(user_id))
        except Exception:
            logger.warning("Completion history unavailable for %s; using defaults", user_id, exc_info=True)
            return []

    def productivity_model(self, user_id: str) -> list[ProductivityPattern]:
        return build_productivity_model(self.history(user_id), self.settings, self.clock.tz)

    def suggest_time_block(self, task: Task, user_id: str | None = None) -> Suggestion:
        history = self.history(user_id or task.created_by)
        suggestion = suggest_time_block(task, history, self.clock, self.settings)
        logger.debug(
            "Suggested %s for task %s (confidence %.2f)",
            suggestion.suggested_block.start_time.isoformat(), task.id, suggestion.confidence,
        )
        return suggestion

    def record_task_completion(
        self,
        task: Task,
        actual_start: datetime,
        actual_end: datetime,
        success: bool,
        user_id: str | None = None,
    ) -> TaskCompletion | None:
        """Append a completion record.

        Returns None, after logging, for a reversed interval or a failed write.
        """
        if actual_end < actual_start:
            logger.warning(
                "Ignoring completion of task %s: ends %s before it starts %s",
                task.id, actual_end.isoformat(), actual_start.isoformat(),
            )
            return None
        completion = TaskCompletion(
            task_id=task.id,
            estimated_duration=task.estimated_duration,
            actual_duration=minutes_between(actual_start, actual_end),
            start_time=actual_start,
            end_time=actual_end,
            task_type=task.task_type,
            success=success,
        )
        try:
            self.store.append_completion(user_id or task.created_by, completion)
        except Exception:
            logger.warning("Could not record completion of task %s", task.id, exc_info=True)
            return None
        return completion

    def place_suggestion(self, user_id: str, suggestion: Suggestion) -> TimeBlock | None:
        """Fit a suggestion into the user's free time on the suggested day.

        Prefers the earliest fitting slot starting at or after the suggested
        hour, then the earliest fitting slot of the day that is not in the
        past. Not persisted.
        """
        start = suggestion.suggested_block.start_time
        minutes = math.ceil(suggestion.expected_duration)
        try:
            slots = resolve_availability(self.store, user_id, start, self.clock.tz, self.settings)
        except RetrievalFailed:
            logger.warning("Availability unavailable for %s; cannot place suggestion", user_id, exc_info=True)
            return None

        slot = select_earliest_fit(clip_slots(slots, start), minutes) or select_earliest_fit(
            clip_slots(slots, self.clock.now()), minutes
        )
        if slot is None:
            return None
        block = suggestion.suggested_block
        return TimeBlock(
            id=block.id,
            task_id=block.task_id,
            user_id=user_id,
            start_time=slot.start_time,
            end_time=slot.start_time + timedelta(minutes=minutes),
            is_focus_time=block.is_focus_time,
        )
