"""Typed dataclasses for the scheduling data model.

All models use from_dict/to_dict for storage payloads.
camelCase in payloads is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
Timestamps travel as ISO-8601 strings and are aware datetimes in Python.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any


PRIORITIES = ("low", "medium", "high")
STATUSES = ("todo", "in-progress", "completed")
DEFAULT_TASK_TYPE = "default"


# ── Timestamps ────────────────────────────────────────────────


def parse_instant(value: str | datetime, tz: tzinfo | None = None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken to be in *tz* (UTC when not given).
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or timezone.utc)
    return parsed


def format_instant(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


# ── Primitives ────────────────────────────────────────────────


@dataclass
class TimeRange:
    """A start-end window within a single day."""

    start: time
    end: time

    @classmethod
    def from_str(cls, s: str) -> TimeRange:
        """Parse '12:00-13:00' or '12:00\u201313:00'."""
        s = s.replace("\u2013", "-").replace("\u2014", "-")
        parts = s.split("-")
        if len(parts) != 2:
            raise ValueError(f"Invalid time range: {s!r}")
        return cls(
            start=time.fromisoformat(parts[0].strip()),
            end=time.fromisoformat(parts[1].strip()),
        )

    def duration_minutes(self) -> int:
        return max(0, _minutes_of_day(self.end) - _minutes_of_day(self.start))

    def to_str(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    def on(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        """Anchor the window to a calendar date."""
        return datetime.combine(day, self.start, tzinfo=tz), datetime.combine(day, self.end, tzinfo=tz)


def _minutes_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def _time_of_day(value: Any) -> time:
    # unquoted HH:MM in YAML 1.1 loads as a base-60 int (17:00 -> 1020)
    if isinstance(value, int) and not isinstance(value, bool):
        return time(value // 60, value % 60)
    return time.fromisoformat(str(value))


# ── Working hours ─────────────────────────────────────────────


@dataclass
class WorkingHours:
    """Daily working window and the weekdays it applies to (0 = Monday)."""

    start_time_of_day: time = time(9, 0)
    end_time_of_day: time = time(17, 0)
    days_of_week: list[int] = field(default_factory=lambda: [0, 1, 2, 3, 4])
    breaks: list[TimeRange] = field(default_factory=list)

    def __post_init__(self) -> None:
        if _minutes_of_day(self.end_time_of_day) <= _minutes_of_day(self.start_time_of_day):
            raise ValueError(
                f"Working hours must end after they start: "
                f"{self.start_time_of_day:%H:%M}-{self.end_time_of_day:%H:%M}"
            )
        bad_days = [d for d in self.days_of_week if not 0 <= d <= 6]
        if bad_days:
            raise ValueError(f"Invalid weekday(s): {bad_days}")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WorkingHours:
        if not d or not isinstance(d, dict):
            return cls()
        days = d.get("daysOfWeek", d.get("days_of_week"))
        return cls(
            start_time_of_day=_time_of_day(d.get("startTimeOfDay", "09:00")),
            end_time_of_day=_time_of_day(d.get("endTimeOfDay", "17:00")),
            days_of_week=sorted({int(x) for x in days}) if days is not None else [0, 1, 2, 3, 4],
            breaks=[TimeRange.from_str(b) for b in (d.get("breaks") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "startTimeOfDay": self.start_time_of_day.strftime("%H:%M"),
            "endTimeOfDay": self.end_time_of_day.strftime("%H:%M"),
            "daysOfWeek": list(self.days_of_week),
        }
        if self.breaks:
            d["breaks"] = [b.to_str() for b in self.breaks]
        return d

    def works_on(self, day: date) -> bool:
        return day.weekday() in self.days_of_week

    def window(self) -> TimeRange:
        return TimeRange(self.start_time_of_day, self.end_time_of_day)


# ── Tasks ─────────────────────────────────────────────────────


def validate_task(task: dict[str, Any]) -> list[str]:
    """Validate a task payload and return a list of errors (empty if valid)."""
    errors = []
    if not task.get("id"):
        errors.append("Missing required field: id")

    duration = task.get("estimatedDuration")
    if duration is None:
        errors.append("Missing required field: estimatedDuration")
    elif isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        errors.append("estimatedDuration must be a positive integer (minutes)")

    if "priority" in task and task["priority"] not in PRIORITIES:
        errors.append(f"Invalid priority: {task['priority']}")

    if "status" in task and task["status"] not in STATUSES:
        errors.append(f"Invalid status: {task['status']}")

    deadline = task.get("deadline")
    if deadline and not isinstance(deadline, datetime):
        try:
            parse_instant(deadline)
        except ValueError:
            errors.append(f"Malformed deadline: {deadline!r}")

    deps = task.get("dependencies")
    if deps is not None and not isinstance(deps, list):
        errors.append("dependencies must be a list")

    return errors


def _dependency_id(ref: Any) -> str:
    if isinstance(ref, dict):
        return str(ref.get("dependsOnTaskId", ref.get("id", "")))
    return str(ref)


@dataclass
class Task:
    id: str
    estimated_duration: int
    title: str = ""
    category: str | None = None
    priority: str = "medium"  # low, medium, high
    deadline: datetime | None = None
    dependencies: list[str] = field(default_factory=list)
    created_by: str = ""
    status: str = "todo"  # todo, in-progress, completed

    def __post_init__(self) -> None:
        if self.estimated_duration <= 0:
            raise ValueError(f"Task {self.id!r}: estimated duration must be positive")

    @property
    def task_type(self) -> str:
        return self.category or DEFAULT_TASK_TYPE

    @classmethod
    def from_dict(cls, d: dict[str, Any], tz: tzinfo | None = None) -> Task:
        errors = validate_task(d)
        if errors:
            raise ValueError("; ".join(errors))
        deadline = d.get("deadline")
        return cls(
            id=str(d["id"]),
            title=str(d.get("title", "")),
            category=d.get("category") or None,
            priority=str(d.get("priority", "medium")),
            estimated_duration=int(d["estimatedDuration"]),
            deadline=parse_instant(deadline, tz) if deadline else None,
            dependencies=[dep for dep in (_dependency_id(r) for r in d.get("dependencies") or []) if dep],
            created_by=str(d.get("createdBy", "")),
            status=str(d.get("status", "todo")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "priority": self.priority,
            "estimatedDuration": self.estimated_duration,
            "status": self.status,
            "createdBy": self.created_by,
        }
        if self.category:
            d["category"] = self.category
        if self.deadline:
            d["deadline"] = format_instant(self.deadline)
        if self.dependencies:
            d["dependencies"] = list(self.dependencies)
        return d


# ── Time blocks ───────────────────────────────────────────────


@dataclass
class TimeBlock:
    """A committed interval of calendar time assigned to one task."""

    id: str
    task_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    is_focus_time: bool = False

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(f"Time block {self.id!r} must end after it starts")

    @classmethod
    def from_dict(cls, d: dict[str, Any], tz: tzinfo | None = None) -> TimeBlock:
        return cls(
            id=str(d.get("id", "")),
            task_id=str(d.get("taskId", "")),
            user_id=str(d.get("userId", "")),
            start_time=parse_instant(d["startTime"], tz),
            end_time=parse_instant(d["endTime"], tz),
            is_focus_time=bool(d.get("isFocusTime", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "userId": self.user_id,
            "startTime": format_instant(self.start_time),
            "endTime": format_instant(self.end_time),
            "isFocusTime": self.is_focus_time,
        }

    def duration_minutes(self) -> float:
        return minutes_between(self.start_time, self.end_time)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_time < end and start < self.end_time


@dataclass
class AvailabilitySlot:
    """A computed free interval. Never persisted."""

    start_time: datetime
    end_time: datetime
    is_recurring: bool = False

    def duration_minutes(self) -> float:
        return minutes_between(self.start_time, self.end_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": format_instant(self.start_time),
            "endTime": format_instant(self.end_time),
            "isRecurring": self.is_recurring,
        }


# ── History & heuristic ───────────────────────────────────────


@dataclass
class TaskCompletion:
    task_id: str
    estimated_duration: float
    actual_duration: float
    start_time: datetime
    end_time: datetime
    task_type: str = DEFAULT_TASK_TYPE
    success: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any], tz: tzinfo | None = None) -> TaskCompletion:
        start = parse_instant(d["startTime"], tz)
        end = parse_instant(d["endTime"], tz)
        actual = d.get("actualDuration")
        return cls(
            task_id=str(d.get("taskId", "")),
            estimated_duration=float(d.get("estimatedDuration", 0)),
            actual_duration=float(actual) if actual is not None else minutes_between(start, end),
            start_time=start,
            end_time=end,
            task_type=str(d.get("taskType") or DEFAULT_TASK_TYPE),
            success=bool(d.get("success", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "estimatedDuration": self.estimated_duration,
            "actualDuration": round(self.actual_duration, 2),
            "startTime": format_instant(self.start_time),
            "endTime": format_instant(self.end_time),
            "taskType": self.task_type,
            "success": self.success,
        }


@dataclass
class ProductivityPattern:
    hour: int
    productivity: float
    task_types: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hour": self.hour,
            "productivity": round(self.productivity, 3),
            "taskTypes": {k: round(v, 3) for k, v in self.task_types.items()},
        }


@dataclass
class Suggestion:
    suggested_block: TimeBlock
    explanation: str
    confidence: float
    optimal_hour: int = 9
    expected_duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestedBlock": self.suggested_block.to_dict(),
            "explanation": self.explanation,
            "confidence": round(self.confidence, 3),
            "optimalHour": self.optimal_hour,
            "expectedDuration": round(self.expected_duration, 1),
        }
