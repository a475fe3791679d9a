"""Shared test fixtures for autoschedule tests."""

from __future__ import annotations

import json
import os
from datetime import date, datetime, time, timezone
from pathlib import Path

import pytest
import yaml

from autoschedule.clock import FixedClock
from autoschedule.models import Task, TimeBlock, WorkingHours
from autoschedule.storage import InMemoryStore

UTC = timezone.utc
MONDAY = date(2024, 6, 3)
SATURDAY = date(2024, 6, 8)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def block(task_id: str, start: datetime, end: datetime, user_id: str = "u1") -> TimeBlock:
    return TimeBlock(id=f"blk-{task_id}", task_id=task_id, user_id=user_id, start_time=start, end_time=end)


@pytest.fixture
def clock() -> FixedClock:
    """Monday 2024-06-03, 08:00 UTC."""
    return FixedClock(at(8, 0))


@pytest.fixture
def store() -> InMemoryStore:
    """In-memory store: user u1 works 09:00-17:00 Monday to Friday."""
    s = InMemoryStore()
    s.set_working_hours("u1", WorkingHours(time(9, 0), time(17, 0), [0, 1, 2, 3, 4]))
    return s


@pytest.fixture
def make_task():
    def _make(task_id: str = "t1", duration: int = 60, **kwargs) -> Task:
        kwargs.setdefault("created_by", "u1")
        return Task(id=task_id, estimated_duration=duration, **kwargs)

    return _make


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with standard structure."""
    root = tmp_path / "workspace"
    (root / "users" / "u1").mkdir(parents=True)

    settings = {
        "timezone": "UTC",
        "scheduling": {
            "dependency_bonus": 30,
            "confidence_saturation": 5,
        },
    }
    (root / "settings.yaml").write_text(yaml.dump(settings, default_flow_style=False), encoding="utf-8")

    working_hours = {
        "startTimeOfDay": "09:00",
        "endTimeOfDay": "17:00",
        "daysOfWeek": [0, 1, 2, 3, 4],
        "breaks": ["12:00-13:00"],
    }
    (root / "users" / "u1" / "working_hours.yaml").write_text(
        yaml.dump(working_hours, default_flow_style=False), encoding="utf-8"
    )

    tasks = {
        "tasks": [
            {
                "id": "write-report",
                "title": "Write report",
                "category": "planning",
                "priority": "high",
                "estimatedDuration": 90,
                "deadline": "2024-06-04T12:00:00Z",
                "createdBy": "u1",
                "status": "todo",
            },
            {
                "id": "review-pr",
                "title": "Review PR",
                "category": "coding",
                "priority": "medium",
                "estimatedDuration": 30,
                "dependencies": [{"dependsOnTaskId": "write-report"}],
                "createdBy": "u1",
                "status": "todo",
            },
            {
                "id": "setup-env",
                "title": "Set up environment",
                "priority": "low",
                "estimatedDuration": 20,
                "createdBy": "u1",
                "status": "completed",
            },
        ]
    }
    (root / "tasks.yaml").write_text(yaml.dump(tasks, default_flow_style=False), encoding="utf-8")

    blocks = [
        {
            "id": "standup",
            "taskId": "standup",
            "userId": "u1",
            "startTime": "2024-06-03T09:00:00+00:00",
            "endTime": "2024-06-03T09:30:00+00:00",
            "isFocusTime": False,
        }
    ]
    (root / "time_blocks.json").write_text(json.dumps(blocks, indent=2), encoding="utf-8")

    completions = {
        "u1": [
            {
                "taskId": "old-1",
                "estimatedDuration": 60,
                "actualDuration": 90,
                "startTime": "2024-05-27T10:00:00+00:00",
                "endTime": "2024-05-27T11:30:00+00:00",
                "taskType": "planning",
                "success": True,
            }
        ]
    }
    (root / "completions.json").write_text(json.dumps(completions, indent=2), encoding="utf-8")

    # Set env var
    os.environ["AUTOSCHEDULE_ROOT"] = str(root)
    yield root
    # Cleanup
    if "AUTOSCHEDULE_ROOT" in os.environ:
        del os.environ["AUTOSCHEDULE_ROOT"]
