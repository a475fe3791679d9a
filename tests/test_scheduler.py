"""Tests for autoschedule/scheduler.py — earliest-fit placement, rescheduling, batches."""

from datetime import time

import pytest

from autoschedule.errors import (
    BlockConflict,
    DependenciesIncomplete,
    NoAvailability,
    NoSuitableSlot,
    PersistenceFailed,
    RetrievalFailed,
    TaskNotFound,
)
from autoschedule.models import AvailabilitySlot, WorkingHours
from autoschedule.scheduler import TaskScheduler, select_earliest_fit
from autoschedule.storage import InMemoryStore

from conftest import MONDAY, SATURDAY, at, block


@pytest.fixture
def scheduler(store, clock):
    return TaskScheduler(store, clock)


def test_empty_day_high_priority(scheduler, make_task):
    result = scheduler.schedule_task("u1", make_task(duration=60, priority="high"), MONDAY)
    assert result.start_time == at(9)
    assert result.end_time == at(10)
    assert result.is_focus_time is True
    assert result.task_id == "t1"
    assert result.user_id == "u1"


def test_places_after_existing_block(scheduler, store, make_task):
    store.create_time_block(block("busy", at(9), at(11)))
    result = scheduler.schedule_task("u1", make_task(duration=90), MONDAY)
    assert (result.start_time, result.end_time) == (at(11), at(12, 30))
    assert result.is_focus_time is False


def test_saturday_has_no_availability(scheduler, make_task):
    with pytest.raises(NoAvailability):
        scheduler.schedule_task("u1", make_task(), SATURDAY)


def test_no_slot_long_enough(clock, make_task):
    s = InMemoryStore()
    s.set_working_hours("u1", WorkingHours(time(9), time(10), [0, 1, 2, 3, 4]))
    with pytest.raises(NoSuitableSlot):
        TaskScheduler(s, clock).schedule_task("u1", make_task(duration=90), MONDAY)


def test_earliest_fitting_slot_wins(scheduler, store, make_task):
    store.create_time_block(block("a", at(9, 30), at(10)))   # 09:00-09:30 free, too short
    store.create_time_block(block("b", at(12), at(13)))      # 10:00-12:00 and 13:00-17:00 free
    result = scheduler.schedule_task("u1", make_task(duration=60), MONDAY)
    assert result.start_time == at(10)


def test_select_earliest_fit_ignores_input_order():
    slots = [AvailabilitySlot(at(14), at(16)), AvailabilitySlot(at(10), at(12))]
    assert select_earliest_fit(slots, 60).start_time == at(10)
    assert select_earliest_fit(slots, 180) is None


def test_defaults_to_today(scheduler, make_task):
    result = scheduler.schedule_task("u1", make_task())
    assert result.start_time.date() == MONDAY


def test_block_is_persisted(scheduler, store, make_task):
    result = scheduler.schedule_task("u1", make_task(), MONDAY)
    assert store.blocks == [result]


def test_consecutive_tasks_do_not_overlap(scheduler, make_task):
    first = scheduler.schedule_task("u1", make_task("a", 60), MONDAY)
    second = scheduler.schedule_task("u1", make_task("b", 60), MONDAY)
    assert second.start_time == first.end_time


def test_incomplete_dependency_blocks_scheduling(scheduler, store, make_task):
    store.add_task(make_task("base", status="in-progress"))
    with pytest.raises(DependenciesIncomplete) as excinfo:
        scheduler.schedule_task("u1", make_task("next", dependencies=["base"]), MONDAY)
    assert excinfo.value.pending == ["base"]


def test_completed_and_unknown_dependencies_allow_scheduling(scheduler, store, make_task):
    store.add_task(make_task("base", status="completed"))
    result = scheduler.schedule_task("u1", make_task("next", dependencies=["base", "ghost"]), MONDAY)
    assert result.start_time == at(9)


# ── Rescheduling ──────────────────────────────────────────────


def test_reschedule_twice_leaves_one_block(scheduler, store, make_task):
    task = store.add_task(make_task())
    scheduler.schedule_task("u1", task, MONDAY)
    tuesday = MONDAY.replace(day=4)
    scheduler.reschedule_task("u1", "t1", tuesday)
    again = scheduler.reschedule_task("u1", "t1", tuesday)
    bound = [b for b in store.blocks if b.task_id == "t1"]
    assert bound == [again]
    assert again.start_time == at(9, day=tuesday)


def test_reschedule_frees_its_own_slot(scheduler, store, make_task):
    task = store.add_task(make_task(duration=480))
    scheduler.schedule_task("u1", task, MONDAY)
    result = scheduler.reschedule_task("u1", "t1", MONDAY)
    assert result.start_time == at(9)


def test_reschedule_unknown_task(scheduler):
    with pytest.raises(TaskNotFound):
        scheduler.reschedule_task("u1", "missing", MONDAY)


# ── Storage failures ──────────────────────────────────────────


class _FailingWrites(InMemoryStore):
    def create_time_block(self, block):
        raise ConnectionError("write timeout")


class _FailingReads(InMemoryStore):
    def get_working_hours(self, user_id):
        raise ConnectionError("read timeout")


def test_write_failure_is_persistence_failed(clock, make_task):
    with pytest.raises(PersistenceFailed):
        TaskScheduler(_FailingWrites(), clock).schedule_task("u1", make_task(), MONDAY)


def test_read_failure_is_retrieval_failed(clock, make_task):
    s = _FailingReads()
    with pytest.raises(RetrievalFailed):
        TaskScheduler(s, clock).schedule_task("u1", make_task(), MONDAY)
    assert s.blocks == []


def test_store_rejects_overlapping_insert(store):
    store.create_time_block(block("a", at(9), at(10)))
    with pytest.raises(BlockConflict):
        store.create_time_block(block("b", at(9, 30), at(10, 30)))


def test_notice_is_user_facing(scheduler, make_task):
    with pytest.raises(NoAvailability) as excinfo:
        scheduler.schedule_task("u1", make_task(), SATURDAY)
    assert "another date" in excinfo.value.notice


# ── Batches ───────────────────────────────────────────────────


def test_batch_orders_by_score(scheduler, make_task):
    low = make_task("low", 60, priority="low")
    high = make_task("high", 60, priority="high")
    result = scheduler.schedule_batch("u1", [low, high], MONDAY)
    assert result.scheduled["high"].start_time == at(9)
    assert result.scheduled["low"].start_time == at(10)
    assert result.failures == {}


def test_batch_dependent_starts_after_dependency(scheduler, store, make_task):
    store.create_time_block(block("busy", at(10), at(11)))
    base = make_task("base", 90, priority="low")
    quick = make_task("quick", 30, priority="high", dependencies=["base"])
    result = scheduler.schedule_batch("u1", [quick, base], MONDAY)
    # base does not fit 09:00-10:00, goes to 11:00-12:30; quick could fit at 09:00 but must follow base
    assert result.scheduled["base"].start_time == at(11)
    assert result.scheduled["quick"].start_time == at(12, 30)


def test_batch_reports_failures_and_continues(scheduler, make_task):
    huge = make_task("huge", 600, priority="high")
    dependent = make_task("dependent", 30, dependencies=["huge"])
    small = make_task("small", 30, priority="low")
    result = scheduler.schedule_batch("u1", [huge, dependent, small], MONDAY)
    assert isinstance(result.failures["huge"], NoSuitableSlot)
    assert isinstance(result.failures["dependent"], DependenciesIncomplete)
    assert result.scheduled["small"].start_time == at(9)
    assert result.to_dict()["failures"]["huge"]["error"] == "NoSuitableSlot"


def test_reschedule_keeps_block_when_dependencies_incomplete(scheduler, store, make_task):
    store.add_task(make_task("base", status="in-progress"))
    store.add_task(make_task("next", dependencies=["base"]))
    existing = store.create_time_block(block("next", at(9), at(10)))
    with pytest.raises(DependenciesIncomplete):
        scheduler.reschedule_task("u1", "next", MONDAY)
    assert store.blocks == [existing]
