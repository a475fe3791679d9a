"""Free-time resolution for a user on a calendar date.

Starts from the user's working hours for that weekday, then subtracts
booked time blocks and configured breaks.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo

from autoschedule.config import SchedulerSettings
from autoschedule.errors import RetrievalFailed
from autoschedule.models import AvailabilitySlot
from autoschedule.storage import SchedulingStore

logger = logging.getLogger(__name__)


def subtract_intervals(
    base_start: datetime,
    base_end: datetime,
    busy: list[tuple[datetime, datetime]],
) -> list[AvailabilitySlot]:
    """Return the parts of [base_start, base_end) not covered by *busy*.

    Busy intervals may overlap each other and may stick out of the base
    interval. Output is sorted, non-overlapping and has no zero-length slots.
    """
    slots: list[AvailabilitySlot] = []
    cursor = base_start
    for start, end in sorted(busy):
        if end <= cursor:
            continue
        if start >= base_end:
            break
        if start > cursor:
            slots.append(AvailabilitySlot(cursor, start))
        cursor = max(cursor, end)
    if cursor < base_end:
        slots.append(AvailabilitySlot(cursor, base_end))
    return slots


def _as_date(value: date | datetime, tz: tzinfo) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def resolve_availability(
    store: SchedulingStore,
    user_id: str,
    target_date: date | datetime,
    tz: tzinfo | None = None,
    settings: SchedulerSettings | None = None,
) -> list[AvailabilitySlot]:
    """Compute free slots for *user_id* on *target_date*.

    Returns an empty list on non-working days. Storage failures raise
    RetrievalFailed rather than returning partial availability.
    """
    tz = tz or timezone.utc
    settings = settings or SchedulerSettings()
    day = _as_date(target_date, tz)

    try:
        hours = store.get_working_hours(user_id)
    except Exception as exc:
        raise RetrievalFailed(f"Could not load working hours for {user_id}: {exc}") from exc
    if hours is None:
        hours = settings.default_working_hours

    if not hours.works_on(day):
        logger.debug("%s is not a working day for %s", day.isoformat(), user_id)
        return []

    base_start, base_end = hours.window().on(day, tz)

    try:
        blocks = store.get_time_blocks(user_id, base_start, base_end)
    except Exception as exc:
        raise RetrievalFailed(f"Could not load time blocks for {user_id}: {exc}") from exc

    busy = [
        (b.start_time, b.end_time)
        for b in blocks
        if b.start_time < base_end and b.end_time > base_start
    ]
    busy.extend(window.on(day, tz) for window in hours.breaks)

    slots = subtract_intervals(base_start, base_end, busy)
    logger.debug(
        "Resolved %d free slot(s) for %s on %s (%d busy interval(s))",
        len(slots), user_id, day.isoformat(), len(busy),
    )
    return slots
