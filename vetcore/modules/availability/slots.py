"""Side-effect-free slot arithmetic shared by the read path and the booking path.

Window partitioning works in whole minutes past midnight; overlap against
booked intervals compares the exact times. Every interval is half-open.
"""
from dataclasses import dataclass
from datetime import time
from typing import Iterable, Sequence
from vetcore.core.timeutils import to_minutes, from_minutes
from vetcore.modules.availability.models import LocationType


@dataclass(frozen=True)
class Slot:
    slot_start: time
    slot_end: time
    location_type: LocationType


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    return a_start < b_end and b_start < a_end


def partition_window(start: time, end: time, step_minutes: int) -> list[tuple[int, int]]:
    """Consecutive ``step_minutes`` slots inside [start, end); a short tail is dropped."""
    if step_minutes <= 0:
        return []
    s, e = to_minutes(start), to_minutes(end)
    out = []
    cur = s
    while cur + step_minutes <= e:
        out.append((cur, cur + step_minutes))
        cur += step_minutes
    return out


def slots_per_window(start: time, end: time, slot_minutes: int) -> int:
    if slot_minutes <= 0:
        return 0
    return max((to_minutes(end) - to_minutes(start)) // slot_minutes, 0)


def compile_slots(
    windows: Iterable,
    busy: Sequence[tuple[time, time]],
    *,
    duration_minutes: int | None = None,
    location_type: LocationType | None = None,
) -> list[Slot]:
    """Free slots for one day.

    ``windows`` are the day's AvailabilityWindow rows (already matched on weekday,
    blocked dates already excluded). ``busy`` holds the intervals of active
    appointments. When ``duration_minutes`` is None each window uses its own
    ``slot_duration_minutes``.
    """
    seen: set[tuple[int, int]] = set()
    out: list[tuple[int, int, LocationType]] = []
    for w in windows:
        if location_type is not None and not LocationType(w.location_type).accepts(location_type):
            continue
        step = duration_minutes or w.slot_duration_minutes
        for s, e in partition_window(w.start_time, w.end_time, step):
            if (s, e) in seen:
                continue
            if any(overlaps(from_minutes(s), from_minutes(e), bs, be) for bs, be in busy):
                continue
            seen.add((s, e))
            out.append((s, e, LocationType(w.location_type)))
    out.sort(key=lambda x: (x[0], x[1]))
    return [Slot(from_minutes(s), from_minutes(e), lt) for s, e, lt in out]


def interval_is_bookable(
    windows: Iterable,
    busy: Sequence[tuple[time, time]],
    start: time,
    end: time,
    location_type: LocationType,
) -> bool:
    """Write-time check: inside a compatible window and clear of every active appointment.

    Compares the exact ``time`` values so sub-minute parts are never rounded away.
    """
    if end <= start:
        return False
    inside = any(
        w.start_time <= start and end <= w.end_time
        and LocationType(w.location_type).accepts(location_type)
        for w in windows
    )
    if not inside:
        return False
    return not any(overlaps(start, end, bs, be) for bs, be in busy)
