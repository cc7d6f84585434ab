"""Hole list helpers for shift reports.

All functions are pure: they return new lists and never modify the holes
they are given.
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from drillsync.domain.ids import generate_id
from drillsync.domain.records import HoleRecord
from drillsync.errors import ResourceNotFoundError

MINUTES_PER_DAY = 24 * 60


def recompute_cumulative(holes: List[HoleRecord]) -> List[HoleRecord]:
    """Set each hole's cumulative meters to the running total of ``meters``."""
    running = 0.0
    out = []
    for hole in holes or []:
        running += hole.meters or 0.0
        out.append(replace(hole, cumulative_meters=running))
    return out


def total_meters(holes: List[HoleRecord]) -> float:
    return sum(h.meters or 0.0 for h in holes or [])


def _parse_time(value) -> Optional[datetime]:
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(str(value).strip(), fmt)
        except ValueError:
            continue
    return None


def hole_duration_minutes(start, end) -> Optional[int]:
    """Minutes from ``start`` to ``end`` (HH:MM), wrapping past midnight."""
    t1, t2 = _parse_time(start), _parse_time(end)
    if t1 is None or t2 is None:
        return None
    diff = (t2 - t1).total_seconds() / 60
    if diff < 0:
        diff += MINUTES_PER_DAY
    return int(round(diff))


def _next_number(holes):
    if not holes:
        return '1'
    try:
        return str(int(holes[-1].hole_number or '0') + 1)
    except ValueError:
        return str(len(holes) + 1)


def add_hole(holes: List[HoleRecord], now: Optional[datetime] = None) -> List[HoleRecord]:
    """Append a blank hole that starts where the previous one ended."""
    current = (now or datetime.now()).strftime('%H:%M')
    last = holes[-1] if holes else None
    hole = HoleRecord(
        id=generate_id(),
        hole_number=_next_number(holes),
        start_time=last.end_time if last else current,
        end_time=current,
    )
    return recompute_cumulative(list(holes) + [hole])


def update_hole(holes: List[HoleRecord], hole_id, **changes) -> List[HoleRecord]:
    """Apply ``changes`` to one hole, refreshing its duration and the running totals."""
    index = next((i for i, h in enumerate(holes) if h.id == hole_id), None)
    if index is None:
        raise ResourceNotFoundError(f"Hole {hole_id} not found")

    hole = replace(holes[index], **changes)
    if 'start_time' in changes or 'end_time' in changes:
        duration = hole_duration_minutes(hole.start_time, hole.end_time)
        if duration is not None:
            hole = replace(hole, duration_minutes=duration)

    updated = list(holes)
    updated[index] = hole
    if 'meters' in changes:
        return recompute_cumulative(updated)
    return updated


def remove_hole(holes: List[HoleRecord], hole_id) -> List[HoleRecord]:
    return recompute_cumulative([h for h in holes if h.id != hole_id])
