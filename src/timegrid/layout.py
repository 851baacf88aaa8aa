"""
Overlap layout.

Events of one calendar day are split into transitively overlapping groups.
Each group is packed into side-by-side columns with a greedy interval
colouring, then each event's width is normalised to the columns its own
overlap neighbourhood actually uses.

Overlap rule (half-open):
    a.start < b.end AND b.start < a.end
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .models import AugmentedEvent, CalendarEvent
from .timeunits import local_date, minutes_since_midnight

log = logging.getLogger(__name__)

SPLIT = "split"
STACK = "stack"
OVERLAP_POLICIES = (SPLIT, STACK)

# left offset per column under the "stack" policy, in percent of the day column
STACK_OFFSET_PCT = 6.0


def overlaps(a: AugmentedEvent, b: AugmentedEvent) -> bool:
    return a.start_minute < b.end_minute and b.start_minute < a.end_minute


def _augment(events: Iterable[CalendarEvent], tz: Optional[ZoneInfo]) -> List[AugmentedEvent]:
    items: List[AugmentedEvent] = []
    for ev in events:
        start = minutes_since_midnight(ev.start, tz)
        end = minutes_since_midnight(ev.end, tz)
        if end <= start:
            log.debug("Dropping event %r from layout: end minute %d <= start minute %d", ev.id, end, start)
            continue
        items.append(AugmentedEvent(event=ev, start_minute=start, end_minute=end))
    return items


def overlap_groups(items: Sequence[AugmentedEvent]) -> List[List[AugmentedEvent]]:
    """
    Split start-sorted events into transitively overlapping groups.

    A group closes when the next event starts after every event in it has ended.
    """
    groups: List[List[AugmentedEvent]] = []
    current: List[AugmentedEvent] = []
    latest_end = 0
    for ev in items:
        if current and ev.start_minute >= latest_end:
            groups.append(current)
            current = []
        if not current:
            latest_end = ev.end_minute
        current.append(ev)
        latest_end = max(latest_end, ev.end_minute)
    if current:
        groups.append(current)
    return groups


def assign_columns(items: Sequence[AugmentedEvent]) -> List[AugmentedEvent]:
    """Greedy packing: each event takes the lowest column that is free at its start."""
    column_end: List[int] = []
    placed: List[AugmentedEvent] = []
    for ev in items:
        for i, end in enumerate(column_end):
            if end <= ev.start_minute:
                column_end[i] = ev.end_minute
                placed.append(replace(ev, column=i))
                break
        else:
            placed.append(replace(ev, column=len(column_end)))
            column_end.append(ev.end_minute)
    return placed


def normalize_columns(items: Sequence[AugmentedEvent]) -> List[AugmentedEvent]:
    # O(n^2) is fine for the handful of events a day column can show
    out: List[AugmentedEvent] = []
    for ev in items:
        cols = sorted({other.column for other in items if overlaps(ev, other)})
        out.append(replace(ev, column=cols.index(ev.column), column_count=max(1, len(cols))))
    return out


def layout_day(events: Iterable[CalendarEvent], tz: Optional[ZoneInfo] = None) -> List[AugmentedEvent]:
    """Annotate one day's events with (column, column_count), sorted by start then end."""
    items = _augment(events, tz)
    items.sort(key=lambda e: (e.start_minute, e.end_minute))
    out: List[AugmentedEvent] = []
    for group in overlap_groups(items):
        out.extend(normalize_columns(assign_columns(group)))
    return out


def events_on_day(events: Iterable[CalendarEvent], day: date, tz: Optional[ZoneInfo] = None) -> List[CalendarEvent]:
    return [e for e in events if local_date(e.start, tz) == day]


def layout_days(
    events: Sequence[CalendarEvent],
    days: Sequence[date],
    tz: Optional[ZoneInfo] = None,
) -> List[List[AugmentedEvent]]:
    return [layout_day(events_on_day(events, d, tz), tz) for d in days]


def horizontal_placement(column: int, column_count: int, policy: str = SPLIT) -> tuple[float, float]:
    """Return (left_pct, width_pct) for a column assignment under the given policy."""
    if policy == STACK and column_count > 1:
        left = min(column * STACK_OFFSET_PCT, 100.0 - STACK_OFFSET_PCT)
        return left, 100.0 - left
    width = 100.0 / column_count
    return column * width, width
