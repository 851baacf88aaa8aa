from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .models import CalendarEvent, DateRange, GestureResult
from .timeunits import at_minute

log = logging.getLogger(__name__)

CONTROLLED_ID_PREFIX = "ctrl"
CONTROLLED_TITLE = "Date Selected"
CONTROLLED_COLOR = "teal"

RangesCallback = Callable[[List[DateRange]], None]
EventRangeCallback = Callable[[CalendarEvent, datetime, datetime], None]


def synthetic_events(ranges: Sequence[DateRange]) -> List[CalendarEvent]:
    """One display event per controlled range; the index travels in range_index."""
    return [
        CalendarEvent(
            id=f"{CONTROLLED_ID_PREFIX}-{i}",
            title=CONTROLLED_TITLE,
            start=r.start_date,
            end=r.end_date,
            color=CONTROLLED_COLOR,
            range_index=i,
        )
        for i, r in enumerate(ranges)
    ]


class RangeReconciler:
    """
    Single authority turning a committed interaction into outbound callbacks.

    Controlled mode (on_change_ranges given): the caller owns the list of ranges
    and always receives a full replacement list. Legacy mode: the resize and move
    callbacks both receive (event, next_start, next_end).
    """

    def __init__(
        self,
        ranges: Optional[Sequence[DateRange]] = None,
        on_change_ranges: Optional[RangesCallback] = None,
        on_resize_event: Optional[EventRangeCallback] = None,
        on_move_event: Optional[EventRangeCallback] = None,
    ) -> None:
        self.ranges: Optional[List[DateRange]] = list(ranges) if ranges is not None else None
        self.on_change_ranges = on_change_ranges
        self.on_resize_event = on_resize_event
        self.on_move_event = on_move_event

    def emit_range_update(self, event: CalendarEvent, next_start: datetime, next_end: datetime) -> None:
        if self.on_change_ranges is not None:
            idx = event.range_index
            if self.ranges and idx is not None and 0 <= idx < len(self.ranges):
                next_ranges = list(self.ranges)
                next_ranges[idx] = DateRange(start_date=next_start, end_date=next_end)
                log.debug("Range %d of %d replaced for event %r", idx, len(next_ranges), event.id)
                self.on_change_ranges(next_ranges)
                return

            log.warning(
                "No controlled range index for event %r (index=%r, ranges=%d); emitting a single range",
                event.id,
                idx,
                len(self.ranges or []),
            )
            self.on_change_ranges([DateRange(start_date=next_start, end_date=next_end)])
            return

        if self.on_resize_event is not None:
            self.on_resize_event(event, next_start, next_end)
        if self.on_move_event is not None:
            self.on_move_event(event, next_start, next_end)

    def apply_commit(
        self,
        event: CalendarEvent,
        result: GestureResult,
        day: date,
        tz: Optional[ZoneInfo] = None,
    ) -> tuple[datetime, datetime]:
        next_start = at_minute(day, result.start_minute, tz)
        next_end = at_minute(day, result.end_minute, tz)
        self.emit_range_update(event, next_start, next_end)
        return next_start, next_end
