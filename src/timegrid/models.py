from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union

EventId = Union[str, int]

@dataclass(frozen=True)
class CalendarEvent:
    id: EventId
    title: str
    start: datetime
    end: datetime
    color: Optional[str] = None
    range_index: Optional[int] = None   # set only on events derived from controlled ranges

@dataclass(frozen=True)
class DateRange:
    start_date: datetime
    end_date: datetime

@dataclass(frozen=True)
class AugmentedEvent:
    event: CalendarEvent
    start_minute: int
    end_minute: int
    column: int = 0
    column_count: int = 1

@dataclass(frozen=True)
class DayRect:
    left: float
    top: float
    right: float
    bottom: float

    def contains_x(self, x: float) -> bool:
        return self.left <= x <= self.right

@dataclass(frozen=True)
class EventBox:
    event: AugmentedEvent
    day_index: int
    top: float
    height: float
    left_pct: float
    width_pct: float

@dataclass(frozen=True)
class InteractionSnapshot:
    start_minute: int
    end_minute: int
    pointer_x: float
    pointer_y: float
    day_index: int
    day_rects: Tuple[DayRect, ...] = ()

@dataclass(frozen=True)
class GestureResult:
    kind: str                   # "resize" / "move"
    day_index: int
    start_minute: int
    end_minute: int
