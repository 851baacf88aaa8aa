"""
Date navigation for the week/day grid and the mini month calendar.

Weeks start on Monday. The navigator only tracks dates; what to draw for them
is left to the grid and the renderer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .models import CalendarEvent, EventId
from .timeunits import local_date

WEEK = "week"
DAY = "day"
VIEWS = (WEEK, DAY)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_CELLS = 42

_WORD_START_RE = re.compile(r"\b([^\W\d_])")


def start_of_week_monday(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_days(anchor: date) -> List[date]:
    monday = start_of_week_monday(anchor)
    return [monday + timedelta(days=i) for i in range(7)]


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    idx = d.month - 1 + months
    return date(d.year + idx // 12, idx % 12 + 1, 1)


def build_month_matrix(month: date) -> List[date]:
    """Six Monday-first weeks covering ``month``, padded with neighbouring days."""
    start = start_of_week_monday(first_of_month(month))
    return [start + timedelta(days=i) for i in range(MONTH_CELLS)]


def event_map(events: Sequence[CalendarEvent], tz: Optional[ZoneInfo] = None) -> Dict[date, List[CalendarEvent]]:
    """Events grouped by local start day, each day sorted by start."""
    by_day: Dict[date, List[CalendarEvent]] = {}
    for ev in events:
        by_day.setdefault(local_date(ev.start, tz), []).append(ev)
    for evs in by_day.values():
        evs.sort(key=lambda e: e.start)
    return by_day


def month_counts(month: date, by_day: Dict[date, List[CalendarEvent]]) -> List[tuple[date, int, bool]]:
    """(day, event count, in displayed month) for each mini calendar cell."""
    return [(d, len(by_day.get(d, [])), d.month == month.month) for d in build_month_matrix(month)]


def format_week_label(anchor: date) -> str:
    monday = start_of_week_monday(anchor)
    sunday = monday + timedelta(days=6)
    return f"{monday.strftime('%d %b')} – {sunday.strftime('%d %b')}"


def format_day_label(d: date) -> str:
    return d.strftime("%a %d %b %Y")


def format_day_header(d: date) -> str:
    return d.strftime("%a %d")


def format_duration(minutes: int) -> str:
    h, m = divmod(minutes, 60)
    if h and m:
        return f"{h} h {m} m"
    if h:
        return f"{h} h"
    return f"{m} m"


def title_case(s: Optional[str]) -> str:
    # unlike str.title(), a letter after a digit stays lower case ("2nd")
    return _WORD_START_RE.sub(lambda m: m.group(1).upper(), (s or "").lower())


@dataclass
class CalendarNavigator:
    """Anchor date, highlighted day, view and mini calendar month for one grid."""

    anchor: date
    view: str = WEEK
    highlight: Optional[date] = None
    mini_month: Optional[date] = None
    scroll_to_event_id: Optional[EventId] = None
    today: Callable[[], date] = field(default=date.today, repr=False)

    def __post_init__(self) -> None:
        if self.view not in VIEWS:
            raise ValueError(f"Unknown view {self.view!r}; expected one of {VIEWS}")
        if self.highlight is None:
            self.highlight = self.anchor
        if self.mini_month is None:
            self.mini_month = first_of_month(self.anchor)

    def visible_days(self) -> List[date]:
        if self.view == DAY:
            return [self.highlight or self.anchor]
        return week_days(self.anchor)

    def label(self) -> str:
        return format_day_label(self.anchor) if self.view == DAY else format_week_label(self.anchor)

    def navigate(self, d: date) -> None:
        self.anchor = d
        self.highlight = d
        self.mini_month = first_of_month(d)
        self.scroll_to_event_id = None

    def go_prev(self) -> None:
        self.navigate(self.anchor - timedelta(days=1 if self.view == DAY else 7))

    def go_next(self) -> None:
        self.navigate(self.anchor + timedelta(days=1 if self.view == DAY else 7))

    def go_today(self) -> None:
        self.navigate(self.today())

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view {view!r}; expected one of {VIEWS}")
        self.view = view

    def mini_prev_month(self) -> None:
        self.mini_month = add_months(self.mini_month or self.anchor, -1)

    def mini_next_month(self) -> None:
        self.mini_month = add_months(self.mini_month or self.anchor, 1)

    def select_mini_date(self, d: date, by_day: Dict[date, List[CalendarEvent]]) -> None:
        """Jump to ``d`` in day view and point at its first event, if any."""
        self.navigate(d)
        self.view = DAY
        evs = by_day.get(d) or []
        self.scroll_to_event_id = evs[0].id if evs else None

    def select_mini_event(self, ev: CalendarEvent, tz: Optional[ZoneInfo] = None) -> None:
        self.navigate(local_date(ev.start, tz))
        self.view = DAY
        self.scroll_to_event_id = ev.id


def today_in(tz: Optional[ZoneInfo]) -> date:
    return datetime.now(tz=tz).date()
