"""
Week/day grid geometry.

Everything here is in grid pixel space: x = 0 is the left edge of the time
column, y = 0 is the top of the sticky day header. Day columns follow the time
column left to right, and the time body starts below the header.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import GridConfig
from .interaction import BOX_GAP_PX, MIN_BOX_HEIGHT_PX, EventBoxController, InteractionLock
from .layout import horizontal_placement, layout_days
from .models import AugmentedEvent, CalendarEvent, DateRange, DayRect, EventBox, EventId, GestureResult
from .navigation import CalendarNavigator, is_weekend, today_in
from .reconcile import EventRangeCallback, RangeReconciler, RangesCallback, synthetic_events
from .timeunits import at_minute, clamp, minutes_since_midnight, same_day, snap_to_grid

log = logging.getLogger(__name__)

BOX_INSET_PX = 4          # horizontal padding inside a day column
BOX_WIDTH_TRIM_PX = 6     # boxes are (width% - 6px) wide
RESIZE_HANDLE_PX = 14     # bottom strip of a box that starts a resize

SelectEventCallback = Callable[[CalendarEvent], None]
SelectSlotCallback = Callable[[datetime, datetime], None]


@dataclass(frozen=True)
class HitTarget:
    box: EventBox
    on_resize_handle: bool


def format_clock(minutes: int) -> str:
    h, m = divmod(minutes, 60)
    suffix = "am" if h % 24 < 12 else "pm"
    return f"{(h % 12) or 12}:{m:02d} {suffix}"


class CalendarGrid:
    """
    Lays out events for the visible days and routes pointer input to them.

    Pass ``controlled_ranges`` (even an empty list) to make the ranges the single
    source of truth; otherwise ``events`` are displayed and edits go through the
    legacy resize/move callbacks.
    """

    def __init__(
        self,
        config: GridConfig,
        *,
        events: Optional[Sequence[CalendarEvent]] = None,
        controlled_ranges: Optional[Sequence[DateRange]] = None,
        on_change_ranges: Optional[RangesCallback] = None,
        on_resize_event: Optional[EventRangeCallback] = None,
        on_move_event: Optional[EventRangeCallback] = None,
        on_select_event: Optional[SelectEventCallback] = None,
        on_select_slot: Optional[SelectSlotCallback] = None,
        navigator: Optional[CalendarNavigator] = None,
        anchor: Optional[date] = None,
        lock: Optional[InteractionLock] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.tz = config.tz
        self.window_start, self.window_end = config.window
        self.ppm = config.ppm
        self.events: List[CalendarEvent] = list(events or [])
        self.controlled_ranges: Optional[List[DateRange]] = (
            list(controlled_ranges) if controlled_ranges is not None else None
        )
        self.reconciler = RangeReconciler(
            ranges=self.controlled_ranges,
            on_change_ranges=on_change_ranges,
            on_resize_event=on_resize_event,
            on_move_event=on_move_event,
        )
        self.on_select_event = on_select_event
        self.on_select_slot = on_select_slot
        self.navigator = navigator or CalendarNavigator(anchor=anchor or today_in(self.tz), view=config.view)
        self._clock = clock
        self.lock = lock or InteractionLock(clock)
        self._controllers: Dict[EventId, EventBoxController] = {}
        self._active: Optional[EventBoxController] = None

    # ------------------------------------------------------------------ inputs

    # An in-flight gesture keeps the snapshot it took at pointer-down; new input
    # does not re-synchronise it.

    def set_events(self, events: Sequence[CalendarEvent]) -> None:
        self.events = list(events)

    def set_controlled_ranges(self, ranges: Sequence[DateRange]) -> None:
        self.controlled_ranges = list(ranges)
        self.reconciler.ranges = list(ranges)

    @property
    def derived_events(self) -> List[CalendarEvent]:
        if self.controlled_ranges is not None:
            return synthetic_events(self.controlled_ranges)
        return self.events

    @property
    def days(self) -> List[date]:
        return self.navigator.visible_days()

    # ---------------------------------------------------------------- geometry

    @property
    def total_slots(self) -> int:
        return max(0, math.ceil((self.window_end - self.window_start) / self.config.slot_minutes))

    @property
    def body_height(self) -> float:
        return self.total_slots * self.config.slot_height_px

    @property
    def width(self) -> int:
        return self.config.time_col_width_px + len(self.days) * self.config.day_width_px

    @property
    def height(self) -> float:
        return self.config.sticky_header_height_px + self.body_height

    def day_rects(self) -> Tuple[DayRect, ...]:
        cfg = self.config
        top = cfg.sticky_header_height_px
        rects = []
        for i in range(len(self.days)):
            left = cfg.time_col_width_px + i * cfg.day_width_px
            rects.append(DayRect(left=left, top=top, right=left + cfg.day_width_px, bottom=top + self.body_height))
        return tuple(rects)

    def layout(self) -> List[List[AugmentedEvent]]:
        return layout_days(self.derived_events, self.days, self.tz)

    def boxes(self) -> List[EventBox]:
        out: List[EventBox] = []
        for day_index, positioned in enumerate(self.layout()):
            for ev in positioned:
                if ev.end_minute <= self.window_start or ev.start_minute >= self.window_end:
                    continue
                visible_start = clamp(ev.start_minute, self.window_start, self.window_end)
                visible_end = clamp(ev.end_minute, self.window_start, self.window_end)
                top = (visible_start - self.window_start) * self.ppm
                height = max(MIN_BOX_HEIGHT_PX, (visible_end - visible_start) * self.ppm - BOX_GAP_PX)
                left_pct, width_pct = horizontal_placement(ev.column, ev.column_count, self.config.overlap_policy)
                out.append(EventBox(
                    event=ev,
                    day_index=day_index,
                    top=top,
                    height=height,
                    left_pct=left_pct,
                    width_pct=width_pct,
                ))
        return out

    def box_rect(self, box: EventBox, top: Optional[float] = None, height: Optional[float] = None) -> Tuple[float, float, float, float]:
        """Pixel rectangle (x0, y0, x1, y1) of a box, optionally with a live top/height."""
        rect = self.day_rects()[box.day_index]
        inner = rect.right - rect.left - 2 * BOX_INSET_PX
        x0 = rect.left + BOX_INSET_PX + inner * box.left_pct / 100.0
        x1 = x0 + max(1.0, inner * box.width_pct / 100.0 - BOX_WIDTH_TRIM_PX)
        y0 = rect.top + (box.top if top is None else top)
        y1 = y0 + (box.height if height is None else height)
        return x0, y0, x1, y1

    def time_labels(self) -> List[Tuple[float, str]]:
        top = self.config.sticky_header_height_px
        return [
            (top + idx * self.config.slot_height_px, format_clock(self.window_start + idx * self.config.slot_minutes))
            for idx in range(self.total_slots + 1)
        ]

    def weekend_flags(self) -> List[bool]:
        return [is_weekend(d) for d in self.days]

    def now_line(self, now: datetime) -> Optional[Tuple[int, float]]:
        """(day index, y) of the current-time marker, if it falls in the visible window."""
        day_index = next((i for i, d in enumerate(self.days) if same_day(d, now, self.tz)), None)
        if day_index is None:
            return None
        now_min = minutes_since_midnight(now, self.tz)
        if not (self.window_start <= now_min <= self.window_end):
            return None
        return day_index, self.config.sticky_header_height_px + (now_min - self.window_start) * self.ppm

    def scroll_offset(self) -> Optional[float]:
        """y of the box the navigator wants scrolled into view."""
        target = self.navigator.scroll_to_event_id
        if target is None:
            return None
        for box in self.boxes():
            if box.event.event.id == target:
                return self.config.sticky_header_height_px + box.top
        return None

    # ------------------------------------------------------------- interaction

    def controller(self, box: EventBox) -> EventBoxController:
        """The controller for a box, kept per event id so the ghost-click guard survives re-layouts."""
        key = box.event.event.id
        ctrl = self._controllers.get(key)
        if ctrl is not None:
            if ctrl.gesture is None:
                ctrl.event = box.event
                ctrl.day_index = box.day_index
            return ctrl

        cfg = self.config

        def on_commit(result: GestureResult) -> None:
            self._commit(ctrl.event.event, ctrl.day_index, result)

        def on_select() -> None:
            if self.on_select_event is not None:
                self.on_select_event(ctrl.event.event)

        ctrl = EventBoxController(
            box.event,
            box.day_index,
            ppm=self.ppm,
            slot_minutes=cfg.slot_minutes,
            window_start=self.window_start,
            window_end=self.window_end,
            min_duration=cfg.min_duration,
            resizable=cfg.resizable,
            draggable=cfg.draggable,
            day_rects=self.day_rects,
            lock=self.lock,
            on_commit=on_commit,
            on_select=on_select,
            clock=self._clock,
            ghost_click_cooldown_s=cfg.ghost_click_cooldown_s,
        )
        self._controllers[key] = ctrl
        return ctrl

    def _commit(self, event: CalendarEvent, origin_index: int, result: GestureResult) -> None:
        days = self.days
        day = days[result.day_index] if 0 <= result.day_index < len(days) else days[origin_index]
        start, end = self.reconciler.apply_commit(event, result, day, self.tz)
        log.info("%s committed for %r: %s -> %s", result.kind, event.id, start.isoformat(), end.isoformat())

    def hit_test(self, x: float, y: float) -> Optional[HitTarget]:
        # later boxes are drawn on top, so they win
        for box in reversed(self.boxes()):
            x0, y0, x1, y1 = self.box_rect(box)
            if x0 <= x <= x1 and y0 <= y <= y1:
                handle = self.config.resizable and y >= y1 - RESIZE_HANDLE_PX
                return HitTarget(box=box, on_resize_handle=handle)
        return None

    def day_at(self, x: float) -> Optional[int]:
        for i, rect in enumerate(self.day_rects()):
            if rect.contains_x(x):
                return i
        return None

    def pointer_down(self, x: float, y: float) -> bool:
        if self._active is not None:
            return False
        hit = self.hit_test(x, y)
        if hit is None:
            return False
        ctrl = self.controller(hit.box)
        if not ctrl.pointer_down(x, y, on_resize_handle=hit.on_resize_handle):
            return False
        self._active = ctrl
        return True

    def pointer_move(self, x: float, y: float) -> None:
        if self._active is not None:
            self._active.pointer_move(x, y)

    def pointer_up(self) -> Optional[GestureResult]:
        ctrl, self._active = self._active, None
        if ctrl is None:
            return None
        return ctrl.pointer_up()

    def cancel(self) -> None:
        ctrl, self._active = self._active, None
        if ctrl is not None:
            ctrl.cancel()

    def click(self, x: float, y: float) -> bool:
        """Route a click to an event box, or to the empty slot underneath."""
        hit = self.hit_test(x, y)
        if hit is not None:
            return self.controller(hit.box).click()
        day_index = self.day_at(x)
        if day_index is None or y < self.config.sticky_header_height_px:
            return False
        return self.click_slot(day_index, y - self.config.sticky_header_height_px) is not None

    def click_slot(self, day_index: int, y: float) -> Optional[Tuple[datetime, datetime]]:
        """
        Create-range click on empty space, ``y`` measured from the top of the day body.

        Floors to the enclosing slot. Ignored while any gesture is in flight and
        shortly after one ends.
        """
        if self.lock.busy or self.lock.recently_released(self.config.ghost_click_cooldown_s):
            log.debug("Slot click suppressed: gesture in flight or just ended")
            return None
        if self.on_select_slot is None:
            return None
        days = self.days
        if not (0 <= day_index < len(days)):
            return None
        minutes_from_start = math.floor(y / self.ppm) + self.window_start
        rounded = snap_to_grid(minutes_from_start, self.config.slot_minutes)
        start = at_minute(days[day_index], rounded, self.tz)
        end = start + timedelta(minutes=self.config.slot_minutes)
        self.on_select_slot(start, end)
        return start, end
