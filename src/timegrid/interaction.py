"""
Pointer interaction: resize and move gestures.

A gesture is one pointer-down -> pointer-move* -> pointer-up sequence. Gestures
never mutate the event they act on; they keep a minute delta for live feedback
and hand a GestureResult to the box controller on commit.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from .models import AugmentedEvent, DayRect, GestureResult, InteractionSnapshot
from .timeunits import clamp, pixels_to_minutes, snap_to_nearest

log = logging.getLogger(__name__)

GHOST_CLICK_COOLDOWN_S = 0.3
MIN_BOX_HEIGHT_PX = 22
BOX_GAP_PX = 4

GESTURE_START = "gesture-start"
GESTURE_END = "gesture-end"

Clock = Callable[[], float]
LockListener = Callable[[str, object], None]


class GestureState(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


def effective_min_duration(configured: Optional[int], slot_minutes: int) -> int:
    return max(1, configured if configured is not None else slot_minutes)


class InteractionLock:
    """Shared subject telling the grid that a gesture is in flight somewhere."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._owners: List[object] = []
        self._listeners: List[LockListener] = []
        self.released_at: Optional[float] = None

    @property
    def busy(self) -> bool:
        return bool(self._owners)

    def subscribe(self, listener: LockListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def acquire(self, owner: object) -> None:
        if owner in self._owners:
            return
        self._owners.append(owner)
        self._notify(GESTURE_START, owner)

    def release(self, owner: object) -> None:
        if owner not in self._owners:
            return
        self._owners.remove(owner)
        self.released_at = self._clock()
        self._notify(GESTURE_END, owner)

    def recently_released(self, cooldown_s: float = GHOST_CLICK_COOLDOWN_S) -> bool:
        if self.released_at is None:
            return False
        return (self._clock() - self.released_at) < cooldown_s

    def _notify(self, name: str, owner: object) -> None:
        for listener in list(self._listeners):
            listener(name, owner)


class _Gesture:
    kind = ""

    def __init__(self, snapshot: InteractionSnapshot, ppm: float, slot_minutes: int,
                 window_start: int, window_end: int, min_duration: int) -> None:
        self.snapshot = snapshot
        self.ppm = ppm
        self.slot_minutes = slot_minutes
        self.window_start = window_start
        self.window_end = window_end
        self.min_duration = min_duration
        self.delta_minutes = 0
        self.state = GestureState.DRAGGING

    def _dy_minutes(self, y: float) -> int:
        return pixels_to_minutes(y - self.snapshot.pointer_y, self.ppm)

    def pointer_move(self, x: float, y: float) -> None:
        raise NotImplementedError

    def result(self) -> Optional[GestureResult]:
        raise NotImplementedError

    def pointer_up(self) -> Optional[GestureResult]:
        res = self.result()
        self.state = GestureState.COMMITTED if res is not None else GestureState.CANCELLED
        return res

    def cancel(self) -> None:
        self.delta_minutes = 0
        self.state = GestureState.CANCELLED


class ResizeGesture(_Gesture):
    """Moves only the end boundary; the start never changes."""

    kind = "resize"

    def pointer_move(self, x: float, y: float) -> None:
        snap = self.snapshot
        floor_end = snap.start_minute + self.min_duration
        candidate = clamp(snap.end_minute + self._dy_minutes(y), floor_end, self.window_end)
        snapped = snap_to_nearest(candidate, self.slot_minutes)
        # snapping may cross an unaligned window end; the minimum duration still wins
        next_end = max(min(snapped, self.window_end), floor_end)
        self.delta_minutes = next_end - snap.end_minute

    def result(self) -> Optional[GestureResult]:
        if self.delta_minutes == 0:
            return None
        snap = self.snapshot
        return GestureResult(
            kind=self.kind,
            day_index=snap.day_index,
            start_minute=snap.start_minute,
            end_minute=snap.end_minute + self.delta_minutes,
        )

    def preview_height(self, height: float) -> float:
        """Live height of a box that is ``height`` pixels tall at rest."""
        return max(MIN_BOX_HEIGHT_PX, height + self.delta_minutes * self.ppm)


class MoveGesture(_Gesture):
    """Translates both boundaries, optionally into another day column."""

    kind = "move"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.target_day = self.snapshot.day_index

    @property
    def duration(self) -> int:
        snap = self.snapshot
        return max(self.min_duration, snap.end_minute - snap.start_minute)

    def _clamp_start(self, start: float) -> int:
        lo = self.window_start
        hi = max(lo, self.window_end - self.duration)
        return int(clamp(start, lo, hi))

    def pointer_move(self, x: float, y: float) -> None:
        snap = self.snapshot
        candidate = self._clamp_start(snap.start_minute + self._dy_minutes(y))
        next_start = self._clamp_start(snap_to_nearest(candidate, self.slot_minutes))
        self.delta_minutes = next_start - snap.start_minute

        for i, rect in enumerate(snap.day_rects):
            if rect.contains_x(x):
                self.target_day = i
                break

    def result(self) -> Optional[GestureResult]:
        snap = self.snapshot
        if self.delta_minutes == 0 and self.target_day == snap.day_index:
            return None
        start = snap.start_minute + self.delta_minutes
        return GestureResult(
            kind=self.kind,
            day_index=self.target_day,
            start_minute=start,
            end_minute=start + self.duration,
        )

    def preview_offset(self) -> float:
        return self.delta_minutes * self.ppm


class EventBoxController:
    """
    Pointer handling for one rendered event box.

    Owns at most one gesture at a time, broadcasts gesture start/end through the
    shared InteractionLock and swallows the click that follows a gesture.
    """

    def __init__(
        self,
        event: AugmentedEvent,
        day_index: int,
        *,
        ppm: float,
        slot_minutes: int,
        window_start: int,
        window_end: int,
        min_duration: int,
        resizable: bool = True,
        draggable: bool = True,
        day_rects: Callable[[], Sequence[DayRect]] = lambda: (),
        lock: Optional[InteractionLock] = None,
        on_commit: Optional[Callable[[GestureResult], None]] = None,
        on_select: Optional[Callable[[], None]] = None,
        clock: Clock = time.monotonic,
        ghost_click_cooldown_s: float = GHOST_CLICK_COOLDOWN_S,
    ) -> None:
        self.event = event
        self.day_index = day_index
        self.ppm = ppm
        self.slot_minutes = slot_minutes
        self.window_start = window_start
        self.window_end = window_end
        self.min_duration = min_duration
        self.resizable = resizable
        self.draggable = draggable
        self._day_rects = day_rects
        self.lock = lock or InteractionLock(clock)
        self.on_commit = on_commit
        self.on_select = on_select
        self._clock = clock
        self.ghost_click_cooldown_s = ghost_click_cooldown_s
        self.gesture: Optional[_Gesture] = None
        self.last_gesture_end: Optional[float] = None

    @property
    def state(self) -> GestureState:
        return self.gesture.state if self.gesture is not None else GestureState.IDLE

    def _gesture_args(self) -> Dict[str, object]:
        return {
            "ppm": self.ppm,
            "slot_minutes": self.slot_minutes,
            "window_start": self.window_start,
            "window_end": self.window_end,
            "min_duration": self.min_duration,
        }

    def pointer_down(self, x: float, y: float, on_resize_handle: bool = False) -> bool:
        """Start a gesture. Returns False when nothing was started."""
        if self.gesture is not None:
            return False

        ev = self.event
        if on_resize_handle:
            if not self.resizable:
                return False
            snapshot = InteractionSnapshot(ev.start_minute, ev.end_minute, x, y, self.day_index)
            self.gesture = ResizeGesture(snapshot, **self._gesture_args())
        else:
            if not self.draggable:
                return False
            snapshot = InteractionSnapshot(
                ev.start_minute, ev.end_minute, x, y, self.day_index, tuple(self._day_rects())
            )
            self.gesture = MoveGesture(snapshot, **self._gesture_args())

        log.debug("%s start id=%r day=%d %d-%d", self.gesture.kind, ev.event.id,
                  self.day_index, ev.start_minute, ev.end_minute)
        self.lock.acquire(self)
        return True

    def pointer_move(self, x: float, y: float) -> None:
        if self.gesture is None:
            return
        self.gesture.pointer_move(x, y)

    def pointer_up(self) -> Optional[GestureResult]:
        gesture = self.gesture
        if gesture is None:
            return None
        self.gesture = None
        self.last_gesture_end = self._clock()
        try:
            result = gesture.pointer_up()
            log.debug("%s end id=%r state=%s result=%r", gesture.kind, self.event.event.id,
                      gesture.state.value, result)
            if result is not None and self.on_commit is not None:
                try:
                    self.on_commit(result)
                except Exception:
                    log.exception("Commit callback failed for id=%r; continuing with %r", self.event.event.id, result)
            return result
        finally:
            self.lock.release(self)

    def cancel(self) -> None:
        """Abandon the in-flight gesture without committing anything."""
        gesture = self.gesture
        if gesture is None:
            return
        gesture.cancel()
        self.gesture = None
        self.last_gesture_end = self._clock()
        log.debug("%s cancelled id=%r", gesture.kind, self.event.event.id)
        self.lock.release(self)

    def click(self) -> bool:
        """Select the event unless the click is the tail of a gesture."""
        if self.gesture is not None:
            return False
        if self.last_gesture_end is not None and (self._clock() - self.last_gesture_end) < self.ghost_click_cooldown_s:
            log.debug("Suppressed ghost click on id=%r", self.event.event.id)
            return False
        if self.on_select is not None:
            self.on_select()
        return True

    def preview(self, top: float, height: float) -> tuple[float, float]:
        """Live (top, height) while a gesture is in flight."""
        g = self.gesture
        if isinstance(g, ResizeGesture):
            return top, g.preview_height(height)
        if isinstance(g, MoveGesture):
            return top + g.preview_offset(), height
        return top, height
