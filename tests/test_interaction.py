import random
from datetime import datetime
from zoneinfo import ZoneInfo

from timegrid.interaction import (
    GESTURE_END,
    GESTURE_START,
    EventBoxController,
    GestureState,
    InteractionLock,
    effective_min_duration,
)
from timegrid.models import AugmentedEvent, CalendarEvent, DayRect
from timegrid.timeunits import pixels_per_minute

TZ = ZoneInfo("America/Phoenix")
PPM = pixels_per_minute(40, 30)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def _aug(start_min, end_min, eid="e1"):
    ev = CalendarEvent(
        id=eid,
        title="Focus",
        start=datetime(2026, 3, 2, 0, 0, tzinfo=TZ),
        end=datetime(2026, 3, 2, 0, 0, tzinfo=TZ),
    )
    return AugmentedEvent(event=ev, start_minute=start_min, end_minute=end_min)


def _controller(start_min=540, end_min=600, **kwargs):
    opts = dict(
        ppm=PPM,
        slot_minutes=30,
        window_start=480,
        window_end=1080,
        min_duration=30,
    )
    opts.update(kwargs)
    return EventBoxController(_aug(start_min, end_min), 0, **opts)


def test_effective_min_duration():
    assert effective_min_duration(None, 30) == 30
    assert effective_min_duration(45, 30) == 45
    assert effective_min_duration(0, 30) == 1


def test_resize_drag_snaps_end_to_nearest_slot():
    committed = []
    ctrl = _controller(on_commit=committed.append)

    assert ctrl.pointer_down(100, 200, on_resize_handle=True)
    assert ctrl.state is GestureState.DRAGGING
    ctrl.pointer_move(100, 247)
    result = ctrl.pointer_up()

    assert result is not None
    assert (result.kind, result.start_minute, result.end_minute) == ("resize", 540, 630)
    assert committed == [result]
    assert ctrl.state is GestureState.IDLE


def test_resize_respects_minimum_duration_and_window():
    rng = random.Random(7)
    for _ in range(300):
        min_duration = rng.choice([1, 15, 30, 45, 60])
        start = rng.randrange(480, 1080 - min_duration)
        end = rng.randrange(start + 1, 1081)
        ctrl = _controller(start, end, min_duration=min_duration)
        ctrl.pointer_down(0, 0, on_resize_handle=True)
        ctrl.pointer_move(0, rng.uniform(-900, 900))
        result = ctrl.pointer_up()
        if result is None:
            continue
        assert result.start_minute == start
        assert result.end_minute - result.start_minute >= min_duration
        assert result.end_minute <= 1080


def test_move_keeps_duration_inside_window():
    rng = random.Random(11)
    for _ in range(300):
        start = rng.randrange(480, 1020)
        end = rng.randrange(start + 30, min(start + 300, 1080) + 1)
        ctrl = _controller(start, end)
        ctrl.pointer_down(0, 0)
        ctrl.pointer_move(0, rng.uniform(-1200, 1200))
        result = ctrl.pointer_up()
        if result is None:
            continue
        assert result.end_minute - result.start_minute == end - start
        assert 480 <= result.start_minute
        assert result.end_minute <= 1080


def test_move_picks_first_day_rect_under_pointer():
    rects = (DayRect(80, 44, 240, 844), DayRect(240, 44, 400, 844), DayRect(400, 44, 560, 844))
    ctrl = _controller(day_rects=lambda: rects)
    ctrl.pointer_down(150, 300)
    ctrl.pointer_move(240, 300)   # shared edge: the earlier column wins
    assert ctrl.gesture.target_day == 0
    ctrl.pointer_move(450, 300)
    ctrl.pointer_move(900, 300)   # outside every column: keep the last target
    result = ctrl.pointer_up()
    assert (result.kind, result.day_index, result.start_minute, result.end_minute) == ("move", 2, 540, 600)


def test_zero_delta_gesture_commits_nothing():
    committed = []
    ctrl = _controller(on_commit=committed.append)
    ctrl.pointer_down(100, 200)
    ctrl.pointer_move(100, 205)
    assert ctrl.pointer_up() is None
    assert committed == []


def test_second_pointer_down_is_ignored_while_dragging():
    ctrl = _controller()
    assert ctrl.pointer_down(100, 200, on_resize_handle=True)
    assert not ctrl.pointer_down(100, 200)
    ctrl.pointer_move(100, 240)
    result = ctrl.pointer_up()
    assert result.kind == "resize"


def test_disabled_gestures_do_not_start():
    assert not _controller(resizable=False).pointer_down(0, 0, on_resize_handle=True)
    assert not _controller(draggable=False).pointer_down(0, 0)


def test_click_right_after_gesture_is_swallowed():
    clock = FakeClock()
    selected = []
    ctrl = _controller(clock=clock, on_select=lambda: selected.append("e1"))

    ctrl.pointer_down(100, 200, on_resize_handle=True)
    ctrl.pointer_move(100, 280)
    ctrl.pointer_up()

    clock.now += 0.1
    assert not ctrl.click()
    clock.now += 0.3
    assert ctrl.click()
    assert selected == ["e1"]


def test_lock_broadcasts_gesture_start_and_end():
    clock = FakeClock()
    lock = InteractionLock(clock)
    seen = []
    unsubscribe = lock.subscribe(lambda name, owner: seen.append(name))
    ctrl = _controller(lock=lock, clock=clock)

    ctrl.pointer_down(100, 200)
    assert lock.busy
    ctrl.pointer_up()
    assert not lock.busy
    assert seen == [GESTURE_START, GESTURE_END]
    assert lock.recently_released(0.3)
    clock.now += 1
    assert not lock.recently_released(0.3)

    unsubscribe()
    ctrl.pointer_down(100, 200)
    ctrl.pointer_up()
    assert seen == [GESTURE_START, GESTURE_END]


def test_failing_commit_callback_does_not_escape_gesture(caplog):
    lock = InteractionLock()

    def boom(result):
        raise RuntimeError("store unavailable")

    ctrl = _controller(lock=lock, on_commit=boom)
    ctrl.pointer_down(100, 200, on_resize_handle=True)
    ctrl.pointer_move(100, 280)
    result = ctrl.pointer_up()

    assert result.end_minute == 660
    assert not lock.busy
    assert ctrl.state is GestureState.IDLE
    assert "Commit callback failed" in caplog.text


def test_cancel_discards_gesture():
    committed = []
    lock = InteractionLock()
    ctrl = _controller(lock=lock, on_commit=committed.append)
    ctrl.pointer_down(100, 200)
    ctrl.pointer_move(100, 400)
    ctrl.cancel()
    assert ctrl.pointer_up() is None
    assert committed == []
    assert not lock.busy


def test_preview_tracks_live_delta():
    ctrl = _controller()
    assert ctrl.preview(80.0, 76.0) == (80.0, 76.0)

    ctrl.pointer_down(100, 200, on_resize_handle=True)
    ctrl.pointer_move(100, 240)
    top, height = ctrl.preview(80.0, 76.0)
    assert top == 80.0
    assert height == 76.0 + 30 * PPM
    ctrl.pointer_up()

    ctrl.pointer_down(100, 200)
    ctrl.pointer_move(100, 240)
    top, height = ctrl.preview(80.0, 76.0)
    assert top == 80.0 + 30 * PPM
    assert height == 76.0
