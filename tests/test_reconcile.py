import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from timegrid.models import CalendarEvent, DateRange, GestureResult
from timegrid.reconcile import RangeReconciler, synthetic_events

TZ = ZoneInfo("Australia/Sydney")


def _dt(day, hour, minute=0):
    return datetime(2026, 3, day, hour, minute, tzinfo=TZ)


def test_synthetic_events_carry_range_index():
    ranges = [DateRange(_dt(2, 9), _dt(2, 10)), DateRange(_dt(3, 14), _dt(3, 15))]
    events = synthetic_events(ranges)
    assert [e.id for e in events] == ["ctrl-0", "ctrl-1"]
    assert [e.range_index for e in events] == [0, 1]
    assert {e.title for e in events} == {"Date Selected"}
    assert {e.color for e in events} == {"teal"}
    assert events[1].start == _dt(3, 14)


def test_controlled_update_replaces_only_the_edited_range():
    ranges = [DateRange(_dt(2, 9), _dt(2, 10)), DateRange(_dt(3, 14), _dt(3, 15))]
    received = []
    rec = RangeReconciler(ranges=ranges, on_change_ranges=received.append)

    rec.emit_range_update(synthetic_events(ranges)[1], _dt(3, 14), _dt(3, 16))

    assert received == [[ranges[0], DateRange(_dt(3, 14), _dt(3, 16))]]
    # the caller's list is never mutated
    assert ranges[1] == DateRange(_dt(3, 14), _dt(3, 15))


def test_controlled_update_without_index_falls_back_to_single_range(caplog):
    received = []
    rec = RangeReconciler(ranges=[], on_change_ranges=received.append)
    stray = CalendarEvent(id="x", title="Stray", start=_dt(2, 9), end=_dt(2, 10))

    with caplog.at_level(logging.WARNING, logger="timegrid.reconcile"):
        rec.emit_range_update(stray, _dt(2, 9), _dt(2, 11))

    assert received == [[DateRange(_dt(2, 9), _dt(2, 11))]]
    assert "emitting a single range" in caplog.text


def test_controlled_mode_does_not_call_legacy_callbacks():
    legacy = []
    rec = RangeReconciler(
        ranges=[DateRange(_dt(2, 9), _dt(2, 10))],
        on_change_ranges=lambda r: None,
        on_resize_event=lambda *a: legacy.append(a),
    )
    rec.emit_range_update(synthetic_events(rec.ranges)[0], _dt(2, 9), _dt(2, 12))
    assert legacy == []


def test_legacy_mode_notifies_both_callbacks():
    calls = []
    rec = RangeReconciler(
        on_resize_event=lambda ev, s, e: calls.append(("resize", ev.id, s, e)),
        on_move_event=lambda ev, s, e: calls.append(("move", ev.id, s, e)),
    )
    ev = CalendarEvent(id=7, title="Standup", start=_dt(2, 9), end=_dt(2, 10))
    rec.emit_range_update(ev, _dt(2, 10), _dt(2, 11))
    assert calls == [("resize", 7, _dt(2, 10), _dt(2, 11)), ("move", 7, _dt(2, 10), _dt(2, 11))]


def test_apply_commit_converts_minutes_on_target_day():
    calls = []
    rec = RangeReconciler(on_move_event=lambda ev, s, e: calls.append((s, e)))
    ev = CalendarEvent(id="a", title="Review", start=_dt(2, 14), end=_dt(2, 15))
    start, end = rec.apply_commit(ev, GestureResult("move", 1, 840, 900), date(2026, 3, 3), TZ)
    assert (start, end) == (_dt(3, 14), _dt(3, 15))
    assert calls == [(start, end)]
