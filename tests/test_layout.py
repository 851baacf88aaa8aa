import random
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from timegrid.layout import STACK, horizontal_placement, layout_day, layout_days, overlap_groups, overlaps
from timegrid.models import CalendarEvent

TZ = ZoneInfo("America/Phoenix")
DAY = date(2026, 3, 2)


def _ev(eid, start_min, end_min, day=DAY):
    base = datetime(day.year, day.month, day.day, tzinfo=TZ)
    return CalendarEvent(
        id=eid,
        title=f"Event {eid}",
        start=base + timedelta(minutes=start_min),
        end=base + timedelta(minutes=end_min),
    )


def _by_id(items):
    return {a.event.id: a for a in items}


def test_single_event_takes_full_width():
    (only,) = layout_day([_ev("a", 540, 600)], TZ)
    assert (only.column, only.column_count) == (0, 1)
    assert horizontal_placement(only.column, only.column_count) == (0.0, 100.0)


def test_back_to_back_events_share_a_column():
    items = _by_id(layout_day([_ev("a", 540, 600), _ev("b", 600, 660)], TZ))
    assert items["a"].column == items["b"].column == 0
    assert items["a"].column_count == items["b"].column_count == 1


def test_width_is_local_to_overlap_neighbourhood():
    items = _by_id(layout_day([_ev("a", 0, 60), _ev("b", 30, 90), _ev("c", 200, 260)], TZ))
    assert (items["a"].column, items["a"].column_count) == (0, 2)
    assert (items["b"].column, items["b"].column_count) == (1, 2)
    assert (items["c"].column, items["c"].column_count) == (0, 1)


def test_output_sorted_by_start_then_end():
    items = layout_day([_ev("late", 700, 760), _ev("long", 540, 720), _ev("short", 540, 570)], TZ)
    assert [a.event.id for a in items] == ["short", "long", "late"]


def test_zero_length_and_inverted_events_are_dropped():
    items = layout_day([_ev("zero", 540, 540), _ev("inverted", 600, 550), _ev("ok", 600, 630)], TZ)
    assert [a.event.id for a in items] == ["ok"]


def test_overlapping_events_never_share_a_column():
    rng = random.Random(20260302)
    for _ in range(200):
        events = []
        for i in range(rng.randint(1, 12)):
            # coarse starts so touching boundaries come up often
            start = rng.randrange(0, 1380, 15)
            end = start + rng.choice([15, 30, 45, 60, 90, 120])
            events.append(_ev(str(i), start, min(end, 1439)))
        items = layout_day(events, TZ)
        for a in items:
            assert 0 <= a.column < a.column_count
            for b in items:
                if a is not b and overlaps(a, b):
                    assert a.column != b.column


def test_layout_days_buckets_by_local_start_day():
    monday = DAY
    tuesday = DAY + timedelta(days=1)
    per_day = layout_days(
        [_ev("m", 540, 600, monday), _ev("t1", 540, 600, tuesday), _ev("t2", 570, 630, tuesday)],
        [monday, tuesday, tuesday + timedelta(days=1)],
        TZ,
    )
    assert [[a.event.id for a in day] for day in per_day] == [["m"], ["t1", "t2"], []]


def test_stack_policy_offsets_columns():
    assert horizontal_placement(0, 3, STACK) == (0.0, 100.0)
    assert horizontal_placement(2, 3, STACK) == (12.0, 88.0)
    assert horizontal_placement(1, 2) == (50.0, 50.0)


def test_overlap_groups_are_transitive():
    items = layout_day([_ev("a", 0, 60), _ev("b", 50, 120), _ev("c", 110, 130), _ev("d", 130, 200)], TZ)
    groups = overlap_groups(items)
    assert [[a.event.id for a in g] for g in groups] == [["a", "b", "c"], ["d"]]
    # a and c never overlap, so they share the first column of the chain
    by_id = _by_id(items)
    assert by_id["a"].column == by_id["c"].column == 0
    assert by_id["d"].column_count == 1
