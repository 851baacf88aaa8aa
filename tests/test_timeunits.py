import random
from datetime import datetime
from zoneinfo import ZoneInfo

from timegrid.timeunits import (
    at_minute,
    minutes_since_midnight,
    parse_time_of_day,
    pixels_per_minute,
    pixels_to_minutes,
    round_half_up,
    snap_to_grid,
    snap_to_nearest,
    visible_window,
)


def test_parse_time_of_day_accepts_clock_strings_and_decimal_hours():
    assert parse_time_of_day("9") == 540
    assert parse_time_of_day("9:15") == 555
    assert parse_time_of_day("18:45") == 1125
    assert parse_time_of_day(9.5) == 570
    assert parse_time_of_day("9,5") == 570
    assert parse_time_of_day(" 7:05 ") == 425


def test_parse_time_of_day_clamps_and_falls_back_to_midnight():
    assert parse_time_of_day("25:99") == 23 * 60 + 59
    assert parse_time_of_day("lunch") == 0
    assert parse_time_of_day(None) == 0
    assert parse_time_of_day(float("nan")) == 0


def test_visible_window_defaults_and_overrides():
    assert visible_window() == (480, 1080)
    assert visible_window(start_hour=7.5, end_hour=30) == (450, 1440)
    # explicit times beat the hour settings
    assert visible_window(start_at="6:30", end_at="20", start_hour=9, end_hour=17) == (390, 1200)


def test_pixel_conversion_rounds_half_up():
    ppm = pixels_per_minute(40, 30)
    assert pixels_to_minutes(47, ppm) == 35
    assert pixels_to_minutes(-47, ppm) == -35
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2


def test_snapping_modes():
    assert snap_to_grid(559, 30) == 540
    assert snap_to_nearest(559, 30) == 570
    assert snap_to_nearest(555, 30) == 570
    assert snap_to_nearest(554, 30) == 540


def test_snapping_is_idempotent_and_aligned():
    rng = random.Random(1234)
    for _ in range(500):
        slot = rng.choice([5, 10, 15, 20, 30, 60])
        minutes = rng.uniform(-600, 2000)
        for snap in (snap_to_grid, snap_to_nearest):
            once = snap(minutes, slot)
            assert once % slot == 0
            assert snap(once, slot) == once


def test_minutes_since_midnight_uses_display_timezone():
    sydney = ZoneInfo("Australia/Sydney")
    t = datetime(2026, 3, 2, 9, 45, 30, tzinfo=sydney)
    assert minutes_since_midnight(t) == 585
    assert minutes_since_midnight(t.astimezone(ZoneInfo("UTC")), sydney) == 585


def test_at_minute_builds_local_instant():
    tz = ZoneInfo("America/Phoenix")
    dt = at_minute(datetime(2026, 3, 2, 15, 0, tzinfo=tz).date(), 630, tz)
    assert dt == datetime(2026, 3, 2, 10, 30, tzinfo=tz)
