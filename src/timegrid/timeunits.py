from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; pointer math wants .5 -> up.
    return int(math.floor(x + 0.5))


def minutes_since_midnight(t: datetime, tz: Optional[ZoneInfo] = None) -> int:
    """Wall-clock minutes elapsed since the start of ``t``'s local day, in [0, 1440)."""
    if tz is not None and t.tzinfo is not None:
        t = t.astimezone(tz)
    return t.hour * 60 + t.minute


def parse_time_of_day(value: Union[str, int, float, None]) -> int:
    """
    Convert "9", "9:15", "18:45", 9.5 or "9,5" to minutes since 00:00.
    Anything unparseable falls back to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0
        return round_half_up(value * 60)

    s = str(value).strip()
    m = _TIME_OF_DAY_RE.match(s)
    if m:
        h = int(clamp(int(m.group(1)), 0, 23))
        mm = int(clamp(int(m.group(2) or "0"), 0, 59))
        return h * 60 + mm

    try:
        as_num = float(s.replace(",", "."))
    except ValueError:
        return 0
    return round_half_up(as_num * 60) if math.isfinite(as_num) else 0


def visible_window(
    start_at: Union[str, int, float, None] = None,
    end_at: Union[str, int, float, None] = None,
    start_hour: float = 8,
    end_hour: float = 18,
) -> Tuple[int, int]:
    # start_at/end_at win over the hour-based settings
    if start_at is not None:
        start_min = parse_time_of_day(start_at)
    else:
        start_min = int(clamp(round_half_up(start_hour * 60), 0, MINUTES_PER_DAY))
    if end_at is not None:
        end_min = parse_time_of_day(end_at)
    else:
        end_min = int(clamp(round_half_up(end_hour * 60), 0, MINUTES_PER_DAY))
    return start_min, end_min


def pixels_per_minute(slot_height_px: float, slot_minutes: int) -> float:
    return slot_height_px / slot_minutes


def pixels_to_minutes(delta_px: float, ppm: float) -> int:
    return round_half_up(delta_px / ppm)


def snap_to_grid(minutes: float, slot_minutes: int) -> int:
    """Floor to the enclosing slot. Used when creating a range from a click."""
    return int(math.floor(minutes / slot_minutes)) * slot_minutes


def snap_to_nearest(minutes: float, slot_minutes: int) -> int:
    """Round to the closest slot boundary. Used while resizing or moving."""
    return round_half_up(minutes / slot_minutes) * slot_minutes


def start_of_day(d: Union[date, datetime], tz: Optional[ZoneInfo] = None) -> datetime:
    if isinstance(d, datetime):
        if tz is not None and d.tzinfo is not None:
            d = d.astimezone(tz)
        return d.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.combine(d, time.min, tzinfo=tz)


def local_date(d: Union[date, datetime], tz: Optional[ZoneInfo] = None) -> date:
    if isinstance(d, datetime):
        if tz is not None and d.tzinfo is not None:
            d = d.astimezone(tz)
        return d.date()
    return d


def same_day(a: Union[date, datetime], b: Union[date, datetime], tz: Optional[ZoneInfo] = None) -> bool:
    return local_date(a, tz) == local_date(b, tz)


def at_minute(day: Union[date, datetime], minutes: int, tz: Optional[ZoneInfo] = None) -> datetime:
    """The instant ``minutes`` after local midnight of ``day``."""
    return start_of_day(day, tz) + timedelta(minutes=minutes)
