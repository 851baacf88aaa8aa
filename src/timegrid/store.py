from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo
import json

from .models import CalendarEvent, DateRange, EventId


class StoreError(ValueError):
    """Raised when an events or ranges file cannot be read."""


def _parse_dt(value: Any, tz: Optional[ZoneInfo], where: str) -> datetime:
    try:
        dt = datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise StoreError(f"{where}: invalid timestamp {value!r}") from exc
    if dt.tzinfo is None and tz is not None:
        dt = dt.replace(tzinfo=tz)
    return dt


def _read_list(p: Path) -> List[Dict[str, Any]]:
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise StoreError(f"{p}: invalid JSON ({exc})") from exc
    if isinstance(data, dict):
        data = data.get("events", data.get("ranges", []))
    if not isinstance(data, list):
        raise StoreError(f"{p}: expected a list of records")
    return data


def _event_from_dict(item: Dict[str, Any], tz: Optional[ZoneInfo], where: str) -> CalendarEvent:
    if not isinstance(item, dict) or "id" not in item:
        raise StoreError(f"{where}: record must be an object with an id")
    return CalendarEvent(
        id=item["id"],
        title=str(item.get("title", "")),
        start=_parse_dt(item.get("start"), tz, where),
        end=_parse_dt(item.get("end"), tz, where),
        color=item.get("color"),
    )


def load_events(path: str, tz: Optional[ZoneInfo] = None) -> List[CalendarEvent]:
    p = Path(path)
    if not p.exists():
        return []
    return [_event_from_dict(item, tz, f"{p}[{i}]") for i, item in enumerate(_read_list(p))]


def save_events(path: str, events: List[CalendarEvent]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = []
    for e in events:
        item: Dict[str, Any] = {
            "id": e.id,
            "title": e.title,
            "start": e.start.isoformat(),
            "end": e.end.isoformat(),
        }
        if e.color is not None:
            item["color"] = e.color
        payload.append(item)
    p.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def load_ranges(path: str, tz: Optional[ZoneInfo] = None) -> List[DateRange]:
    p = Path(path)
    if not p.exists():
        return []
    out: List[DateRange] = []
    for i, item in enumerate(_read_list(p)):
        where = f"{p}[{i}]"
        if not isinstance(item, dict):
            raise StoreError(f"{where}: range must be an object")
        out.append(DateRange(
            start_date=_parse_dt(item.get("start_date"), tz, where),
            end_date=_parse_dt(item.get("end_date"), tz, where),
        ))
    return out


def save_ranges(path: str, ranges: List[DateRange]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = [{"start_date": r.start_date.isoformat(), "end_date": r.end_date.isoformat()} for r in ranges]
    p.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def replace_event_times(events: List[CalendarEvent], event_id: EventId, start: datetime, end: datetime) -> List[CalendarEvent]:
    """Copy of ``events`` with the matching event re-timed."""
    return [replace(e, start=start, end=end) if e.id == event_id else e for e in events]
