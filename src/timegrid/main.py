from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .config import AppConfig, load_config
from .grid import CalendarGrid
from .models import CalendarEvent, EventBox
from .navigation import CalendarNavigator, event_map, today_in
from .render import render_mini_calendar, render_week_grid
from .store import load_events, replace_event_times, save_events
from .timeunits import local_date

CONFIG_PATH_DEFAULT = "config.yaml"

log = logging.getLogger(__name__)


def _parse_date(value: Optional[str], cfg: AppConfig) -> date:
    if not value:
        return today_in(cfg.grid.tz)
    return date.fromisoformat(value)


def _coerce_id(raw: str, events: List[CalendarEvent]) -> Any:
    # ids from the command line are strings; JSON stores may hold ints
    for e in events:
        if str(e.id) == raw:
            return e.id
    raise SystemExit(f"No event with id {raw!r}")


def _find_box(grid: CalendarGrid, event_id: Any) -> EventBox:
    for box in grid.boxes():
        if box.event.event.id == event_id:
            return box
    raise SystemExit(f"Event {event_id!r} is not visible in the configured window")


def _events_path(args: argparse.Namespace, cfg: AppConfig) -> str:
    return args.events or os.environ.get("TIMEGRID_EVENTS") or cfg.events_path


def run_render(args: argparse.Namespace, cfg: AppConfig) -> Dict[str, Any]:
    events = load_events(_events_path(args, cfg), cfg.grid.tz)
    anchor = _parse_date(args.date, cfg)
    navigator = CalendarNavigator(anchor=anchor, view=args.view or cfg.grid.view)
    grid = CalendarGrid(cfg.grid, events=events, navigator=navigator)
    now = datetime.now(tz=cfg.grid.tz)
    img = render_week_grid(grid, now=now, font_path=cfg.render.font_path, show_now_line=cfg.render.show_now_line)
    img.save(args.out)
    print(f"Rendered {len(grid.boxes())} of {len(events)} events ({navigator.label()}) to {args.out}")

    out: Dict[str, Any] = {"out": args.out, "boxes": len(grid.boxes())}
    if args.mini:
        mini = render_mini_calendar(navigator.mini_month, event_map(events, cfg.grid.tz),
                                    selected=navigator.highlight, font_path=cfg.render.font_path)
        mini.save(args.mini)
        out["mini"] = args.mini
    return out


def _run_gesture(args: argparse.Namespace, cfg: AppConfig, resize: bool) -> Dict[str, Any]:
    path = _events_path(args, cfg)
    events = load_events(path, cfg.grid.tz)
    event_id = _coerce_id(args.id, events)
    target = next(e for e in events if e.id == event_id)
    committed: Dict[str, Any] = {}

    def on_commit(ev: CalendarEvent, start: datetime, end: datetime) -> None:
        save_events(path, replace_event_times(events, ev.id, start, end))
        committed.update({"id": ev.id, "start": start.isoformat(), "end": end.isoformat()})

    grid = CalendarGrid(
        cfg.grid,
        events=events,
        anchor=local_date(target.start, cfg.grid.tz),
        on_resize_event=on_commit if resize else None,
        on_move_event=None if resize else on_commit,
    )
    box = _find_box(grid, event_id)
    x0, y0, x1, y1 = grid.box_rect(box)
    x = (x0 + x1) / 2
    y = y1 - 2 if resize else y0 + 1
    ctrl = grid.controller(box)
    log.debug("Replaying %s on %r from (%.1f, %.1f)", "resize" if resize else "move", event_id, x, y)
    if not ctrl.pointer_down(x, y, on_resize_handle=resize):
        raise SystemExit("resizing is disabled" if resize else "dragging is disabled")
    ctrl.pointer_move(x + getattr(args, "dx", 0.0), y + args.dy)
    result = ctrl.pointer_up()

    if result is None:
        print("No change; events file left untouched")
        return {"changed": False}
    if not committed:
        # the gesture committed but the write-back raised (already logged)
        raise SystemExit(f"Could not write events file {path}")
    return {"changed": True, **committed}


def run_slot(args: argparse.Namespace, cfg: AppConfig) -> Dict[str, Any]:
    selected: Dict[str, Any] = {}

    def on_select_slot(start: datetime, end: datetime) -> None:
        selected.update({"start": start.isoformat(), "end": end.isoformat()})

    navigator = CalendarNavigator(anchor=_parse_date(args.date, cfg), view=cfg.grid.view)
    grid = CalendarGrid(cfg.grid, navigator=navigator, on_select_slot=on_select_slot)
    grid.click_slot(args.day, args.y)
    return selected


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()

    ap = argparse.ArgumentParser(description="Week/day time grid: render and replay resize/move gestures")
    ap.add_argument("--config", default=os.environ.get("TIMEGRID_CONFIG", CONFIG_PATH_DEFAULT))
    ap.add_argument("--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="draw the grid to a PNG")
    render.add_argument("--events")
    render.add_argument("--out", default="grid.png")
    render.add_argument("--mini", help="also draw the mini month calendar to this PNG")
    render.add_argument("--date", help="YYYY-MM-DD anchor (default: today)")
    render.add_argument("--view", choices=["week", "day"])

    resize = sub.add_parser("resize", help="drag an event's end handle by --dy pixels")
    resize.add_argument("--events")
    resize.add_argument("--id", required=True)
    resize.add_argument("--dy", type=float, required=True)

    move = sub.add_parser("move", help="drag an event by --dx/--dy pixels")
    move.add_argument("--events")
    move.add_argument("--id", required=True)
    move.add_argument("--dx", type=float, default=0.0)
    move.add_argument("--dy", type=float, default=0.0)

    slot = sub.add_parser("slot", help="click an empty slot")
    slot.add_argument("--date", help="YYYY-MM-DD anchor (default: today)")
    slot.add_argument("--day", type=int, required=True, help="day column index")
    slot.add_argument("--y", type=float, required=True, help="pixels below the top of the day body")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config(args.config)

    if args.command == "render":
        result = run_render(args, cfg)
    elif args.command == "resize":
        result = _run_gesture(args, cfg, resize=True)
    elif args.command == "move":
        result = _run_gesture(args, cfg, resize=False)
    else:
        result = run_slot(args, cfg)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
