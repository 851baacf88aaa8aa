from __future__ import annotations
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
from PIL import Image, ImageDraw, ImageFont

from .grid import CalendarGrid
from .navigation import WEEKDAY_LABELS, format_day_header, format_duration, month_counts, title_case
from .models import CalendarEvent, EventBox
from .timeunits import at_minute

Color = Tuple[int, int, int]

GRID_LINE: Color = (229, 231, 235)
SLOT_LINE: Color = (243, 244, 246)
WEEKEND_BG: Color = (249, 250, 251)
HEADER_BG: Color = (255, 255, 255)
HIGHLIGHT_BG: Color = (230, 255, 250)
TIME_TEXT: Color = (75, 85, 99)
NOW_LINE: Color = (248, 113, 113)

# base colours for the event palette names stored on events
PALETTE: Dict[str, Color] = {
    "teal": (49, 151, 149),
    "blue": (49, 130, 206),
    "red": (229, 62, 62),
    "orange": (221, 107, 32),
    "yellow": (214, 158, 46),
    "green": (56, 161, 105),
    "purple": (128, 90, 213),
    "pink": (213, 63, 140),
    "cyan": (0, 163, 196),
    "gray": (113, 128, 150),
}
DEFAULT_COLOR = "teal"

_font_cache: Dict[Tuple[str, int], ImageFont.ImageFont] = {}

def _load_font(path: str, size: int):
    key = (path, size)
    if key not in _font_cache:
        try:
            _font_cache[key] = ImageFont.truetype(path, size)
        except OSError:
            # DejaVu is not installed everywhere; Pillow's bundled font keeps rendering working
            _font_cache[key] = ImageFont.load_default()
    return _font_cache[key]

def _fmt_time(dt: datetime) -> str:
    return dt.strftime("%-I:%M %p").lower()

def _lerp_color(start: Color, end: Color, ratio: float) -> Color:
    return tuple(int(round(s + (e - s) * ratio)) for s, e in zip(start, end))

def resolve_color(color: Optional[str]) -> Color:
    """Accept a palette name, a "name.500"-style token or a #rrggbb hex string."""
    if not color:
        return PALETTE[DEFAULT_COLOR]
    color = color.strip()
    if color.startswith("#") and len(color) == 7:
        try:
            return tuple(int(color[i:i + 2], 16) for i in (1, 3, 5))
        except ValueError:
            return PALETTE[DEFAULT_COLOR]
    name, _, shade = color.partition(".")
    base = PALETTE.get(name.lower(), PALETTE[DEFAULT_COLOR])
    if shade.isdigit():
        # 500 is the base tone; lighter shades blend towards white, darker towards black
        level = int(shade)
        if level < 500:
            return _lerp_color((255, 255, 255), base, max(0.0, level / 500))
        if level > 500:
            return _lerp_color(base, (0, 0, 0), min(1.0, (level - 500) / 800))
    return base

def _wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font,
    max_width: float,
    max_lines: Optional[int] = 2,
) -> List[str]:
    words = text.split()
    lines: List[str] = []
    cur = ""
    for w in words:
        test = (cur + " " + w).strip()
        if draw.textlength(test, font=font) <= max_width:
            cur = test
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines if max_lines is None else lines[:max_lines]

def _draw_event_box(
    d: ImageDraw.ImageDraw,
    grid: CalendarGrid,
    box: EventBox,
    font_title,
    font_small,
    title_line_h: int,
) -> None:
    ev: CalendarEvent = box.event.event
    top, height = grid.controller(box).preview(box.top, box.height)
    x0, y0, x1, y1 = grid.box_rect(box, top=top, height=height)
    fill = resolve_color(ev.color)
    d.rounded_rectangle((x0, y0, x1, y1), radius=8, fill=fill, outline=(255, 255, 255), width=1)

    inner_w = max(1.0, x1 - x0 - 12)
    y = y0 + 4
    for line in _wrap_text(d, title_case(ev.title), font_title, inner_w, max_lines=2):
        if y + title_line_h > y1:
            break
        d.text((x0 + 6, y), line, fill="white", font=font_title)
        y += title_line_h

    day = grid.days[box.day_index]
    start = at_minute(day, box.event.start_minute, grid.tz)
    end = at_minute(day, box.event.end_minute, grid.tz)
    detail = f"{_fmt_time(start)}-{_fmt_time(end)}, {format_duration(box.event.end_minute - box.event.start_minute)}"
    if y + title_line_h <= y1:
        d.text((x0 + 6, y), detail, fill="white", font=font_small)

    if grid.config.resizable and x1 - x0 > 20:
        handle_y = y1 - 8
        d.rounded_rectangle((x0 + 8, handle_y, x1 - 8, handle_y + 4), radius=2, fill=(255, 255, 255))

def render_week_grid(
    grid: CalendarGrid,
    now: Optional[datetime] = None,
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    show_now_line: bool = True,
) -> Image.Image:
    cfg = grid.config
    canvas_w = int(grid.width)
    canvas_h = int(grid.height)
    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)

    font_header = _load_font(font_path, 16)
    font_time = _load_font(font_path, 12)
    font_title = _load_font(font_path, 12)
    font_small = _load_font(font_path, 10)
    header_h = cfg.sticky_header_height_px
    highlight = grid.navigator.highlight

    rects = grid.day_rects()
    for rect, day, weekend in zip(rects, grid.days, grid.weekend_flags()):
        if weekend:
            d.rectangle((rect.left, rect.top, rect.right, rect.bottom), fill=WEEKEND_BG)
        header_fill = HIGHLIGHT_BG if day == highlight else HEADER_BG
        d.rectangle((rect.left, 0, rect.right, header_h), fill=header_fill)
        label = format_day_header(day)
        label_w = d.textlength(label, font=font_header)
        d.text((rect.left + (rect.right - rect.left - label_w) / 2, (header_h - 16) / 2), label, fill="black", font=font_header)
        d.line((rect.left, 0, rect.left, rect.bottom), fill=GRID_LINE, width=1)

    # Slot lines and time labels
    for y, label in grid.time_labels():
        d.line((cfg.time_col_width_px, y, canvas_w, y), fill=SLOT_LINE, width=1)
        d.text((8, y + 2), label, fill=TIME_TEXT, font=font_time)
    d.line((0, header_h, canvas_w, header_h), fill=GRID_LINE, width=1)
    d.line((cfg.time_col_width_px, 0, cfg.time_col_width_px, canvas_h), fill=GRID_LINE, width=1)

    for box in grid.boxes():
        _draw_event_box(d, grid, box, font_title, font_small, title_line_h=15)

    if show_now_line and now is not None:
        marker = grid.now_line(now)
        if marker is not None:
            day_index, y = marker
            rect = rects[day_index]
            d.line((rect.left, y, rect.right, y), fill=NOW_LINE, width=2)
            d.ellipse((rect.left + 6, y - 4, rect.left + 14, y + 4), fill=NOW_LINE)

    return img

def render_mini_calendar(
    month: date,
    by_day: Dict[date, List[CalendarEvent]],
    selected: Optional[date] = None,
    cell: int = 36,
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
) -> Image.Image:
    """Monday-first month matrix with a per-day event count badge."""
    header_h = 28
    img = Image.new("RGB", (cell * 7, header_h * 2 + cell * 6), "white")
    d = ImageDraw.Draw(img)
    font = _load_font(font_path, 12)
    font_badge = _load_font(font_path, 9)

    d.text((6, 6), month.strftime("%B %Y"), fill="black", font=font)
    for i, wd in enumerate(WEEKDAY_LABELS):
        d.text((i * cell + 6, header_h + 6), wd, fill=TIME_TEXT, font=font_badge)

    top = header_h * 2
    for idx, (day, count, in_month) in enumerate(month_counts(month, by_day)):
        row, col = divmod(idx, 7)
        x0, y0 = col * cell, top + row * cell
        if selected is not None and day == selected:
            d.rectangle((x0, y0, x0 + cell, y0 + cell), fill=HIGHLIGHT_BG)
        d.rectangle((x0, y0, x0 + cell, y0 + cell), outline=GRID_LINE, width=1)
        d.text((x0 + 4, y0 + 3), str(day.day), fill="black" if in_month else (156, 163, 175), font=font)
        if count:
            d.ellipse((x0 + cell - 16, y0 + cell - 16, x0 + cell - 3, y0 + cell - 3), fill=PALETTE["red"])
            d.text((x0 + cell - 12, y0 + cell - 15), str(count), fill="white", font=font_badge)
    return img