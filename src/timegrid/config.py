from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
from zoneinfo import ZoneInfo
import yaml

from .interaction import GHOST_CLICK_COOLDOWN_S, effective_min_duration
from .layout import OVERLAP_POLICIES, SPLIT
from .navigation import VIEWS, WEEK
from .timeunits import pixels_per_minute, visible_window

TimeOfDay = Union[str, int, float, None]


class GridConfigError(ValueError):
    """Raised when the grid configuration cannot produce a usable layout."""


@dataclass
class GridConfig:
    timezone: str = "Australia/Sydney"
    view: str = WEEK
    slot_minutes: int = 30
    slot_height_px: float = 40
    time_col_width_px: int = 80
    sticky_header_height_px: int = 44
    day_width_px: int = 160
    start_at: TimeOfDay = None
    end_at: TimeOfDay = None
    start_hour: float = 8
    end_hour: float = 18
    min_duration_minutes: Optional[int] = None
    resizable: bool = True
    draggable: bool = True
    overlap_policy: str = SPLIT
    ghost_click_ms: int = int(GHOST_CLICK_COOLDOWN_S * 1000)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def window(self) -> tuple[int, int]:
        return visible_window(self.start_at, self.end_at, self.start_hour, self.end_hour)

    @property
    def ppm(self) -> float:
        return pixels_per_minute(self.slot_height_px, self.slot_minutes)

    @property
    def min_duration(self) -> int:
        return effective_min_duration(self.min_duration_minutes, self.slot_minutes)

    @property
    def ghost_click_cooldown_s(self) -> float:
        return self.ghost_click_ms / 1000.0

    def validate(self) -> "GridConfig":
        if self.slot_minutes <= 0:
            raise GridConfigError(f"slot_minutes must be positive, got {self.slot_minutes}")
        if self.slot_height_px <= 0:
            raise GridConfigError(f"slot_height_px must be positive, got {self.slot_height_px}")
        if self.view not in VIEWS:
            raise GridConfigError(f"view must be one of {VIEWS}, got {self.view!r}")
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise GridConfigError(f"overlap_policy must be one of {OVERLAP_POLICIES}, got {self.overlap_policy!r}")
        return self

@dataclass
class RenderConfig:
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
    show_now_line: bool = True
    padding: int = 16

@dataclass
class AppConfig:
    grid: GridConfig = field(default_factory=GridConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    events_path: str = "events.json"

def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)

def load_config(path: Optional[str]) -> AppConfig:
    data: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    grid = data.get("grid", {})
    render = data.get("render", {})
    defaults = GridConfig()

    cfg = GridConfig(
        timezone=str(data.get("timezone", defaults.timezone)),
        view=str(grid.get("view", defaults.view)),
        slot_minutes=int(grid.get("slot_minutes", defaults.slot_minutes)),
        slot_height_px=float(grid.get("slot_height_px", defaults.slot_height_px)),
        time_col_width_px=int(grid.get("time_col_width_px", defaults.time_col_width_px)),
        sticky_header_height_px=int(grid.get("sticky_header_height_px", defaults.sticky_header_height_px)),
        day_width_px=int(grid.get("day_width_px", defaults.day_width_px)),
        start_at=grid.get("start_at"),
        end_at=grid.get("end_at"),
        start_hour=float(grid.get("start_hour", defaults.start_hour)),
        end_hour=float(grid.get("end_hour", defaults.end_hour)),
        min_duration_minutes=_optional_int(grid.get("min_duration_minutes")),
        resizable=bool(grid.get("resizable", defaults.resizable)),
        draggable=bool(grid.get("draggable", defaults.draggable)),
        overlap_policy=str(grid.get("overlap_policy", defaults.overlap_policy)),
        ghost_click_ms=int(grid.get("ghost_click_ms", defaults.ghost_click_ms)),
    ).validate()

    return AppConfig(
        grid=cfg,
        render=RenderConfig(
            font_path=str(render.get("font_path", RenderConfig.font_path)),
            show_now_line=bool(render.get("show_now_line", True)),
            padding=int(render.get("padding", 16)),
        ),
        events_path=str(data.get("events_path", "events.json")),
    )
