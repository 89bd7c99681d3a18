# views/grid_geometry.py
"""
Pixel <-> (day, minutes) mapping for the weekly time grid.

The grid is laid out as a time column on the left, a header row on top and one
column per visible day. Every mapping resolves to the nearest valid cell, even
for coordinates outside the grid, so a gesture in progress keeps tracking.
"""
import math
from dataclasses import dataclass

from config import (HEADER_HEIGHT, TIME_COLUMN_WIDTH, SLOT_HEIGHT, SNAP_MINUTES,
                    DEFAULT_MIN_TIME, DEFAULT_MAX_TIME, DAYS_OF_WEEK)
from schedule_model import parse_hhmm, snap_to_grid

_EPSILON = 1e-9


@dataclass(frozen=True)
class GridCell:
    day: int
    minutes: int


@dataclass(frozen=True)
class PixelRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def right(self):
        return self.x + self.width

    def contains(self, px, py):
        return self.x <= px < self.right and self.y <= py < self.bottom


@dataclass(frozen=True)
class GridGeometry:
    """Viewport geometry supplied by the shell.

    day_offset is the absolute day shown in the first column; it is only
    non-zero in single-day view.
    """
    day_column_width: float
    header_height: float = HEADER_HEIGHT
    time_column_width: float = TIME_COLUMN_WIDTH
    slot_height: float = SLOT_HEIGHT
    slot_minutes: int = SNAP_MINUTES
    min_time: int = parse_hhmm(DEFAULT_MIN_TIME)
    max_time: int = parse_hhmm(DEFAULT_MAX_TIME)
    visible_days: int = 7
    day_offset: int = 0

    @classmethod
    def for_width(cls, total_width, visible_days=7, day_offset=0, **kwargs):
        time_column_width = kwargs.get('time_column_width', TIME_COLUMN_WIDTH)
        grid_width = max(total_width - time_column_width, visible_days)
        return cls(day_column_width=grid_width / visible_days, visible_days=visible_days,
                   day_offset=day_offset, **kwargs)

    @property
    def slot_count(self):
        return (self.max_time - self.min_time) // self.slot_minutes

    @property
    def grid_height(self):
        return self.slot_count * self.slot_height

    @property
    def total_height(self):
        return self.header_height + self.grid_height

    def column_for_day(self, day):
        """Absolute day index -> visible column, or None when the day is not shown."""
        column = day - self.day_offset
        if 0 <= column < self.visible_days:
            return column
        return None

    def column_x(self, column):
        return self.time_column_width + column * self.day_column_width

    def minutes_to_y(self, minutes):
        return self.header_height + (minutes - self.min_time) / self.slot_minutes * self.slot_height

    def duration_to_height(self, minutes):
        return minutes / self.slot_minutes * self.slot_height

    def in_grid(self, x, y):
        """True only for points on a day cell: not the header, the time column or below the last slot."""
        return (self.time_column_width <= x < self.column_x(self.visible_days)
                and self.header_height <= y < self.total_height)


def _finite_or(value, fallback):
    if value is None or isinstance(value, bool):
        return fallback
    try:
        value = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(value):
        return fallback
    return value


def pixel_to_cell(x, y, geometry):
    """Resolve a pixel position to the nearest valid (day, snapped minutes) cell."""
    y = _finite_or(y, geometry.header_height)
    x = _finite_or(x, geometry.time_column_width)

    # 슬롯 인덱스(소수 포함)로 변환한 뒤 슬롯 안의 위치를 보간하고 가장 가까운 격자선에 맞춘다
    content_y = y - geometry.header_height
    if math.isinf(content_y):
        minutes = geometry.min_time if content_y < 0 else geometry.max_time
    else:
        exact_slot = content_y / geometry.slot_height
        slot_index = math.floor(exact_slot)
        fraction = exact_slot - slot_index
        base_minutes = geometry.min_time + slot_index * geometry.slot_minutes
        minutes = snap_to_grid(base_minutes + fraction * geometry.slot_minutes, geometry.slot_minutes)
    minutes = max(geometry.min_time, min(geometry.max_time, minutes))

    content_x = x - geometry.time_column_width
    if math.isinf(content_x):
        column = 0 if content_x < 0 else geometry.visible_days - 1
    else:
        column = math.floor(content_x / geometry.day_column_width + _EPSILON)
    column = max(0, min(geometry.visible_days - 1, column))

    day = min(len(DAYS_OF_WEEK) - 1, geometry.day_offset + column)
    return GridCell(day=day, minutes=int(minutes))


def cell_to_pixel(cell, geometry):
    """Top-left corner and size of one slot cell."""
    column = geometry.column_for_day(cell.day)
    if column is None:
        column = 0 if cell.day < geometry.day_offset else geometry.visible_days - 1
    return PixelRect(
        x=geometry.column_x(column),
        y=geometry.minutes_to_y(cell.minutes),
        width=geometry.day_column_width,
        height=geometry.slot_height,
    )


def block_rect(day, start_minutes, end_minutes, geometry):
    """Full column rect covering [start, end) for a day; None when the day is hidden."""
    column = geometry.column_for_day(day)
    if column is None:
        return None
    return PixelRect(
        x=geometry.column_x(column),
        y=geometry.minutes_to_y(start_minutes),
        width=geometry.day_column_width,
        height=geometry.duration_to_height(end_minutes - start_minutes),
    )
