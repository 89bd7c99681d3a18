# views/layout_calculator.py
from collections import defaultdict, deque

from config import (MAX_VISIBLE_GROUP_SIZE, HORIZONTAL_BLOCK_GAP, COLUMN_INSET,
                    MIN_BLOCK_HEIGHT)
from schedule_model import intervals_overlap
from .grid_geometry import PixelRect

OVERFLOW_MARKER_HEIGHT = 16


def layout_sort_key(block):
    """Column order inside a group: start time, then room name, then id."""
    return (block.start_minutes, block.room_name or '', str(block.id or ''))


def group_overlapping_blocks(day_blocks):
    """
    Partition one day's blocks into overlap groups.

    Two blocks belong to the same group when they are connected by a chain of
    pairwise overlaps (A overlaps B, B overlaps C -> {A, B, C}) even if the ends
    of the chain never touch each other.
    """
    remaining = sorted(day_blocks, key=layout_sort_key)
    grouped = [False] * len(remaining)
    groups = []

    for seed_index in range(len(remaining)):
        if grouped[seed_index]:
            continue
        grouped[seed_index] = True
        members = [remaining[seed_index]]
        queue = deque([remaining[seed_index]])

        # 그룹 멤버 중 하나라도 겹치는 블록을 계속 흡수 (전이적 폐포)
        while queue:
            current = queue.popleft()
            for index, candidate in enumerate(remaining):
                if grouped[index]:
                    continue
                if intervals_overlap(current.start_minutes, current.end_minutes,
                                     candidate.start_minutes, candidate.end_minutes):
                    grouped[index] = True
                    members.append(candidate)
                    queue.append(candidate)

        groups.append(sorted(members, key=layout_sort_key))

    return groups


def group_key(day, members):
    return (day, tuple(sorted(str(block.id) for block in members)))


class ScheduleLayoutCalculator:
    """
    Lays out a week's blocks on the time grid.

    calculate() returns (positions, overflow_markers):
      positions        [{'block', 'rect', 'group_key', 'column_index', 'columns'}]
      overflow_markers [{'group_key', 'day', 'hidden_count', 'hidden_blocks', 'expanded', 'rect'}]

    Expanded groups keep their marker so the user can fold them again.
    """

    def __init__(self, blocks, geometry, expanded_groups=None, max_visible=MAX_VISIBLE_GROUP_SIZE):
        self.blocks = list(blocks)
        self.geometry = geometry
        self.expanded_groups = set(expanded_groups or ())
        self.max_visible = max_visible

    def blocks_by_day(self):
        by_day = defaultdict(list)
        for block in self.blocks:
            if not block.is_active:
                continue
            if self.geometry.column_for_day(block.day_of_week) is None:
                continue
            by_day[block.day_of_week].append(block)
        return by_day

    def calculate(self):
        positions = []
        overflow_markers = []

        for day, day_blocks in sorted(self.blocks_by_day().items()):
            column = self.geometry.column_for_day(day)
            base_x = self.geometry.column_x(column)

            for members in group_overlapping_blocks(day_blocks):
                key = group_key(day, members)
                overflowing = len(members) > self.max_visible
                expanded = overflowing and key in self.expanded_groups
                if overflowing and not expanded:
                    visible = members[:self.max_visible]
                    hidden = members[self.max_visible:]
                else:
                    visible = members
                    hidden = []

                sub_width = self._sub_column_width(len(visible))
                for index, block in enumerate(visible):
                    x = base_x + COLUMN_INSET + index * (sub_width + HORIZONTAL_BLOCK_GAP)
                    y = self.geometry.minutes_to_y(block.start_minutes)
                    height = max(MIN_BLOCK_HEIGHT, self.geometry.duration_to_height(block.duration))
                    positions.append({
                        'block': block,
                        'rect': PixelRect(x, y, sub_width, height),
                        'group_key': key,
                        'column_index': index,
                        'columns': len(visible),
                    })

                if overflowing:
                    bottom = max(self.geometry.minutes_to_y(b.end_minutes) for b in visible)
                    overflow_markers.append({
                        'group_key': key,
                        'day': day,
                        'hidden_count': len(hidden),
                        'hidden_blocks': hidden,
                        'expanded': expanded,
                        'rect': PixelRect(base_x + COLUMN_INSET, bottom,
                                          self.geometry.day_column_width - 2 * COLUMN_INSET,
                                          OVERFLOW_MARKER_HEIGHT),
                    })

        return positions, overflow_markers

    def _sub_column_width(self, count):
        usable = self.geometry.day_column_width - 2 * COLUMN_INSET
        total_gap = (count - 1) * HORIZONTAL_BLOCK_GAP
        return max(1.0, (usable - total_gap) / count)


def toggle_group(expanded_groups, key):
    """Expand a collapsed overflow group, or collapse an expanded one. Returns a new set."""
    updated = set(expanded_groups)
    if key in updated:
        updated.remove(key)
    else:
        updated.add(key)
    return updated
