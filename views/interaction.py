# views/interaction.py
"""
Pointer gesture state machine for the timetable grid.

The controller knows nothing about widgets or painting. A pointer source (the Qt
grid widget, a touch adapter, a test) feeds it PointerEvents through
on_pointer_down / on_pointer_move / on_pointer_up; it answers with Qt signals
carrying intents (click, context menu, create, update) and live previews.

Modes:
    IDLE -> PENDING_CLICK | CREATING | MOVING | RESIZING_TOP | RESIZING_BOTTOM -> IDLE

Timers and pointer capture are injected so that the machine can be driven
deterministically.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from config import (LONG_PRESS_MS, RESIZE_EDGE_PX, SNAP_MINUTES, MIN_CREATE_MINUTES,
                    MIN_RESIZE_MINUTES, MAX_RESIZE_MINUTES)
from .grid_geometry import pixel_to_cell, GridCell

logger = logging.getLogger(__name__)


class DragMode(Enum):
    IDLE = 'idle'
    PENDING_CLICK = 'pending-click'
    CREATING = 'create'
    MOVING = 'move'
    RESIZING_TOP = 'resize-top'
    RESIZING_BOTTOM = 'resize-bottom'


DRAG_MODES = (DragMode.CREATING, DragMode.MOVING, DragMode.RESIZING_TOP, DragMode.RESIZING_BOTTOM)


class PointerButton(Enum):
    PRIMARY = 'primary'
    SECONDARY = 'secondary'


@dataclass(frozen=True)
class PointerEvent:
    x: float
    y: float
    button: PointerButton = PointerButton.PRIMARY


@dataclass(frozen=True)
class DragPreview:
    """Live candidate shown while a gesture is in progress."""
    mode: DragMode
    day: int
    start_minutes: int
    end_minutes: int
    block: Optional[object] = None


class NullPointerCapture:
    """Pointer capture for sources that already deliver every event (tests, synthetic input)."""

    def __init__(self):
        self.active = False

    def acquire(self):
        self.active = True

    def release(self):
        self.active = False


@dataclass
class DragSession:
    mode: DragMode
    press_x: float
    press_y: float
    last_x: float
    last_y: float
    block: Optional[object] = None
    block_rect: Optional[object] = None
    anchor_cell: Optional[GridCell] = None
    grab_offset: Optional[tuple] = None
    candidate: Optional[tuple] = None  # (day, start, end)
    timer: Optional[object] = field(default=None, repr=False)

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class GridInteractionController(QObject):
    click_requested = pyqtSignal(object)                   # ScheduleBlock
    context_menu_requested = pyqtSignal(object, object)    # ScheduleBlock | None, GridCell | None
    create_requested = pyqtSignal(dict)                    # {day_of_week, start_minutes, end_minutes}
    update_requested = pyqtSignal(str, dict)               # block id, changed fields only
    overflow_toggle_requested = pyqtSignal(object)         # group key
    preview_changed = pyqtSignal(object)                   # DragPreview | None
    mode_changed = pyqtSignal(str)

    def __init__(self, geometry, timer_factory, pointer_capture=None, read_only=False,
                 long_press_ms=LONG_PRESS_MS, resize_edge_px=RESIZE_EDGE_PX, parent=None):
        super().__init__(parent)
        self.geometry = geometry
        self.timer_factory = timer_factory
        self.pointer_capture = pointer_capture or NullPointerCapture()
        self.read_only = read_only
        self.long_press_ms = long_press_ms
        self.resize_edge_px = resize_edge_px

        self.session = None
        self.positions = []
        self.overflow_markers = []
        self._queue = deque()
        self._draining = False
        self._torn_down = False
        self._captured = False

    # ------------------------------------------------------------------
    # Inputs from the shell
    # ------------------------------------------------------------------
    @property
    def mode(self):
        return self.session.mode if self.session else DragMode.IDLE

    def set_geometry(self, geometry):
        self.geometry = geometry

    def set_layout(self, positions, overflow_markers=()):
        self.positions = list(positions)
        self.overflow_markers = list(overflow_markers)

    def set_read_only(self, read_only):
        if read_only and self.session and self.session.mode in DRAG_MODES:
            self.cancel()
        self.read_only = read_only

    def on_pointer_down(self, event):
        self._post('down', event)

    def on_pointer_move(self, event):
        self._post('move', event)

    def on_pointer_up(self, event):
        self._post('up', event)

    def cancel(self):
        """Abort the current gesture (Escape, capture lost). Emits no intent."""
        self._post('cancel', None)

    def teardown(self):
        """The owning view is going away: drop everything silently."""
        self._queue.clear()
        if self.session:
            logger.debug(f"teardown during {self.session.mode.value}, discarding session")
        self._end_session(emit_preview=False)
        self._torn_down = True

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------
    def _post(self, kind, event):
        if self._torn_down:
            return
        self._queue.append((kind, event))
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                kind, event = self._queue.popleft()
                handler = getattr(self, f'_handle_{kind}')
                handler(event)
        finally:
            self._draining = False

    def _on_long_press_timeout(self, session):
        # 타이머가 늦게 도착했을 수 있으므로 같은 세션인지 확인
        if self.session is session and session.mode == DragMode.PENDING_CLICK:
            self._post('long_press', session)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _handle_down(self, event):
        hit = self.hit_test(event.x, event.y)

        if event.button == PointerButton.SECONDARY:
            if self.session and self.session.mode in DRAG_MODES:
                return
            self._end_session()
            if hit:
                self.context_menu_requested.emit(hit[0], None)
            elif self.geometry.in_grid(event.x, event.y):
                self.context_menu_requested.emit(None, pixel_to_cell(event.x, event.y, self.geometry))
            return

        if self.session:
            # 이전 제스처가 정상적으로 끝나지 않았음
            self._end_session()

        marker = self.overflow_at(event.x, event.y)
        if marker is not None:
            self.overflow_toggle_requested.emit(marker['group_key'])
            return

        if self.read_only:
            if hit:
                block, rect, _zone = hit
                self._begin(DragSession(DragMode.PENDING_CLICK, event.x, event.y, event.x, event.y,
                                        block=block, block_rect=rect))
            return

        if hit:
            block, rect, zone = hit
            if zone == 'top':
                session = DragSession(DragMode.RESIZING_TOP, event.x, event.y, event.x, event.y,
                                      block=block, block_rect=rect,
                                      candidate=(block.day_of_week, block.start_minutes, block.end_minutes))
                self._begin(session)
            elif zone == 'bottom':
                session = DragSession(DragMode.RESIZING_BOTTOM, event.x, event.y, event.x, event.y,
                                      block=block, block_rect=rect,
                                      candidate=(block.day_of_week, block.start_minutes, block.end_minutes))
                self._begin(session)
            else:
                session = DragSession(DragMode.PENDING_CLICK, event.x, event.y, event.x, event.y,
                                      block=block, block_rect=rect)
                self._begin(session)
                session.timer = self.timer_factory.start(
                    self.long_press_ms, lambda: self._on_long_press_timeout(session))
            return

        # 머리글, 시간 열, 마지막 칸 아래에서는 새 제스처를 시작하지 않음
        if not self.geometry.in_grid(event.x, event.y):
            return
        cell = pixel_to_cell(event.x, event.y, self.geometry)
        start = min(cell.minutes, self.geometry.max_time - SNAP_MINUTES)
        anchor = GridCell(cell.day, start)
        session = DragSession(DragMode.CREATING, event.x, event.y, event.x, event.y,
                              anchor_cell=anchor,
                              candidate=(anchor.day, start, start + SNAP_MINUTES))
        self._begin(session)

    def _handle_move(self, event):
        session = self.session
        if session is None:
            return
        session.last_x, session.last_y = event.x, event.y
        if session.mode in DRAG_MODES:
            self._track(session, event.x, event.y)

    def _handle_up(self, event):
        session = self.session
        if session is None:
            return
        session.last_x, session.last_y = event.x, event.y

        if session.mode == DragMode.PENDING_CLICK:
            session.cancel_timer()
            block = session.block
            self._end_session()
            logger.debug(f"click on block {block.id}")
            self.click_requested.emit(block)
            return

        self._track(session, event.x, event.y, emit_preview=False)
        mode = session.mode
        block = session.block
        day, start, end = session.candidate
        self._end_session()

        if mode == DragMode.CREATING:
            start, end = self._creation_interval(session)
            logger.debug(f"create intent: day={day} {start}-{end}")
            self.create_requested.emit({'day_of_week': day, 'start_minutes': start, 'end_minutes': end})
        elif mode == DragMode.MOVING:
            if (day, start, end) == (block.day_of_week, block.start_minutes, block.end_minutes):
                return
            self.update_requested.emit(str(block.id), {
                'day_of_week': day, 'start_minutes': start, 'end_minutes': end})
        elif mode == DragMode.RESIZING_TOP:
            if start != block.start_minutes:
                self.update_requested.emit(str(block.id), {'start_minutes': start})
        elif mode == DragMode.RESIZING_BOTTOM:
            if end != block.end_minutes:
                self.update_requested.emit(str(block.id), {'end_minutes': end})

    def _handle_long_press(self, session):
        if self.session is not session or session.mode != DragMode.PENDING_CLICK:
            return
        session.timer = None
        rect = session.block_rect
        session.grab_offset = (session.press_x - rect.x, session.press_y - rect.y)
        block = session.block
        session.candidate = (block.day_of_week, block.start_minutes, block.end_minutes)
        self._set_mode(session, DragMode.MOVING)
        self._acquire_capture()
        self._track(session, session.last_x, session.last_y)

    def _handle_cancel(self, _event):
        if self.session:
            logger.debug(f"gesture cancelled in {self.session.mode.value}")
        self._end_session()

    # ------------------------------------------------------------------
    # Candidate computation
    # ------------------------------------------------------------------
    def _track(self, session, x, y, emit_preview=True):
        geometry = self.geometry
        mode = session.mode

        if mode == DragMode.CREATING:
            current = pixel_to_cell(x, y, geometry)
            anchor = session.anchor_cell
            start, end = sorted((anchor.minutes, current.minutes))
            session.candidate = (anchor.day, start, end)
            start, end = self._creation_interval(session)
            preview = (anchor.day, start, end)

        elif mode == DragMode.MOVING:
            block = session.block
            offset_x, offset_y = session.grab_offset
            # 커서가 아니라 블록의 좌상단 모서리 기준으로 칸을 계산
            cell = pixel_to_cell(x - offset_x, y - offset_y, geometry)
            duration = block.duration
            start = min(cell.minutes, geometry.max_time - duration)
            start = max(geometry.min_time, start) if duration <= geometry.max_time - geometry.min_time else geometry.min_time
            session.candidate = (cell.day, start, start + duration)
            preview = session.candidate

        elif mode == DragMode.RESIZING_TOP:
            block = session.block
            cell = pixel_to_cell(x, y, geometry)
            start = min(cell.minutes, block.end_minutes - MIN_RESIZE_MINUTES)
            start = max(start, block.end_minutes - MAX_RESIZE_MINUTES)
            session.candidate = (block.day_of_week, start, block.end_minutes)
            preview = session.candidate

        elif mode == DragMode.RESIZING_BOTTOM:
            block = session.block
            cell = pixel_to_cell(x, y, geometry)
            end = max(cell.minutes, block.start_minutes + MIN_RESIZE_MINUTES)
            end = min(end, block.start_minutes + MAX_RESIZE_MINUTES)
            session.candidate = (block.day_of_week, block.start_minutes, end)
            preview = session.candidate
        else:
            return

        if emit_preview:
            day, start, end = preview
            self.preview_changed.emit(DragPreview(mode, day, start, end, session.block))

    def _creation_interval(self, session):
        """[min, max) of anchor/current, extended to the minimum class length and kept on the grid."""
        _day, start, end = session.candidate
        if end - start < MIN_CREATE_MINUTES:
            end = start + MIN_CREATE_MINUTES
        if end > self.geometry.max_time:
            end = self.geometry.max_time
            start = min(start, end - MIN_CREATE_MINUTES)
        return start, end

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------
    def hit_test(self, x, y):
        """Topmost block under the point as (block, rect, zone) with zone in top/bottom/body."""
        for position in reversed(self.positions):
            rect = position['rect']
            if not rect.contains(x, y):
                continue
            edge = min(self.resize_edge_px, rect.height / 3)
            if y < rect.y + edge:
                zone = 'top'
            elif y >= rect.bottom - edge:
                zone = 'bottom'
            else:
                zone = 'body'
            return position['block'], rect, zone
        return None

    def overflow_at(self, x, y):
        for marker in self.overflow_markers:
            if marker['rect'].contains(x, y):
                return marker
        return None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def _begin(self, session):
        self.session = session
        logger.debug(f"gesture start: {session.mode.value}")
        self.mode_changed.emit(session.mode.value)
        if session.mode in DRAG_MODES:
            self._acquire_capture()
            day, start, end = session.candidate
            self.preview_changed.emit(DragPreview(session.mode, day, start, end, session.block))

    def _set_mode(self, session, mode):
        logger.debug(f"gesture {session.mode.value} -> {mode.value}")
        session.mode = mode
        self.mode_changed.emit(mode.value)

    def _end_session(self, emit_preview=True):
        session = self.session
        if session is None:
            return
        session.cancel_timer()
        had_preview = session.mode in DRAG_MODES
        self.session = None
        self._release_capture()
        if emit_preview:
            self.mode_changed.emit(DragMode.IDLE.value)
            if had_preview:
                self.preview_changed.emit(None)

    def _acquire_capture(self):
        if not self._captured:
            self.pointer_capture.acquire()
            self._captured = True

    def _release_capture(self):
        if self._captured:
            self.pointer_capture.release()
            self._captured = False
