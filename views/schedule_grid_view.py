# views/schedule_grid_view.py
from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QScrollArea,
                             QComboBox, QLabel, QMenu, QMessageBox)
from PyQt6.QtCore import Qt, pyqtSignal, QRectF, QEvent, QTimer
from PyQt6.QtGui import QPainter, QColor, QPen, QAction, QCursor

from config import (DAYS_OF_WEEK, DAY_LABELS, MAX_VISIBLE_GROUP_SIZE, TIME_COLUMN_WIDTH)
from conflict_validator import ConflictValidator, describe_conflicts
from schedule_model import format_hhmm
from .grid_geometry import GridGeometry, block_rect
from .interaction import GridInteractionController, PointerEvent, PointerButton, DragMode
from .layout_calculator import ScheduleLayoutCalculator, toggle_group
from .qt_support import QtTimerFactory, WidgetPointerCapture
from .widgets import draw_block, draw_preview, draw_overflow_marker

WEEK_VIEW = 'week'
DAY_VIEW = 'day'

_BUTTONS = {
    Qt.MouseButton.LeftButton: PointerButton.PRIMARY,
    Qt.MouseButton.RightButton: PointerButton.SECONDARY,
}


class ScheduleGridCanvas(QWidget):
    """Paints the grid and feeds raw mouse input to the interaction controller."""

    def __init__(self, parent_view, interaction_settings):
        super().__init__(parent_view)
        self.parent_view = parent_view
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self.visible_days = 7
        self.day_offset = 0
        self.min_time = interaction_settings['min_time']
        self.max_time = interaction_settings['max_time']
        self.max_visible = interaction_settings.get('max_visible_group_size', MAX_VISIBLE_GROUP_SIZE)
        self.geometry_model = self._build_geometry()
        self.setMinimumHeight(int(self.geometry_model.total_height))

        self.blocks = []
        self.positions = []
        self.overflow_markers = []
        self.expanded_groups = set()
        self.preview = None
        self.conflict_ids = set()
        self.pending_ids = set()
        self.selected_id = None

        self.controller = GridInteractionController(
            self.geometry_model,
            QtTimerFactory(self),
            WidgetPointerCapture(self),
            read_only=interaction_settings.get('read_only', False),
            long_press_ms=interaction_settings['long_press_ms'],
            resize_edge_px=interaction_settings['resize_edge_px'],
            parent=self,
        )
        self.controller.preview_changed.connect(self.on_preview_changed)
        self.controller.overflow_toggle_requested.connect(self.toggle_overflow)
        self.controller.mode_changed.connect(self._update_cursor)

    def _build_geometry(self):
        return GridGeometry.for_width(max(self.width(), TIME_COLUMN_WIDTH + self.visible_days),
                                      visible_days=self.visible_days, day_offset=self.day_offset,
                                      min_time=self.min_time, max_time=self.max_time)

    def set_day_range(self, visible_days, day_offset):
        if self.controller.mode != DragMode.IDLE:
            self.controller.cancel()
        self.visible_days = visible_days
        self.day_offset = day_offset
        self.relayout()

    def set_blocks(self, blocks, pending_ids=()):
        self.blocks = list(blocks)
        self.pending_ids = set(pending_ids)
        self.relayout()

    def relayout(self):
        self.geometry_model = self._build_geometry()
        self.controller.set_geometry(self.geometry_model)
        calculator = ScheduleLayoutCalculator(self.blocks, self.geometry_model,
                                              self.expanded_groups, self.max_visible)
        self.positions, self.overflow_markers = calculator.calculate()
        self.controller.set_layout(self.positions, self.overflow_markers)
        self.update()

    def toggle_overflow(self, key):
        self.expanded_groups = toggle_group(self.expanded_groups, key)
        self.relayout()

    def on_preview_changed(self, preview):
        self.preview = preview
        if preview is None:
            self.conflict_ids = set()
        self.update()

    def set_conflicts(self, reports):
        self.conflict_ids = {block_id for report in reports for block_id in report.conflicting_block_ids}
        self.update()

    def _update_cursor(self, mode):
        cursors = {
            DragMode.MOVING.value: Qt.CursorShape.ClosedHandCursor,
            DragMode.RESIZING_TOP.value: Qt.CursorShape.SizeVerCursor,
            DragMode.RESIZING_BOTTOM.value: Qt.CursorShape.SizeVerCursor,
            DragMode.CREATING.value: Qt.CursorShape.CrossCursor,
        }
        self.setCursor(cursors.get(mode, Qt.CursorShape.ArrowCursor))

    # --- 입력 ---
    def _pointer_event(self, event, button=None):
        pos = event.position()
        return PointerEvent(pos.x(), pos.y(), button or PointerButton.PRIMARY)

    def mousePressEvent(self, event):
        button = _BUTTONS.get(event.button())
        if button is None:
            return super().mousePressEvent(event)
        self.setFocus()
        self.controller.on_pointer_down(self._pointer_event(event, button))
        event.accept()

    def mouseMoveEvent(self, event):
        self.controller.on_pointer_move(self._pointer_event(event))
        if self.controller.mode == DragMode.IDLE and not self.controller.read_only:
            hit = self.controller.hit_test(event.position().x(), event.position().y())
            if hit and hit[2] in ('top', 'bottom'):
                self.setCursor(Qt.CursorShape.SizeVerCursor)
            else:
                self.setCursor(Qt.CursorShape.ArrowCursor)

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return super().mouseReleaseEvent(event)
        self.controller.on_pointer_up(self._pointer_event(event))
        event.accept()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self.controller.mode != DragMode.IDLE:
            self.controller.cancel()
            event.accept()
            return
        super().keyPressEvent(event)

    def event(self, ev):
        # 다른 위젯이 마우스를 가져가면 진행 중인 제스처를 취소
        if ev.type() == QEvent.Type.UngrabMouse and self.controller.mode != DragMode.IDLE:
            self.controller.cancel()
        return super().event(ev)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.relayout()

    # --- 그리기 ---
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor("#FFFFFF"))

        self._draw_time_grid(painter)
        self._draw_blocks(painter)
        self._draw_preview(painter)

    def _draw_time_grid(self, painter):
        geometry = self.geometry_model
        painter.save()

        painter.fillRect(QRectF(0, 0, self.width(), geometry.header_height), QColor("#F3F4F6"))
        painter.setPen(QColor("#111827"))
        for column in range(geometry.visible_days):
            day = geometry.day_offset + column
            rect = QRectF(geometry.column_x(column), 0, geometry.day_column_width, geometry.header_height)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, DAY_LABELS[DAYS_OF_WEEK[day]])

        minor_pen = QPen(QColor("#F0F0F0"), 1)
        major_pen = QPen(QColor("#D0D0D0"), 1)
        right = geometry.column_x(geometry.visible_days)
        for minutes in range(geometry.min_time, geometry.max_time + 1, geometry.slot_minutes):
            y = geometry.minutes_to_y(minutes)
            is_hour = minutes % 60 == 0
            painter.setPen(major_pen if is_hour else minor_pen)
            painter.drawLine(int(geometry.time_column_width), int(y), int(right), int(y))
            if is_hour:
                painter.setPen(QColor("#6B7280"))
                label_rect = QRectF(0, y - geometry.slot_height / 2, geometry.time_column_width - 8,
                                    geometry.slot_height)
                painter.drawText(label_rect, Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
                                 format_hhmm(minutes))

        painter.setPen(major_pen)
        for column in range(geometry.visible_days + 1):
            x = geometry.column_x(column)
            painter.drawLine(int(x), int(geometry.header_height), int(x), int(geometry.total_height))
        painter.restore()

    def _draw_blocks(self, painter):
        dragging_id = None
        if self.preview is not None and self.preview.block is not None:
            dragging_id = self.preview.block.id

        for position in self.positions:
            block = position['block']
            draw_block(painter, position['rect'], block,
                       is_pending=block.id in self.pending_ids or block.id == dragging_id,
                       is_selected=block.id == self.selected_id,
                       is_conflict=block.id in self.conflict_ids)

        for marker in self.overflow_markers:
            draw_overflow_marker(painter, marker['rect'], marker['hidden_count'], marker['expanded'])

    def _draw_preview(self, painter):
        preview = self.preview
        if preview is None:
            return
        rect = block_rect(preview.day, preview.start_minutes, preview.end_minutes, self.geometry_model)
        if rect is None:
            return
        label = f"{format_hhmm(preview.start_minutes)} - {format_hhmm(preview.end_minutes)}"
        draw_preview(painter, rect, label, is_conflict=bool(self.conflict_ids))


class ScheduleGridView(QWidget):
    """주간/일간 시간표 화면. 제스처 의도를 데이터 매니저 호출로 바꿔 전달합니다."""
    edit_block_requested = pyqtSignal(object)
    add_block_requested = pyqtSignal(int, int)   # day, start minutes

    def __init__(self, main_widget, interaction_settings, conflict_validator=None):
        super().__init__()
        self.main_widget = main_widget
        self.data_manager = main_widget.data_manager
        self.interaction_settings = interaction_settings
        self.view_mode = WEEK_VIEW

        self.conflict_validator = conflict_validator or ConflictValidator(
            self.data_manager.provider, debounce_ms=interaction_settings['conflict_debounce_ms'], parent=self)

        self.initUI()

        controller = self.canvas.controller
        controller.click_requested.connect(self.on_block_clicked)
        controller.context_menu_requested.connect(self.show_context_menu)
        controller.create_requested.connect(self.on_create_requested)
        controller.update_requested.connect(self.on_update_requested)
        controller.preview_changed.connect(self.conflict_validator.request_for_preview)
        self.conflict_validator.conflicts_changed.connect(self.on_conflicts_changed)

        self.data_manager.data_updated.connect(self.redraw_blocks_with_current_data)
        self.data_manager.lookups_updated.connect(self.populate_filters)

    def initUI(self):
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        nav_layout = QHBoxLayout()
        self.week_button = QPushButton("주간")
        self.day_button = QPushButton("일간")
        self.week_button.setObjectName("nav_button")
        self.day_button.setObjectName("nav_button")
        self.day_combo = QComboBox()
        for token in DAYS_OF_WEEK:
            self.day_combo.addItem(DAY_LABELS[token])
        self.day_combo.setEnabled(False)
        self.instructor_filter = QComboBox()
        self.room_filter = QComboBox()
        self.reset_filter_button = QPushButton("필터 초기화")
        self.conflict_label = QLabel("")
        self.conflict_label.setObjectName("conflict_label")
        self.conflict_label.setStyleSheet("color: #EF4444;")

        self.week_button.clicked.connect(lambda: self.set_view_mode(WEEK_VIEW))
        self.day_button.clicked.connect(lambda: self.set_view_mode(DAY_VIEW))
        self.day_combo.currentIndexChanged.connect(self._on_day_changed)
        self.instructor_filter.currentIndexChanged.connect(self.apply_filters)
        self.room_filter.currentIndexChanged.connect(self.apply_filters)
        self.reset_filter_button.clicked.connect(self.reset_filters)

        nav_layout.addWidget(self.week_button)
        nav_layout.addWidget(self.day_button)
        nav_layout.addWidget(self.day_combo)
        nav_layout.addSpacing(12)
        nav_layout.addWidget(self.instructor_filter)
        nav_layout.addWidget(self.room_filter)
        nav_layout.addWidget(self.reset_filter_button)
        nav_layout.addStretch(1)
        nav_layout.addWidget(self.conflict_label)
        main_layout.addLayout(nav_layout)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.canvas = ScheduleGridCanvas(self, self.interaction_settings)
        self.scroll_area.setWidget(self.canvas)
        main_layout.addWidget(self.scroll_area)
        self.populate_filters()

    def set_view_mode(self, mode):
        self.view_mode = mode
        self.day_combo.setEnabled(mode == DAY_VIEW)
        if mode == DAY_VIEW:
            self.canvas.set_day_range(1, self.day_combo.currentIndex())
        else:
            self.canvas.set_day_range(7, 0)

    def _on_day_changed(self, index):
        if self.view_mode == DAY_VIEW:
            self.canvas.set_day_range(1, index)

    # --- 강사/강의실 필터 ---
    def populate_filters(self):
        self._fill_filter(self.instructor_filter, "전체 강사", self.data_manager.instructors.values())
        self._fill_filter(self.room_filter, "전체 강의실", self.data_manager.rooms.values())

    def _fill_filter(self, combo, all_label, items):
        current = combo.currentData()
        combo.blockSignals(True)
        combo.clear()
        combo.addItem(all_label, None)
        for item in items:
            combo.addItem(item.name, item.id)
        index = combo.findData(current)
        combo.setCurrentIndex(index if index >= 0 else 0)
        combo.blockSignals(False)

    def apply_filters(self, *_args):
        self.data_manager.set_resource_filter(self.instructor_filter.currentData(),
                                              self.room_filter.currentData())

    def reset_filters(self):
        for combo in (self.instructor_filter, self.room_filter):
            combo.blockSignals(True)
            combo.setCurrentIndex(0)
            combo.blockSignals(False)
        self.apply_filters()

    def set_read_only(self, read_only):
        self.canvas.controller.set_read_only(read_only)

    def redraw_blocks_with_current_data(self):
        self.canvas.set_blocks(self.data_manager.blocks, self.data_manager.pending_ids())

    def teardown(self):
        """창이 닫힐 때 진행 중인 제스처와 대기 중인 충돌 조회를 조용히 버린다."""
        self.canvas.controller.teardown()
        self.conflict_validator.clear()

    # --- 제스처 의도 처리 ---
    def on_block_clicked(self, block):
        self.canvas.selected_id = block.id
        self.canvas.update()
        if not self.canvas.controller.read_only:
            self.edit_block_requested.emit(block)

    def on_create_requested(self, interval):
        block = self.data_manager.new_block(interval['day_of_week'], interval['start_minutes'],
                                            interval['end_minutes'])
        self.canvas.selected_id = self.data_manager.create_schedule(block)

    def on_update_requested(self, schedule_id, fields):
        self.data_manager.update_schedule(schedule_id, fields)

    def on_conflicts_changed(self, reports):
        self.canvas.set_conflicts(reports)
        self.conflict_label.setText(describe_conflicts(reports))

    def show_context_menu(self, target_block, cell):
        # 마우스 누름 처리 중에 메뉴 루프를 돌리지 않도록 다음 이벤트 루프로 미룬다
        QTimer.singleShot(0, lambda: self._exec_context_menu(target_block, cell))

    def _exec_context_menu(self, target_block, cell):
        menu = QMenu(self)
        read_only = self.canvas.controller.read_only

        if target_block is not None:
            edit_action = QAction("수정", self)
            edit_action.triggered.connect(lambda: self.edit_block_requested.emit(target_block))
            edit_action.setEnabled(not read_only)
            menu.addAction(edit_action)

            delete_action = QAction("삭제", self)
            delete_action.triggered.connect(lambda: self.confirm_delete_block(target_block))
            delete_action.setEnabled(not read_only)
            menu.addAction(delete_action)
        elif cell is not None and not read_only:
            add_action = QAction("수업 추가", self)
            add_action.triggered.connect(lambda: self.add_block_requested.emit(cell.day, cell.minutes))
            menu.addAction(add_action)

        if not menu.isEmpty():
            menu.exec(QCursor.pos())

    def confirm_delete_block(self, block):
        title = block.title or '(제목 없음)'
        answer = QMessageBox.question(self, '삭제 확인', f"'{title}' 수업을 정말 삭제하시겠습니까?")
        if answer == QMessageBox.StandardButton.Yes:
            self.data_manager.delete_schedule(block.id)
