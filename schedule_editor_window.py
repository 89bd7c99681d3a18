# schedule_editor_window.py
from PyQt6.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QLabel, QLineEdit,
                             QTextEdit, QPushButton, QComboBox, QTimeEdit, QSpinBox, QMessageBox)
from PyQt6.QtCore import QTime

from config import DAYS_OF_WEEK, DAY_LABELS, MIN_CREATE_MINUTES, DEFAULT_BLOCK_COLOR, CONFLICT_DEBOUNCE_MS
from conflict_validator import ConflictValidator, check_capacity, describe_conflicts
from error_messages import ErrorMessages, ScheduleError


def _to_qtime(minutes):
    return QTime(minutes // 60, minutes % 60)


def _from_qtime(qtime):
    return qtime.hour() * 60 + qtime.minute()


def _room_label(room):
    return f"{room.name} ({room.capacity}명)" if room.capacity else room.name


def resource_choices(items, selected_id=None, selected_name=None, label=lambda item: item.name):
    """(label, id) pairs for a resource combo.

    An id missing from the loaded lookups gets its own entry so that opening
    and saving the dialog never unassigns it.
    """
    choices = [("(미정)", None)] + [(label(item), item.id) for item in items]
    if selected_id is not None and all(str(value) != str(selected_id) for _text, value in choices):
        choices.append((f"{selected_name or selected_id} (목록에 없음)", selected_id))
    return choices


def diff_fields(block, fields):
    return {name: value for name, value in fields.items() if getattr(block, name) != value}


class ScheduleEditorWindow(QDialog):
    """
    수업 추가/수정 대화상자.

    강사/강의실 충돌은 입력이 바뀔 때마다 (디바운스 후) 경고로만 표시하고 저장은 막지 않는다.
    강의실 수용 인원 초과는 저장을 막는다.
    """
    DeleteRole = 2

    def __init__(self, data_manager, block=None, day=None, start_minutes=None, parent=None,
                 conflict_validator=None, debounce_ms=CONFLICT_DEBOUNCE_MS):
        super().__init__(parent)
        self.data_manager = data_manager
        self.block = block
        self.mode = 'edit' if block is not None else 'new'

        self.setWindowTitle("수업 수정" if self.mode == 'edit' else "수업 추가")
        self.setMinimumWidth(420)

        self.conflict_validator = conflict_validator or ConflictValidator(
            data_manager.provider, debounce_ms=debounce_ms, parent=self)
        self.conflict_validator.conflicts_changed.connect(self._on_conflicts_changed)

        self.initUI()
        self.populate_data(day, start_minutes)
        self._connect_change_signals()
        self._request_conflict_check()

    def initUI(self):
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.title_edit = QLineEdit()
        form.addRow("제목:", self.title_edit)

        self.day_combo = QComboBox()
        for token in DAYS_OF_WEEK:
            self.day_combo.addItem(DAY_LABELS[token])
        form.addRow("요일:", self.day_combo)

        time_layout = QHBoxLayout()
        self.start_time_edit = QTimeEdit()
        self.end_time_edit = QTimeEdit()
        for editor in (self.start_time_edit, self.end_time_edit):
            editor.setDisplayFormat("HH:mm")
        time_layout.addWidget(self.start_time_edit)
        time_layout.addWidget(QLabel("~"))
        time_layout.addWidget(self.end_time_edit)
        form.addRow("시간:", time_layout)

        block = self.block
        self.instructor_combo = QComboBox()
        for text, value in resource_choices(self.data_manager.instructors.values(),
                                            block.instructor_id if block else None,
                                            block.instructor_name if block else None):
            self.instructor_combo.addItem(text, value)
        form.addRow("강사:", self.instructor_combo)

        self.room_combo = QComboBox()
        for text, value in resource_choices(self.data_manager.rooms.values(),
                                            block.room_id if block else None,
                                            block.room_name if block else None, label=_room_label):
            self.room_combo.addItem(text, value)
        form.addRow("강의실:", self.room_combo)

        self.capacity_spin = QSpinBox()
        self.capacity_spin.setRange(0, 500)
        self.capacity_spin.setSpecialValueText("제한 없음")
        form.addRow("최대 인원:", self.capacity_spin)

        self.color_edit = QLineEdit()
        form.addRow("색상:", self.color_edit)

        self.description_edit = QTextEdit()
        self.description_edit.setFixedHeight(60)
        form.addRow("설명:", self.description_edit)
        layout.addLayout(form)

        self.conflict_label = QLabel("")
        self.conflict_label.setWordWrap(True)
        self.conflict_label.setStyleSheet("color: #EF4444;")
        layout.addWidget(self.conflict_label)

        button_layout = QHBoxLayout()
        if self.mode == 'edit':
            delete_button = QPushButton("삭제")
            delete_button.clicked.connect(self._on_delete)
            button_layout.addWidget(delete_button)
        button_layout.addStretch(1)
        cancel_button = QPushButton("취소")
        save_button = QPushButton("저장")
        save_button.setDefault(True)
        cancel_button.clicked.connect(self.reject)
        save_button.clicked.connect(self._on_save)
        button_layout.addWidget(cancel_button)
        button_layout.addWidget(save_button)
        layout.addLayout(button_layout)

    def populate_data(self, day, start_minutes):
        if self.block is not None:
            block = self.block
            self.title_edit.setText(block.title)
            self.day_combo.setCurrentIndex(block.day_of_week)
            self.start_time_edit.setTime(_to_qtime(block.start_minutes))
            self.end_time_edit.setTime(_to_qtime(block.end_minutes))
            self._select_data(self.instructor_combo, block.instructor_id)
            self._select_data(self.room_combo, block.room_id)
            self.capacity_spin.setValue(block.capacity or 0)
            self.color_edit.setText(block.color)
            self.description_edit.setPlainText(block.description or '')
        else:
            start = start_minutes if start_minutes is not None else 9 * 60
            self.day_combo.setCurrentIndex(day or 0)
            self.start_time_edit.setTime(_to_qtime(start))
            self.end_time_edit.setTime(_to_qtime(start + MIN_CREATE_MINUTES * 2))
            self.color_edit.setText(DEFAULT_BLOCK_COLOR)

    def _select_data(self, combo, value):
        index = combo.findData(value)
        combo.setCurrentIndex(index if index >= 0 else 0)

    def _connect_change_signals(self):
        self.day_combo.currentIndexChanged.connect(self._request_conflict_check)
        self.start_time_edit.timeChanged.connect(self._request_conflict_check)
        self.end_time_edit.timeChanged.connect(self._request_conflict_check)
        self.instructor_combo.currentIndexChanged.connect(self._request_conflict_check)
        self.room_combo.currentIndexChanged.connect(self._request_conflict_check)

    def _request_conflict_check(self, *_args):
        start = _from_qtime(self.start_time_edit.time())
        end = _from_qtime(self.end_time_edit.time())
        if start >= end:
            self.conflict_validator.clear()
            self.conflict_label.setText("종료 시간은 시작 시간보다 늦어야 합니다.")
            return
        self.conflict_validator.request(
            self.day_combo.currentIndex(), start, end,
            self.instructor_combo.currentData(), self.room_combo.currentData(),
            exclude_block_id=self.block.id if self.block else None)

    def _on_conflicts_changed(self, reports):
        self.conflict_label.setText(describe_conflicts(reports))

    def get_fields(self):
        capacity = self.capacity_spin.value() or None
        return {
            'title': self.title_edit.text().strip(),
            'day_of_week': self.day_combo.currentIndex(),
            'start_minutes': _from_qtime(self.start_time_edit.time()),
            'end_minutes': _from_qtime(self.end_time_edit.time()),
            'instructor_id': self.instructor_combo.currentData(),
            'room_id': self.room_combo.currentData(),
            'capacity': capacity,
            'color': self.color_edit.text().strip() or DEFAULT_BLOCK_COLOR,
            'description': self.description_edit.toPlainText().strip() or None,
        }

    def changed_fields(self):
        """수정 모드에서 실제로 바뀐 필드만."""
        fields = self.get_fields()
        if self.block is None:
            return fields
        return diff_fields(self.block, fields)

    def _on_save(self):
        fields = self.get_fields()
        if fields['start_minutes'] >= fields['end_minutes']:
            QMessageBox.warning(self, "입력 오류", "종료 시간은 시작 시간보다 늦어야 합니다.")
            return
        try:
            room = self.data_manager.get_room(fields['room_id'])
            if fields['room_id'] and room is None:
                room = self.data_manager.provider.get_room(fields['room_id'])
            if fields['room_id']:
                check_capacity(fields['capacity'], room)
        except ScheduleError as e:
            QMessageBox.warning(self, "강의실 수용 인원 초과", str(e))
            return

        reports = self.conflict_validator.current_reports
        if reports:
            answer = QMessageBox.question(
                self, ErrorMessages.SCHEDULE_CONFLICT['title'],
                f"{describe_conflicts(reports)}\n그래도 저장하시겠습니까?")
            if answer != QMessageBox.StandardButton.Yes:
                return
        self.conflict_validator.clear()
        self.accept()

    def _on_delete(self):
        answer = QMessageBox.question(self, '삭제 확인', "이 수업을 정말 삭제하시겠습니까?")
        if answer == QMessageBox.StandardButton.Yes:
            self.conflict_validator.clear()
            self.done(self.DeleteRole)
