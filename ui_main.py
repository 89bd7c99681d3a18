import sys
import logging

from logger_config import setup_logger
from config import DEFAULT_WINDOW_GEOMETRY, ERROR_LOG_FILE, LOCAL_PROVIDER_NAME

from PyQt6.QtWidgets import (QApplication, QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                             QLabel, QDialog, QMessageBox)
from PyQt6.QtCore import QTimer

from settings_manager import load_settings, save_settings_safe, get_interaction_settings
from data_manager import ScheduleDataManager
from db_manager import get_db_manager
from error_handler import ErrorHandler
from error_messages import ErrorMessages, SettingsError
from schedule_editor_window import ScheduleEditorWindow
from views.schedule_grid_view import ScheduleGridView, WEEK_VIEW

logger = logging.getLogger(__name__)


class MainWidget(QWidget):
    def __init__(self, settings, data_manager=None):
        super().__init__()
        self.settings = settings
        self.interaction_settings = get_interaction_settings(settings)
        self.data_manager = data_manager or ScheduleDataManager(settings)
        self.error_handler = ErrorHandler(self)
        self.active_dialog = None

        self.initUI()

        self.data_manager.error_occurred.connect(self.error_handler.handle_message)
        self.data_manager.sync_state_changed.connect(self.on_sync_state_changed)
        self.data_manager.lookups_updated.connect(self.schedule_view.redraw_blocks_with_current_data)
        self.error_handler.error_occurred.connect(self.show_error_message)
        self.schedule_view.edit_block_requested.connect(self.open_schedule_editor)
        self.schedule_view.add_block_requested.connect(self.open_new_schedule_editor)

    def initUI(self):
        self.setWindowTitle('ClassGrid')
        geometry = self.settings.get("window_geometry", DEFAULT_WINDOW_GEOMETRY)
        self.setGeometry(*geometry)

        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(10, 10, 10, 10)

        top_bar = QHBoxLayout()
        refresh_button = QPushButton("새로고침")
        refresh_button.clicked.connect(self.refresh)
        self.status_label = QLabel("")
        top_bar.addWidget(refresh_button)
        top_bar.addStretch(1)
        top_bar.addWidget(self.status_label)
        main_layout.addLayout(top_bar)

        self.schedule_view = ScheduleGridView(self, self.interaction_settings)
        self.schedule_view.set_view_mode(self.settings.get("view_mode", WEEK_VIEW))
        main_layout.addWidget(self.schedule_view)

    def start(self):
        self.refresh()

    def refresh(self):
        self.data_manager.load_schedules()

    def on_sync_state_changed(self, loading):
        self.status_label.setText("불러오는 중..." if loading else "")

    def open_schedule_editor(self, block):
        if self.active_dialog is not None:
            logger.debug("편집 창이 이미 열려 있습니다")
            self.active_dialog.activateWindow()
            return
        logger.info(f"시간표 편집 요청: {block.id} '{block.title}'")
        editor = ScheduleEditorWindow(self.data_manager, block=block, parent=self,
                                      debounce_ms=self.interaction_settings['conflict_debounce_ms'])
        self._run_editor(editor)

    def open_new_schedule_editor(self, day, start_minutes):
        if self.active_dialog is not None:
            self.active_dialog.activateWindow()
            return
        editor = ScheduleEditorWindow(self.data_manager, day=day, start_minutes=start_minutes, parent=self,
                                      debounce_ms=self.interaction_settings['conflict_debounce_ms'])
        self._run_editor(editor)

    def _run_editor(self, editor):
        self.active_dialog = editor
        result = editor.exec()
        self.active_dialog = None

        if result == QDialog.DialogCode.Accepted:
            if editor.mode == 'new':
                fields = editor.get_fields()
                block = self.data_manager.new_block(fields.pop('day_of_week'), fields.pop('start_minutes'),
                                                    fields.pop('end_minutes'), **fields)
                self.data_manager.create_schedule(block)
            else:
                changed = editor.changed_fields()
                if changed:
                    self.data_manager.update_schedule(editor.block.id, changed)
        elif result == ScheduleEditorWindow.DeleteRole:
            self.data_manager.delete_schedule(editor.block.id)

    def show_error_message(self, title, message, suggestions=None):
        text = message
        if suggestions:
            text += "\n\n" + ErrorMessages.format_suggestions(suggestions)
        # 드래그 처리 도중 모달 루프가 돌지 않도록 다음 이벤트 루프에서 표시
        QTimer.singleShot(0, lambda: QMessageBox.warning(self, title, text))

    def closeEvent(self, event):
        self.schedule_view.teardown()
        self.settings["window_geometry"] = [self.x(), self.y(), self.width(), self.height()]
        self.settings["view_mode"] = self.schedule_view.view_mode
        try:
            save_settings_safe(self.settings, preserve_keys=[])
        except SettingsError as e:
            self.error_handler.handle_exception(e, context="closeEvent")
        super().closeEvent(event)


def main():
    setup_logger(log_file=ERROR_LOG_FILE)
    settings = load_settings()

    if settings.get("provider", LOCAL_PROVIDER_NAME) == LOCAL_PROVIDER_NAME:
        db_manager = get_db_manager()
        db_manager.seed_defaults()
        logger.info(f"로컬 DB: {db_manager.get_stats()}")

    app = QApplication(sys.argv)
    widget = MainWidget(settings)
    widget.show()
    widget.start()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
