# views/qt_support.py
"""Qt implementations of the timer and pointer-capture capabilities used by the grid controllers."""
import logging

from PyQt6.QtCore import QTimer

logger = logging.getLogger(__name__)


class QtTimerHandle:
    def __init__(self, timer):
        self._timer = timer

    @property
    def active(self):
        return self._timer is not None and self._timer.isActive()

    def cancel(self):
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


class QtTimerFactory:
    """start(ms, callback) -> handle with cancel(). Timers are parented to the owning widget."""

    def __init__(self, parent=None):
        self.parent = parent

    def start(self, interval_ms, callback):
        timer = QTimer(self.parent)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer)

        def _fire():
            # 만료 후 핸들을 비워 두 번 취소되지 않도록
            if handle._timer is timer:
                handle._timer = None
                timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        timer.start(int(interval_ms))
        return handle


class WidgetPointerCapture:
    """Routes all mouse events to the widget while a drag is active, even outside its bounds."""

    def __init__(self, widget):
        self.widget = widget
        self.active = False

    def acquire(self):
        if self.active:
            return
        self.widget.grabMouse()
        self.active = True
        logger.debug("pointer captured")

    def release(self):
        if not self.active:
            return
        self.widget.releaseMouse()
        self.active = False
        logger.debug("pointer released")
