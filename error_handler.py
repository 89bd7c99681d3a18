# error_handler.py
"""
Centralized error handling for the timetable editor.
Classifies exceptions into user-facing messages, logs them and notifies the shell.
"""

import logging
import time
from typing import Optional, List

from PyQt6.QtCore import QObject, pyqtSignal

from error_messages import (ErrorMessages, ScheduleError, NetworkError, DatabaseError,
                            ValidationError, CapacityError, SettingsError)

logger = logging.getLogger(__name__)


def classify_exception(exception: Exception, user_message: str = None) -> dict:
    """Map an exception to an ErrorMessages entry (title, message, suggestions, code)."""
    if user_message:
        return {
            'title': 'Error',
            'message': user_message,
            'suggestions': [],
            'code': 'CUSTOM_001'
        }

    if isinstance(exception, NetworkError):
        return ErrorMessages.NETWORK_ERROR
    elif isinstance(exception, DatabaseError):
        return ErrorMessages.DATABASE_ERROR
    elif isinstance(exception, CapacityError):
        return dict(ErrorMessages.CAPACITY_EXCEEDED, message=str(exception))
    elif isinstance(exception, ValidationError):
        return dict(ErrorMessages.INVALID_SCHEDULE, message=str(exception))
    elif isinstance(exception, SettingsError):
        return ErrorMessages.SETTINGS_ERROR
    elif isinstance(exception, ScheduleError):
        return {
            'title': ErrorMessages.COMMIT_FAILED['title'],
            'message': str(exception),
            'suggestions': exception.suggestions or ErrorMessages.COMMIT_FAILED['suggestions'],
            'code': exception.error_code or ErrorMessages.COMMIT_FAILED['code']
        }
    elif isinstance(exception, TimeoutError):
        return ErrorMessages.CONNECTION_TIMEOUT
    elif isinstance(exception, ConnectionError):
        return ErrorMessages.NETWORK_ERROR
    else:
        return ErrorMessages.UNEXPECTED_ERROR


class ErrorHandler(QObject):
    """Logs exceptions and forwards a user-facing summary to whoever shows messages."""

    error_occurred = pyqtSignal(str, str, list)  # title, message, suggestions

    SUPPRESS_AFTER = 5
    SUPPRESS_WINDOW_SECONDS = 60

    def __init__(self, parent=None):
        super().__init__(parent)
        self.error_count = 0
        self.last_error_time = 0

    def handle_exception(self,
                         exception: Exception,
                         context: Optional[str] = None,
                         user_message: Optional[str] = None) -> dict:
        """
        Log an exception and emit error_occurred unless the shell is being flooded.

        Returns:
            dict: The classified error info.
        """
        self.error_count += 1
        logger.error(f"Exception in {context or 'Unknown'}: {type(exception).__name__}: {exception}",
                     exc_info=exception)

        error_info = classify_exception(exception, user_message)
        if not self._is_error_suppressed():
            self.error_occurred.emit(error_info['title'], error_info['message'],
                                     list(error_info['suggestions']))
        return error_info

    def handle_message(self, message: str, error_type: str = 'COMMIT_FAILED'):
        """Forward a plain message (e.g. from the data manager) using a catalog entry's title."""
        error_info = ErrorMessages.get_message(error_type)
        suggestions: List[str] = list(error_info['suggestions'])
        if not self._is_error_suppressed():
            self.error_occurred.emit(error_info['title'], message, suggestions)

    def _is_error_suppressed(self) -> bool:
        """Check if error messages should be suppressed due to frequency."""
        current_time = time.time()

        if self.error_count > self.SUPPRESS_AFTER and \
                (current_time - self.last_error_time) < self.SUPPRESS_WINDOW_SECONDS:
            return True

        self.last_error_time = current_time
        return False

    def reset_error_count(self):
        self.error_count = 0
        self.last_error_time = 0
