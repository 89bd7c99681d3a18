# error_messages.py
"""
User-friendly error messages with recovery suggestions for the timetable editor.
Provides consistent, actionable error communication across the application.
"""

class ErrorMessages:
    """Centralized error message definitions with user-friendly language and recovery suggestions."""

    # Network and Connectivity Errors
    NETWORK_ERROR = {
        'title': 'Network Connection Error',
        'message': 'Unable to reach the timetable server. Please check your connection and try again.',
        'suggestions': [
            'Check your internet connection',
            'Verify the server address in settings',
            'Try again in a few minutes'
        ],
        'code': 'NETWORK_001'
    }

    CONNECTION_TIMEOUT = {
        'title': 'Connection Timeout',
        'message': 'The server is taking too long to respond.',
        'suggestions': [
            'Check your internet speed',
            'Try again later'
        ],
        'code': 'NETWORK_002'
    }

    SERVER_ERROR = {
        'title': 'Server Error',
        'message': 'The server rejected or failed to process the request.',
        'suggestions': [
            'Try again in a few minutes',
            'Reload the timetable to see the current state'
        ],
        'code': 'NETWORK_003'
    }

    # Database Errors
    DATABASE_ERROR = {
        'title': 'Database Error',
        'message': 'An error occurred while accessing the timetable database.',
        'suggestions': [
            'Restart the application',
            'Check if the database file is corrupted'
        ],
        'code': 'DB_001'
    }

    # Schedule Errors
    COMMIT_FAILED = {
        'title': 'Save Failed',
        'message': 'The change could not be saved. The timetable was restored to its last saved state.',
        'suggestions': [
            'Try the change again',
            'Reload the timetable if the problem persists'
        ],
        'code': 'SCHEDULE_001'
    }

    INVALID_SCHEDULE = {
        'title': 'Invalid Schedule',
        'message': 'The class time or day is not valid.',
        'suggestions': [
            'Use HH:MM (24-hour) times',
            'Make sure the end time is after the start time'
        ],
        'code': 'SCHEDULE_002'
    }

    CAPACITY_EXCEEDED = {
        'title': 'Room Capacity Exceeded',
        'message': 'The requested number of students does not fit in the selected room.',
        'suggestions': [
            'Lower the maximum number of students',
            'Choose a larger room'
        ],
        'code': 'SCHEDULE_003'
    }

    SCHEDULE_CONFLICT = {
        'title': 'Schedule Conflict',
        'message': 'The instructor or room is already booked at this time.',
        'suggestions': [
            'Pick a different time',
            'Assign another instructor or room',
            'Save anyway if the overlap is intended'
        ],
        'code': 'SCHEDULE_004'
    }

    # Configuration Errors
    SETTINGS_ERROR = {
        'title': 'Settings Error',
        'message': 'Unable to save or load application settings.',
        'suggestions': [
            'Check file permissions in the data folder',
            'Settings will use default values'
        ],
        'code': 'CONFIG_001'
    }

    UNEXPECTED_ERROR = {
        'title': 'Unexpected Error',
        'message': 'An unexpected error has occurred.',
        'suggestions': [
            'Try the operation again',
            'Restart the application if problem persists'
        ],
        'code': 'APP_002'
    }

    @staticmethod
    def get_message(error_type):
        """
        Get error message details by error type.

        Args:
            error_type (str): The error type constant name

        Returns:
            dict: Error message details with title, message, suggestions, and code
        """
        return getattr(ErrorMessages, error_type, ErrorMessages.UNEXPECTED_ERROR)

    @staticmethod
    def format_suggestions(suggestions):
        """
        Format suggestion list for display.

        Args:
            suggestions (list): List of suggestion strings

        Returns:
            str: Formatted suggestions string
        """
        if not suggestions:
            return ""

        if len(suggestions) == 1:
            return f"Suggestion: {suggestions[0]}"

        formatted = "Suggestions:\n"
        for i, suggestion in enumerate(suggestions, 1):
            formatted += f"{i}. {suggestion}\n"

        return formatted.strip()


class ScheduleError(Exception):
    """Base exception class for timetable errors."""

    def __init__(self, message, error_code=None, suggestions=None):
        super().__init__(message)
        self.error_code = error_code
        self.suggestions = suggestions or []


class ValidationError(ScheduleError, ValueError):
    """Raised when a boundary value (time string, day token, field) is malformed."""

    def __init__(self, field, message):
        super().__init__(message, error_code=ErrorMessages.INVALID_SCHEDULE['code'])
        self.field = field


class CapacityError(ScheduleError):
    """Raised when a submission exceeds the room capacity. Not overridable."""

    def __init__(self, message):
        super().__init__(message, error_code=ErrorMessages.CAPACITY_EXCEEDED['code'],
                         suggestions=ErrorMessages.CAPACITY_EXCEEDED['suggestions'])


class ProviderError(ScheduleError):
    """Exception for store-side failures (rejected create/update/delete)."""
    pass


class NetworkError(ProviderError):
    """Exception for network-related errors."""
    pass


class DatabaseError(ProviderError):
    """Exception for database-related errors."""
    pass


class SettingsError(ScheduleError):
    """Exception for settings and configuration errors."""
    pass
