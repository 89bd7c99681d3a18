# config.py
import os
import sys

def get_data_dir():
    """Get the appropriate data directory for user files."""
    override = os.environ.get("CLASSGRID_DATA_DIR")
    if override:
        data_dir = override
    elif hasattr(sys, '_MEIPASS'):
        if sys.platform == "win32":
            data_dir = os.path.join(os.path.expanduser('~'), 'AppData', 'Local', 'ClassGrid')
        else:
            data_dir = os.path.join(os.path.expanduser('~'), '.classgrid')
    else:
        data_dir = os.path.dirname(os.path.abspath(__file__))

    os.makedirs(data_dir, exist_ok=True)
    return data_dir

# --- File Paths ---
_DATA_DIR = get_data_dir()
DB_FILE = os.path.join(_DATA_DIR, "timetable.db")
SETTINGS_FILE = os.path.join(_DATA_DIR, "settings.json")
ERROR_LOG_FILE = os.path.join(_DATA_DIR, "error.log")

# --- Identifiers ---
LOCAL_PROVIDER_NAME = "LocalScheduleProvider"
REMOTE_PROVIDER_NAME = "RemoteScheduleProvider"
DEFAULT_REMOTE_BASE_URL = "http://localhost:3000"
REMOTE_REQUEST_TIMEOUT = 10  # seconds

# --- Week ---
DAYS_OF_WEEK = ('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY')
DAY_LABELS = {
    'MONDAY': '월요일',
    'TUESDAY': '화요일',
    'WEDNESDAY': '수요일',
    'THURSDAY': '목요일',
    'FRIDAY': '금요일',
    'SATURDAY': '토요일',
    'SUNDAY': '일요일',
}

# --- Grid time model (minutes since midnight) ---
SNAP_MINUTES = 15
MIN_CREATE_MINUTES = 30
MIN_RESIZE_MINUTES = 15
MAX_RESIZE_MINUTES = 12 * 60
DEFAULT_MIN_TIME = "09:00"
DEFAULT_MAX_TIME = "22:00"

# --- Gesture thresholds (tunable through settings) ---
RESIZE_EDGE_PX = 10
LONG_PRESS_MS = 500
CONFLICT_DEBOUNCE_MS = 500

# --- Layout ---
MAX_VISIBLE_GROUP_SIZE = 3
HEADER_HEIGHT = 60
TIME_COLUMN_WIDTH = 80
SLOT_HEIGHT = 20  # pixels per 15-minute slot
HORIZONTAL_BLOCK_GAP = 2
COLUMN_INSET = 2
MIN_BLOCK_HEIGHT = 12

# --- UI Defaults ---
DEFAULT_WINDOW_GEOMETRY = [200, 200, 1100, 760]
DEFAULT_BLOCK_COLOR = '#3B82F6'
NEW_BLOCK_TITLE = '새 수업'
