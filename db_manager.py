# db_manager.py
"""
Database management for the local timetable store (schedules, rooms, instructors)
"""

import sqlite3
import logging
from contextlib import contextmanager
from config import DB_FILE

logger = logging.getLogger(__name__)

# 처음 실행할 때 채워 넣는 기본 강의실/강사
DEFAULT_ROOMS = [
    ('classroom-1', '수학실 A', 20),
    ('classroom-2', '영어실 B', 15),
    ('classroom-3', '과학실 C', 18),
]
DEFAULT_INSTRUCTORS = [
    ('instructor-1', '이수학'),
    ('instructor-2', '박영어'),
    ('instructor-3', '최과학'),
]


class DatabaseManager:
    """Owns the sqlite file and its schema. Hands out short-lived connections."""

    def __init__(self, db_file=DB_FILE, connection=None):
        self.db_file = db_file
        # 테스트에서는 :memory: 연결을 주입해 파일을 만들지 않는다
        self._connection = connection
        self._init_databases()

    def _init_databases(self):
        """Create tables if they do not exist yet"""
        with self.get_local_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schedules (
                    id TEXT PRIMARY KEY,
                    day_of_week INTEGER NOT NULL,
                    start_minutes INTEGER NOT NULL,
                    end_minutes INTEGER NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    description TEXT,
                    instructor_id TEXT,
                    room_id TEXT,
                    color TEXT,
                    max_students INTEGER,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    CHECK (start_minutes < end_minutes)
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_schedules_day ON schedules (day_of_week)")

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS rooms (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    capacity INTEGER
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS instructors (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL
                )
            """)

            conn.commit()

    @contextmanager
    def get_local_connection(self):
        """Get connection to the timetable database"""
        if self._connection is not None:
            yield self._connection
            return
        conn = sqlite3.connect(self.db_file)
        try:
            yield conn
        finally:
            conn.close()

    def seed_defaults(self):
        """Fill rooms/instructors on first run. Existing rows are left alone."""
        with self.get_local_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM rooms")
            room_count = cursor.fetchone()[0]
            cursor.execute("SELECT COUNT(*) FROM instructors")
            instructor_count = cursor.fetchone()[0]

            if room_count == 0:
                cursor.executemany("INSERT INTO rooms (id, name, capacity) VALUES (?, ?, ?)", DEFAULT_ROOMS)
            if instructor_count == 0:
                cursor.executemany("INSERT INTO instructors (id, name) VALUES (?, ?)", DEFAULT_INSTRUCTORS)
            conn.commit()

            if room_count == 0 or instructor_count == 0:
                logger.info(f"Seeded defaults: {len(DEFAULT_ROOMS)} rooms, {len(DEFAULT_INSTRUCTORS)} instructors")

    def get_stats(self):
        """Row counts per table"""
        stats = {}
        try:
            with self.get_local_connection() as conn:
                cursor = conn.cursor()
                for table in ('schedules', 'rooms', 'instructors'):
                    cursor.execute(f"SELECT COUNT(*) FROM {table}")
                    stats[table] = cursor.fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Error getting database stats: {e}")
            stats['error'] = str(e)
        return stats


# Singleton instance
_db_manager = None

def get_db_manager():
    """Get singleton database manager instance"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager
