# providers/local_provider.py
import sqlite3
import uuid
import logging

from .base_provider import BaseScheduleProvider
from config import LOCAL_PROVIDER_NAME
from db_manager import get_db_manager
from error_messages import DatabaseError, ProviderError, ValidationError
from schedule_model import ScheduleBlock, Room, Instructor, day_index

logger = logging.getLogger(__name__)

# 내부 필드 이름 -> schedules 테이블 컬럼
_COLUMNS = {
    'title': 'title',
    'description': 'description',
    'day_of_week': 'day_of_week',
    'start_minutes': 'start_minutes',
    'end_minutes': 'end_minutes',
    'instructor_id': 'instructor_id',
    'room_id': 'room_id',
    'color': 'color',
    'capacity': 'max_students',
    'is_active': 'is_active',
}

_SELECT_SCHEDULES = """
    SELECT s.id, s.day_of_week, s.start_minutes, s.end_minutes, s.title, s.description,
           s.instructor_id, s.room_id, s.color, s.max_students, s.is_active,
           i.name, r.name
    FROM schedules s
    LEFT JOIN instructors i ON i.id = s.instructor_id
    LEFT JOIN rooms r ON r.id = s.room_id
"""


def _row_to_block(row):
    (schedule_id, day, start, end, title, description, instructor_id, room_id,
     color, max_students, is_active, instructor_name, room_name) = row
    block = ScheduleBlock(
        id=schedule_id, day_of_week=day, start_minutes=start, end_minutes=end,
        title=title or '', description=description,
        instructor_id=instructor_id, room_id=room_id,
        capacity=max_students, is_active=bool(is_active),
        instructor_name=instructor_name, room_name=room_name,
    )
    if color:
        block = block.with_changes(color=color)
    return block


class LocalScheduleProvider(BaseScheduleProvider):
    def __init__(self, settings, db_manager=None):
        self.settings = settings
        self.name = LOCAL_PROVIDER_NAME
        self.db_manager = db_manager or get_db_manager()

    def _get_connection(self):
        return self.db_manager.get_local_connection()

    def list_schedules(self, filters=None):
        clauses = []
        params = []
        if filters is not None:
            # 요일/강사/강의실 필터는 SQL에서 처리
            if filters.days:
                days = [day_index(d) for d in filters.days]
                clauses.append(f"s.day_of_week IN ({','.join('?' * len(days))})")
                params.extend(days)
            if filters.instructor_ids:
                clauses.append(f"s.instructor_id IN ({','.join('?' * len(filters.instructor_ids))})")
                params.extend(filters.instructor_ids)
            if filters.room_ids:
                clauses.append(f"s.room_id IN ({','.join('?' * len(filters.room_ids))})")
                params.extend(filters.room_ids)

        query = _SELECT_SCHEDULES
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY s.day_of_week, s.start_minutes"

        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                return [_row_to_block(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error(f"로컬 시간표 조회 중 DB 오류: {e}", exc_info=True)
            raise DatabaseError(f"로컬 시간표 조회 중 DB 오류가 발생했습니다: {e}") from e

    def get_schedule(self, schedule_id):
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(_SELECT_SCHEDULES + " WHERE s.id = ?", (schedule_id,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"로컬 시간표 조회 중 DB 오류가 발생했습니다: {e}") from e
        return _row_to_block(row) if row else None

    def create_schedule(self, block):
        schedule_id = uuid.uuid4().hex
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO schedules (id, day_of_week, start_minutes, end_minutes, title, description,
                                           instructor_id, room_id, color, max_students, is_active)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (schedule_id, block.day_of_week, block.start_minutes, block.end_minutes,
                      block.title, block.description, block.instructor_id, block.room_id,
                      block.color, block.capacity, int(block.is_active)))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"로컬 시간표 추가 중 DB 오류: {e}", exc_info=True)
            raise DatabaseError(f"로컬 시간표 추가 중 DB 오류가 발생했습니다: {e}") from e
        logger.info(f"로컬 시간표 추가: {schedule_id} ({block.day_token} {block.time_text()})")
        return schedule_id

    def update_schedule(self, schedule_id, fields):
        if not fields:
            return
        unknown = [name for name in fields if name not in _COLUMNS]
        if unknown:
            raise ValidationError(unknown[0], f"수정할 수 없는 필드입니다: {unknown[0]}")

        current = self.get_schedule(schedule_id)
        if current is None:
            raise ProviderError(f"존재하지 않는 시간표입니다: {schedule_id}")
        # 부분 수정 후에도 시작 < 종료 가 유지되는지 모델로 확인
        current.with_changes(**fields)

        assignments = ", ".join(f"{_COLUMNS[name]} = ?" for name in fields)
        values = [int(v) if name == 'is_active' else v for name, v in fields.items()]
        try:
            with self._get_connection() as conn:
                conn.execute(
                    f"UPDATE schedules SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    values + [schedule_id])
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"로컬 시간표 수정 중 DB 오류: {e}", exc_info=True)
            raise DatabaseError(f"로컬 시간표 수정 중 DB 오류가 발생했습니다: {e}") from e

    def delete_schedule(self, schedule_id):
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM schedules WHERE id = ?", (schedule_id,))
                deleted = cursor.rowcount
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"로컬 시간표 삭제 중 DB 오류: {e}", exc_info=True)
            raise DatabaseError(f"로컬 시간표 삭제 중 DB 오류가 발생했습니다: {e}") from e
        if deleted == 0:
            raise ProviderError(f"존재하지 않는 시간표입니다: {schedule_id}")

    def find_conflicts(self, candidate, exclude_id=None):
        column = 'instructor_id' if candidate.resource_type == 'instructor' else 'room_id'
        query = _SELECT_SCHEDULES + f"""
            WHERE s.{column} = ? AND s.day_of_week = ? AND s.is_active = 1
              AND s.start_minutes < ? AND ? < s.end_minutes
        """
        params = [candidate.resource_id, candidate.day, candidate.end_minutes, candidate.start_minutes]
        if exclude_id is not None:
            query += " AND s.id != ?"
            params.append(str(exclude_id))
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                return [_row_to_block(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise DatabaseError(f"충돌 조회 중 DB 오류가 발생했습니다: {e}") from e

    def get_room(self, room_id):
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id, name, capacity FROM rooms WHERE id = ?", (room_id,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"강의실 조회 중 DB 오류가 발생했습니다: {e}") from e
        return Room(*row) if row else None

    def list_rooms(self):
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id, name, capacity FROM rooms ORDER BY name")
                return [Room(*row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise DatabaseError(f"강의실 목록 조회 중 DB 오류가 발생했습니다: {e}") from e

    def list_instructors(self):
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id, name FROM instructors ORDER BY name")
                return [Instructor(*row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise DatabaseError(f"강사 목록 조회 중 DB 오류가 발생했습니다: {e}") from e
