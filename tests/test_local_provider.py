import unittest
import sqlite3
import os

# 테스트 대상 모듈을 import하기 위해 경로를 추가합니다.
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_validator import ConflictCandidate, RESOURCE_ROOM, RESOURCE_INSTRUCTOR
from db_manager import DatabaseManager
from error_messages import ProviderError, ValidationError
from providers.local_provider import LocalScheduleProvider
from schedule_model import ScheduleBlock, ScheduleFilter


class TestLocalScheduleProvider(unittest.TestCase):

    def setUp(self):
        """각 테스트 메소드 실행 전에 호출됩니다."""
        # :memory:를 사용하여 실제 파일이 아닌 인메모리 DB를 사용합니다.
        self.db_connection = sqlite3.connect(":memory:")
        self.db_manager = DatabaseManager(connection=self.db_connection)
        self.db_manager.seed_defaults()
        self.provider = LocalScheduleProvider({}, db_manager=self.db_manager)

        # 월요일 14:00-15:30, 강의실 classroom-1, 강사 instructor-1
        self.sample_block = ScheduleBlock(
            id=None, day_of_week=0, start_minutes=840, end_minutes=930, title='수학 A반',
            instructor_id='instructor-1', room_id='classroom-1', capacity=15,
        )

    def tearDown(self):
        """각 테스트 메소드 실행 후에 호출됩니다."""
        self.db_connection.close()

    def test_create_and_list(self):
        """시간표 추가 후 강사/강의실 이름과 함께 조회되어야 합니다."""
        schedule_id = self.provider.create_schedule(self.sample_block)
        self.assertTrue(schedule_id)

        blocks = self.provider.list_schedules()

        self.assertEqual(len(blocks), 1, "시간표가 정확히 1개 조회되어야 합니다.")
        block = blocks[0]
        self.assertEqual(block.id, schedule_id)
        self.assertEqual((block.start_minutes, block.end_minutes), (840, 930))
        self.assertEqual(block.room_name, '수학실 A')
        self.assertEqual(block.instructor_name, '이수학')
        self.assertEqual(block.capacity, 15)

    def test_list_with_filters(self):
        self.provider.create_schedule(self.sample_block)
        self.provider.create_schedule(self.sample_block.with_changes(day_of_week=2, room_id='classroom-2'))

        self.assertEqual(len(self.provider.list_schedules(ScheduleFilter(days=['WEDNESDAY']))), 1)
        self.assertEqual(len(self.provider.list_schedules(ScheduleFilter(room_ids=['classroom-1']))), 1)
        self.assertEqual(len(self.provider.list_schedules(ScheduleFilter(instructor_ids=['instructor-1']))), 2)
        self.assertEqual(self.provider.list_schedules(ScheduleFilter(instructor_ids=['nobody'])), [])

    def test_partial_update(self):
        """변경된 필드만 수정되고 나머지는 그대로여야 합니다."""
        schedule_id = self.provider.create_schedule(self.sample_block)

        self.provider.update_schedule(schedule_id, {'end_minutes': 960})

        block = self.provider.get_schedule(schedule_id)
        self.assertEqual((block.start_minutes, block.end_minutes), (840, 960))
        self.assertEqual(block.title, '수학 A반')

    def test_invalid_updates(self):
        schedule_id = self.provider.create_schedule(self.sample_block)

        with self.assertRaises(ValidationError):
            self.provider.update_schedule(schedule_id, {'start_minutes': 930})
        with self.assertRaises(ValidationError):
            self.provider.update_schedule(schedule_id, {'academy': 'x'})
        with self.assertRaises(ProviderError):
            self.provider.update_schedule('missing', {'end_minutes': 960})

        self.assertEqual(self.provider.get_schedule(schedule_id).start_minutes, 840)

    def test_delete(self):
        schedule_id = self.provider.create_schedule(self.sample_block)

        self.provider.delete_schedule(schedule_id)

        self.assertEqual(self.provider.list_schedules(), [])
        with self.assertRaises(ProviderError):
            self.provider.delete_schedule(schedule_id)

    def test_find_conflicts(self):
        """같은 강의실 월 15:00-16:00은 충돌, 15:30-16:30과 다른 강의실은 충돌 아님"""
        schedule_id = self.provider.create_schedule(self.sample_block)

        overlapping = ConflictCandidate(RESOURCE_ROOM, 'classroom-1', 0, 900, 960)
        touching = ConflictCandidate(RESOURCE_ROOM, 'classroom-1', 0, 930, 990)
        other_room = ConflictCandidate(RESOURCE_ROOM, 'classroom-2', 0, 900, 960)
        instructor = ConflictCandidate(RESOURCE_INSTRUCTOR, 'instructor-1', 0, 900, 960)

        self.assertEqual([b.id for b in self.provider.find_conflicts(overlapping)], [schedule_id])
        self.assertEqual(self.provider.find_conflicts(touching), [])
        self.assertEqual(self.provider.find_conflicts(other_room), [])
        self.assertEqual(len(self.provider.find_conflicts(instructor)), 1)
        self.assertEqual(self.provider.find_conflicts(overlapping, exclude_id=schedule_id), [])

        self.provider.update_schedule(schedule_id, {'is_active': False})
        self.assertEqual(self.provider.find_conflicts(overlapping), [])

    def test_rooms_and_instructors(self):
        self.assertEqual(len(self.provider.list_rooms()), 3)
        self.assertEqual(len(self.provider.list_instructors()), 3)
        self.assertEqual(self.provider.get_room('classroom-2').capacity, 15)
        self.assertIsNone(self.provider.get_room('nowhere'))

        self.db_connection.execute("UPDATE rooms SET capacity = 25 WHERE id = 'classroom-2'")
        self.db_connection.execute("INSERT INTO instructors (id, name) VALUES ('instructor-4', '정국어')")
        self.db_connection.commit()
        self.assertEqual(len(self.provider.list_instructors()), 4)
        self.assertEqual(self.provider.get_room('classroom-2').capacity, 25)
        self.assertEqual(self.db_manager.get_stats()['rooms'], 3)


if __name__ == '__main__':
    unittest.main()
