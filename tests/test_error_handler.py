# tests/test_error_handler.py
import unittest
import os
import sys

# 프로젝트 루트 경로를 sys.path에 추가
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from PyQt6.QtCore import QCoreApplication

from error_handler import ErrorHandler, classify_exception
from error_messages import (ErrorMessages, NetworkError, DatabaseError, CapacityError,
                            ValidationError, ProviderError)


class TestClassifyException(unittest.TestCase):

    def test_catalog_mapping(self):
        self.assertEqual(classify_exception(NetworkError("down")), ErrorMessages.NETWORK_ERROR)
        self.assertEqual(classify_exception(DatabaseError("locked")), ErrorMessages.DATABASE_ERROR)
        self.assertEqual(classify_exception(TimeoutError()), ErrorMessages.CONNECTION_TIMEOUT)
        self.assertEqual(classify_exception(KeyError('x')), ErrorMessages.UNEXPECTED_ERROR)

    def test_schedule_errors_keep_their_message(self):
        capacity = classify_exception(CapacityError("강의실 수용 인원(20명)을 초과합니다."))
        self.assertEqual(capacity['code'], ErrorMessages.CAPACITY_EXCEEDED['code'])
        self.assertIn('20명', capacity['message'])

        invalid = classify_exception(ValidationError('startTime', "HH:MM 형식이 아닙니다"))
        self.assertEqual(invalid['code'], ErrorMessages.INVALID_SCHEDULE['code'])

        rejected = classify_exception(ProviderError("중복된 시간표", error_code='SERVER_409'))
        self.assertEqual((rejected['message'], rejected['code']), ("중복된 시간표", 'SERVER_409'))

    def test_user_message_overrides(self):
        info = classify_exception(ValueError(), user_message="직접 쓴 메시지")
        self.assertEqual(info['message'], "직접 쓴 메시지")


class TestErrorHandler(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        self.handler = ErrorHandler()
        self.emitted = []
        self.handler.error_occurred.connect(lambda title, message, suggestions:
                                            self.emitted.append((title, message, suggestions)))

    def test_handle_exception_logs_and_emits(self):
        with self.assertLogs('error_handler', level='ERROR'):
            self.handler.handle_exception(NetworkError("down"), context="load_schedules")

        title, message, suggestions = self.emitted[0]
        self.assertEqual(title, ErrorMessages.NETWORK_ERROR['title'])
        self.assertEqual(suggestions, ErrorMessages.NETWORK_ERROR['suggestions'])

    def test_handle_message_uses_catalog_title(self):
        self.handler.handle_message("저장하지 못했습니다")
        self.assertEqual(self.emitted, [(ErrorMessages.COMMIT_FAILED['title'], "저장하지 못했습니다",
                                         ErrorMessages.COMMIT_FAILED['suggestions'])])

    def test_repeated_errors_are_suppressed(self):
        """짧은 시간에 오류가 몰리면 사용자 알림을 멈춰야 합니다."""
        with self.assertLogs('error_handler', level='ERROR'):
            for _ in range(ErrorHandler.SUPPRESS_AFTER + 3):
                self.handler.handle_exception(DatabaseError("locked"))

        self.assertEqual(len(self.emitted), ErrorHandler.SUPPRESS_AFTER)

        self.handler.reset_error_count()
        self.handler.handle_message("다시 알림")
        self.assertEqual(self.emitted[-1][1], "다시 알림")


if __name__ == '__main__':
    unittest.main()
