# tests/test_settings_manager.py
import unittest
import os
import sys
import tempfile

# 프로젝트 루트 경로를 sys.path에 추가
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from settings_manager import save_settings, load_settings, save_settings_safe, get_interaction_settings
from error_messages import SettingsError


class TestSettingsManager(unittest.TestCase):

    def setUp(self):
        """테스트마다 임시 폴더의 settings.json을 사용합니다."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.settings_file = os.path.join(self.temp_dir.name, 'settings.json')

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_save_and_load_settings(self):
        """설정을 저장하고 다시 불러오는 기능이 정상 동작하는지 테스트합니다."""
        test_settings = {
            "provider": "RemoteScheduleProvider",
            "academy_id": "academy-1",
            "long_press_ms": 700,
        }

        save_settings(test_settings, self.settings_file)

        self.assertTrue(os.path.exists(self.settings_file))
        self.assertEqual(load_settings(self.settings_file), test_settings)

    def test_load_settings_no_file(self):
        """설정 파일이 없을 때, 빈 딕셔너리를 반환하는지 테스트합니다."""
        self.assertEqual(load_settings(self.settings_file), {})

    def test_load_corrupted_settings(self):
        with open(self.settings_file, "w", encoding="utf-8") as f:
            f.write("{ not json")
        with self.assertLogs('settings_manager', level='WARNING'):
            self.assertEqual(load_settings(self.settings_file), {})

    def test_save_settings_safe_preserves_keys(self):
        """보존 키는 기존 파일 값을 유지하고 나머지는 병합되어야 합니다."""
        save_settings({"window_geometry": [1, 2, 3, 4], "theme": "dark"}, self.settings_file)

        save_settings_safe({"window_geometry": [9, 9, 9, 9], "read_only": True},
                           settings_file=self.settings_file)

        self.assertEqual(load_settings(self.settings_file),
                         {"window_geometry": [1, 2, 3, 4], "theme": "dark", "read_only": True})

    def test_save_to_unwritable_path_raises(self):
        missing_dir = os.path.join(self.temp_dir.name, 'no', 'such', 'dir', 'settings.json')
        with self.assertRaises(SettingsError):
            save_settings({}, missing_dir)

    def test_interaction_defaults(self):
        resolved = get_interaction_settings({})

        self.assertEqual(resolved['long_press_ms'], 500)
        self.assertEqual(resolved['resize_edge_px'], 10)
        self.assertEqual(resolved['conflict_debounce_ms'], 500)
        self.assertEqual(resolved['max_visible_group_size'], 3)
        self.assertEqual((resolved['min_time'], resolved['max_time']), (540, 1320))
        self.assertFalse(resolved['read_only'])

    def test_interaction_overrides_and_invalid_values(self):
        """유효한 값은 반영하고 잘못된 값은 경고 후 기본값을 씁니다."""
        settings = {
            "long_press_ms": 800,
            "resize_edge_px": "wide",
            "conflict_debounce_ms": -1,
            "max_visible_group_size": True,
            "grid_min_time": "08:00",
            "grid_max_time": "23:00",
            "read_only": True,
        }

        with self.assertLogs('settings_manager', level='WARNING'):
            resolved = get_interaction_settings(settings)

        self.assertEqual(resolved['long_press_ms'], 800)
        self.assertEqual(resolved['resize_edge_px'], 10)
        self.assertEqual(resolved['conflict_debounce_ms'], 500)
        self.assertEqual(resolved['max_visible_group_size'], 3)
        self.assertEqual((resolved['min_time'], resolved['max_time']), (480, 1380))
        self.assertTrue(resolved['read_only'])

    def test_invalid_time_range_falls_back(self):
        for settings in ({"grid_min_time": "18:00", "grid_max_time": "09:00"},
                         {"grid_min_time": "09:10"},
                         {"grid_max_time": "25:00"}):
            with self.assertLogs('settings_manager', level='WARNING'):
                resolved = get_interaction_settings(settings)
            self.assertEqual((resolved['min_time'], resolved['max_time']), (540, 1320))


if __name__ == '__main__':
    unittest.main()
