# tests/test_interaction.py
import unittest
import os
import sys

# 프로젝트 루트 경로를 sys.path에 추가
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from PyQt6.QtCore import QCoreApplication

from schedule_model import ScheduleBlock
from views.grid_geometry import GridGeometry, GridCell
from views.interaction import GridInteractionController, PointerEvent, PointerButton, DragMode
from views.layout_calculator import ScheduleLayoutCalculator

# --- 테스트용 가짜 타이머/포인터 캡처 ---

class FakeTimer:
    def __init__(self, interval_ms, callback):
        self.interval_ms = interval_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeTimerFactory:
    """start()된 타이머를 모아두고 테스트가 직접 만료시킵니다."""
    def __init__(self):
        self.timers = []

    def start(self, interval_ms, callback):
        timer = FakeTimer(interval_ms, callback)
        self.timers.append(timer)
        return timer


class FakePointerCapture:
    def __init__(self):
        self.active = False
        self.acquire_count = 0
        self.release_count = 0

    def acquire(self):
        self.active = True
        self.acquire_count += 1

    def release(self):
        self.active = False
        self.release_count += 1


def y_for(minutes):
    """기본 격자에서 분 -> y 좌표 (헤더 60px, 15분당 20px, 09:00 시작)"""
    return 60 + (minutes - 540) / 15 * 20


class TestGridInteractionController(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        # 월요일 10:00-11:00 블록: x 82~178, y 140~220
        self.geometry = GridGeometry(day_column_width=100)
        self.block = ScheduleBlock(id='b1', day_of_week=0, start_minutes=600, end_minutes=660,
                                   title='수학', instructor_id='T1', room_id='R1')
        self.timers = FakeTimerFactory()
        self.capture = FakePointerCapture()
        self.controller = self._make_controller(self.geometry, [self.block])

        self.clicks = []
        self.menus = []
        self.creates = []
        self.updates = []
        self.previews = []
        self.toggles = []
        self.controller.click_requested.connect(self.clicks.append)
        self.controller.context_menu_requested.connect(lambda block, cell: self.menus.append((block, cell)))
        self.controller.create_requested.connect(self.creates.append)
        self.controller.update_requested.connect(lambda block_id, fields: self.updates.append((block_id, fields)))
        self.controller.preview_changed.connect(self.previews.append)
        self.controller.overflow_toggle_requested.connect(self.toggles.append)

    def _make_controller(self, geometry, blocks, read_only=False):
        controller = GridInteractionController(geometry, self.timers, self.capture, read_only=read_only)
        positions, markers = ScheduleLayoutCalculator(blocks, geometry).calculate()
        controller.set_layout(positions, markers)
        return controller

    def press(self, x, y, button=PointerButton.PRIMARY):
        self.controller.on_pointer_down(PointerEvent(x, y, button))

    def move(self, x, y):
        self.controller.on_pointer_move(PointerEvent(x, y))

    def release(self, x, y):
        self.controller.on_pointer_up(PointerEvent(x, y))

    # --- 클릭 / 길게 누르기 ---

    def test_click_on_block_body(self):
        """본문을 눌렀다 떼면 클릭 의도만 나가고 타이머는 취소되어야 합니다."""
        self.press(120, 180)
        self.assertEqual(self.controller.mode, DragMode.PENDING_CLICK)
        self.assertEqual(self.timers.timers[0].interval_ms, 500)

        self.release(120, 180)

        self.assertEqual(self.clicks, [self.block])
        self.assertTrue(self.timers.timers[0].cancelled)
        self.assertEqual(self.controller.mode, DragMode.IDLE)
        self.assertEqual(self.updates, [])
        self.assertEqual(self.capture.acquire_count, 0)

    def test_long_press_moves_block_by_its_corner(self):
        """길게 누르면 이동 모드가 되고, 놓을 때 블록 좌상단 기준 칸으로 이동해야 합니다."""
        self.press(120, 180)
        self.timers.timers[0].fire()

        self.assertEqual(self.controller.mode, DragMode.MOVING)
        self.assertTrue(self.capture.active)

        # 잡은 위치(블록 안 38, 40)만큼 빼면 좌상단은 화요일 10:30
        self.move(220, 220)
        self.release(220, 220)

        self.assertEqual(self.clicks, [])
        self.assertEqual(self.updates, [('b1', {'day_of_week': 1, 'start_minutes': 630, 'end_minutes': 690})])
        self.assertFalse(self.capture.active)
        self.assertIsNone(self.previews[-1])

    def test_move_back_to_origin_emits_nothing(self):
        """원래 자리로 되돌려 놓으면 수정 의도를 보내지 않습니다."""
        self.press(120, 180)
        self.timers.timers[0].fire()
        self.move(300, 400)
        self.move(120, 180)
        self.release(120, 180)

        self.assertEqual(self.updates, [])
        self.assertEqual(self.controller.mode, DragMode.IDLE)

    def test_move_is_clamped_to_visible_range(self):
        """이동한 블록은 표시 종료 시각을 넘지 않아야 합니다."""
        self.press(120, 180)
        self.timers.timers[0].fire()
        self.release(120, 5000)

        block_id, fields = self.updates[0]
        self.assertEqual(fields['end_minutes'], self.geometry.max_time)
        self.assertEqual(fields['end_minutes'] - fields['start_minutes'], 60)

    def test_stale_long_press_timer_is_ignored(self):
        """이미 끝난 제스처의 타이머가 늦게 불려도 아무 일도 없어야 합니다."""
        self.press(120, 180)
        timer = self.timers.timers[0]
        self.release(120, 180)

        timer.callback()

        self.assertEqual(self.controller.mode, DragMode.IDLE)
        self.assertEqual(self.capture.acquire_count, 0)

    # --- 크기 조절 ---

    def test_resize_bottom_emits_only_end(self):
        """아래 가장자리를 끌면 종료 시각만 바뀌어야 합니다."""
        self.press(120, 215)
        self.assertEqual(self.controller.mode, DragMode.RESIZING_BOTTOM)
        self.assertTrue(self.capture.active)

        self.move(120, y_for(720))
        self.release(120, y_for(720))

        self.assertEqual(self.updates, [('b1', {'end_minutes': 720})])
        self.assertFalse(self.capture.active)

    def test_resize_top_keeps_minimum_duration(self):
        """위 가장자리를 끝 아래로 끌어도 최소 15분은 남아야 합니다."""
        self.press(120, 142)
        self.assertEqual(self.controller.mode, DragMode.RESIZING_TOP)

        self.release(120, 400)

        self.assertEqual(self.updates, [('b1', {'start_minutes': 645})])

    def test_resize_bottom_keeps_maximum_duration(self):
        """아래 가장자리는 12시간을 넘어 늘릴 수 없습니다."""
        geometry = GridGeometry(day_column_width=100, min_time=0, max_time=1425)
        self.controller = self._make_controller(geometry, [self.block])
        self.controller.update_requested.connect(lambda block_id, fields: self.updates.append((block_id, fields)))
        bottom_y = geometry.minutes_to_y(660)

        self.press(120, bottom_y - 2)
        self.release(120, 99999)

        self.assertEqual(self.updates, [('b1', {'end_minutes': 1320})])

    def test_resize_without_change_emits_nothing(self):
        self.press(120, 215)
        self.release(120, 215)
        self.assertEqual(self.updates, [])

    # --- 새 블록 만들기 ---

    def test_click_on_empty_cell_creates_minimum_block(self):
        """빈 칸을 눌렀다 바로 떼면 30분짜리 블록 생성 의도가 나가야 합니다."""
        self.press(320, y_for(600))
        self.assertEqual(self.controller.mode, DragMode.CREATING)
        self.assertEqual(self.previews[0].start_minutes, 600)

        self.release(320, y_for(600))

        self.assertEqual(self.creates, [{'day_of_week': 2, 'start_minutes': 600, 'end_minutes': 630}])
        self.assertEqual(self.capture.release_count, 1)

    def test_create_by_dragging_upwards(self):
        """위로 끌어도 [min, max) 구간이 되어야 합니다."""
        self.press(320, y_for(660))
        self.move(320, y_for(600))
        self.release(320, y_for(600))

        self.assertEqual(self.creates, [{'day_of_week': 2, 'start_minutes': 600, 'end_minutes': 660}])

    def test_create_at_end_of_day_stays_in_range(self):
        self.press(320, y_for(1310))
        self.release(320, y_for(1310))

        self.assertEqual(self.creates, [{'day_of_week': 2, 'start_minutes': 1290, 'end_minutes': 1320}])

    def test_press_outside_day_cells_starts_nothing(self):
        """머리글, 시간 열, 마지막 칸 아래를 누르면 생성도 메뉴도 없어야 합니다."""
        for x, y in ((150, 10), (20, 300), (320, y_for(1320) + 5), (80 + 7 * 100 + 5, 300)):
            self.press(x, y)
            self.assertEqual(self.controller.mode, DragMode.IDLE)
            self.release(x, y)
            self.press(x, y, PointerButton.SECONDARY)

        self.assertEqual(self.creates, [])
        self.assertEqual(self.menus, [])
        self.assertEqual(self.clicks, [])
        self.assertEqual(self.capture.acquire_count, 0)

    # --- 보조 버튼 / 취소 ---

    def test_secondary_press_opens_context_menu(self):
        """보조 버튼은 블록 위에서는 블록을, 빈 칸에서는 칸을 담아 메뉴 의도를 보냅니다."""
        self.press(120, 180, PointerButton.SECONDARY)
        self.press(320, y_for(600), PointerButton.SECONDARY)

        self.assertEqual(self.menus, [(self.block, None), (None, GridCell(2, 600))])
        self.assertEqual(self.controller.mode, DragMode.IDLE)
        self.assertEqual(self.timers.timers, [])

    def test_secondary_press_cancels_pending_click(self):
        self.press(120, 180)
        self.press(120, 180, PointerButton.SECONDARY)

        self.assertTrue(self.timers.timers[0].cancelled)
        self.assertEqual(self.controller.mode, DragMode.IDLE)
        self.release(120, 180)
        self.assertEqual(self.clicks, [])

    def test_secondary_press_during_drag_is_ignored(self):
        self.press(320, y_for(600))
        self.press(320, y_for(600), PointerButton.SECONDARY)

        self.assertEqual(self.menus, [])
        self.assertEqual(self.controller.mode, DragMode.CREATING)

    def test_cancel_discards_gesture(self):
        """취소하면 의도 없이 IDLE로 돌아가고 캡처가 풀려야 합니다."""
        self.press(120, 180)
        self.timers.timers[0].fire()
        self.move(220, 220)

        self.controller.cancel()
        self.release(220, 220)

        self.assertEqual(self.updates, [])
        self.assertEqual(self.controller.mode, DragMode.IDLE)
        self.assertFalse(self.capture.active)
        self.assertIsNone(self.previews[-1])

    def test_teardown_is_silent(self):
        """뷰가 사라지면 아무 신호 없이 세션을 버리고 이후 입력도 무시합니다."""
        self.press(320, y_for(600))
        preview_count = len(self.previews)

        self.controller.teardown()
        self.release(320, y_for(700))
        self.press(120, 180)

        self.assertEqual(len(self.previews), preview_count)
        self.assertEqual(self.creates, [])
        self.assertFalse(self.capture.active)
        self.assertEqual(self.controller.mode, DragMode.IDLE)

    def test_events_posted_during_handling_are_queued(self):
        """처리 중에 들어온 입력은 현재 처리가 끝난 뒤 순서대로 처리되어야 합니다."""
        modes = []

        def cancel_on_first_preview(preview):
            if preview is not None and not modes:
                modes.append(self.controller.mode)
                self.controller.cancel()
                modes.append(self.controller.mode)

        self.controller.preview_changed.connect(cancel_on_first_preview)
        self.press(320, y_for(600))

        self.assertEqual(modes, [DragMode.CREATING, DragMode.CREATING])
        self.assertEqual(self.controller.mode, DragMode.IDLE)

    # --- 읽기 전용 / 더보기 ---

    def test_read_only_collapses_to_click(self):
        """읽기 전용이면 가장자리를 눌러도 클릭만 됩니다."""
        self.controller = self._make_controller(self.geometry, [self.block], read_only=True)
        self.controller.click_requested.connect(self.clicks.append)
        self.controller.create_requested.connect(self.creates.append)

        self.press(120, 215)
        self.assertEqual(self.controller.mode, DragMode.PENDING_CLICK)
        self.assertEqual(self.timers.timers, [])
        self.release(120, 300)

        self.press(320, y_for(600))
        self.release(320, y_for(700))

        self.assertEqual(self.clicks, [self.block])
        self.assertEqual(self.creates, [])
        self.assertEqual(self.capture.acquire_count, 0)

    def test_overflow_marker_press_toggles_group(self):
        blocks = [ScheduleBlock(id=f'b{i}', day_of_week=0, start_minutes=600, end_minutes=660)
                  for i in range(4)]
        self.controller = self._make_controller(self.geometry, blocks)
        self.controller.overflow_toggle_requested.connect(self.toggles.append)
        marker = self.controller.overflow_markers[0]

        self.press(marker['rect'].x + 5, marker['rect'].y + 5)

        self.assertEqual(self.toggles, [marker['group_key']])
        self.assertEqual(self.controller.mode, DragMode.IDLE)

    def test_edge_zone_shrinks_for_short_blocks(self):
        """짧은 블록에서는 가장자리 영역이 높이의 1/3을 넘지 않아 본문을 누를 수 있어야 합니다."""
        short = ScheduleBlock(id='s', day_of_week=3, start_minutes=600, end_minutes=615)
        self.controller = self._make_controller(self.geometry, [short])

        rect = self.controller.positions[0]['rect']
        block, _rect, zone = self.controller.hit_test(rect.x + 5, rect.y + rect.height / 2)

        self.assertEqual(block, short)
        self.assertEqual(zone, 'body')


if __name__ == '__main__':
    unittest.main()
