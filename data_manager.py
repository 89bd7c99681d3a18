# data_manager.py
import uuid
import logging
from collections import OrderedDict

from PyQt6.QtCore import QObject, pyqtSignal, QThreadPool, QRunnable

from providers.local_provider import LocalScheduleProvider
from providers.remote_provider import RemoteScheduleProvider
from config import (LOCAL_PROVIDER_NAME, REMOTE_PROVIDER_NAME, DEFAULT_BLOCK_COLOR, NEW_BLOCK_TITLE)
from conflict_validator import check_capacity
from error_messages import ErrorMessages, ScheduleError
from schedule_model import ScheduleBlock, ScheduleFilter

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp_"


def is_temp_id(schedule_id):
    return str(schedule_id).startswith(TEMP_ID_PREFIX)


class ScheduleDataManager(QObject):
    """
    로컬-퍼스트 시간표 캐시.

    blocks = last_known_good + 아직 저장 중인 변경(pending_ops).
    변경은 즉시 blocks에 반영되고 저장소 호출은 백그라운드에서 실행됩니다.
    저장에 실패한 변경은 pending_ops에서 빠지므로 화면은 마지막으로 저장된 상태로 돌아갑니다.
    조회는 세대 번호를 달고 나가며, 더 최근 조회가 있으면 결과를 버리고
    조회 도중 저장이 끝난 변경은 조회 결과 위에 다시 적용합니다.
    """
    data_updated = pyqtSignal()
    lookups_updated = pyqtSignal()
    error_occurred = pyqtSignal(str)
    sync_state_changed = pyqtSignal(bool)

    _task_succeeded = pyqtSignal(object, object)
    _task_failed = pyqtSignal(object, object)

    def __init__(self, settings, provider=None, run_async=True):
        super().__init__()
        self.settings = settings
        self.run_async = run_async

        self.last_known_good = []
        self.blocks = []
        self.pending_ops = OrderedDict()
        self.rooms = {}
        self.instructors = {}
        self.filters = ScheduleFilter()
        self.loading = False

        self._load_generation = 0
        self._commit_seq = 0
        self._commit_log = []   # 조회 중에 저장이 끝난 변경 (seq, op, result)

        self._task_succeeded.connect(self._on_task_succeeded)
        self._task_failed.connect(self._on_task_failed)

        self.provider = provider or self.setup_provider()

    def setup_provider(self):
        provider_name = self.settings.get("provider", LOCAL_PROVIDER_NAME)
        if provider_name == REMOTE_PROVIDER_NAME:
            logger.info(f"원격 시간표 서버 사용: {self.settings.get('remote_base_url')}")
            return RemoteScheduleProvider(self.settings)
        return LocalScheduleProvider(self.settings)

    def report_error(self, message):
        self.error_occurred.emit(message)

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    def load_schedules(self, filters=None):
        """Reload blocks (and room/instructor lookups) from the provider."""
        if filters is not None:
            self.filters = filters
        self._load_generation += 1
        op = {'kind': 'load', 'filters': self.filters,
              'generation': self._load_generation, 'commit_seq': self._commit_seq}
        self.loading = True
        self.sync_state_changed.emit(True)
        self._run_task(op, lambda: self._fetch(op['filters']))

    def set_resource_filter(self, instructor_id=None, room_id=None):
        """Reload showing only one instructor and/or room. None clears that side."""
        filters = ScheduleFilter(instructor_ids=[instructor_id] if instructor_id else [],
                                 room_ids=[room_id] if room_id else [])
        logger.info(f"필터 변경: 강사={instructor_id}, 강의실={room_id}")
        self.load_schedules(filters)

    def _fetch(self, filters):
        blocks = self.provider.list_schedules(filters)
        rooms = self.provider.list_rooms()
        instructors = self.provider.list_instructors()
        return blocks, rooms, instructors

    def get_block(self, schedule_id):
        for block in self.blocks:
            if str(block.id) == str(schedule_id):
                return block
        return None

    def get_room(self, room_id):
        return self.rooms.get(room_id) if room_id else None

    def pending_ids(self):
        """Ids of blocks with a change still being saved."""
        return {op['id'] for op in self.pending_ops.values()}

    # ------------------------------------------------------------------
    # 변경 (낙관적 반영 후 백그라운드 저장)
    # ------------------------------------------------------------------
    def new_block(self, day_of_week, start_minutes, end_minutes, **fields):
        fields.setdefault('title', NEW_BLOCK_TITLE)
        fields.setdefault('color', self.settings.get("default_block_color", DEFAULT_BLOCK_COLOR))
        return ScheduleBlock(id=None, day_of_week=day_of_week, start_minutes=start_minutes,
                             end_minutes=end_minutes, **fields)

    def create_schedule(self, block):
        """Returns the temporary id shown until the store assigns the real one, or None if rejected."""
        try:
            self._validate_capacity(block.capacity, block.room_id)
        except ScheduleError as e:
            self.report_error(str(e))
            return None

        temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:8]}"
        optimistic = block.with_changes(id=temp_id, room_name=self._room_name(block.room_id),
                                        instructor_name=self._instructor_name(block.instructor_id))
        op = {'kind': 'create', 'id': temp_id, 'block': optimistic}
        self._queue_op(op, lambda: self.provider.create_schedule(optimistic))
        return temp_id

    def update_schedule(self, schedule_id, fields):
        """Apply changed fields only. Returns False when the change is rejected before commit."""
        original = self.get_block(schedule_id)
        if original is None:
            self.report_error(f"존재하지 않는 시간표입니다: {schedule_id}")
            return False
        if is_temp_id(schedule_id):
            self.report_error("아직 저장 중인 시간표입니다. 잠시 후 다시 시도하세요.")
            return False
        try:
            updated = original.with_changes(**fields)
            if 'capacity' in fields or 'room_id' in fields:
                self._validate_capacity(updated.capacity, updated.room_id)
        except (ScheduleError, TypeError) as e:
            self.report_error(str(e))
            return False

        op = {'kind': 'update', 'id': str(schedule_id), 'fields': dict(fields)}
        self._queue_op(op, lambda: self.provider.update_schedule(str(schedule_id), dict(fields)))
        return True

    def delete_schedule(self, schedule_id):
        if self.get_block(schedule_id) is None:
            return False
        if is_temp_id(schedule_id):
            self.report_error("아직 저장 중인 시간표입니다. 잠시 후 다시 시도하세요.")
            return False
        op = {'kind': 'delete', 'id': str(schedule_id)}
        self._queue_op(op, lambda: self.provider.delete_schedule(str(schedule_id)))
        return True

    def _validate_capacity(self, requested, room_id):
        if requested is None or not room_id:
            return
        room = self.rooms.get(room_id)
        if room is None:
            room = self.provider.get_room(room_id)
        check_capacity(requested, room)

    def _room_name(self, room_id):
        room = self.rooms.get(room_id) if room_id else None
        return room.name if room else None

    def _instructor_name(self, instructor_id):
        instructor = self.instructors.get(instructor_id) if instructor_id else None
        return instructor.name if instructor else None

    def _with_names(self, block):
        """Fill room/instructor display names the store did not send."""
        changes = {}
        if block.room_id and not block.room_name:
            changes['room_name'] = self._room_name(block.room_id)
        if block.instructor_id and not block.instructor_name:
            changes['instructor_name'] = self._instructor_name(block.instructor_id)
        return block.with_changes(**changes) if changes else block

    def _apply_fields(self, block, fields):
        updated = block.with_changes(**fields)
        if 'room_id' in fields:
            updated = updated.with_changes(room_name=self._room_name(updated.room_id))
        if 'instructor_id' in fields:
            updated = updated.with_changes(instructor_name=self._instructor_name(updated.instructor_id))
        return updated

    def _queue_op(self, op, work):
        op['op_id'] = uuid.uuid4().hex
        self.pending_ops[op['op_id']] = op
        self._recompute()
        logger.info(f"시간표 {op['kind']} 요청: {op['id']}")
        self._run_task(op, work)

    # ------------------------------------------------------------------
    # 백그라운드 실행
    # ------------------------------------------------------------------
    def _run_task(self, op, work):
        if not self.run_async:
            try:
                result = work()
            except Exception as e:
                self._on_task_failed(op, e)
            else:
                self._on_task_succeeded(op, result)
            return

        class ScheduleTask(QRunnable):
            def __init__(self, data_manager, op, work):
                super().__init__()
                self.data_manager = data_manager
                self.op = op
                self.work = work

            def run(self):
                try:
                    result = self.work()
                except Exception as e:
                    self.data_manager._task_failed.emit(self.op, e)
                    return
                self.data_manager._task_succeeded.emit(self.op, result)

        # 백그라운드 스레드에서 실행, 결과는 시그널로 메인 스레드에 전달
        QThreadPool.globalInstance().start(ScheduleTask(self, op, work))

    def _on_task_succeeded(self, op, result):
        kind = op['kind']
        if kind == 'load':
            if op['generation'] != self._load_generation:
                logger.debug(f"이전 조회 결과 무시 (조회 {op['generation']}, 최신 {self._load_generation})")
                return
            blocks, rooms, instructors = result
            self.rooms = {room.id: room for room in rooms}
            self.instructors = {instructor.id: instructor for instructor in instructors}
            blocks = [self._with_names(block) for block in blocks]
            # 조회가 시작된 뒤 저장이 끝난 변경은 조회 결과에 빠져 있을 수 있음
            for seq, done_op, done_result in self._commit_log:
                if seq > op['commit_seq']:
                    blocks = self._apply_commit(blocks, done_op, done_result)
            self._commit_log = []
            self.last_known_good = blocks
            self.loading = False
            self.sync_state_changed.emit(False)
            logger.info(f"시간표 {len(blocks)}개 조회 완료")
            self.lookups_updated.emit()
            self._recompute()
            return

        self.pending_ops.pop(op['op_id'], None)
        self.last_known_good = self._apply_commit(self.last_known_good, op, result)
        self._commit_seq += 1
        if self.loading:
            self._commit_log.append((self._commit_seq, op, result))

        if kind == 'create':
            logger.info(f"시간표 생성 완료: {op['id']} -> {result}")
        elif kind == 'update':
            logger.info(f"시간표 수정 완료: {op['id']} {sorted(op['fields'])}")
        elif kind == 'delete':
            logger.info(f"시간표 삭제 완료: {op['id']}")
        self._recompute()

        if not self.pending_ops:
            # 대기 중인 저장이 모두 끝나면 저장소 기준으로 다시 조회
            self.load_schedules()

    def _apply_commit(self, blocks, op, result):
        kind = op['kind']
        if kind == 'create':
            real_id = str(result)
            if any(str(block.id) == real_id for block in blocks):
                return blocks
            return blocks + [op['block'].with_changes(id=real_id)]
        if kind == 'update':
            return [self._apply_fields(block, op['fields']) if str(block.id) == op['id'] else block
                    for block in blocks]
        if kind == 'delete':
            return [block for block in blocks if str(block.id) != op['id']]
        return blocks

    def _on_task_failed(self, op, error):
        logger.error(f"시간표 {op['kind']} 실패: {error}", exc_info=error)
        if op['kind'] == 'load':
            if op['generation'] != self._load_generation:
                return
            self.loading = False
            self._commit_log = []
            self.sync_state_changed.emit(False)
            self.report_error(f"시간표를 불러오지 못했습니다.\n{error}")
            return

        # 실패한 변경만 빠지므로 화면은 마지막으로 저장된 상태로 돌아감
        self.pending_ops.pop(op['op_id'], None)
        self._recompute()
        self.report_error(f"{ErrorMessages.COMMIT_FAILED['message']}\n{error}")

    def _recompute(self):
        blocks = list(self.last_known_good)
        for op in self.pending_ops.values():
            kind = op['kind']
            if kind == 'create':
                blocks.append(op['block'])
            elif kind == 'update':
                blocks = [self._apply_fields(b, op['fields']) if str(b.id) == op['id'] else b for b in blocks]
            elif kind == 'delete':
                blocks = [b for b in blocks if str(b.id) != op['id']]
        self.blocks = blocks
        self.data_updated.emit()
