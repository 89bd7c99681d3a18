# conflict_validator.py
"""
강사/강의실 이중 예약 검사.

Conflict checks are advisory: they flag a placement but never prevent the
caller from saving it. The capacity check is the exception; a class that does
not fit its room cannot be submitted.
"""
import logging
from dataclasses import dataclass
from typing import Optional, List

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal

from config import CONFLICT_DEBOUNCE_MS
from error_messages import CapacityError
from schedule_model import intervals_overlap

logger = logging.getLogger(__name__)

RESOURCE_INSTRUCTOR = 'instructor'
RESOURCE_ROOM = 'room'
RESOURCE_TYPES = (RESOURCE_INSTRUCTOR, RESOURCE_ROOM)

RESOURCE_LABELS = {
    RESOURCE_INSTRUCTOR: '강사',
    RESOURCE_ROOM: '강의실',
}


@dataclass(frozen=True)
class ConflictCandidate:
    """One resource's view of a placement being validated."""
    resource_type: str
    resource_id: str
    day: int
    start_minutes: int
    end_minutes: int


@dataclass(frozen=True)
class ConflictReport:
    resource_type: str
    conflicting_block_ids: tuple
    conflicting_blocks: tuple = ()

    @property
    def has_conflict(self):
        return bool(self.conflicting_block_ids)


def build_candidates(day, start_minutes, end_minutes, instructor_id=None, room_id=None) -> List[ConflictCandidate]:
    """Split a placement into one candidate per assigned resource."""
    candidates = []
    for resource_type, resource_id in ((RESOURCE_INSTRUCTOR, instructor_id), (RESOURCE_ROOM, room_id)):
        if resource_id:
            candidates.append(ConflictCandidate(resource_type, str(resource_id), day,
                                                start_minutes, end_minutes))
    return candidates


def find_conflicts(candidate, blocks, exclude_block_id=None):
    """
    Active blocks booked on the same resource and day whose time strictly
    overlaps the candidate. The block under edit is never its own conflict.
    """
    conflicts = []
    for block in blocks:
        if not block.is_active:
            continue
        if exclude_block_id is not None and str(block.id) == str(exclude_block_id):
            continue
        if block.day_of_week != candidate.day:
            continue
        resource_id = block.resource_id(candidate.resource_type)
        if resource_id is None or str(resource_id) != str(candidate.resource_id):
            continue
        if intervals_overlap(candidate.start_minutes, candidate.end_minutes,
                             block.start_minutes, block.end_minutes):
            conflicts.append(block)
    return conflicts


def check_schedule_conflicts(lookup, day, start_minutes, end_minutes,
                             instructor_id=None, room_id=None, exclude_block_id=None):
    """
    Check instructor and room independently.

    lookup(candidate, exclude_id) returns the conflicting blocks for one
    resource (usually provider.find_conflicts). Only resources with at least
    one conflict get a report, so the result has zero, one or two entries.
    """
    reports = []
    for candidate in build_candidates(day, start_minutes, end_minutes, instructor_id, room_id):
        blocks = lookup(candidate, exclude_block_id)
        if blocks:
            reports.append(ConflictReport(
                resource_type=candidate.resource_type,
                conflicting_block_ids=tuple(str(b.id) for b in blocks),
                conflicting_blocks=tuple(blocks),
            ))
    return reports


def conflict_type(reports):
    """'INSTRUCTOR', 'CLASSROOM', 'BOTH' or None."""
    types = {r.resource_type for r in reports if r.has_conflict}
    if types == set(RESOURCE_TYPES):
        return 'BOTH'
    if RESOURCE_INSTRUCTOR in types:
        return 'INSTRUCTOR'
    if RESOURCE_ROOM in types:
        return 'CLASSROOM'
    return None


def describe_conflicts(reports):
    """사용자에게 보여줄 충돌 메시지. 충돌이 없으면 빈 문자열."""
    kind = conflict_type(reports)
    if kind is None:
        return ''
    if kind == 'BOTH':
        return '강사와 강의실 모두 시간이 겹칩니다.'
    report = next(r for r in reports if r.has_conflict)
    titles = ', '.join(b.title or str(b.id) for b in report.conflicting_blocks) or \
        ', '.join(report.conflicting_block_ids)
    return f"{RESOURCE_LABELS[report.resource_type]} 시간이 겹칩니다. 충돌하는 강의: {titles}"


def check_capacity(requested, room):
    """
    requested <= room.capacity, raised as CapacityError otherwise.

    No request or a room without a capacity limit always passes; a request
    against an unknown room does not.
    """
    if requested is None:
        return
    if requested <= 0:
        raise CapacityError("최대 수강 인원은 1명 이상이어야 합니다.")
    if room is None:
        raise CapacityError("존재하지 않는 강의실입니다.")
    if room.capacity is not None and requested > room.capacity:
        raise CapacityError(
            f"강의실 수용 인원({room.capacity}명)을 초과합니다. 요청 인원: {requested}명")


class ConflictValidator(QObject):
    """
    Debounced, advisory conflict lookups for a candidate placement.

    request() may be called on every pointer move; the lookup only runs after
    the inputs have been stable for the debounce interval. Results that arrive
    after a newer request was made are dropped.
    """
    conflicts_changed = pyqtSignal(list)   # [ConflictReport]
    _lookup_finished = pyqtSignal(int, list)

    def __init__(self, provider, timer_factory=None, debounce_ms=CONFLICT_DEBOUNCE_MS,
                 run_async=True, parent=None):
        super().__init__(parent)
        self.provider = provider
        if timer_factory is None:
            from views.qt_support import QtTimerFactory
            timer_factory = QtTimerFactory(self)
        self.timer_factory = timer_factory
        self.debounce_ms = debounce_ms
        self.run_async = run_async

        self.current_reports = []
        self._last_key = None
        self._pending_key = None
        self._timer = None
        self._generation = 0
        self._lookup_finished.connect(self._on_lookup_finished)

    def request(self, day, start_minutes, end_minutes, instructor_id=None, room_id=None,
                exclude_block_id=None):
        key = (day, start_minutes, end_minutes, instructor_id, room_id, exclude_block_id)
        if key == self._pending_key:
            return
        if key == self._last_key:
            # 이미 표시 중인 결과로 되돌아옴: 대기 중인 조회만 취소
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._pending_key is not None:
                self._pending_key = None
                self._generation += 1
            return
        self._pending_key = key
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.timer_factory.start(self.debounce_ms, self._run_pending)

    def request_for_preview(self, preview):
        """Slot for GridInteractionController.preview_changed."""
        if preview is None:
            self.clear()
            return
        block = preview.block
        if block is None:
            # 새로 만드는 블록은 아직 자원이 배정되지 않았음
            self.clear()
            return
        self.request(preview.day, preview.start_minutes, preview.end_minutes,
                     block.instructor_id, block.room_id, exclude_block_id=block.id)

    def clear(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1
        self._pending_key = None
        self._last_key = None
        if self.current_reports:
            self.current_reports = []
            self.conflicts_changed.emit([])

    def _run_pending(self):
        self._timer = None
        key = self._pending_key
        if key is None:
            return
        self._pending_key = None
        self._last_key = key
        generation = self._generation

        if not self.run_async:
            self._lookup_finished.emit(generation, self._lookup(key))
            return

        class ConflictLookupTask(QRunnable):
            def __init__(self, validator, generation, key):
                super().__init__()
                self.validator = validator
                self.generation = generation
                self.key = key

            def run(self):
                reports = self.validator._lookup(self.key)
                self.validator._lookup_finished.emit(self.generation, reports)

        QThreadPool.globalInstance().start(ConflictLookupTask(self, generation, key))

    def _lookup(self, key):
        day, start, end, instructor_id, room_id, exclude_id = key
        try:
            return check_schedule_conflicts(self.provider.find_conflicts, day, start, end,
                                            instructor_id, room_id, exclude_id)
        except Exception as e:
            # 조회 실패는 "알려진 충돌 없음"으로 처리하고 저장은 막지 않는다
            logger.warning(f"충돌 조회 실패, 충돌 없음으로 처리합니다: {e}", exc_info=True)
            return []

    def _on_lookup_finished(self, generation, reports):
        if generation != self._generation:
            logger.debug("stale conflict lookup result dropped")
            return
        self.current_reports = reports
        if reports:
            logger.info(f"충돌 감지: {describe_conflicts(reports)}")
        self.conflicts_changed.emit(reports)
