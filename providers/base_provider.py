from abc import ABC, abstractmethod


class BaseScheduleProvider(ABC):
    """
    모든 시간표 제공자(Provider)가 따라야 하는 기본 클래스.
    시간은 내부적으로 분 단위 정수, 요일은 0(월)~6(일) 인덱스로 주고받습니다.
    실패는 ProviderError 계열 예외로 알립니다.
    """

    @abstractmethod
    def list_schedules(self, filters=None):
        """
        필터(ScheduleFilter 또는 None)에 맞는 시간표 블록 목록을 반환해야 합니다.
        반환값: [ScheduleBlock, ...]
        """
        pass

    @abstractmethod
    def create_schedule(self, block):
        """
        새 블록을 저장해야 합니다.
        반환값: 저장소가 부여한 ID (str)
        """
        pass

    @abstractmethod
    def update_schedule(self, schedule_id, fields):
        """
        기존 블록의 일부 필드만 수정해야 합니다.
        fields: 변경된 필드만 담은 딕셔너리 (예: {'start_minutes': 600})
        """
        pass

    @abstractmethod
    def delete_schedule(self, schedule_id):
        pass

    @abstractmethod
    def find_conflicts(self, candidate, exclude_id=None):
        """
        candidate(ConflictCandidate)와 같은 자원, 같은 요일에 시간이 겹치는 활성 블록을 반환해야 합니다.
        반환값: [ScheduleBlock, ...]
        """
        pass

    def get_room(self, room_id):
        """강의실 조회. 없으면 None."""
        for room in self.list_rooms():
            if str(room.id) == str(room_id):
                return room
        return None

    def list_rooms(self):
        return []

    def list_instructors(self):
        return []
