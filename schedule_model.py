# schedule_model.py
"""
Schedule block model and the boundary conversions around it.

Internally every time is an integer number of minutes since midnight and every
day is an index into DAYS_OF_WEEK. "HH:MM" strings and day tokens only appear
when talking to a provider or the user.
"""
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from config import DAYS_OF_WEEK, SNAP_MINUTES, DEFAULT_BLOCK_COLOR
from error_messages import ValidationError

_TIME_RE = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)(?::[0-5]\d)?$')

# 부분 업데이트 필드 이름 (내부 이름 -> API 이름)
API_FIELD_NAMES = {
    'title': 'title',
    'description': 'description',
    'day_of_week': 'dayOfWeek',
    'start_minutes': 'startTime',
    'end_minutes': 'endTime',
    'instructor_id': 'instructorId',
    'room_id': 'classroomId',
    'capacity': 'maxStudents',
    'color': 'color',
    'is_active': 'isActive',
}
_TIME_FIELDS = ('start_minutes', 'end_minutes')


def parse_hhmm(value, field_name='time'):
    """'HH:MM' (24h) -> minutes since midnight."""
    if isinstance(value, int):
        return value
    match = _TIME_RE.match(str(value).strip()) if value is not None else None
    if not match:
        raise ValidationError(field_name, f"HH:MM 형식이 아닙니다: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes):
    """minutes since midnight -> 'HH:MM'."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"


def snap_to_grid(minutes, snap=SNAP_MINUTES):
    """Round to the nearest grid line."""
    return int(round(minutes / snap)) * snap


def day_index(token):
    """'MONDAY' -> 0. Accepts an index as well."""
    if isinstance(token, int):
        if 0 <= token < len(DAYS_OF_WEEK):
            return token
        raise ValidationError('dayOfWeek', f"요일 인덱스 범위를 벗어났습니다: {token}")
    normalized = str(token).strip().upper() if token is not None else ''
    if normalized not in DAYS_OF_WEEK:
        raise ValidationError('dayOfWeek', f"알 수 없는 요일입니다: {token!r}")
    return DAYS_OF_WEEK.index(normalized)


def day_token(index):
    """0 -> 'MONDAY'."""
    return DAYS_OF_WEEK[day_index(index)]


def intervals_overlap(a_start, a_end, b_start, b_end):
    """Strict half-open overlap: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    capacity: Optional[int] = None


@dataclass(frozen=True)
class Instructor:
    id: str
    name: str


@dataclass(frozen=True)
class ScheduleBlock:
    """One weekly class occurrence on the grid."""
    id: Optional[str]
    day_of_week: int
    start_minutes: int
    end_minutes: int
    title: str = ''
    instructor_id: Optional[str] = None
    room_id: Optional[str] = None
    color: str = DEFAULT_BLOCK_COLOR
    capacity: Optional[int] = None
    description: Optional[str] = None
    instructor_name: Optional[str] = None
    room_name: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if self.start_minutes >= self.end_minutes:
            raise ValidationError('endTime', "종료 시간은 시작 시간보다 늦어야 합니다.")

    @property
    def duration(self):
        return self.end_minutes - self.start_minutes

    @property
    def day_token(self):
        return DAYS_OF_WEEK[self.day_of_week]

    def overlaps(self, other):
        return (self.day_of_week == other.day_of_week and
                intervals_overlap(self.start_minutes, self.end_minutes,
                                  other.start_minutes, other.end_minutes))

    def resource_id(self, resource_type):
        if resource_type == 'instructor':
            return self.instructor_id
        if resource_type == 'room':
            return self.room_id
        raise ValueError(f"unknown resource type: {resource_type!r}")

    def with_changes(self, **fields):
        return replace(self, **fields)

    def time_text(self):
        return f"{format_hhmm(self.start_minutes)} - {format_hhmm(self.end_minutes)}"

    def to_api_dict(self):
        """Boundary representation ('HH:MM' strings, day token, camelCase keys)."""
        data = {
            'title': self.title,
            'description': self.description,
            'dayOfWeek': self.day_token,
            'startTime': format_hhmm(self.start_minutes),
            'endTime': format_hhmm(self.end_minutes),
            'instructorId': self.instructor_id,
            'classroomId': self.room_id,
            'maxStudents': self.capacity,
            'color': self.color,
            'isActive': self.is_active,
        }
        if self.id is not None:
            data['id'] = self.id
        return data

    @classmethod
    def from_api_dict(cls, data):
        instructor = data.get('instructor') or {}
        classroom = data.get('classroom') or {}
        subject = data.get('subject') or {}
        color = data.get('color') or subject.get('color') or DEFAULT_BLOCK_COLOR
        return cls(
            id=str(data['id']) if data.get('id') is not None else None,
            day_of_week=day_index(data.get('dayOfWeek')),
            start_minutes=parse_hhmm(data.get('startTime'), 'startTime'),
            end_minutes=parse_hhmm(data.get('endTime'), 'endTime'),
            title=data.get('title') or '',
            instructor_id=data.get('instructorId') or instructor.get('id'),
            room_id=data.get('classroomId') or classroom.get('id'),
            color=color,
            capacity=data.get('maxStudents'),
            description=data.get('description'),
            instructor_name=instructor.get('name'),
            room_name=classroom.get('name'),
            is_active=data.get('isActive', True),
        )


def fields_to_api(fields):
    """Convert a partial internal field dict to its boundary form."""
    api_fields = {}
    for name, value in fields.items():
        if name not in API_FIELD_NAMES:
            raise ValidationError(name, f"수정할 수 없는 필드입니다: {name}")
        if name in _TIME_FIELDS:
            value = format_hhmm(value)
        elif name == 'day_of_week':
            value = day_token(value)
        api_fields[API_FIELD_NAMES[name]] = value
    return api_fields


@dataclass
class ScheduleFilter:
    """Resource filters applied by list_schedules. Empty lists mean 'no filter'."""
    days: list = field(default_factory=list)
    instructor_ids: list = field(default_factory=list)
    room_ids: list = field(default_factory=list)

    def matches(self, block):
        if self.days and block.day_of_week not in [day_index(d) for d in self.days]:
            return False
        if self.instructor_ids and block.instructor_id not in self.instructor_ids:
            return False
        if self.room_ids and block.room_id not in self.room_ids:
            return False
        return True
