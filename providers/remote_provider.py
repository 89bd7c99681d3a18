# providers/remote_provider.py
import logging

import requests

from .base_provider import BaseScheduleProvider
from config import REMOTE_PROVIDER_NAME, DEFAULT_REMOTE_BASE_URL, REMOTE_REQUEST_TIMEOUT
from error_messages import ErrorMessages, NetworkError, ProviderError
from schedule_model import (ScheduleBlock, Room, Instructor, fields_to_api, day_token, format_hhmm)

logger = logging.getLogger(__name__)


class RemoteScheduleProvider(BaseScheduleProvider):
    """
    학원 시간표 서버의 REST API 클라이언트.

    응답은 항상 {success, data, message} 또는 {success: false, error} 형태입니다.
    """

    def __init__(self, settings, session=None):
        self.settings = settings
        self.name = REMOTE_PROVIDER_NAME
        self.base_url = settings.get("remote_base_url", DEFAULT_REMOTE_BASE_URL).rstrip('/')
        self.academy_id = settings.get("academy_id")
        self.timeout = settings.get("remote_timeout", REMOTE_REQUEST_TIMEOUT)
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'ClassGrid/1.0 (Desktop Timetable Editor)',
        })

    def _request(self, method, path, params=None, payload=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise NetworkError(f"서버 응답 시간이 초과되었습니다: {url}",
                               error_code=ErrorMessages.CONNECTION_TIMEOUT['code']) from e
        except requests.RequestException as e:
            raise NetworkError(f"서버에 연결할 수 없습니다: {e}",
                               error_code=ErrorMessages.NETWORK_ERROR['code']) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict) or not response.ok or not body.get('success'):
            message = None
            if isinstance(body, dict):
                message = body.get('error') or body.get('message')
            message = message or f"HTTP {response.status_code}"
            logger.warning(f"{method} {path} 실패: {message}")
            raise ProviderError(message, error_code=ErrorMessages.SERVER_ERROR['code'])

        return body.get('data')

    def _academy_params(self, extra=None):
        params = {}
        if self.academy_id:
            params['academyId'] = self.academy_id
        if extra:
            params.update(extra)
        return params

    def list_schedules(self, filters=None):
        params = self._academy_params()
        if filters is not None:
            # 서버는 필터마다 값 하나만 받으므로 단일 값이면 서버에서, 나머지는 여기서 거른다
            if len(filters.days) == 1:
                params['dayOfWeek'] = day_token(filters.days[0])
            if len(filters.instructor_ids) == 1:
                params['instructorId'] = filters.instructor_ids[0]
            if len(filters.room_ids) == 1:
                params['classroomId'] = filters.room_ids[0]

        data = self._request('GET', '/api/schedules', params=params) or []
        blocks = [ScheduleBlock.from_api_dict(item) for item in data]
        if filters is not None:
            blocks = [block for block in blocks if filters.matches(block)]
        return blocks

    def create_schedule(self, block):
        payload = block.to_api_dict()
        payload.pop('id', None)
        if self.academy_id:
            payload['academyId'] = self.academy_id
        data = self._request('POST', '/api/schedules', payload=payload) or {}
        schedule_id = data.get('id')
        if not schedule_id:
            raise ProviderError("서버가 생성된 시간표 ID를 반환하지 않았습니다.")
        logger.info(f"원격 시간표 생성: {schedule_id}")
        return str(schedule_id)

    def update_schedule(self, schedule_id, fields):
        if not fields:
            return
        self._request('PUT', f"/api/schedules/{schedule_id}", payload=fields_to_api(fields))

    def delete_schedule(self, schedule_id):
        self._request('DELETE', f"/api/schedules/{schedule_id}")

    def find_conflicts(self, candidate, exclude_id=None):
        token = day_token(candidate.day)
        payload = {
            'dayOfWeek': token,
            'startTime': format_hhmm(candidate.start_minutes),
            'endTime': format_hhmm(candidate.end_minutes),
        }
        if self.academy_id:
            payload['academyId'] = self.academy_id
        if candidate.resource_type == 'instructor':
            payload['instructorId'] = candidate.resource_id
        else:
            payload['classroomId'] = candidate.resource_id
        if exclude_id is not None:
            payload['excludeId'] = str(exclude_id)

        data = self._request('POST', '/api/schedules/validate', payload=payload) or {}
        if not data.get('hasConflicts'):
            return []

        conflicts = data.get('conflicts') or []
        if isinstance(conflicts, dict):
            conflicts = conflicts.get('conflictingSchedules') or []

        blocks = []
        for item in conflicts:
            # 충돌 응답에는 요일/자원이 빠져 있을 수 있음
            item = dict(item)
            item.setdefault('dayOfWeek', token)
            if candidate.resource_type == 'instructor':
                item.setdefault('instructorId', candidate.resource_id)
            else:
                item.setdefault('classroomId', candidate.resource_id)
            block = ScheduleBlock.from_api_dict(item)
            if exclude_id is not None and block.id == str(exclude_id):
                continue
            blocks.append(block)
        return blocks

    def list_rooms(self):
        data = self._request('GET', '/api/classrooms', params=self._academy_params()) or []
        return [Room(id=str(item['id']), name=item.get('name', ''), capacity=item.get('capacity'))
                for item in data]

    def list_instructors(self):
        data = self._request('GET', '/api/instructors', params=self._academy_params()) or []
        instructors = []
        for item in data:
            name = item.get('name') or (item.get('user') or {}).get('name') or ''
            instructors.append(Instructor(id=str(item['id']), name=name))
        return instructors
