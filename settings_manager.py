import json
import os
import logging
from config import (SETTINGS_FILE, LONG_PRESS_MS, RESIZE_EDGE_PX, CONFLICT_DEBOUNCE_MS,
                    MAX_VISIBLE_GROUP_SIZE, DEFAULT_MIN_TIME, DEFAULT_MAX_TIME, SNAP_MINUTES)
from error_messages import SettingsError, ValidationError
from schedule_model import parse_hhmm

logger = logging.getLogger(__name__)

# 사용자가 settings.json에서 조정할 수 있는 제스처/레이아웃 값: (기본값, 최소, 최대)
INTERACTION_DEFAULTS = {
    "long_press_ms": (LONG_PRESS_MS, 100, 3000),
    "resize_edge_px": (RESIZE_EDGE_PX, 2, 40),
    "conflict_debounce_ms": (CONFLICT_DEBOUNCE_MS, 0, 5000),
    "max_visible_group_size": (MAX_VISIBLE_GROUP_SIZE, 1, 10),
}


def load_settings(settings_file=SETTINGS_FILE):
    """설정 파일(settings.json)을 읽어와서 딕셔너리로 반환합니다."""
    if os.path.exists(settings_file):
        with open(settings_file, "r", encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError:
                logger.warning(f"설정 파일이 손상되어 기본값을 사용합니다: {settings_file}")
                return {} # 파일이 손상되었을 경우 빈 딕셔너리 반환
    return {} # 파일이 없을 경우 빈 딕셔너리 반환


def save_settings(data, settings_file=SETTINGS_FILE):
    """설정 데이터(딕셔너리)를 settings.json 파일에 저장합니다."""
    try:
        with open(settings_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
    except OSError as e:
        raise SettingsError(f"설정을 저장할 수 없습니다: {e}") from e


def save_settings_safe(data, preserve_keys=None, settings_file=SETTINGS_FILE):
    """
    설정을 안전하게 저장합니다. 지정된 키들은 기존 값을 보존합니다.

    Args:
        data: 저장할 설정 데이터
        preserve_keys: 보존할 키들의 리스트 (예: ['window_geometry'])
    """
    if preserve_keys is None:
        preserve_keys = ['window_geometry']

    original_settings = load_settings(settings_file)
    merged = dict(original_settings)
    merged.update(data)

    for key in preserve_keys:
        if key in original_settings:
            merged[key] = original_settings[key]
            logger.debug(f"settings_manager: '{key}' 키 보존됨")

    save_settings(merged, settings_file)


def get_interaction_settings(settings):
    """
    제스처 임계값과 표시 시간 범위를 기본값 위에 병합해 반환합니다.
    타입이나 범위가 잘못된 값은 경고를 남기고 기본값을 사용합니다.
    """
    resolved = {}
    for key, (default, minimum, maximum) in INTERACTION_DEFAULTS.items():
        value = settings.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not minimum <= value <= maximum:
            logger.warning(f"잘못된 설정값 {key}={value!r}, 기본값 {default} 사용")
            value = default
        resolved[key] = int(value)

    try:
        min_time = parse_hhmm(settings.get("grid_min_time", DEFAULT_MIN_TIME), "grid_min_time")
        max_time = parse_hhmm(settings.get("grid_max_time", DEFAULT_MAX_TIME), "grid_max_time")
        if min_time >= max_time or min_time % SNAP_MINUTES or max_time % SNAP_MINUTES:
            raise ValidationError("grid_max_time", "표시 시간 범위가 올바르지 않습니다.")
    except ValidationError as e:
        logger.warning(f"잘못된 표시 시간 범위, 기본값 사용: {e}")
        min_time = parse_hhmm(DEFAULT_MIN_TIME)
        max_time = parse_hhmm(DEFAULT_MAX_TIME)
    resolved["min_time"] = min_time
    resolved["max_time"] = max_time

    resolved["read_only"] = bool(settings.get("read_only", False))
    return resolved
