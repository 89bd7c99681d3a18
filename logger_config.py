"""
로깅 설정 모듈
모든 디버그 출력을 통합 관리
"""
import logging
import sys

LOG_FORMAT = '[%(levelname)s] %(name)s - %(message)s'

def setup_logger(level=logging.INFO, log_file=None):
    """로거 설정"""
    root_logger = logging.getLogger()

    # 이미 핸들러가 있으면 중복 추가 방지
    if root_logger.handlers:
        return root_logger

    root_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # 오류는 파일에도 남긴다
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            root_logger.warning(f"로그 파일을 열 수 없습니다: {log_file} ({e})")
        else:
            file_handler.setLevel(logging.WARNING)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s ' + LOG_FORMAT
            ))
            root_logger.addHandler(file_handler)

    return root_logger
