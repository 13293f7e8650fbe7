# rootfinder/core/logger.py
import sys

from loguru import logger

from rootfinder.core.config import settings

LOG_FILE_NAME = "rootfinder.log"


def setup_logging() -> str | None:
    """
    Loguru를 사용하여 로그 설정을 초기화합니다.
    - Console: INFO 레벨 이상
    - File: DEBUG 레벨 이상 (LOG_TO_FILE=1 일 때만)
    """
    # 1. 기존 핸들러 제거 (중복 방지)
    logger.remove()

    # 2. 콘솔 출력 설정 (표준 에러 스트림 사용)
    logger.add(
        sys.stderr,
        level="INFO",
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    if not settings.LOG_TO_FILE:
        return None

    log_dir = settings.log_dir_path
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    # 3. 파일 출력 설정
    # - 매일 자정(00:00)에 파일 회전, 10일치 보관, zip 압축
    # - 프로세스 풀 워커에서도 안전하도록 enqueue=True
    logger.add(
        str(log_file),
        rotation="00:00",
        retention="10 days",
        compression="zip",
        level="DEBUG",
        enqueue=True,
        encoding="utf-8",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message}",
    )

    return str(log_file)
