# rootfinder/core/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 환경 설정."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =========================================================
    # 1. 프로젝트 기본 정보
    # =========================================================
    PROJECT_NAME: str = Field(
        default="RootFinder API", description="Swagger UI 등에 표시될 프로젝트 이름"
    )
    API_V1_STR: str = Field(default="/api/v1", description="API 버전 Prefix")

    APP_ENV: Literal["local", "dev", "test", "prod"] = Field(
        default="local",
        description="애플리케이션 실행 환경 (local/dev/test/prod)",
    )

    # =========================================================
    # 2. 수치 엔진 (Newton-Raphson)
    # =========================================================
    DEFAULT_TOLERANCE: float = Field(
        default=0.001,
        gt=0,
        description="요청에 tolerance가 없을 때 사용할 수렴 기준 |f(x)|",
    )
    DEFAULT_INITIAL_GUESS: float = Field(
        default=-4.0,
        description="요청에 initial_guess가 없을 때 사용할 초기값 x0",
    )
    MAX_ITERATIONS: int = Field(
        default=1000,
        ge=1,
        description="반복 상한 (trace 길이 상한)",
    )
    DERIVATIVE_EPSILON: float = Field(
        default=1e-12,
        gt=0,
        description="|f'(x)|가 이 값보다 작으면 발산(DivergenceError)으로 처리",
    )

    # =========================================================
    # 3. Computation Channel / 워커
    # =========================================================
    CHANNEL_BACKEND: Literal["process", "thread", "rq"] = Field(
        default="process",
        description="채널 실행 컨텍스트 (process/thread/rq)",
    )
    CHANNEL_WORKERS: int = Field(
        default=2, ge=1, description="process/thread 풀 크기"
    )
    CHANNEL_RETENTION: int = Field(
        default=256,
        ge=1,
        description="ChannelHub가 보관하는 최대 채널 수 (오래된 종료 채널부터 정리)",
    )
    CHANNEL_TIMEOUT_S: float = Field(
        default=30.0,
        gt=0,
        description="RQ job 타임아웃 및 폴링 마감 시간(초)",
    )

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis / RQ 연결 URL",
    )
    SOLVE_QUEUE: str = Field(default="solve", description="RQ 큐 이름")

    # =========================================================
    # 4. 로그
    # =========================================================
    LOG_DIR: str = Field(default=".logs", description="파일 로그 디렉터리")
    LOG_TO_FILE: bool = Field(default=True, description="파일 로그 sink 사용 여부")

    @field_validator("CHANNEL_BACKEND", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        """대소문자/공백 섞인 환경변수 값 정리"""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    # =========================================================
    # 5. Path 편의 프로퍼티
    # =========================================================
    @property
    def log_dir_path(self) -> Path:
        """로그 디렉터리 절대 경로 (Path 객체)."""
        return Path(self.LOG_DIR).resolve()


@lru_cache
def get_settings() -> Settings:
    """FastAPI Depends용 싱글톤 Settings 인스턴스."""
    return Settings()


# 전역 설정 객체
settings = get_settings()
