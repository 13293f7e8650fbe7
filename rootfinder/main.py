# rootfinder/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

# Config & Logger
from rootfinder.core.config import settings
from rootfinder.core.errors import register_exception_handlers
from rootfinder.core.logger import setup_logging

from rootfinder.api.v1.api import api_router
from rootfinder.services.backends import build_backend
from rootfinder.services.channel import ChannelHub


# ==============================================================================
# 1. Lifespan (수명 주기 관리)
# ==============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    서버 시작/종료 시 실행될 로직
    - 채널 실행 컨텍스트(process/thread pool 또는 RQ)와 ChannelHub 생성/정리
    """
    # [Startup]
    setup_logging()
    logger.info(f"🚀 RootFinder Server Starting... (Env: {settings.APP_ENV})")
    app.state.hub = ChannelHub(build_backend(), retention=settings.CHANNEL_RETENTION)

    yield

    # [Shutdown]
    app.state.hub.close()
    logger.info("🛑 RootFinder Server Shutting Down...")


# ==============================================================================
# 2. FastAPI App 초기화
# ==============================================================================
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

register_exception_handlers(app)

# ==============================================================================
# 3. Middleware (CORS) - 입력 폼은 별도 origin에서 호출
# ==============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==============================================================================
# 4. Router Registration
# ==============================================================================
app.include_router(api_router, prefix=settings.API_V1_STR)


# ==============================================================================
# 5. Root Endpoint
# ==============================================================================
@app.get("/", include_in_schema=False)
def root() -> Dict[str, Any]:
    """서버 상태 확인용 루트 엔드포인트"""
    return {
        "message": "Welcome to RootFinder API",
        "docs_url": "/docs",
        "status": "running",
    }


@app.get("/health", include_in_schema=False)
def health_check():
    """로드밸런서용 단순 헬스 체크"""
    return {"status": "ok"}
