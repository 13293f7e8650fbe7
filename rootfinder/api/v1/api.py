from fastapi import APIRouter

from rootfinder.api.v1.endpoints import channels, health, solve

api_router = APIRouter()

# ==============================================================================
# 1. Core Engine (동기식 solve + 기본값)
# ==============================================================================
api_router.include_router(solve.router)

# ==============================================================================
# 2. Computation Channel (비동기 요청/응답)
# ==============================================================================
api_router.include_router(channels.router, prefix="/channels", tags=["Channels"])

# ==============================================================================
# 3. System (헬스 체크)
# ==============================================================================
api_router.include_router(health.router, tags=["Health"])
