# rootfinder/api/v1/endpoints/health.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
import redis

from rootfinder.api.deps import get_hub
from rootfinder.core.config import settings
from rootfinder.services.channel import ChannelHub

router = APIRouter(prefix="/health", tags=["health"])


class HealthOut(BaseModel):
    status: str
    env: str
    backend: str
    channels: int
    redis_ping: bool | None = None


@router.get("", response_model=dict)
def health_simple():
    return {"status": "ok", "env": settings.APP_ENV}


@router.get("/extended", response_model=HealthOut)
def health_extended(hub: ChannelHub = Depends(get_hub)):
    ping = None
    status = "ok"
    if hub.backend.name == "rq":
        try:
            ping = bool(redis.from_url(settings.REDIS_URL).ping())
        except redis.RedisError:
            ping = False
        if not ping:
            status = "degraded"
    return HealthOut(
        status=status,
        env=settings.APP_ENV,
        backend=hub.backend.name,
        channels=len(hub),
        redis_ping=ping,
    )
