# rootfinder/api/deps.py
from __future__ import annotations

from fastapi import HTTPException, Request

from rootfinder.services.channel import ChannelHub, ComputationChannel


def get_hub(request: Request) -> ChannelHub:
    """lifespan에서 만든 앱 전역 ChannelHub"""
    return request.app.state.hub


def get_channel_or_404(hub: ChannelHub, channel_id: str) -> ComputationChannel:
    try:
        return hub.get(channel_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Channel {channel_id} not found")
