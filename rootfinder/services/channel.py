# rootfinder/services/channel.py
from __future__ import annotations

import asyncio
import uuid
from collections import OrderedDict
from enum import Enum
from typing import Callable, Dict, Optional

from loguru import logger

from rootfinder.core.exceptions import ChannelMisuseError, ErrorKind
from rootfinder.schemas.solve import (
    ComputationRequest,
    ComputationResponse,
    ErrorResponse,
    SolveResponse,
    parse_response,
)
from rootfinder.services.backends import ChannelBackend

ResponseCallback = Callable[[ComputationResponse], None]


class ChannelState(str, Enum):
    idle = "idle"
    dispatched = "dispatched"
    completed = "completed"
    failed = "failed"
    abandoned = "abandoned"


TERMINAL_STATES = frozenset(
    {ChannelState.completed, ChannelState.failed, ChannelState.abandoned}
)


class ComputationChannel:
    """
    단일 요청 / 단일 응답 채널.

    idle -> dispatched -> (completed | failed), 요청자가 버리면 abandoned.
    생성과 요청 전송은 별개 단계이며, 한 번 응답한 채널은 재사용할 수 없다.
    """

    def __init__(
        self,
        backend: ChannelBackend,
        *,
        channel_id: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> None:
        self.id = channel_id or uuid.uuid4().hex
        self.owner = owner
        self.backend = backend
        self.request: Optional[ComputationRequest] = None
        self._state = ChannelState.idle
        self._task: Optional[asyncio.Task] = None
        self._response: Optional[ComputationResponse] = None

    def __repr__(self) -> str:
        return f"<ComputationChannel {self.id} {self._state.value}>"

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def result(self) -> Optional[ComputationResponse]:
        """completed/failed 이후의 응답 (그 전에는 None)"""
        return self._response

    # -------------------------------------------------------------------------
    # send / deliver
    # -------------------------------------------------------------------------
    def send(
        self,
        request: ComputationRequest,
        on_response: Optional[ResponseCallback] = None,
    ) -> asyncio.Task:
        """
        요청을 실행 컨텍스트로 보내고 즉시 반환한다 (실행 중인 event loop 필요).
        반환된 Task는 응답 하나로 resolve 된다.
        """
        if self._state is not ChannelState.idle:
            prior = self._state
            if prior is ChannelState.dispatched:
                self.abandon()
            raise ChannelMisuseError(
                f"channel {self.id} is {prior.value}; a channel accepts exactly one request"
            )

        loop = asyncio.get_running_loop()
        payload = request.model_dump()
        payload["channel_id"] = self.id

        self.request = request
        self._state = ChannelState.dispatched
        logger.debug(f"[channel={self.id}] dispatched via {self.backend.name}")
        self._task = loop.create_task(
            self._deliver(payload, on_response), name=f"channel-{self.id}"
        )
        return self._task

    async def _deliver(
        self, payload: Dict, on_response: Optional[ResponseCallback]
    ) -> ComputationResponse:
        try:
            response = parse_response(await self.backend.run(payload))
        except asyncio.CancelledError:
            logger.debug(f"[channel={self.id}] in-flight response discarded")
            raise
        except Exception as e:
            logger.exception(f"❌ [channel={self.id}] execution context failed: {e}")
            response = ErrorResponse(
                error=ErrorKind.INTERNAL, message=str(e) or type(e).__name__
            )

        self._response = response
        if isinstance(response, SolveResponse):
            self._state = ChannelState.completed
            logger.info(
                f"✅ [channel={self.id}] completed root={response.root!r} "
                f"converged={response.converged} iterations={len(response.iterations)}"
            )
        else:
            self._state = ChannelState.failed
            logger.warning(
                f"[channel={self.id}] failed {response.error.value}: {response.message}"
            )

        if on_response is not None:
            try:
                on_response(response)
            except Exception as e:
                # 콜백 오류가 채널의 단일 응답을 대체하지 않도록 로그만 남긴다
                logger.exception(f"[channel={self.id}] on_response callback failed: {e}")
        return response

    async def response(self) -> ComputationResponse:
        """요청에 대한 응답 하나를 기다린다 (이미 도착했다면 즉시 반환)."""
        if self._task is None or self._state is ChannelState.idle:
            raise ChannelMisuseError(f"channel {self.id} has no request to answer")
        if self._state is ChannelState.abandoned:
            raise ChannelMisuseError(
                f"channel {self.id} was abandoned; its response is discarded"
            )
        await asyncio.wait({self._task})
        if self._task.cancelled():
            raise ChannelMisuseError(
                f"channel {self.id} was abandoned; its response is discarded"
            )
        return self._task.result()

    def abandon(self) -> bool:
        """
        채널 teardown. 진행 중인 응답은 버려지고 콜백은 호출되지 않는다.
        이미 종료된 채널이면 False.
        """
        if self.is_terminal:
            return False
        self._state = ChannelState.abandoned
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(f"[channel={self.id}] abandoned")
        return True


# =============================================================================
# Requester-side registry
# =============================================================================
class ChannelHub:
    """
    요청자 쪽 채널 레지스트리 (HTTP 레이어용).

    - owner별로 최신 채널 하나만 유효: 새 채널을 열면 진행 중이던 이전 채널은 abandon
    - 최대 `retention`개 보관, 넘치면 오래된 종료 채널부터 정리
    """

    def __init__(self, backend: ChannelBackend, *, retention: int = 256) -> None:
        if retention < 1:
            raise ValueError("retention must be >= 1")
        self.backend = backend
        self.retention = retention
        self._channels: "OrderedDict[str, ComputationChannel]" = OrderedDict()
        self._owners: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._channels

    def open(self, owner: Optional[str] = None) -> ComputationChannel:
        if owner is not None:
            prev = self._channels.get(self._owners.get(owner, ""))
            if prev is not None and prev.abandon():
                logger.info(f"[hub] owner={owner!r} superseded channel {prev.id}")

        channel = ComputationChannel(self.backend, owner=owner)
        self._channels[channel.id] = channel
        if owner is not None:
            self._owners[owner] = channel.id
        self._evict()
        return channel

    def get(self, channel_id: str) -> ComputationChannel:
        """없으면 KeyError"""
        return self._channels[channel_id]

    def abandon(self, channel_id: str) -> ComputationChannel:
        channel = self.get(channel_id)
        channel.abandon()
        return channel

    def _evict(self) -> None:
        while len(self._channels) > self.retention:
            victim = next(
                (c for c in self._channels.values() if c.is_terminal),
                next(iter(self._channels.values())),
            )
            victim.abandon()
            self._forget(victim)

    def _forget(self, channel: ComputationChannel) -> None:
        self._channels.pop(channel.id, None)
        if channel.owner is not None and self._owners.get(channel.owner) == channel.id:
            del self._owners[channel.owner]

    def close(self) -> None:
        """남은 채널 모두 abandon 후 backend 정리"""
        for channel in list(self._channels.values()):
            channel.abandon()
        self._channels.clear()
        self._owners.clear()
        self.backend.close()
