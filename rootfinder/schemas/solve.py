# rootfinder/schemas/solve.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from rootfinder.core.config import settings
from rootfinder.core.exceptions import ErrorKind

from .common import AppBaseModel

# ✅ 채널 상태 (API 표준 = 내부 ChannelState 값)
ChannelStateUI = Literal["idle", "dispatched", "completed", "failed", "abandoned"]


class ComputationRequest(AppBaseModel):
    """
    root 계산 요청
    - 값이 없으면 설정(DEFAULT_TOLERANCE / DEFAULT_INITIAL_GUESS) 기본값 사용
    - 범위 검증(tolerance > 0, 유한값)은 엔진에서 수행하고 실패 응답으로 돌려준다
    """

    tolerance: float = Field(
        default_factory=lambda: settings.DEFAULT_TOLERANCE,
        description="Convergence threshold on |f(x)| (must be > 0)",
        examples=[0.001],
    )
    initial_guess: float = Field(
        default_factory=lambda: settings.DEFAULT_INITIAL_GUESS,
        description="Starting point x0",
        examples=[-4.0],
    )


class PresentationPoint(AppBaseModel):
    """시각화 협력자가 소비하는 (index, x, y) 레코드"""

    index: int
    x: float
    y: float


class SolveResponse(AppBaseModel):
    """
    성공 응답
    - converged=False 이면 반복 상한 도달 (root는 마지막 iterate의 x)
    """

    root: float
    converged: bool = True
    iterations: List[PresentationPoint] = Field(default_factory=list)


class ErrorResponse(AppBaseModel):
    """실패 응답 envelope"""

    error: ErrorKind
    message: str


ComputationResponse = Union[SolveResponse, ErrorResponse]


def parse_response(data: Dict[str, Any]) -> ComputationResponse:
    """워커가 돌려준 dict envelope → 응답 모델"""
    if "error" in data:
        return ErrorResponse.model_validate(data)
    return SolveResponse.model_validate(data)


class ChannelCreateIn(AppBaseModel):
    """
    채널 생성 요청
    - owner: 같은 owner로 새 채널을 열면 진행 중이던 이전 채널은 abandon 된다
    """

    owner: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Requester identity (e.g. browser session / form id)",
    )


class ChannelOut(AppBaseModel):
    """채널 상태 조회 응답"""

    channel_id: str = Field(..., description="Channel id")
    state: ChannelStateUI = Field(
        ..., description="idle | dispatched | completed | failed | abandoned"
    )
    owner: Optional[str] = Field(default=None)
    backend: Optional[str] = Field(default=None, description="process | thread | rq")
    request: Optional[ComputationRequest] = Field(default=None)
    response: Optional[Union[SolveResponse, ErrorResponse]] = Field(
        default=None, description="Present once the channel is completed/failed"
    )


class SolveDefaultsOut(AppBaseModel):
    """입력 폼이 초기값으로 쓰는 엔진 설정"""

    tolerance: float
    initial_guess: float
    max_iterations: int
    function: str
