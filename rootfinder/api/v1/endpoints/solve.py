# rootfinder/api/v1/endpoints/solve.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from rootfinder.api.deps import get_hub
from rootfinder.core.config import settings
from rootfinder.schemas.solve import (
    ComputationRequest,
    ErrorResponse,
    SolveDefaultsOut,
    SolveResponse,
)
from rootfinder.services.channel import ChannelHub
from rootfinder.services.function_model import CUBIC

router = APIRouter(tags=["solve"])


@router.post(
    "/solve:run",
    response_model=SolveResponse,
    responses={422: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def run_solve(
    body: ComputationRequest,
    owner: Optional[str] = Query(default=None, max_length=200),
    hub: ChannelHub = Depends(get_hub),
):
    """
    채널 생성 + 전송 + 응답 대기를 한 번에.
    - 실패(검증/발산)는 {error, message} envelope + 422
    - 같은 owner의 새 요청에 밀려 abandon 되면 409 (ChannelMisuseError)
    """
    channel = hub.open(owner)
    channel.send(body)
    response = await channel.response()

    if isinstance(response, ErrorResponse):
        return JSONResponse(status_code=422, content=response.model_dump(mode="json"))
    return response


@router.get("/solve/defaults", response_model=SolveDefaultsOut)
def solve_defaults():
    """입력 폼 초기값"""
    return SolveDefaultsOut(
        tolerance=settings.DEFAULT_TOLERANCE,
        initial_guess=settings.DEFAULT_INITIAL_GUESS,
        max_iterations=settings.MAX_ITERATIONS,
        function=CUBIC.label,
    )
