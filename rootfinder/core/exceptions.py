# rootfinder/core/exceptions.py
from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence

__all__ = [
    "ErrorKind",
    "RootFinderError",
    "InvalidToleranceError",
    "InvalidGuessError",
    "DivergenceError",
    "ChannelMisuseError",
]


class ErrorKind(str, Enum):
    """응답 envelope의 `error` 필드 값 (API 표준)"""

    INVALID_TOLERANCE = "InvalidTolerance"
    INVALID_GUESS = "InvalidGuess"
    DIVERGENCE = "DivergenceError"
    CHANNEL_MISUSE = "ChannelMisuseError"
    INTERNAL = "InternalError"


class RootFinderError(Exception):
    """도메인 예외 공통 부모. `kind`로 응답 envelope에 매핑된다."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_envelope(self) -> dict[str, Any]:
        return {"error": self.kind.value, "message": self.message}


class InvalidToleranceError(RootFinderError):
    kind = ErrorKind.INVALID_TOLERANCE


class InvalidGuessError(RootFinderError):
    kind = ErrorKind.INVALID_GUESS


class DivergenceError(RootFinderError):
    """
    f'(x)가 사실상 0이거나 다음 iterate가 유한하지 않을 때.

    `trace`는 중단 시점까지의 부분 trace (로그용). 응답에는 포함하지 않는다.
    """

    kind = ErrorKind.DIVERGENCE

    def __init__(self, message: str, trace: Optional[Sequence[Any]] = None) -> None:
        super().__init__(message)
        self.trace = tuple(trace or ())


class ChannelMisuseError(RootFinderError):
    """종료(또는 진행 중)된 채널에 요청을 다시 보낸 경우 - 프로그래밍 오류."""

    kind = ErrorKind.CHANNEL_MISUSE
