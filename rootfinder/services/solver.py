# rootfinder/services/solver.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from loguru import logger

from rootfinder.core.exceptions import (
    DivergenceError,
    InvalidGuessError,
    InvalidToleranceError,
)
from rootfinder.services.function_model import CUBIC, FunctionModel

DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_DERIVATIVE_EPSILON = 1e-12


@dataclass(frozen=True)
class Iterate:
    """
    한 스텝의 solver 위치. y = f(x).

    slope / delta_x 는 이 iterate에서 Newton 스텝을 진행했을 때만 채워진다
    (수렴/상한으로 끝난 마지막 iterate는 None).
    """

    index: int
    x: float
    y: float
    slope: Optional[float] = None
    delta_x: Optional[float] = None


IterationTrace = Tuple[Iterate, ...]


@dataclass(frozen=True)
class SolveResult:
    root: float
    trace: IterationTrace
    converged: bool

    @property
    def iterations(self) -> int:
        return len(self.trace)


def validate_inputs(tolerance: float, initial_guess: float) -> None:
    """반복 시작 전에 입력 범위 검증. bool은 숫자로 취급하지 않는다."""
    if isinstance(tolerance, bool) or not isinstance(tolerance, (int, float)):
        raise InvalidToleranceError(f"tolerance must be a real number, got {tolerance!r}")
    if not math.isfinite(tolerance) or tolerance <= 0:
        raise InvalidToleranceError(
            f"tolerance must be a finite number > 0, got {tolerance!r}"
        )
    if isinstance(initial_guess, bool) or not isinstance(initial_guess, (int, float)):
        raise InvalidGuessError(
            f"initial_guess must be a real number, got {initial_guess!r}"
        )
    if not math.isfinite(initial_guess):
        raise InvalidGuessError(f"initial_guess must be finite, got {initial_guess!r}")


class NewtonRaphson:
    """
    Newton-Raphson root finder with trace capture.

    Stops when |f(x)| <= tolerance (converged) or when the trace reaches
    `max_iterations` iterates (returned with converged=False). A vanishing
    derivative aborts the solve with DivergenceError.

    Iterates are plain floats: for |x| above roughly 5e102 the default cubic
    overflows to inf, and the solve raises DivergenceError once the next
    iterate leaves the finite range.
    """

    def __init__(
        self,
        tolerance: float,
        *,
        model: FunctionModel = CUBIC,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        derivative_epsilon: float = DEFAULT_DERIVATIVE_EPSILON,
    ) -> None:
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        if not derivative_epsilon > 0:
            raise ValueError(
                f"derivative_epsilon must be > 0, got {derivative_epsilon}"
            )
        self.tolerance = tolerance
        self.model = model
        self.max_iterations = max_iterations
        self.derivative_epsilon = derivative_epsilon

    def solve(self, initial_guess: float) -> SolveResult:
        validate_inputs(self.tolerance, initial_guess)

        f = self.model.evaluate
        df = self.model.derivative
        trace: list[Iterate] = []
        x = float(initial_guess)

        for index in range(self.max_iterations):
            y = f(x)

            if abs(y) <= self.tolerance:
                trace.append(Iterate(index, x, y))
                logger.debug(
                    f"[newton] converged x={x!r} after {len(trace)} iterates"
                )
                return SolveResult(root=x, trace=tuple(trace), converged=True)

            if index == self.max_iterations - 1:
                trace.append(Iterate(index, x, y))
                break

            slope = df(x)
            if not abs(slope) >= self.derivative_epsilon:
                trace.append(Iterate(index, x, y, slope=slope))
                raise DivergenceError(
                    f"derivative vanished at x={x!r} (f'(x)={slope!r}, step {index})",
                    trace=trace,
                )

            delta_x = y / slope
            trace.append(Iterate(index, x, y, slope=slope, delta_x=delta_x))
            x = x - delta_x

            if not math.isfinite(x):
                raise DivergenceError(
                    f"iterate left the finite range after step {index}",
                    trace=trace,
                )

        logger.debug(
            f"[newton] hit iteration cap {self.max_iterations} at x={x!r} "
            f"(|f(x)|={abs(trace[-1].y)!r} > {self.tolerance!r})"
        )
        return SolveResult(root=x, trace=tuple(trace), converged=False)


def solve(
    tolerance: float,
    initial_guess: float,
    *,
    model: FunctionModel = CUBIC,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    derivative_epsilon: float = DEFAULT_DERIVATIVE_EPSILON,
) -> SolveResult:
    """매 호출마다 새 엔진 인스턴스로 solve (상태 공유 없음)."""
    finder = NewtonRaphson(
        tolerance,
        model=model,
        max_iterations=max_iterations,
        derivative_epsilon=derivative_epsilon,
    )
    return finder.solve(initial_guess)
