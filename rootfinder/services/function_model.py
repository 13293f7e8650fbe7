# rootfinder/services/function_model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

RealFn = Callable[[float], float]


@dataclass(frozen=True)
class FunctionModel:
    """
    Newton-Raphson 대상 함수와 도함수 쌍 (Strategy).

    불변 객체이므로 동시에 실행되는 여러 solve가 읽기 전용으로 공유해도 안전하다.
    ProcessPool / RQ 로 넘길 때는 func/deriv가 모듈 레벨 함수여야 pickle 된다.
    """

    func: RealFn
    deriv: RealFn
    label: str = "f(x)"

    def evaluate(self, x: float) -> float:
        return self.func(x)

    def derivative(self, x: float) -> float:
        return self.deriv(x)


def cubic(x: float) -> float:
    return 2 * x * x * x - 4 * x * x + 6


def cubic_derivative(x: float) -> float:
    return 6 * x * x - 8 * x


# 기본 모델: f(x) = 2x^3 - 4x^2 + 6, 실근 x = -1
CUBIC = FunctionModel(func=cubic, deriv=cubic_derivative, label="2x^3 - 4x^2 + 6")
