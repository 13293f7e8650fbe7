# tests/test_solver.py
# pytest unit tests for the Newton-Raphson engine (services/solver.py)

from __future__ import annotations

import math

import pytest

from rootfinder.core.exceptions import (
    DivergenceError,
    InvalidGuessError,
    InvalidToleranceError,
)
from rootfinder.services.function_model import CUBIC, FunctionModel
from rootfinder.services.solver import Iterate, NewtonRaphson, solve


# -----------------------------------------------------------------------------
# helpers
# -----------------------------------------------------------------------------
class CountingModel(FunctionModel):
    """evaluate/derivative 호출 횟수를 세는 모델"""

    def __init__(self) -> None:
        super().__init__(func=CUBIC.func, deriv=CUBIC.deriv, label="counting")
        object.__setattr__(self, "calls", 0)

    def evaluate(self, x: float) -> float:
        object.__setattr__(self, "calls", self.calls + 1)
        return super().evaluate(x)

    def derivative(self, x: float) -> float:
        object.__setattr__(self, "calls", self.calls + 1)
        return super().derivative(x)


def _osc_f(x: float) -> float:
    return x * x * x - 2 * x + 2


def _osc_df(x: float) -> float:
    return 3 * x * x - 2


# x0 = 0 에서 Newton 스텝이 0 -> 1 -> 0 -> ... 정확히 순환
OSCILLATING = FunctionModel(func=_osc_f, deriv=_osc_df, label="x^3 - 2x + 2")


def assert_contiguous(trace) -> None:
    assert [it.index for it in trace] == list(range(len(trace)))


# -----------------------------------------------------------------------------
# 1) end-to-end scenarios
# -----------------------------------------------------------------------------
def test_converges_from_minus_four():
    r = solve(0.001, -4)

    assert r.converged is True
    assert r.root == pytest.approx(-1.0, abs=1e-3)
    assert abs(CUBIC.evaluate(r.root)) <= 0.001
    assert 1 <= len(r.trace) <= 10
    assert r.trace[0] == Iterate(0, -4.0, -186.0, slope=128.0, delta_x=-186.0 / 128.0)
    assert_contiguous(r.trace)


def test_converges_from_minus_twenty():
    r = solve(0.001, -20)

    assert r.converged is True
    assert r.root == pytest.approx(-1.0, abs=1e-3)
    assert abs(CUBIC.evaluate(r.root)) <= 0.001
    assert len(r.trace) < 1000
    assert r.trace[0].x == -20.0
    assert r.trace[0].y == CUBIC.evaluate(-20.0)
    assert_contiguous(r.trace)


@pytest.mark.parametrize("guess", [-4.0, -20.0, -100.0, -1.5, -0.5, 3.0])
@pytest.mark.parametrize("tol", [1e-2, 1e-6, 1e-10])
def test_root_satisfies_tolerance(guess: float, tol: float):
    r = solve(tol, guess)
    assert r.converged
    assert abs(CUBIC.evaluate(r.root)) <= tol
    assert r.root == r.trace[-1].x


def test_last_iterate_has_no_step_recorded():
    r = solve(0.001, -4)
    last = r.trace[-1]
    assert last.slope is None and last.delta_x is None
    for it in r.trace[:-1]:
        assert it.slope == CUBIC.derivative(it.x)
        assert it.delta_x == it.y / it.slope


def test_each_step_follows_newton_update():
    r = solve(1e-8, -4)
    for prev, cur in zip(r.trace, r.trace[1:]):
        assert cur.x == prev.x - prev.delta_x
        assert cur.y == CUBIC.evaluate(cur.x)


# -----------------------------------------------------------------------------
# 2) determinism
# -----------------------------------------------------------------------------
def test_identical_inputs_produce_identical_results():
    a = solve(0.001, -20)
    b = NewtonRaphson(0.001).solve(-20)

    assert a == b
    assert a.root == b.root
    assert [(it.x, it.y) for it in a.trace] == [(it.x, it.y) for it in b.trace]


def test_finder_instance_is_reusable_without_shared_state():
    finder = NewtonRaphson(0.001)
    first = finder.solve(-4)
    finder.solve(-20)
    again = finder.solve(-4)
    assert first == again


# -----------------------------------------------------------------------------
# 3) boundaries
# -----------------------------------------------------------------------------
def test_guess_already_within_tolerance_returns_single_iterate():
    r = solve(0.001, -1.0)
    assert r.converged
    assert r.root == -1.0
    assert r.trace == (Iterate(0, -1.0, 0.0),)


@pytest.mark.parametrize("tol", [0.0, -0.001, -1, math.nan, math.inf, -math.inf])
def test_invalid_tolerance_rejected_before_iteration(tol):
    model = CountingModel()
    with pytest.raises(InvalidToleranceError):
        NewtonRaphson(tol, model=model).solve(-4)
    assert model.calls == 0


@pytest.mark.parametrize("tol", [None, "0.1", True])
def test_non_numeric_tolerance_rejected(tol):
    with pytest.raises(InvalidToleranceError):
        solve(tol, -4)  # type: ignore[arg-type]


@pytest.mark.parametrize("guess", [math.nan, math.inf, -math.inf, None, "x"])
def test_invalid_guess_rejected_before_iteration(guess):
    model = CountingModel()
    with pytest.raises(InvalidGuessError):
        NewtonRaphson(0.001, model=model).solve(guess)  # type: ignore[arg-type]
    assert model.calls == 0


@pytest.mark.parametrize("guess", [0.0, 4 / 3])
def test_vanishing_derivative_raises_divergence_on_first_step(guess: float):
    with pytest.raises(DivergenceError) as ei:
        solve(0.001, guess)

    err = ei.value
    assert len(err.trace) == 1
    assert err.trace[0].index == 0
    assert err.trace[0].x == guess
    assert err.kind.value == "DivergenceError"


def test_non_finite_iterate_raises_divergence():
    blowup = FunctionModel(func=lambda x: 1e300, deriv=lambda x: 1e-11)
    with pytest.raises(DivergenceError, match="finite"):
        solve(0.001, 1.0, model=blowup)


def test_guess_beyond_float_range_of_cubic_raises_divergence():
    with pytest.raises(DivergenceError, match="finite") as ei:
        solve(0.001, 6e102)

    assert len(ei.value.trace) == 1
    assert ei.value.trace[0].y == math.inf


def test_large_guess_within_float_range_still_converges():
    r = solve(0.001, 1e102)
    assert r.converged
    assert r.root == pytest.approx(-1.0, abs=1e-3)
    assert len(r.trace) < 1000


# -----------------------------------------------------------------------------
# 4) iteration cap (non-convergence is not an error)
# -----------------------------------------------------------------------------
def test_oscillation_hits_cap_and_returns_last_iterate():
    r = solve(1e-9, 0.0, model=OSCILLATING)

    assert r.converged is False
    assert len(r.trace) == 1000
    assert r.root == r.trace[-1].x == 1.0
    assert [it.x for it in r.trace[:4]] == [0.0, 1.0, 0.0, 1.0]
    assert_contiguous(r.trace)


@pytest.mark.parametrize("cap", [1, 2, 5])
def test_trace_never_exceeds_cap(cap: int):
    r = solve(1e-9, 0.0, model=OSCILLATING, max_iterations=cap)
    assert len(r.trace) == cap
    assert r.converged is False
    assert r.root == r.trace[-1].x


def test_cap_of_one_still_reports_convergence_at_guess():
    r = solve(0.001, -1.0, max_iterations=1)
    assert r.converged is True


@pytest.mark.parametrize("kwargs", [{"max_iterations": 0}, {"derivative_epsilon": 0.0}])
def test_invalid_engine_configuration(kwargs):
    with pytest.raises(ValueError):
        NewtonRaphson(0.001, **kwargs)
