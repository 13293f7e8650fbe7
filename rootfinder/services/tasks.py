# rootfinder/services/tasks.py
from __future__ import annotations

import os
from typing import Any, Dict, Optional

from loguru import logger

from rootfinder.core.config import settings
from rootfinder.core.exceptions import RootFinderError
from rootfinder.services.function_model import CUBIC, FunctionModel
from rootfinder.services.presentation import to_records
from rootfinder.services.solver import NewtonRaphson

# =========================================================
# Worker-side task (ProcessPool / ThreadPool / RQ 공용)
# =========================================================


def _build_finder(
    payload: Dict[str, Any],
    model: FunctionModel,
    max_iterations: Optional[int],
) -> NewtonRaphson:
    return NewtonRaphson(
        payload.get("tolerance"),  # type: ignore[arg-type]
        model=model,
        max_iterations=max_iterations or settings.MAX_ITERATIONS,
        derivative_epsilon=settings.DERIVATIVE_EPSILON,
    )


def task_solve(
    payload: Dict[str, Any],
    model: FunctionModel = CUBIC,
    max_iterations: Optional[int] = None,
) -> Dict[str, Any]:
    """
    채널 하나의 요청 하나를 처리하는 태스크.

    - 요청마다 새 NewtonRaphson 인스턴스 (엔진 상태 재사용 없음)
    - 검증 실패 / 발산은 {error, message} envelope로 반환 (재시도 안 함)
    - 그 외 예외는 로그 후 그대로 올려서 채널이 InternalError로 처리
    """
    tag = payload.get("channel_id", "-")
    logger.debug(f"[channel={tag}] solve start pid={os.getpid()} payload={payload}")

    try:
        finder = _build_finder(payload, model, max_iterations)
        result = finder.solve(payload.get("initial_guess"))  # type: ignore[arg-type]
    except RootFinderError as e:
        logger.info(f"[channel={tag}] solve rejected: {e.kind.value}: {e.message}")
        return e.to_envelope()
    except Exception as e:
        logger.exception(f"❌ [channel={tag}] solve crashed: {e}")
        raise

    if not result.converged:
        logger.warning(
            f"[channel={tag}] iteration cap reached ({result.iterations}), "
            f"returning non-converged root={result.root!r}"
        )

    return {
        "root": result.root,
        "converged": result.converged,
        "iterations": to_records(result.trace),
    }
