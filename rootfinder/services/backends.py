# rootfinder/services/backends.py
from __future__ import annotations

import asyncio
import functools
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Dict, Optional

import redis
from loguru import logger
from rq import Queue, Worker
from rq.job import Job, JobStatus

from rootfinder.core.config import Settings, settings
from rootfinder.services.function_model import CUBIC, FunctionModel
from rootfinder.services.tasks import task_solve


class ChannelBackend(ABC):
    """
    채널의 격리된 실행 컨텍스트.
    run()은 요청 payload 하나를 받아 응답 envelope(dict) 하나를 돌려준다.
    """

    name: str = "unknown"

    @abstractmethod
    async def run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """요청 하나 실행. 취소(CancelledError)되면 best-effort로 작업을 정리한다."""

    def close(self) -> None:
        """풀/연결 정리 (기본: 없음)"""


# =============================================================================
# In-process executor (ProcessPool / ThreadPool)
# =============================================================================
class ExecutorBackend(ChannelBackend):
    def __init__(
        self,
        executor: Executor,
        *,
        name: str = "thread",
        model: FunctionModel = CUBIC,
        max_iterations: Optional[int] = None,
        owns_executor: bool = True,
    ) -> None:
        self.name = name
        self.model = model
        self.max_iterations = max_iterations
        self._executor = executor
        self._owns_executor = owns_executor

    @classmethod
    def create(
        cls,
        kind: str,
        workers: int,
        *,
        model: FunctionModel = CUBIC,
        max_iterations: Optional[int] = None,
    ) -> "ExecutorBackend":
        if kind == "process":
            executor: Executor = ProcessPoolExecutor(max_workers=workers)
        elif kind == "thread":
            executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="rootfinder-channel"
            )
        else:
            raise ValueError(f"unknown executor backend: {kind!r}")
        return cls(executor, name=kind, model=model, max_iterations=max_iterations)

    async def run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        fn = functools.partial(task_solve, payload, self.model, self.max_iterations)
        # 시작 전 취소면 풀에서 빠지고, 이미 실행 중이면 결과만 버려진다
        return await loop.run_in_executor(self._executor, fn)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)


# =============================================================================
# Redis / RQ
# =============================================================================
class RQBackend(ChannelBackend):
    name = "rq"

    def __init__(
        self,
        queue: Queue,
        *,
        timeout_s: float = 30.0,
        poll_interval_s: float = 0.05,
        model: FunctionModel = CUBIC,
        max_iterations: Optional[int] = None,
    ) -> None:
        self.queue = queue
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.model = model
        self.max_iterations = max_iterations

    def _enqueue(self, payload: Dict[str, Any]) -> Job:
        return self.queue.enqueue(
            task_solve,
            payload,
            self.model,
            self.max_iterations,
            job_timeout=int(self.timeout_s) or 1,
            ttl=int(self.timeout_s) or 1,
            result_ttl=600,
            failure_ttl=3600,
        )

    async def run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        job = await asyncio.to_thread(self._enqueue, payload)
        deadline = loop.time() + self.timeout_s
        logger.debug(f"[rq] enqueued job={job.id} queue={self.queue.name}")

        try:
            while True:
                status = await asyncio.to_thread(job.get_status, True)
                if status == JobStatus.FINISHED:
                    return job.return_value()
                if status in (JobStatus.FAILED, JobStatus.STOPPED, JobStatus.CANCELED):
                    raise RuntimeError(f"RQ job {job.id} ended with status {status}")
                if loop.time() > deadline:
                    raise TimeoutError(
                        f"RQ job {job.id} did not finish within {self.timeout_s}s"
                    )
                await asyncio.sleep(self.poll_interval_s)
        except asyncio.CancelledError:
            self._cancel(job)
            raise

    def _cancel(self, job: Job) -> None:
        try:
            job.cancel()
            logger.info(f"[rq] job={job.id} canceled (channel abandoned)")
        except Exception as e:
            logger.warning(f"[rq] job={job.id} cancel failed: {e}")

    def close(self) -> None:
        self.queue.connection.close()


def _rq_has_worker_for_queue(r: redis.Redis, queue_name: str) -> bool:
    for w in Worker.all(connection=r):
        if queue_name in w.queue_names():
            return True
    return False


def build_backend(cfg: Settings = settings) -> ChannelBackend:
    """
    설정(CHANNEL_BACKEND)에 맞는 실행 컨텍스트 생성.
    rq 가 불가능(Redis 다운 / 워커 없음)하면 in-process process pool로 fallback.
    """
    kind = cfg.CHANNEL_BACKEND

    if kind == "rq":
        try:
            r = redis.from_url(cfg.REDIS_URL)
            if not r.ping():
                raise RuntimeError("Redis ping failed")
            if not _rq_has_worker_for_queue(r, cfg.SOLVE_QUEUE):
                raise RuntimeError(f"No RQ worker listening to '{cfg.SOLVE_QUEUE}' queue")
            logger.info(f"[channel] backend=rq queue={cfg.SOLVE_QUEUE}")
            return RQBackend(
                Queue(cfg.SOLVE_QUEUE, connection=r),
                timeout_s=cfg.CHANNEL_TIMEOUT_S,
                max_iterations=cfg.MAX_ITERATIONS,
            )
        except Exception as e:
            logger.warning(
                f"Redis/RQ not usable ({e}). Falling back to in-process process pool."
            )
            kind = "process"

    logger.info(f"[channel] backend={kind} workers={cfg.CHANNEL_WORKERS}")
    return ExecutorBackend.create(
        kind, cfg.CHANNEL_WORKERS, max_iterations=cfg.MAX_ITERATIONS
    )
