# rootfinder/workers/solve_worker.py
# RQ worker: settings.SOLVE_QUEUE 의 task_solve job을 처리하는 실행 컨텍스트
from __future__ import annotations

import os

import redis
from loguru import logger
from rq import Queue, Worker
from rq.worker import SimpleWorker

from rootfinder.core.config import Settings, settings
from rootfinder.core.logger import setup_logging
from rootfinder.services.backends import _rq_has_worker_for_queue


def connect(cfg: Settings = settings) -> redis.Redis:
    """Redis 연결 + ping. 실패하면 예외 그대로 전파 (워커는 뜨지 않는다)."""
    conn = redis.from_url(cfg.REDIS_URL)
    try:
        if not conn.ping():
            raise RuntimeError("Redis ping returned False")
    except Exception as e:
        logger.error(f"❌ [solve-worker] Redis {cfg.REDIS_URL} unreachable: {e}")
        raise
    return conn


def main(burst: bool = False, cfg: Settings = settings) -> int:
    setup_logging()

    logger.info(
        f"🚀 [solve-worker] queue={cfg.SOLVE_QUEUE} "
        f"tol={cfg.DEFAULT_TOLERANCE} x0={cfg.DEFAULT_INITIAL_GUESS} "
        f"cap={cfg.MAX_ITERATIONS} eps={cfg.DERIVATIVE_EPSILON} burst={burst}"
    )

    conn = connect(cfg)
    if _rq_has_worker_for_queue(conn, cfg.SOLVE_QUEUE):
        logger.info(f"[solve-worker] another worker already serves '{cfg.SOLVE_QUEUE}'")

    # fork 없는 플랫폼(nt)은 SimpleWorker
    worker_cls = SimpleWorker if os.name == "nt" else Worker
    worker = worker_cls([Queue(cfg.SOLVE_QUEUE, connection=conn)], connection=conn)
    worker.work(burst=burst)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
