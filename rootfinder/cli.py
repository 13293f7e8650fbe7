# rootfinder/cli.py
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from rootfinder.core.config import settings
from rootfinder.core.exceptions import RootFinderError
from rootfinder.core.logger import setup_logging
from rootfinder.schemas.solve import (
    ComputationRequest,
    ComputationResponse,
    ErrorResponse,
    SolveResponse,
)
from rootfinder.services.backends import build_backend
from rootfinder.services.channel import ComputationChannel
from rootfinder.services.function_model import CUBIC
from rootfinder.services.presentation import to_presentation
from rootfinder.services.solver import Iterate, solve as newton_solve

app = typer.Typer(help="Newton-Raphson root finder")


def _fmt(v: Optional[float]) -> str:
    return "-" if v is None else f"{v:.2f}"


def _format_iterate(it: Iterate) -> str:
    return (
        f"index = {it.index} x = {_fmt(it.x)} y = {_fmt(it.y)} "
        f"slope = {_fmt(it.slope)} delta_x = {_fmt(it.delta_x)}"
    )


@app.command("solve")
def solve_cmd(
    tolerance: float = typer.Option(settings.DEFAULT_TOLERANCE, help="|f(x)| 수렴 기준"),
    initial_guess: float = typer.Option(settings.DEFAULT_INITIAL_GUESS, help="초기값 x0"),
    max_iterations: int = typer.Option(settings.MAX_ITERATIONS, min=1, help="반복 상한"),
    as_json: bool = typer.Option(False, "--json", help="응답 envelope를 JSON으로 출력"),
):
    """f(x) = 2x^3 - 4x^2 + 6 의 root를 현재 프로세스에서 바로 계산"""
    setup_logging()
    try:
        result = newton_solve(
            tolerance,
            initial_guess,
            max_iterations=max_iterations,
            derivative_epsilon=settings.DERIVATIVE_EPSILON,
        )
    except RootFinderError as e:
        if as_json:
            typer.echo(json.dumps(e.to_envelope()))
        else:
            typer.echo(f"{e.kind.value}: {e.message}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        out = SolveResponse(
            root=result.root,
            converged=result.converged,
            iterations=to_presentation(result.trace),
        )
        typer.echo(out.model_dump_json(indent=2))
        return

    typer.echo(f"f(x) = {CUBIC.label}")
    for it in result.trace:
        typer.echo(_format_iterate(it))
    status = "converged" if result.converged else "NOT converged"
    typer.echo(f"root = {result.root:.2f} ({status}, {result.iterations} iterations)")


async def _run_on_channel(request: ComputationRequest) -> ComputationResponse:
    backend = build_backend()
    try:
        channel = ComputationChannel(backend)
        channel.send(request)
        return await channel.response()
    finally:
        backend.close()


@app.command("run")
def run_cmd(json_path: Path, pretty: bool = True):
    """요청 JSON 파일({tolerance, initial_guess})을 채널(설정된 backend)로 실행"""
    setup_logging()
    with open(json_path, "r", encoding="utf-8") as f:
        request = ComputationRequest(**json.load(f))

    response = asyncio.run(_run_on_channel(request))
    typer.echo(response.model_dump_json(indent=2 if pretty else None))
    if isinstance(response, ErrorResponse):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
