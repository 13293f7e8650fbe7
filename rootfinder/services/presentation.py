# rootfinder/services/presentation.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from rootfinder.schemas.solve import PresentationPoint
from rootfinder.services.solver import Iterate


def to_presentation(trace: Iterable[Iterate]) -> List[PresentationPoint]:
    """trace → (index, x, y) 레코드. 순서 유지, 1:1 필드 투영만 수행."""
    return [PresentationPoint(index=it.index, x=it.x, y=it.y) for it in trace]


def to_records(trace: Iterable[Iterate]) -> List[Dict[str, Any]]:
    """플롯 라이브러리 등 JSON 소비자용 plain dict 목록"""
    return [p.model_dump() for p in to_presentation(trace)]
