"""
Conflict Detection Endpoints

Upstream adapters post a normalized signal batch and receive a ConflictReport.
"""
from typing import List
from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from foldera.api.dependencies import get_solver
from foldera.detection.scheduling import detect_scheduling_conflicts
from foldera.detection.solver import ConflictSolver
from foldera.models.report import ConflictReport
from foldera.models.signal import WorkSignal

router = APIRouter(prefix="/conflicts", tags=["Conflicts"])


class DetectionRequest(BaseModel):
    """A detection batch. Signal ids must be unique within the batch."""
    signals: List[WorkSignal] = Field(default_factory=list)
    use_llm: bool = True

    @field_validator("signals")
    @classmethod
    def _unique_ids(cls, value: List[WorkSignal]) -> List[WorkSignal]:
        seen = set()
        duplicates = []
        for signal in value:
            if signal.id in seen:
                duplicates.append(signal.id)
            seen.add(signal.id)
        if duplicates:
            raise ValueError(f"duplicate signal ids in batch: {sorted(set(duplicates))}")
        return value


@router.post("/detect", response_model=ConflictReport)
async def detect_conflicts(
    payload: DetectionRequest,
    solver: ConflictSolver = Depends(get_solver),
) -> ConflictReport:
    """
    Run full detection (deterministic pass plus the LLM path when enabled).

    The LLM path never causes an error response: if it fails the report
    simply contains the deterministic conflicts.
    """
    if payload.use_llm:
        conflicts = await solver.detect(payload.signals)
    else:
        conflicts = detect_scheduling_conflicts(payload.signals)

    logger.debug(f"/conflicts/detect: {len(payload.signals)} signals -> {len(conflicts)} conflicts")
    return ConflictReport.build(len(payload.signals), conflicts)


@router.post("/scheduling", response_model=ConflictReport)
async def detect_scheduling(payload: DetectionRequest) -> ConflictReport:
    """Deterministic scheduling check only; never contacts the model."""
    conflicts = detect_scheduling_conflicts(payload.signals)
    return ConflictReport.build(len(payload.signals), conflicts)
