"""
cadence.analyze.results - Typed per-stage results.

Every stage returns a StageResult: its value plus a status and any
warnings, so degraded conditions travel to the final report instead of
being raised or dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from cadence.models import AnalysisWarning, Stage, WarningCode

T = TypeVar("T")


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    value: T
    stage: Stage
    status: StageStatus = StageStatus.OK
    warnings: tuple[AnalysisWarning, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, value: T, stage: Stage) -> StageResult[T]:
        return cls(value=value, stage=stage)

    @classmethod
    def degraded(
        cls,
        value: T,
        stage: Stage,
        warnings: list[tuple[WarningCode, str]],
    ) -> StageResult[T]:
        return cls(
            value=value,
            stage=stage,
            status=StageStatus.DEGRADED,
            warnings=tuple(AnalysisWarning(code=c, stage=stage, message=m) for c, m in warnings),
        )

    @classmethod
    def failed(cls, value: T, stage: Stage, message: str) -> StageResult[T]:
        warning = AnalysisWarning(code=WarningCode.STAGE_FAILED, stage=stage, message=message)
        return cls(value=value, stage=stage, status=StageStatus.FAILED, warnings=(warning,))

    @property
    def is_ok(self) -> bool:
        return self.status == StageStatus.OK
