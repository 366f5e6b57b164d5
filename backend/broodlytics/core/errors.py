from __future__ import annotations

from typing import Any, Dict, Optional


class GrowthEngineError(Exception):
    """Base class for every failure the analytics engine reports to callers."""

    code = "GROWTH_ENGINE_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InsufficientData(GrowthEngineError):
    code = "INSUFFICIENT_DATA"


class InvalidInput(GrowthEngineError, ValueError):
    code = "INVALID_INPUT"


class ReferenceLookupMiss(GrowthEngineError, LookupError):
    code = "REFERENCE_LOOKUP_MISS"


class TargetPredictionError(GrowthEngineError):
    """Expected outcomes where the forecast cannot answer the target question."""

    code = "TARGET_PREDICTION_FAILED"


class UnreachableTarget(TargetPredictionError):
    code = "UNREACHABLE_TARGET"


class TargetTooFar(TargetPredictionError):
    code = "TARGET_TOO_FAR"


__all__ = [
    "GrowthEngineError",
    "InsufficientData",
    "InvalidInput",
    "ReferenceLookupMiss",
    "TargetPredictionError",
    "UnreachableTarget",
    "TargetTooFar",
]
