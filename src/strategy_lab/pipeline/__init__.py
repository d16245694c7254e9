"""Strategy construction pipeline: step gating and session workflow."""

from .controller import AdvanceDecision, ImportResult, PipelineController
from .steps import DEFAULT_STEPS, StepGate

__all__ = [
    "AdvanceDecision",
    "DEFAULT_STEPS",
    "ImportResult",
    "PipelineController",
    "StepGate",
]
