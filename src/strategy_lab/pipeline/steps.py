"""Step Gate: the fixed strategy pipeline and its completion rules.

The strategy pipeline is an ordered list of module steps::

    regime (optional) -> alphaSignal (required) -> backtesting (required)
        -> optimization (optional) -> riskAnalysis (optional)

Order matters for display only.  A session may advance to review once
every required step has usable data in the session store; optional steps
never block.  Missing or corrupted records are workflow facts here, not
errors: absence reads as "not imported", corruption as "imported without
data", which still blocks a required step.
"""

from __future__ import annotations

import logging
from typing import Sequence

from strategy_lab.core.enums import ModuleType
from strategy_lab.core.errors import (
    ConfigError,
    DeserializationError,
    InvalidKeyError,
    NotFoundError,
    UnknownStepError,
)
from strategy_lab.core.models import PipelineState, StepDefinition, StepStatus
from strategy_lab.storage.session_store import ISessionStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default pipeline
# ---------------------------------------------------------------------------

DEFAULT_STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(
        id="regime",
        name="Regime Detection",
        path="/regime-detection",
        required=False,
        storage_key="strategyLab_regimeData",
        module=ModuleType.REGIME_DETECTION,
    ),
    StepDefinition(
        id="alphaSignal",
        name="Alpha Signal Discovery",
        path="/alpha-signal",
        required=True,
        storage_key="strategyLab_alphaSignalData",
        module=ModuleType.ALPHA_SIGNAL,
    ),
    StepDefinition(
        id="backtesting",
        name="Backtesting",
        path="/backtesting",
        required=True,
        storage_key="strategyLab_backtestingData",
        module=ModuleType.BACKTESTING,
    ),
    StepDefinition(
        id="optimization",
        name="Portfolio Optimization",
        path="/portfolio-optimization",
        required=False,
        storage_key="strategyLab_optimizationData",
        module=ModuleType.PORTFOLIO_OPTIMIZATION,
    ),
    StepDefinition(
        id="riskAnalysis",
        name="Risk Analysis",
        path="/risk-analysis",
        required=False,
        storage_key="strategyLab_riskAnalysisData",
        module=ModuleType.RISK_ANALYSIS,
    ),
)


# ---------------------------------------------------------------------------
# StepGate
# ---------------------------------------------------------------------------


class StepGate:
    """Owns the step definitions and derives :class:`PipelineState`.

    Args:
        definitions: Ordered step definitions.  Defaults to
            :data:`DEFAULT_STEPS`.  Ids must be unique.
    """

    def __init__(self, definitions: Sequence[StepDefinition] | None = None) -> None:
        steps = tuple(DEFAULT_STEPS if definitions is None else definitions)
        seen: set[str] = set()
        for step in steps:
            if step.id in seen:
                raise ConfigError(f"Duplicate step id in pipeline: {step.id!r}")
            seen.add(step.id)
        self._steps = steps
        self._by_id = {s.id: s for s in steps}

    def definitions(self) -> tuple[StepDefinition, ...]:
        return self._steps

    def get(self, step_id: str) -> StepDefinition:
        """Look up a step by id.

        Raises:
            UnknownStepError: If no step has this id.
        """
        step = self._by_id.get(step_id)
        if step is None:
            raise UnknownStepError(step_id)
        return step

    @property
    def required_ids(self) -> list[str]:
        return [s.id for s in self._steps if s.required]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def status_of(
        self, step: StepDefinition, session_id: str, store: ISessionStore,
    ) -> StepStatus:
        """Read one step's record and classify it."""
        try:
            record = store.get(step.storage_key, session_id)
        except NotFoundError:
            return StepStatus(step=step)
        except InvalidKeyError as exc:
            logger.warning("StepGate: unreadable key for step %s: %s", step.id, exc)
            return StepStatus(step=step)
        except DeserializationError as exc:
            logger.warning(
                "StepGate: corrupted data for step %s (session %s): %s",
                step.id, session_id, exc,
            )
            return StepStatus(step=step, imported=True, record=None, corrupted=True)
        return StepStatus(step=step, imported=True, record=record)

    def evaluate(self, session_id: str, store: ISessionStore) -> PipelineState:
        """Derive the pipeline state for *session_id* from store contents."""
        statuses = [self.status_of(step, session_id, store) for step in self._steps]
        return PipelineState.from_statuses(session_id, statuses)

    @staticmethod
    def can_advance(state: PipelineState) -> bool:
        """True iff every required step is imported with non-null data.

        Pure function of *state*; never touches storage.
        """
        return all(
            status.usable
            for status in state.steps.values()
            if status.step.required
        )
