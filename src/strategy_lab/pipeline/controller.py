"""Pipeline Controller: drives one strategy-creation session.

Glues the :class:`StepGate` to a session store.  Modules export their
results with :meth:`PipelineController.export_step`; the strategy builder
imports them with :meth:`import_step` and asks :meth:`try_advance` whether
the review stage may be unlocked.  Expected user-facing outcomes (nothing
exported yet, corrupted export, missing required steps) come back as
structured results with a message; only configuration mistakes raise.

Usage::

    controller = PipelineController(InMemorySessionStore())
    controller.export_step("session_123", "alphaSignal", {"ic": 0.12})
    result = controller.import_step("session_123", "alphaSignal")
    decision = controller.try_advance("session_123")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from strategy_lab.core.models import PipelineState, StepRecord
from strategy_lab.storage.session_store import ISessionStore

from .steps import StepGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import; unpacks as ``(success, message)``.

    ``state`` carries the pipeline state re-evaluated after the import.
    """

    success: bool
    message: str
    state: PipelineState | None = None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.success, self.message))


@dataclass(frozen=True)
class AdvanceDecision:
    """Outcome of an advance check; unpacks as ``(allowed, state)``."""

    allowed: bool
    state: PipelineState
    message: str = ""

    def __iter__(self) -> Iterator[Any]:
        return iter((self.allowed, self.state))


class PipelineController:
    """Per-session workflow over a session store.

    Args:
        store: Session store holding module exports.
        gate: Step gate; defaults to the standard strategy pipeline.
    """

    def __init__(self, store: ISessionStore, gate: StepGate | None = None) -> None:
        self._store = store
        self._gate = gate or StepGate()

    @property
    def gate(self) -> StepGate:
        return self._gate

    @property
    def store(self) -> ISessionStore:
        return self._store

    def load_state(self, session_id: str) -> PipelineState:
        return self._gate.evaluate(session_id, self._store)

    def export_step(self, session_id: str, step_id: str, payload: Any) -> StepRecord:
        """Persist a module's output for *session_id* under the step's key.

        Raises:
            UnknownStepError: If *step_id* is not a pipeline step.
            SerializationError: If *payload* is not strict JSON.
        """
        step = self._gate.get(step_id)
        record = self._store.put(step.storage_key, session_id, payload)
        logger.info("Exported %s data for session %s", step.id, session_id)
        return record

    def import_step(self, session_id: str, step_id: str) -> ImportResult:
        """Import a step's exported data into the session's pipeline.

        Raises:
            UnknownStepError: If *step_id* is not a pipeline step.
        """
        step = self._gate.get(step_id)
        status = self._gate.status_of(step, session_id, self._store)

        if status.corrupted:
            logger.warning(
                "Import of %s for session %s failed: corrupted data",
                step.id, session_id,
            )
            return ImportResult(
                False,
                f"Error parsing imported data for {step.name}.",
                self.load_state(session_id),
            )

        if not status.imported:
            logger.info("Import of %s for session %s: no exported data", step.id, session_id)
            return ImportResult(
                False,
                f"No exported data found for {step.name}. "
                f"Please run and export from the module first.",
                self.load_state(session_id),
            )

        state = self.load_state(session_id)
        logger.info("Imported %s data for session %s", step.id, session_id)
        return ImportResult(True, f"{step.name} data imported successfully.", state)

    def try_advance(self, session_id: str) -> AdvanceDecision:
        """Decide whether the session may proceed to review.  Read-only."""
        state = self.load_state(session_id)
        if self._gate.can_advance(state):
            return AdvanceDecision(True, state, "All required steps imported.")

        missing = ", ".join(step.name for step in state.missing_required())
        return AdvanceDecision(
            False,
            state,
            f"Please import data for all required steps before proceeding "
            f"(missing: {missing}).",
        )
