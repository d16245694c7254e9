"""Core domain models used across the strategy lab.

These are the canonical plain-data shapes exchanged between the pipeline,
the session store, the metrics engine and the comparator.  Renderers and
analysis modules consume and produce these same types.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ModuleType
from .ids import utc_now

# Module-specific metric mapping, e.g. {"sharpeRatio": 1.3, "volatility": 9.1}
MetricsSummary = dict[str, float]


# ---------------------------------------------------------------------------
# Pipeline configuration
# ---------------------------------------------------------------------------

class StepDefinition(BaseModel):
    """Static description of one pipeline stage."""

    id: str  # Stable across runs, e.g. "alphaSignal"
    name: str  # Display name, e.g. "Alpha Signal Discovery"
    path: str = ""  # Informational only (module route)
    required: bool = False
    storage_key: str  # Namespace prefix, e.g. "strategyLab_alphaSignalData"
    module: ModuleType | None = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Persisted step output
# ---------------------------------------------------------------------------

class StepRecord(BaseModel):
    """Persisted output of running one module for one session.

    ``payload`` is opaque to the core: any JSON document the module
    exported.  ``schema_version`` tags the envelope so readers never need
    to guess its shape.
    """

    storage_key: str
    session_id: str
    payload: Any = None
    timestamp: datetime = Field(default_factory=utc_now)
    schema_version: int = 1


# ---------------------------------------------------------------------------
# Derived pipeline state
# ---------------------------------------------------------------------------

class StepStatus(BaseModel):
    """Import status of a single step for a single session."""

    step: StepDefinition
    imported: bool = False
    record: StepRecord | None = None
    corrupted: bool = False  # Bytes exist but could not be parsed

    @property
    def usable(self) -> bool:
        """Imported and carrying non-null data."""
        return self.imported and self.record is not None


class PipelineState(BaseModel):
    """Derived (never stored) workflow state for one session.

    ``all_required_satisfied`` is true iff every required step has a
    non-null record.  Build instances with :meth:`from_statuses` so the
    flag always agrees with the statuses.
    """

    session_id: str
    steps: dict[str, StepStatus] = Field(default_factory=dict)  # Ordered
    all_required_satisfied: bool = False

    @classmethod
    def from_statuses(
        cls, session_id: str, statuses: list[StepStatus],
    ) -> PipelineState:
        return cls(
            session_id=session_id,
            steps={s.step.id: s for s in statuses},
            all_required_satisfied=all(
                s.usable for s in statuses if s.step.required
            ),
        )

    def status(self, step_id: str) -> StepStatus | None:
        return self.steps.get(step_id)

    def missing_required(self) -> list[StepDefinition]:
        """Required steps that still block advancement, in display order."""
        return [
            s.step for s in self.steps.values()
            if s.step.required and not s.usable
        ]

    def imported_ids(self) -> list[str]:
        return [sid for sid, s in self.steps.items() if s.usable]

    def corrupted_ids(self) -> list[str]:
        return [sid for sid, s in self.steps.items() if s.corrupted]


# ---------------------------------------------------------------------------
# Raw result records
# ---------------------------------------------------------------------------

class TradeRecord(BaseModel):
    """One executed trade from a backtest trade log."""

    date: str  # ISO date, e.g. "2023-01-15"
    asset: str
    entry_price: float
    exit_price: float
    pnl: float  # Signed


class EquityPoint(BaseModel):
    """Equity value at the end of one tracked period."""

    date: str  # ISO date or period label, e.g. "2023-01"
    equity: float


class DrawdownPoint(BaseModel):
    """Percentage decline from the running peak (<= 0)."""

    date: str
    drawdown_pct: float | None  # None when the peak is non-positive


class TradeStatistics(BaseModel):
    """Summary statistics derived from a trade log.

    Values that are undefined for an empty log are ``None``, never 0 or NaN.
    """

    total_trades: int = 0
    avg_profit: float | None = None
    max_win: float | None = None
    max_loss: float | None = None
    max_win_streak: int = 0
    max_loss_streak: int = 0
    current_win_streak: int = 0
    current_loss_streak: int = 0
    win_rate: float | None = None
    total_pnl: float | None = None
    profit_factor: float | None = None


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class SessionSummary(BaseModel):
    """A saved analysis session with its headline metrics."""

    id: str
    name: str
    module: str  # Display name, e.g. "Portfolio Optimization"
    timestamp: datetime = Field(default_factory=utc_now)
    metrics: MetricsSummary = Field(default_factory=dict)
    user_id: str = ""
