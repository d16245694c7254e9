"""Shared fixtures for the strategy-lab test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from strategy_lab.core.models import EquityPoint, SessionSummary, TradeRecord
from strategy_lab.pipeline.controller import PipelineController
from strategy_lab.pipeline.steps import StepGate
from strategy_lab.storage.session_store import InMemorySessionStore, JsonFileSessionStore


# ---------------------------------------------------------------------------
# Stores & pipeline
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def file_store(tmp_path) -> JsonFileSessionStore:
    return JsonFileSessionStore(tmp_path / "sessions")


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    """Run a test against every local store backend."""
    if request.param == "memory":
        return InMemorySessionStore()
    return JsonFileSessionStore(tmp_path / "sessions")


@pytest.fixture
def gate() -> StepGate:
    return StepGate()


@pytest.fixture
def controller(memory_store) -> PipelineController:
    return PipelineController(memory_store)


# ---------------------------------------------------------------------------
# Backtest results
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_trades() -> list[TradeRecord]:
    """Chronological trade log: +700, -500, +1000, +1250, -1500."""
    return [
        TradeRecord(date="2023-01-15", asset="AAPL", entry_price=150, exit_price=157, pnl=700),
        TradeRecord(date="2023-02-10", asset="MSFT", entry_price=300, exit_price=290, pnl=-500),
        TradeRecord(date="2023-03-22", asset="GOOG", entry_price=1300, exit_price=1350, pnl=1000),
        TradeRecord(date="2023-04-02", asset="TSLA", entry_price=800, exit_price=825, pnl=1250),
        TradeRecord(date="2023-04-15", asset="AMZN", entry_price=3500, exit_price=3400, pnl=-1500),
    ]


@pytest.fixture
def sample_equity() -> list[EquityPoint]:
    return [
        EquityPoint(date="2023-01", equity=100_000),
        EquityPoint(date="2023-02", equity=103_000),
        EquityPoint(date="2023-03", equity=105_500),
        EquityPoint(date="2023-04", equity=101_200),
        EquityPoint(date="2023-05", equity=110_400),
    ]


# ---------------------------------------------------------------------------
# Saved sessions
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_sessions() -> list[SessionSummary]:
    return [
        SessionSummary(
            id="s1",
            user_id="u1",
            module="Portfolio Optimization",
            name="Tech Growth Portfolio",
            timestamp=datetime(2025, 5, 17, 10, 12, tzinfo=timezone.utc),
            metrics={"expectedReturn": 14.2, "sharpeRatio": 1.3, "volatility": 9.1},
        ),
        SessionSummary(
            id="s2",
            user_id="u1",
            module="Backtesting",
            name="Momentum Strategy Test",
            timestamp=datetime(2025, 5, 16, 14, 22, tzinfo=timezone.utc),
            metrics={"totalReturn": 22.5, "maxDrawdown": 8.7, "sharpeRatio": 1.5},
        ),
        SessionSummary(
            id="s3",
            user_id="u1",
            module="Alpha Signal",
            name="Earnings Surprise Signal",
            timestamp=datetime(2025, 5, 15, 18, 45, tzinfo=timezone.utc),
            metrics={"alpha": 0.05, "signalStrength": 0.85},
        ),
    ]
