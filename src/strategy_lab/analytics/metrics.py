"""Metrics Engine: summary statistics derived from raw result series.

All functions are pure: inputs are never mutated, there is no hidden
state, and output depends only on input values and their order.
Statistics that are undefined for an empty series are reported as
``None`` rather than 0 or NaN so displays never show a misleading number.

Usage::

    curve = compute_drawdown_curve(equity_points)
    stats = compute_trade_statistics(trades)
    print(stats.max_win_streak, stats.avg_profit)
"""

from __future__ import annotations

import logging
from operator import attrgetter
from typing import Sequence, TypeVar

from strategy_lab.core.errors import EmptySeriesError
from strategy_lab.core.models import (
    DrawdownPoint,
    EquityPoint,
    MetricsSummary,
    TradeRecord,
    TradeStatistics,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SORTABLE_TRADE_FIELDS = frozenset(TradeRecord.model_fields)


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------


def compute_drawdown_curve(points: Sequence[EquityPoint]) -> list[DrawdownPoint]:
    """Percentage drawdown from the running peak, one entry per input point.

    The running peak starts at the first point's equity, so the first
    drawdown is always 0.  A non-positive peak makes the percentage
    undefined and the entry carries ``None``.
    """
    curve: list[DrawdownPoint] = []
    peak: float | None = None
    for point in points:
        if peak is None or point.equity > peak:
            peak = point.equity
        if peak > 0:
            dd: float | None = (point.equity - peak) / peak * 100
        else:
            dd = None
        curve.append(DrawdownPoint(date=point.date, drawdown_pct=dd))
    return curve


def max_drawdown(points: Sequence[EquityPoint]) -> float | None:
    """Deepest drawdown percentage (most negative), or None if undefined."""
    values = [p.drawdown_pct for p in compute_drawdown_curve(points)]
    defined = [v for v in values if v is not None]
    if not defined:
        return None
    return min(defined)


# ---------------------------------------------------------------------------
# Trade statistics
# ---------------------------------------------------------------------------


def compute_trade_statistics(trades: Sequence[TradeRecord]) -> TradeStatistics:
    """Average/extreme P&L and win/loss streaks over a trade log.

    Trades are scanned in the given order.  ``pnl > 0`` is a win; zero or
    negative P&L is a loss.  Each outcome extends its own streak and
    resets the other.
    """
    if not trades:
        return TradeStatistics()

    pnls = [t.pnl for t in trades]

    max_win_streak = max_loss_streak = 0
    win_streak = loss_streak = 0
    for pnl in pnls:
        if pnl > 0:
            win_streak += 1
            loss_streak = 0
            max_win_streak = max(max_win_streak, win_streak)
        else:
            loss_streak += 1
            win_streak = 0
            max_loss_streak = max(max_loss_streak, loss_streak)

    gross_wins = sum(p for p in pnls if p > 0)
    gross_losses = -sum(p for p in pnls if p < 0)
    wins = sum(1 for p in pnls if p > 0)
    total = sum(pnls)

    return TradeStatistics(
        total_trades=len(pnls),
        avg_profit=total / len(pnls),
        max_win=max(pnls),
        max_loss=min(pnls),
        max_win_streak=max_win_streak,
        max_loss_streak=max_loss_streak,
        current_win_streak=win_streak,
        current_loss_streak=loss_streak,
        win_rate=wins / len(pnls),
        total_pnl=total,
        profit_factor=gross_wins / gross_losses if gross_losses > 0 else None,
    )


def require_defined(value: T | None, what: str) -> T:
    """Unwrap an optional statistic, raising when it is undefined.

    Raises:
        EmptySeriesError: If *value* is ``None``.
    """
    if value is None:
        raise EmptySeriesError(f"{what} is undefined for an empty series")
    return value


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def sort_by_field(
    trades: Sequence[TradeRecord], field: str, ascending: bool = True,
) -> list[TradeRecord]:
    """Stable sort of a trade log by one field.

    Ties keep their original relative order in both directions.

    Raises:
        ValueError: If *field* is not a trade field.
    """
    if field not in SORTABLE_TRADE_FIELDS:
        raise ValueError(
            f"Cannot sort trades by {field!r}; "
            f"expected one of {sorted(SORTABLE_TRADE_FIELDS)}"
        )
    # sorted() keeps equal elements in input order even with reverse=True
    return sorted(trades, key=attrgetter(field), reverse=not ascending)


# ---------------------------------------------------------------------------
# Session summaries
# ---------------------------------------------------------------------------


def summarize_backtest(
    equity_points: Sequence[EquityPoint], trades: Sequence[TradeRecord],
) -> MetricsSummary:
    """Flatten backtest statistics into a metrics mapping.

    Undefined values are omitted, so a comparison shows them as missing.
    """
    stats = compute_trade_statistics(trades)
    summary: MetricsSummary = {}

    dd = max_drawdown(equity_points)
    if dd is not None:
        summary["maxDrawdown"] = round(dd, 4)
    if len(equity_points) >= 2 and equity_points[0].equity > 0:
        first, last = equity_points[0].equity, equity_points[-1].equity
        summary["totalReturn"] = round((last - first) / first * 100, 4)

    if stats.total_trades:
        summary["totalTrades"] = float(stats.total_trades)
        summary["maxWinStreak"] = float(stats.max_win_streak)
        summary["maxLossStreak"] = float(stats.max_loss_streak)
    for name, value in (
        ("avgProfit", stats.avg_profit),
        ("maxWin", stats.max_win),
        ("maxLoss", stats.max_loss),
        ("winRate", stats.win_rate),
        ("profitFactor", stats.profit_factor),
    ):
        if value is not None:
            summary[name] = round(value, 4)

    logger.debug("Backtest summary: %d metrics", len(summary))
    return summary
