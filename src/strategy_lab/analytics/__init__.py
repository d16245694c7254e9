"""Session analytics: derived metrics, comparisons and exports.

Key components
--------------
compute_drawdown_curve     Running-peak drawdown per equity point
compute_trade_statistics   Average/extreme P&L and win/loss streaks
sort_by_field              Stable trade log sort
summarize_backtest         Backtest metrics mapping for comparisons
compare                    Schema-tolerant multi-session comparison
trades_to_csv              Trade log CSV export
"""

from .comparator import (
    MISSING,
    ComparisonRow,
    ComparisonTable,
    compare,
    compare_by_ids,
    humanize_metric_name,
)
from .export import trades_to_csv, trades_to_json
from .metrics import (
    compute_drawdown_curve,
    compute_trade_statistics,
    max_drawdown,
    sort_by_field,
    summarize_backtest,
)

__all__ = [
    "MISSING",
    "ComparisonRow",
    "ComparisonTable",
    "compare",
    "compare_by_ids",
    "compute_drawdown_curve",
    "compute_trade_statistics",
    "humanize_metric_name",
    "max_drawdown",
    "sort_by_field",
    "summarize_backtest",
    "trades_to_csv",
    "trades_to_json",
]
