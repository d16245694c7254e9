"""Trade log export: CSV/JSON output for external analysis.

Usage::

    csv_str = trades_to_csv(trades)
    json_str = trades_to_json(trades)
"""

from __future__ import annotations

import csv
import io
import json
from typing import Sequence

from strategy_lab.core.models import TradeRecord

# Default CSV columns
CSV_COLUMNS = ["date", "asset", "entry_price", "exit_price", "pnl"]


def trades_to_csv(
    trades: Sequence[TradeRecord],
    *,
    columns: list[str] | None = None,
) -> str:
    """Export trades as a CSV string with a header row.

    Raises:
        ValueError: If a requested column is not a trade field.
    """
    cols = columns or CSV_COLUMNS
    unknown = [c for c in cols if c not in TradeRecord.model_fields]
    if unknown:
        raise ValueError(f"Unknown trade columns: {unknown}")

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=cols, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for trade in trades:
        writer.writerow(trade.model_dump(include=set(cols)))
    return buf.getvalue()


def trades_to_json(trades: Sequence[TradeRecord], *, indent: int = 2) -> str:
    """Export trades as a JSON array string."""
    return json.dumps([t.model_dump(mode="json") for t in trades], indent=indent)
