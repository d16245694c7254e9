"""Session Comparator: side-by-side metrics across sessions.

Sessions from different modules report different metrics (a backtest has
``maxDrawdown``, an alpha signal has ``signalStrength``).  The comparison
table uses the union of all metric names, in first-seen order, and marks
cells a session does not report with :data:`MISSING` instead of failing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from strategy_lab.core.errors import InsufficientSelectionError
from strategy_lab.core.models import SessionSummary

if TYPE_CHECKING:
    from strategy_lab.sessions.repository import ISessionRepository

logger = logging.getLogger(__name__)

MIN_SESSIONS = 2


class _Missing:
    """Sentinel for a metric a session does not report."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

Cell = float | _Missing


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComparisonRow:
    """One metric's values aligned with the table's session order."""

    metric: str
    label: str
    values: tuple[Cell, ...]

    @property
    def missing_count(self) -> int:
        return sum(1 for v in self.values if v is MISSING)


@dataclass(frozen=True)
class ComparisonTable:
    sessions: tuple[SessionSummary, ...]
    metric_names: tuple[str, ...]
    rows: tuple[ComparisonRow, ...]

    @property
    def session_ids(self) -> list[str]:
        return [s.id for s in self.sessions]

    def row(self, metric: str) -> ComparisonRow:
        for row in self.rows:
            if row.metric == metric:
                return row
        raise KeyError(metric)

    def cell(self, metric: str, session_id: str) -> Cell:
        idx = self.session_ids.index(session_id)
        return self.row(metric).values[idx]

    def to_records(self, missing: Any = "-") -> list[dict[str, Any]]:
        """Rows as plain dicts for renderers, with *missing* substituted."""
        records = []
        for row in self.rows:
            rec: dict[str, Any] = {"metric": row.metric, "label": row.label}
            for session, value in zip(self.sessions, row.values):
                rec[session.id] = missing if value is MISSING else value
            records.append(rec)
        return records


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def humanize_metric_name(name: str) -> str:
    """``sharpeRatio`` / ``sharpe_ratio`` -> ``Sharpe Ratio``."""
    words = _CAMEL_BOUNDARY.sub(" ", name).replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _dedupe(sessions: Sequence[SessionSummary]) -> list[SessionSummary]:
    seen: set[str] = set()
    unique = []
    for s in sessions:
        if s.id in seen:
            continue
        seen.add(s.id)
        unique.append(s)
    return unique


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


def compare(sessions: Sequence[SessionSummary]) -> ComparisonTable:
    """Build a comparison table over at least two sessions.

    Repeated session ids count once (first occurrence kept).

    Raises:
        InsufficientSelectionError: If fewer than two distinct sessions.
    """
    selected = _dedupe(sessions)
    if len(selected) < MIN_SESSIONS:
        raise InsufficientSelectionError(len(selected), MIN_SESSIONS)

    # dict preserves insertion order: first-seen union of metric keys
    names = list(dict.fromkeys(k for s in selected for k in s.metrics))

    rows = tuple(
        ComparisonRow(
            metric=name,
            label=humanize_metric_name(name),
            values=tuple(s.metrics.get(name, MISSING) for s in selected),
        )
        for name in names
    )
    return ComparisonTable(
        sessions=tuple(selected), metric_names=tuple(names), rows=rows,
    )


def compare_by_ids(
    repository: ISessionRepository, session_ids: Sequence[str],
) -> ComparisonTable:
    """Resolve ids through a session catalog, then :func:`compare`.

    Unknown ids are skipped with a warning; the two-session minimum applies
    to the sessions actually found.
    """
    found = []
    for sid in session_ids:
        summary = repository.get(sid)
        if summary is None:
            logger.warning("Comparator: session %s not found, skipping", sid)
            continue
        found.append(summary)
    return compare(found)
