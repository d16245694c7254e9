"""Session catalog: saved analysis sessions and their headline metrics.

The comparator and the CLI look sessions up through ``ISessionRepository``
rather than embedding sample lists.

Two implementations:
- ``InMemorySessionRepository``: for tests and embedding.
- ``JsonFileSessionRepository``: a JSON array file, rewritten atomically.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol, Sequence, runtime_checkable

from pydantic import TypeAdapter, ValidationError

from strategy_lab.core.errors import DeserializationError
from strategy_lab.core.file_io import atomic_write_text, read_text
from strategy_lab.core.models import SessionSummary

logger = logging.getLogger(__name__)

_SESSION_LIST = TypeAdapter(list[SessionSummary])

# Metric keys different modules use for the Sharpe ratio
SHARPE_KEYS = ("sharpeRatio", "sharpe_ratio", "sharpe", "Sharpe")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ISessionRepository(Protocol):
    """Lookup and persistence of saved sessions."""

    def get(self, session_id: str) -> SessionSummary | None: ...

    def list_all(self) -> list[SessionSummary]: ...

    def save(self, summary: SessionSummary) -> None: ...


# ---------------------------------------------------------------------------
# In-Memory Implementation
# ---------------------------------------------------------------------------


class InMemorySessionRepository:
    """Insertion-ordered dict of sessions keyed by id."""

    def __init__(self, sessions: Iterable[SessionSummary] = ()) -> None:
        self._sessions: dict[str, SessionSummary] = {}
        for s in sessions:
            self._sessions[s.id] = s

    def get(self, session_id: str) -> SessionSummary | None:
        return self._sessions.get(session_id)

    def list_all(self) -> list[SessionSummary]:
        return list(self._sessions.values())

    def save(self, summary: SessionSummary) -> None:
        """Insert or replace a session (replacement keeps its position)."""
        self._sessions[summary.id] = summary

    def __len__(self) -> int:
        return len(self._sessions)


# ---------------------------------------------------------------------------
# JSON File Implementation
# ---------------------------------------------------------------------------


class JsonFileSessionRepository(InMemorySessionRepository):
    """Sessions loaded from, and saved back to, a JSON array file.

    Raises:
        DeserializationError: If the file exists but is not a valid
            session list.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        super().__init__(self._load())

    def _load(self) -> list[SessionSummary]:
        raw = read_text(self._path)
        if raw is None:
            return []
        try:
            sessions = _SESSION_LIST.validate_json(raw)
        except ValidationError as exc:
            raise DeserializationError(
                f"Invalid session file {self._path}: {exc}"
            ) from exc
        logger.info("Loaded %d sessions from %s", len(sessions), self._path)
        return sessions

    def save(self, summary: SessionSummary) -> None:
        super().save(summary)
        data = [s.model_dump(mode="json") for s in self.list_all()]
        atomic_write_text(self._path, json.dumps(data, indent=2))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def filter_sessions(
    sessions: Sequence[SessionSummary],
    *,
    module: str | None = None,
    search: str | None = None,
) -> list[SessionSummary]:
    """Dashboard filters.

    *module* matches the module name exactly, ignoring case; *search* is a
    case-insensitive substring match on session name or module.
    """
    result = list(sessions)
    if module:
        wanted = module.lower()
        result = [s for s in result if s.module.lower() == wanted]
    if search:
        needle = search.lower()
        result = [
            s for s in result
            if needle in s.name.lower() or needle in s.module.lower()
        ]
    return result


@dataclass
class UsageSummary:
    total_sessions: int = 0
    sessions_by_module: dict[str, int] = field(default_factory=dict)
    most_used_module: str | None = None
    average_sharpe_ratio: float | None = None


def _sharpe(summary: SessionSummary) -> float | None:
    for key in SHARPE_KEYS:
        if key in summary.metrics:
            return summary.metrics[key]
    return None


def usage_summary(sessions: Sequence[SessionSummary]) -> UsageSummary:
    """Aggregate catalog analytics for the dashboard."""
    if not sessions:
        return UsageSummary()

    counts = Counter(s.module for s in sessions)
    # Counter.most_common breaks ties by first insertion
    most_used = counts.most_common(1)[0][0]
    sharpes = [v for v in (_sharpe(s) for s in sessions) if v is not None]

    return UsageSummary(
        total_sessions=len(sessions),
        sessions_by_module=dict(counts),
        most_used_module=most_used,
        average_sharpe_ratio=sum(sharpes) / len(sharpes) if sharpes else None,
    )
