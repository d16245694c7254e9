"""Session id and timestamp factories.

Timestamp Rule
--------------
All timestamps are ``datetime`` with ``tzinfo=timezone.utc``, never naive.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_session_id() -> str:
    """Generate a session id usable as a store key component."""
    return f"session_{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)
