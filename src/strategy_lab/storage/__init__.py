"""Session Store backends."""

from .factory import build_session_store
from .session_store import (
    ISessionStore,
    InMemorySessionStore,
    JsonFileSessionStore,
    KeyedLocks,
    StoreKey,
    decode_session_id,
    encode_session_id,
)

__all__ = [
    "ISessionStore",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "KeyedLocks",
    "StoreKey",
    "build_session_store",
    "decode_session_id",
    "encode_session_id",
]
