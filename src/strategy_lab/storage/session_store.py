"""Session Store: namespaced persistence of one record per (step, session).

Every module export is stored as a :class:`StepRecord` envelope keyed by
``(storage_key, session_id)``.  Writes replace the whole value; there is no
merge, no TTL and no eviction.

Two implementations here:
- ``InMemorySessionStore``: for tests and single-process use.
- ``JsonFileSessionStore``: one JSON file per key with atomic replace.

A Redis backend lives in :mod:`strategy_lab.storage.redis_store`.

Concurrency: operations on the same key are serialized with a per-key
lock (:class:`KeyedLocks`); different keys never contend.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, NamedTuple, Protocol, runtime_checkable
from urllib.parse import quote, unquote

from pydantic import ValidationError

from strategy_lab.core.errors import (
    DeserializationError,
    InvalidKeyError,
    NotFoundError,
    SerializationError,
)
from strategy_lab.core.file_io import atomic_write_text, read_text
from strategy_lab.core.ids import utc_now
from strategy_lab.core.models import StepRecord

logger = logging.getLogger(__name__)

_KEY_PART = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class StoreKey(NamedTuple):
    """Namespaced key: the step's storage key plus the session id.

    Storage keys come from step configuration and must be plain names.
    Session ids are opaque: any non-empty string is accepted, and backends
    that need a filesystem- or Redis-safe name use :attr:`encoded_session`.
    """

    storage_key: str
    session_id: str

    @classmethod
    def of(cls, storage_key: str, session_id: str) -> StoreKey:
        if not isinstance(storage_key, str) or not _KEY_PART.match(storage_key):
            raise InvalidKeyError(f"Invalid storage_key: {storage_key!r}")
        if not isinstance(session_id, str) or not session_id:
            raise InvalidKeyError(f"Invalid session_id: {session_id!r}")
        return cls(storage_key, session_id)

    @property
    def flat(self) -> str:
        """Logical flat form, for display and logs only."""
        return f"{self.storage_key}_{self.session_id}"

    @property
    def encoded_session(self) -> str:
        return encode_session_id(self.session_id)


def encode_session_id(session_id: str) -> str:
    """Percent-encode a session id into a single safe name component.

    Only ``[A-Za-z0-9_.~-]`` survive unescaped; a leading ``.`` is escaped
    too so the result is never ``.``, ``..`` or a hidden file name.
    """
    encoded = quote(session_id, safe="")
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


def decode_session_id(name: str) -> str:
    return unquote(name)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def serialize_record(record: StepRecord) -> str:
    """Serialize a record to strict JSON (no NaN/Infinity, no custom types).

    The payload must survive the round trip unchanged: values JSON would
    reshape (tuples, non-string dict keys) are rejected rather than stored
    in a form ``get`` cannot return faithfully.
    """
    doc = {
        "storage_key": record.storage_key,
        "session_id": record.session_id,
        "schema_version": record.schema_version,
        "timestamp": record.timestamp.isoformat(),
        "payload": record.payload,
    }
    try:
        text = json.dumps(doc, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Payload for {record.storage_key}_{record.session_id} "
            f"is not JSON-serializable: {exc}"
        ) from exc
    problem = _reshaped_by_json(record.payload)
    if problem:
        raise SerializationError(
            f"Payload for {record.storage_key}_{record.session_id} "
            f"would not round-trip through JSON: {problem}"
        )
    return text


def _reshaped_by_json(value: Any, path: str = "payload") -> str | None:
    """Return a description of the first value JSON cannot reproduce exactly."""
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                return f"{path} has non-string key {k!r}"
            problem = _reshaped_by_json(v, f"{path}[{k!r}]")
            if problem:
                return problem
        return None
    if isinstance(value, list):
        for i, v in enumerate(value):
            problem = _reshaped_by_json(v, f"{path}[{i}]")
            if problem:
                return problem
        return None
    if type(value) in (str, bool, int, float, type(None)):
        return None
    return f"{path} is a {type(value).__name__}"


def deserialize_record(raw: str | bytes) -> StepRecord:
    """Parse stored bytes back into a :class:`StepRecord`."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DeserializationError(f"Stored value is not UTF-8: {exc}") from exc
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise DeserializationError(f"Stored value is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DeserializationError(
            f"Stored value is a {type(data).__name__}, expected an object"
        )
    try:
        return StepRecord.model_validate(data)
    except ValidationError as exc:
        raise DeserializationError(f"Stored value is not a step record: {exc}") from exc


# ---------------------------------------------------------------------------
# Per-key locking
# ---------------------------------------------------------------------------


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLocks:
    """One lock per key, alive only while someone holds or waits on it.

    The registry lock guards the entry bookkeeping only; store operations
    hold the per-key lock alone, so distinct keys proceed concurrently.
    An entry is dropped when its last holder leaves, so the registry size
    is bounded by the number of in-flight operations.
    """

    def __init__(self) -> None:
        self._locks: dict[StoreKey, _LockEntry] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def hold(self, key: StoreKey) -> Iterator[None]:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _LockEntry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ISessionStore(Protocol):
    """Durable, namespaced key/value persistence of step records."""

    def put(self, storage_key: str, session_id: str, payload: Any) -> StepRecord: ...

    def get(self, storage_key: str, session_id: str) -> StepRecord: ...

    def has(self, storage_key: str, session_id: str) -> bool: ...

    def sessions(self, storage_key: str) -> list[str]: ...


def _new_record(key: StoreKey, payload: Any) -> StepRecord:
    return StepRecord(
        storage_key=key.storage_key,
        session_id=key.session_id,
        payload=payload,
        timestamp=utc_now(),
    )


# ---------------------------------------------------------------------------
# In-Memory Implementation
# ---------------------------------------------------------------------------


class InMemorySessionStore:
    """Dict-backed store.

    Values are kept serialized so a caller mutating a payload after ``put``
    (or a record after ``get``) never changes what is stored.
    """

    def __init__(self) -> None:
        self._data: dict[StoreKey, str] = {}
        self._locks = KeyedLocks()

    def put(self, storage_key: str, session_id: str, payload: Any) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        record = _new_record(key, payload)
        text = serialize_record(record)
        with self._locks.hold(key):
            self._data[key] = text
        logger.debug("SessionStore: put %s (%d bytes)", key.flat, len(text))
        return record

    def get(self, storage_key: str, session_id: str) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        with self._locks.hold(key):
            raw = self._data.get(key)
        if raw is None:
            raise NotFoundError(storage_key, session_id)
        return deserialize_record(raw)

    def has(self, storage_key: str, session_id: str) -> bool:
        try:
            key = StoreKey.of(storage_key, session_id)
        except InvalidKeyError:
            return False
        return key in self._data

    def sessions(self, storage_key: str) -> list[str]:
        return sorted(k.session_id for k in list(self._data) if k.storage_key == storage_key)

    def put_raw(self, storage_key: str, session_id: str, raw: str) -> None:
        """Store raw text without validation (imports of foreign exports)."""
        key = StoreKey.of(storage_key, session_id)
        with self._locks.hold(key):
            self._data[key] = raw

    def __len__(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# JSON File Implementation
# ---------------------------------------------------------------------------


class JsonFileSessionStore:
    """File-backed store: ``<root>/<storage_key>/<encoded session_id>.json``.

    Each write goes to a temporary file that is renamed over the target, so
    a concurrent reader in another process sees the old or the new record,
    never a torn one.
    """

    def __init__(self, root_dir: str | Path) -> None:
        self._root = Path(root_dir)
        self._root.mkdir(parents=True, exist_ok=True)
        self._locks = KeyedLocks()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, storage_key: str, session_id: str) -> Path:
        key = StoreKey.of(storage_key, session_id)
        return self._root / key.storage_key / f"{key.encoded_session}.json"

    def put(self, storage_key: str, session_id: str, payload: Any) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        record = _new_record(key, payload)
        text = serialize_record(record)
        path = self.path_for(storage_key, session_id)
        with self._locks.hold(key):
            atomic_write_text(path, text)
        logger.debug("SessionStore: wrote %s -> %s", key.flat, path)
        return record

    def get(self, storage_key: str, session_id: str) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        path = self.path_for(storage_key, session_id)
        with self._locks.hold(key):
            raw = read_text(path)
        if raw is None:
            raise NotFoundError(storage_key, session_id)
        return deserialize_record(raw)

    def has(self, storage_key: str, session_id: str) -> bool:
        try:
            return self.path_for(storage_key, session_id).is_file()
        except InvalidKeyError:
            return False

    def sessions(self, storage_key: str) -> list[str]:
        StoreKey.of(storage_key, "x")  # validate namespace
        directory = self._root / storage_key
        if not directory.is_dir():
            return []
        return sorted(
            decode_session_id(p.stem)
            for p in directory.glob("*.json")
            if not p.name.startswith(".")
        )
