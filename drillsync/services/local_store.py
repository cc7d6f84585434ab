"""Durable local store for captured records.

Each queued record kind is kept as one JSON array under its own key in a
string key-value backend (the ``storage_entries`` table in production). The
backend may fail at any time; reads and writes then go to an in-process map
so the session keeps working, and every low-level call reports which path
it took through ``Ok`` / ``Fallback``.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from drillsync.config import SyncConfig
from drillsync.domain.records import QUEUED_KINDS, RecordKind, RecordStatus, WireRecord
from drillsync.errors import CorruptLocalState, LocalStorageFailure, ValidationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    """The value came from (or went to) the backend."""
    value: Any

    fallback = False


@dataclass(frozen=True)
class Fallback:
    """The backend was bypassed; ``reason`` says why."""
    value: Any
    reason: str

    fallback = True


class MemoryBackend:
    """Plain dict backend, used when no database is wanted (tests, CLI dry runs)."""

    def __init__(self, initial=None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        return self.data.pop(key, None) is not None

    def clear(self, keys):
        for key in keys:
            self.data.pop(key, None)


class LocalStore:
    """Append-only record lists per kind, plus the operator name and script URL."""

    def __init__(self, backend, config: Optional[SyncConfig] = None):
        self.backend = backend
        self.config = config or SyncConfig()
        self.keys = self.config.keys
        self._fallback: Dict[str, Optional[str]] = {}
        # records changed while their list could not be read from the backend
        self._held: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._list_keys = {
            RecordKind.SHIFT_REPORT: self.keys.reports,
            RecordKind.STEEL_CHANGE: self.keys.steel_changes,
            RecordKind.MEASUREMENT: self.keys.measurements,
        }

    # -- raw key-value access -------------------------------------------------

    def read(self, key):
        """Read a raw string value."""
        if key in self._fallback:
            return Fallback(self._fallback[key], "value held in memory after a failed write")
        try:
            return Ok(self.backend.get(key))
        except Exception as e:
            failure = LocalStorageFailure(details=str(e))
            log.warning(f"{failure.message} reading {key}: {e}; using in-memory copy")
            return Fallback(self._fallback.get(key), f"backend read failed: {e}")

    def write(self, key, value):
        """Write a raw string value, keeping it in memory if the backend refuses it."""
        try:
            self.backend.set(key, value)
        except Exception as e:
            failure = LocalStorageFailure(details=str(e))
            log.warning(f"{failure.message} writing {key}: {e}; keeping value in memory")
            self._fallback[key] = value
            return Fallback(value, f"backend write failed: {e}")
        self._fallback.pop(key, None)
        return Ok(value)

    @property
    def using_fallback(self):
        return bool(self._fallback or self._held)

    # -- record lists --------------------------------------------------------

    def list_key(self, kind: RecordKind) -> str:
        try:
            return self._list_keys[kind]
        except KeyError:
            raise ValidationError(f"{kind.value} records are not stored locally")

    @staticmethod
    def _parse_list(raw) -> List[Dict[str, Any]]:
        if raw is None or raw in ('', 'undefined', 'null'):
            return []
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CorruptLocalState(details=str(e))
        if not isinstance(parsed, list):
            raise CorruptLocalState(details=f"expected a list, found {type(parsed).__name__}")
        return [item for item in parsed if isinstance(item, dict)]

    def _read_list(self, kind):
        """Return ``(records, reason, writable)`` for ``kind``.

        ``reason`` is None when the backend answered normally. ``writable`` is
        False when the backend list could not be read at all: its contents are
        unknown, so it must not be replaced.
        """
        key = self.list_key(kind)
        held = list(self._held.get(key, []))
        raw = self.read(key)
        if raw.fallback and key not in self._fallback:
            return held, raw.reason, False
        try:
            records = self._parse_list(raw.value)
        except CorruptLocalState as e:
            log.warning(f"{e.message} under {key} ({e.details}); treating it as empty")
            return held, f"corrupt data: {e.details}", True
        if raw.fallback:
            return records + held, raw.reason, True
        if held:
            return records + held, "records held in memory until the backend can be read", True
        return records, None, True

    def load(self, kind: RecordKind):
        """Load the record list for ``kind``; corrupt data loads as an empty list."""
        records, reason, _ = self._read_list(kind)
        if reason:
            return Fallback(records, reason)
        return Ok(records)

    def _save(self, kind, records):
        return self.write(self.list_key(kind), json.dumps(records, ensure_ascii=False))

    def _commit(self, kind, records, writable):
        key = self.list_key(kind)
        if not writable:
            log.warning(f"{key} could not be read; holding {len(records)} records in memory")
            if records:
                self._held[key] = records
            else:
                self._held.pop(key, None)
            return Fallback(records, "backend list unreadable; records held in memory")
        result = self._save(kind, records)
        self._held.pop(key, None)
        return result

    def get_all(self, kind: RecordKind) -> List[Dict[str, Any]]:
        """Return every stored record of ``kind``, in creation order. Never raises."""
        return self.load(kind).value

    def get_pending(self, kind: RecordKind) -> List[Dict[str, Any]]:
        return [r for r in self.get_all(kind) if r.get('status') == RecordStatus.PENDING.value]

    def append(self, kind: RecordKind, record) -> Dict[str, Any]:
        """Append a record and return the stored copy.

        The stored status is ``pending``, except that a shift report may be
        kept as a ``draft``. Ids are not checked for uniqueness.
        """
        data = record.to_dict() if isinstance(record, WireRecord) else dict(record)
        status = data.get('status')
        if not (kind is RecordKind.SHIFT_REPORT and status == RecordStatus.DRAFT.value):
            data['status'] = RecordStatus.PENDING.value

        with self._lock:
            records, _, writable = self._read_list(kind)
            records.append(data)
            self._commit(kind, records, writable)
        log.debug(f"Stored {kind.value} {data.get('id')} as {data['status']}")
        return data

    def mark_synced(self, kind: RecordKind, record_id) -> bool:
        """Flip the matching record to ``synced``. Unknown ids are ignored."""
        with self._lock:
            records, _, writable = self._read_list(kind)
            matched = False
            updated = []
            for r in records:
                if r.get('id') == record_id:
                    r = {**r, 'status': RecordStatus.SYNCED.value}
                    matched = True
                updated.append(r)
            if matched:
                self._commit(kind, updated, writable)
        return matched

    def pending_count(self) -> Dict[str, int]:
        counts = {kind.value: len(self.get_pending(kind)) for kind in QUEUED_KINDS}
        counts['total'] = sum(counts.values())
        return counts

    def clear_synced(self) -> int:
        """Drop records already confirmed by the remote endpoint. Returns how many were dropped."""
        removed = 0
        with self._lock:
            for kind in QUEUED_KINDS:
                records, _, writable = self._read_list(kind)
                kept = [r for r in records if r.get('status') != RecordStatus.SYNCED.value]
                if len(kept) != len(records):
                    removed += len(records) - len(kept)
                    self._commit(kind, kept, writable)
        return removed

    def reset(self):
        """Delete all persisted state for this application. Unsynced records are lost."""
        keys = self.keys.all()
        with self._lock:
            self._fallback.clear()
            self._held.clear()
            try:
                self.backend.clear(keys)
            except Exception as e:
                log.warning(f"Backend clear failed: {e}; masking keys in memory")
                for key in keys:
                    self._fallback[key] = None
                return Fallback(None, f"backend clear failed: {e}")
        log.warning("Local data reset")
        return Ok(None)

    # -- settings ------------------------------------------------------------

    def save_operator_name(self, name):
        return self.write(self.keys.operator_name, name or '')

    def get_operator_name(self) -> str:
        return self.read(self.keys.operator_name).value or ''

    def save_script_url(self, url):
        return self.write(self.keys.script_url, (url or '').strip())

    def get_script_url(self):
        """Return the script URL to use, falling back to the configured default."""
        stored = self.read(self.keys.script_url)
        if not stored.value:
            return Fallback(self.config.default_script_url, "no script URL stored")
        if self.config.is_placeholder(stored.value):
            return Fallback(self.config.default_script_url, "stored script URL is a placeholder")
        return stored

    @property
    def script_url(self) -> str:
        return self.get_script_url().value
