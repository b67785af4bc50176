"""
Persistence port: a key/value store of JSON values with change notification.

Backends:
  MemoryStorage  - in-process dict, used by tests and ephemeral sessions
  SqliteStorage  - single-file local store shared by every process on the box

Consistency across processes is last-write-wins. A process that writes a
key after another process has written it simply replaces the value; nothing
is merged and no conflict is reported. Subscribers learn about external
writes through MemoryStorage.write_external() or SqliteStorage.poll_changes().
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


class PersistencePort:
    """
    Base class for key/value backends.

    Subclasses store raw JSON text via _read_raw/_write_raw. Decoding,
    serializability checks, and subscriber fan-out live here.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    # ── Backend hooks ──

    def _read_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write_raw(self, key: str, raw: str) -> bool:
        raise NotImplementedError

    # ── Public API ──

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for key, or default if absent or malformed."""
        raw = self._read_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Error parsing stored key {key!r}: {e}")
            return default

    def set(self, key: str, value: Any) -> bool:
        """Serialize and store value, then notify subscribers. Returns False if nothing was written."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Value for key {key!r} is not JSON-serializable: {e}")
            return False
        if not self._write_raw(key, raw):
            return False
        logger.debug(f"Stored key {key!r}")
        self._notify(key, json.loads(raw))
        return True

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register callback(key, new_value). Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, key: str, value: Any) -> None:
        for callback in list(self._listeners):
            try:
                callback(key, value)
            except Exception as e:
                logger.error(f"Error in storage listener for {key!r}: {e}")

    def _notify_external(self, key: str, raw: Optional[str]) -> None:
        """Fan out a change written by someone else. Removals and garbage are ignored."""
        if raw is None:
            return
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Error parsing external change for {key!r}: {e}")
            return
        logger.info(f"External change detected for key {key!r}")
        self._notify(key, value)


class MemoryStorage(PersistencePort):
    """In-memory backend. Holds raw JSON text so decoding behaves like the file store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._data: Dict[str, str] = dict(initial or {})

    def _read_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write_raw(self, key: str, raw: str) -> bool:
        self._data[key] = raw
        return True

    def write_external(self, key: str, raw: str) -> None:
        """Simulate another process writing raw text to the same physical store."""
        self._data[key] = raw
        self._notify_external(key, raw)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode so readers in other processes are not blocked."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SqliteStorage(PersistencePort):
    """SQLite-backed key/value store."""

    def __init__(self, db_path: str = None):
        """Initialize store and create the table if needed."""
        super().__init__()
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskboard" / "taskboard.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        # Last raw value this process has seen per key, for change detection
        self._seen: Dict[str, str] = self._read_all()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def _read_all(self) -> Dict[str, str]:
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute("SELECT key, value FROM kv_store").fetchall()
            return {row["key"]: row["value"] for row in rows}
        except sqlite3.Error as e:
            logger.error(f"Error reading storage {self.db_path}: {e}")
            return {}

    def _read_raw(self, key: str) -> Optional[str]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error reading key {key!r}: {e}")
            return None
        return row["value"] if row else None

    def _write_raw(self, key: str, raw: str) -> bool:
        try:
            with _connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, raw, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error writing key {key!r}: {e}")
            return False
        self._seen[key] = raw
        return True

    def poll_changes(self) -> List[str]:
        """
        Detect keys rewritten by other processes since the last poll.

        Subscribers are notified with the externally written value.
        Returns the changed keys.
        """
        current = self._read_all()
        changed = [k for k, raw in current.items() if self._seen.get(k) != raw]
        for key in changed:
            self._seen[key] = current[key]
            self._notify_external(key, current[key])
        return changed


class StoredValue:
    """
    One key bound to a port, with a default and a cached current value.

    The cache follows every change notification for the key, local or
    external, so readers always see the last value written by anyone.
    """

    def __init__(self, port: PersistencePort, key: str, default: Any = None):
        self.port = port
        self.key = key
        self.default = default
        self._value = port.get(key, default)
        self._unsubscribe = port.subscribe(self._on_change)

    @property
    def value(self) -> Any:
        return self._value

    def set(self, value: Any) -> bool:
        """Write through to the port. Accepts a callable taking the current value."""
        if callable(value):
            value = value(self._value)
        if not self.port.set(self.key, value):
            return False
        self._value = value
        return True

    def _on_change(self, key: str, value: Any) -> None:
        if key == self.key:
            self._value = value

    def close(self) -> None:
        self._unsubscribe()
