"""SQLite-backed storage for trips and free-form per-record extras."""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

DB_FILENAME = "waystation.db"

_COLUMNS = "id,name,destination,start_date,end_date,budget,itinerary,status,notes,created_at"

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS trips("
    "id TEXT PRIMARY KEY,name TEXT NOT NULL,destination TEXT DEFAULT '',"
    "start_date TEXT DEFAULT '',end_date TEXT DEFAULT '',budget INTEGER DEFAULT 0,"
    "itinerary TEXT DEFAULT '[]',status TEXT DEFAULT 'planning',notes TEXT DEFAULT '',"
    "created_at TEXT DEFAULT(datetime('now')))",
    "CREATE TABLE IF NOT EXISTS extras("
    "resource TEXT NOT NULL,"
    "record_id TEXT NOT NULL,"
    "data TEXT NOT NULL DEFAULT '{}',"
    "PRIMARY KEY(resource, record_id))",
)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_id_lock = threading.Lock()
_last_id = 0


def _generate_id() -> str:
    """Return a nanosecond timestamp as a decimal string, strictly increasing."""
    global _last_id
    with _id_lock:
        value = max(time.time_ns(), _last_id + 1)
        _last_id = value
    return str(value)


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class Trip:
    """A planned or completed trip."""

    id: str = ""
    name: str = ""
    destination: str = ""
    start_date: str = ""
    end_date: str = ""
    budget: int = 0
    itinerary: str = ""
    status: str = ""
    notes: str = ""
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the trip as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Trip:
        """Build a trip from decoded JSON; unknown keys are ignored, nulls keep defaults.

        Raises ValueError when the data is not an object or a field has the wrong type.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("trip must be a JSON object")
        values: dict[str, Any] = {}
        for field in fields(cls):
            value = data.get(field.name)
            if value is None:
                continue
            if field.name == "budget":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError("budget must be an integer")
                if not _INT64_MIN <= value <= _INT64_MAX:
                    raise ValueError("budget out of range")
            elif not isinstance(value, str):
                raise ValueError(f"{field.name} must be a string")
            values[field.name] = value
        return cls(**values)


class Store:
    """Trip database kept in a directory on disk."""

    def __init__(self, data_dir: str | Path) -> None:
        directory = Path(data_dir)
        directory.mkdir(parents=True, exist_ok=True)
        self.path = directory / DB_FILENAME
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(
            str(self.path), timeout=5.0, isolation_level=None, check_same_thread=False
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        for statement in _SCHEMA:
            self._conn.execute(statement)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _rows(self, sql: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _run(self, sql: str, params: tuple[Any, ...] = ()) -> None:
        with self._lock:
            self._conn.execute(sql, params)

    def create(self, trip: Trip) -> Trip:
        """Assign an id and creation time to the trip, store it and return it."""
        trip.id = _generate_id()
        trip.created_at = _now()
        self._run(
            f"INSERT INTO trips({_COLUMNS})VALUES(?,?,?,?,?,?,?,?,?,?)",
            (
                trip.id,
                trip.name,
                trip.destination,
                trip.start_date,
                trip.end_date,
                trip.budget,
                trip.itinerary,
                trip.status,
                trip.notes,
                trip.created_at,
            ),
        )
        return trip

    def get(self, trip_id: str) -> Trip | None:
        rows = self._rows(f"SELECT {_COLUMNS} FROM trips WHERE id=?", (trip_id,))
        return Trip(*rows[0]) if rows else None

    def list(self) -> list[Trip]:
        rows = self._rows(f"SELECT {_COLUMNS} FROM trips ORDER BY created_at DESC")
        return [Trip(*row) for row in rows]

    def update(self, trip: Trip) -> None:
        """Overwrite every field of the stored trip except its id and creation time."""
        self._run(
            "UPDATE trips SET name=?,destination=?,start_date=?,end_date=?,budget=?,"
            "itinerary=?,status=?,notes=? WHERE id=?",
            (
                trip.name,
                trip.destination,
                trip.start_date,
                trip.end_date,
                trip.budget,
                trip.itinerary,
                trip.status,
                trip.notes,
                trip.id,
            ),
        )

    def delete(self, trip_id: str) -> None:
        self._run("DELETE FROM trips WHERE id=?", (trip_id,))

    def count(self) -> int:
        return self._rows("SELECT COUNT(*) FROM trips")[0][0]

    def search(self, query: str, filters: Mapping[str, str] | None = None) -> list[Trip]:
        """Trips whose name contains the query, optionally restricted by status."""
        clauses = ["1=1"]
        params: list[Any] = []
        if query:
            clauses.append("(name LIKE ?)")
            params.append(f"%{query}%")
        status = (filters or {}).get("status")
        if status:
            clauses.append("status=?")
            params.append(status)
        where = " AND ".join(clauses)
        rows = self._rows(
            f"SELECT {_COLUMNS} FROM trips WHERE {where} ORDER BY created_at DESC",
            tuple(params),
        )
        return [Trip(*row) for row in rows]

    def stats(self) -> dict[str, Any]:
        by_status = dict(self._rows("SELECT status,COUNT(*) FROM trips GROUP BY status"))
        return {"total": self.count(), "by_status": by_status}

    def get_extras(self, resource: str, record_id: str) -> str:
        """Return the stored JSON text for a record, or "{}" if there is none."""
        rows = self._rows(
            "SELECT data FROM extras WHERE resource=? AND record_id=?", (resource, record_id)
        )
        if not rows or not rows[0][0]:
            return "{}"
        return rows[0][0]

    def set_extras(self, resource: str, record_id: str, data: str) -> None:
        self._run(
            "INSERT INTO extras(resource, record_id, data) VALUES(?, ?, ?) "
            "ON CONFLICT(resource, record_id) DO UPDATE SET data=excluded.data",
            (resource, record_id, data or "{}"),
        )

    def delete_extras(self, resource: str, record_id: str) -> None:
        self._run("DELETE FROM extras WHERE resource=? AND record_id=?", (resource, record_id))

    def all_extras(self, resource: str) -> dict[str, str]:
        rows = self._rows("SELECT record_id, data FROM extras WHERE resource=?", (resource,))
        return dict(rows)