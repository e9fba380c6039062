import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.errors import MarketplaceConflictError

logger = logging.getLogger(__name__)

USERS = "users"
BOOKINGS = "bookings"
REPORTS = "reports"
SESSION = "session"
LIVE_LOCATION = "live_location"
LATEST_WALK_REPORT = "latest_walk_report"

COLLECTION_KEYS = {USERS, BOOKINGS, REPORTS}
SINGLETON_KEYS = {SESSION, LIVE_LOCATION, LATEST_WALK_REPORT}

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class RecordStore:
    """Key/value persistence for the three collections and two singletons.

    Values are stored as whole JSON documents. Every write replaces the full
    value and bumps a per-key version; passing ``expected_version`` turns the
    write into a compare-and-set that fails with ``MarketplaceConflictError``
    when another writer got there first.
    """

    db_path: str

    def __post_init__(self) -> None:
        self._lock = Lock()
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS records (
                        key TEXT PRIMARY KEY,
                        value_json TEXT NOT NULL,
                        version INTEGER NOT NULL DEFAULT 0
                    )
                    """
                )
                conn.commit()

    def _default(self, key: str) -> Any:
        return [] if key in COLLECTION_KEYS else None

    def read(self, key: str) -> Tuple[Any, int]:
        with self._lock:
            with self._connect() as conn:
                row = conn.execute("SELECT value_json, version FROM records WHERE key = ?", (key,)).fetchone()
        if not row:
            return self._default(key), 0
        return self._safe_json_value(key, row["value_json"]), int(row["version"])

    def get(self, key: str) -> Any:
        value, _ = self.read(key)
        return value

    def put(self, key: str, value: Any, expected_version: Optional[int] = None) -> int:
        payload = json.dumps(value)
        with self._lock:
            with self._connect() as conn:
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute("SELECT version FROM records WHERE key = ?", (key,)).fetchone()
                current = int(row["version"]) if row else 0
                if expected_version is not None and current != expected_version:
                    conn.rollback()
                    logger.warning("Write conflict on %s: expected v%s, found v%s", key, expected_version, current)
                    raise MarketplaceConflictError("Data changed while saving, please refresh and try again")
                conn.execute(
                    """
                    INSERT INTO records (key, value_json, version)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value_json = excluded.value_json,
                        version = excluded.version
                    """,
                    (key, payload, current + 1),
                )
                conn.commit()
        return current + 1

    def delete(self, key: str) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute("DELETE FROM records WHERE key = ?", (key,))
                conn.commit()

    def read_models(self, key: str, model: Type[ModelT]) -> Tuple[List[ModelT], int]:
        items, version, _ = self.read_collection(key, model)
        return items, version

    def read_collection(self, key: str, model: Type[ModelT]) -> Tuple[List[ModelT], int, List[Tuple[int, Any]]]:
        """Reads a collection for a read-modify-write cycle.

        Entries that fail validation are left out of the returned models and
        handed back as ``(position, raw_entry)`` pairs. Pass them to
        ``write_models`` as ``preserved`` so the write keeps them in place.
        """
        raw, version = self.read(key)
        items: List[ModelT] = []
        malformed: List[Tuple[int, Any]] = []
        for position, entry in enumerate(raw):
            try:
                items.append(model.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping malformed %s entry at position %s", key, position)
                malformed.append((position, entry))
        return items, version, malformed

    def write_models(
        self,
        key: str,
        items: List[BaseModel],
        expected_version: Optional[int] = None,
        preserved: Optional[List[Tuple[int, Any]]] = None,
    ) -> int:
        payload: List[Any] = [item.model_dump() for item in items]
        for position, entry in sorted(preserved or [], key=lambda pair: pair[0]):
            payload.insert(min(position, len(payload)), entry)
        return self.put(key, payload, expected_version=expected_version)

    def read_model(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring malformed %s record", key)
            return None

    def write_model(self, key: str, item: BaseModel) -> None:
        self.put(key, item.model_dump())

    def _safe_json_value(self, key: str, raw_value: Any) -> Any:
        default = self._default(key)
        if raw_value in (None, ""):
            return default
        try:
            parsed = json.loads(raw_value)
        except json.JSONDecodeError:
            logger.warning("Discarding unparseable %s value", key)
            return default
        if key in COLLECTION_KEYS:
            return parsed if isinstance(parsed, list) else default
        if key in SINGLETON_KEYS:
            return parsed if isinstance(parsed, dict) else default
        return parsed


default_db = str(Path(__file__).resolve().parents[2] / "data" / "furamora.sqlite3")
record_store = RecordStore(db_path=os.getenv("FURAMORA_DB_PATH", default_db))
