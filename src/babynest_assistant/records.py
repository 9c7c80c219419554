"""SQLite-backed record store for the pregnancy journal.

Every journal entry lives in a single ``records`` table keyed by one shared
integer counter.  The category specific fields are validated with a Pydantic
model and stored as a JSON payload, mirroring how the experiment tracker keeps
its run parameters.  Profile details are kept in a small key/value table.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class StoreError(RuntimeError):
    """Raised when the store rejects an operation."""


class RecordNotFound(StoreError, KeyError):
    """Raised when a record id does not exist in the requested category."""

    def __str__(self) -> str:  # KeyError quotes its message otherwise
        return str(self.args[0]) if self.args else ""


# ---------------------------------------------------------------------------
# Payload models
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    note: str = ""


class Appointment(_Payload):
    title: str = "Appointment"
    content: str = ""
    appointment_date: str
    appointment_time: str
    appointment_location: str = "TBD"
    appointment_status: str = "pending"


class Task(_Payload):
    title: str
    content: str = ""
    starting_week: int = Field(ge=1)
    ending_week: int = Field(ge=1)
    task_priority: str = "medium"
    task_status: str = "pending"


class WeightEntry(_Payload):
    weight: float = Field(gt=0)
    week_number: int = Field(ge=1)


class SymptomEntry(_Payload):
    symptom: str
    week_number: int = Field(ge=1)


class MedicineEntry(_Payload):
    name: str
    dose: str
    time: str = ""
    frequency: str = ""
    week_number: int = Field(ge=1)


class BloodPressureEntry(_Payload):
    systolic: int = Field(gt=0)
    diastolic: int = Field(gt=0)
    time: str = ""
    week_number: int = Field(ge=1)


class DischargeEntry(_Payload):
    type: str
    color: str
    bleeding: str
    week_number: int = Field(ge=1)


class MoodEntry(_Payload):
    mood: str
    intensity: str = "medium"
    week_number: int = Field(ge=1)


class SleepEntry(_Payload):
    duration: float = Field(gt=0)
    bedtime: Optional[str] = None
    wake_time: Optional[str] = None
    quality: str = "good"
    week_number: int = Field(ge=1)


MODELS: Dict[str, type[_Payload]] = {
    "appointment": Appointment,
    "task": Task,
    "weight": WeightEntry,
    "symptom": SymptomEntry,
    "medicine": MedicineEntry,
    "blood_pressure": BloodPressureEntry,
    "discharge": DischargeEntry,
    "mood": MoodEntry,
    "sleep": SleepEntry,
}
CATEGORIES = tuple(MODELS)

Record = Dict[str, Any]


class RecordStore(Protocol):
    """Operations the dispatcher and undo log need from a store."""

    def list(self, category: str) -> List[Record]:
        ...

    def get(self, category: str, record_id: int) -> Record:
        ...

    def create(self, category: str, fields: Dict[str, Any]) -> Record:
        ...

    def update(self, category: str, record_id: int, fields: Dict[str, Any]) -> Record:
        ...

    def delete(self, category: str, record_id: int) -> Record:
        ...

    def delete_many(self, category: str, record_ids: Iterable[int]) -> List[Record]:
        ...

    def restore(self, category: str, records: Iterable[Record]) -> None:
        ...

    def get_profile(self) -> Dict[str, str]:
        ...

    def save_profile(self, fields: Dict[str, str]) -> Dict[str, str]:
        ...

    def delete_profile(self) -> None:
        ...


def _validate(category: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    model = MODELS.get(category)
    if model is None:
        raise StoreError(f"Unknown record category '{category}'")
    try:
        return model(**fields).model_dump()
    except ValidationError as exc:
        raise StoreError(f"Invalid {category} record: {exc}") from exc


class SQLiteRecordStore:
    """Very small SQLite-based journal store."""

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self.clock = clock
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category TEXT NOT NULL,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profile (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """
        )
        self.conn.commit()

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    def _deserialize(self, row: sqlite3.Row | tuple) -> Record:
        """Convert a database row into a record dictionary."""

        record: Record = {"id": row[0]}
        record.update(json.loads(row[1]) if row[1] else {})
        record["created_at"] = row[2]
        return record

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def list(self, category: str) -> List[Record]:
        """List all records of ``category`` in insertion order."""

        cursor = self._execute(
            "SELECT id, payload, created_at FROM records WHERE category=? ORDER BY id",
            (category,),
        )
        return [self._deserialize(row) for row in cursor.fetchall()]

    def get(self, category: str, record_id: int) -> Record:
        """Retrieve a single record by id."""

        cursor = self._execute(
            "SELECT id, payload, created_at FROM records WHERE category=? AND id=?",
            (category, record_id),
        )
        row = cursor.fetchone()
        if row is None:
            raise RecordNotFound(f"{category} record {record_id} not found")
        return self._deserialize(row)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, category: str, fields: Dict[str, Any]) -> Record:
        """Insert a new record and return it with its id and timestamp."""

        payload = _validate(category, fields)
        created_at = self.clock().isoformat(timespec="seconds")
        cursor = self._execute(
            "INSERT INTO records(category, payload, created_at) VALUES (?, ?, ?)",
            (category, json.dumps(payload, default=str), created_at),
        )
        self.conn.commit()
        record_id = int(cursor.lastrowid)
        logger.debug(f"Created {category} record {record_id}")
        return {"id": record_id, **payload, "created_at": created_at}

    def update(self, category: str, record_id: int, fields: Dict[str, Any]) -> Record:
        """Merge ``fields`` into an existing record."""

        current = self.get(category, record_id)
        merged = {
            key: value
            for key, value in current.items()
            if key not in ("id", "created_at")
        }
        merged.update(fields)
        payload = _validate(category, merged)
        self._execute(
            "UPDATE records SET payload=? WHERE id=?",
            (json.dumps(payload, default=str), record_id),
        )
        self.conn.commit()
        logger.debug(f"Updated {category} record {record_id}")
        return {"id": record_id, **payload, "created_at": current["created_at"]}

    def delete(self, category: str, record_id: int) -> Record:
        """Delete one record and return what was removed."""

        return self.delete_many(category, [record_id])[0]

    def delete_many(self, category: str, record_ids: Iterable[int]) -> List[Record]:
        """Delete several records in one transaction.

        Either every id is removed or, when one of them is missing, nothing is.
        """

        removed = [self.get(category, record_id) for record_id in record_ids]
        try:
            with self.conn:
                self.conn.executemany(
                    "DELETE FROM records WHERE category=? AND id=?",
                    [(category, record["id"]) for record in removed],
                )
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        logger.debug(f"Deleted {category} records {[r['id'] for r in removed]}")
        return removed

    def restore(self, category: str, records: Iterable[Record]) -> None:
        """Re-insert previously deleted records keeping their ids."""

        rows = []
        for record in records:
            fields = {
                key: value
                for key, value in record.items()
                if key not in ("id", "created_at")
            }
            payload = _validate(category, fields)
            rows.append(
                (
                    record["id"],
                    category,
                    json.dumps(payload, default=str),
                    record["created_at"],
                )
            )
        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT INTO records(id, category, payload, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Profile helpers
    # ------------------------------------------------------------------
    def get_profile(self) -> Dict[str, str]:
        cursor = self._execute("SELECT key, value FROM profile ORDER BY key")
        return {key: value for key, value in cursor.fetchall()}

    def save_profile(self, fields: Dict[str, str]) -> Dict[str, str]:
        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT OR REPLACE INTO profile(key, value) VALUES (?, ?)",
                    [(key, str(value)) for key, value in fields.items()],
                )
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return self.get_profile()

    def delete_profile(self) -> None:
        self._execute("DELETE FROM profile")
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()


DEFAULT_TASKS: List[Dict[str, Any]] = [
    {"title": "Initial Prenatal Visit", "content": "First doctor visit to confirm pregnancy.", "starting_week": 4, "ending_week": 4, "task_priority": "high"},
    {"title": "Early Ultrasound", "content": "Confirm pregnancy location and heartbeat.", "starting_week": 6, "ending_week": 8, "task_priority": "high"},
    {"title": "Folic Acid Supplementation", "content": "Start folic acid for neural tube development.", "starting_week": 4, "ending_week": 12, "task_priority": "high"},
    {"title": "Blood Tests", "content": "Check for blood type, hemoglobin, and infections.", "starting_week": 8, "ending_week": 10, "task_priority": "high"},
    {"title": "Down Syndrome Screening", "content": "Non-invasive prenatal screening.", "starting_week": 10, "ending_week": 12, "task_priority": "medium"},
    {"title": "NT Scan", "content": "Nuchal translucency scan for fetal abnormalities.", "starting_week": 12, "ending_week": 14, "task_priority": "high"},
    {"title": "Gestational Diabetes Test", "content": "Glucose test to check blood sugar levels.", "starting_week": 14, "ending_week": 16, "task_priority": "high"},
    {"title": "Detailed Anomaly Scan", "content": "20-week scan to check fetal development.", "starting_week": 18, "ending_week": 20, "task_priority": "high"},
    {"title": "Fetal Movement Monitoring", "content": "Track baby movements for health assessment.", "starting_week": 21, "ending_week": 24, "task_priority": "medium"},
    {"title": "Iron and Calcium Supplements", "content": "Ensure proper bone and blood health.", "starting_week": 21, "ending_week": 28, "task_priority": "medium"},
    {"title": "Pre-Birth Vaccination", "content": "Tdap and flu shots for maternal and newborn protection.", "starting_week": 30, "ending_week": 32, "task_priority": "high"},
    {"title": "Third-Trimester Ultrasound", "content": "Assess baby's growth and position.", "starting_week": 30, "ending_week": 32, "task_priority": "high"},
    {"title": "Birth Plan Discussion", "content": "Discuss delivery preferences with doctor.", "starting_week": 33, "ending_week": 34, "task_priority": "medium"},
    {"title": "Labor Signs Monitoring", "content": "Educate about labor contractions.", "starting_week": 36, "ending_week": 40, "task_priority": "high"},
    {"title": "Final Checkups", "content": "Last medical assessments before labor.", "starting_week": 38, "ending_week": 40, "task_priority": "high"},
]


def seed_default_tasks(store: RecordStore) -> int:
    """Install the prenatal checklist when no task exists yet.

    Returns the number of tasks created.
    """

    if store.list("task"):
        return 0
    for task in DEFAULT_TASKS:
        store.create("task", task)
    logger.info(f"Seeded {len(DEFAULT_TASKS)} default tasks")
    return len(DEFAULT_TASKS)
