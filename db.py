import sqlite3
import aiosqlite
import csv
import os
import re
import json
import datetime
import difflib
import unicodedata
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from models import (
    CatalogEntry,
    DailyMax,
    ExerciseEntry,
    ExerciseRecord,
    RECORD_VALUE_FIELDS,
    SetEntry,
    WorkoutEntry,
    dump_daily_max,
)


def normalize_name(name: str) -> str:
    """Lowercase ``name``, strip accents and collapse punctuation to spaces."""
    text = unicodedata.normalize("NFKD", name or "")
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^0-9a-z]+", " ", text.lower())
    return " ".join(text.split())


def slugify(name: str) -> str:
    return normalize_name(name).replace(" ", "_")


def _utcnow() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    notes TEXT,
                    user_weight REAL,
                    source TEXT NOT NULL DEFAULT 'web'
                );""",
            ["id", "user_id", "date", "created_at", "notes", "user_weight", "source"],
        ),
        "workout_exercises": (
            """CREATE TABLE workout_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    unilateral INTEGER NOT NULL DEFAULT 0,
                    exercise_type TEXT,
                    category TEXT,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "position",
                "name",
                "unilateral",
                "exercise_type",
                "category",
            ],
        ),
        "workout_sets": (
            """CREATE TABLE workout_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    weight REAL NOT NULL DEFAULT 0,
                    reps INTEGER NOT NULL DEFAULT 0,
                    unit TEXT NOT NULL DEFAULT 'kg',
                    distance REAL,
                    duration TEXT,
                    rpe REAL,
                    FOREIGN KEY(exercise_id) REFERENCES workout_exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "exercise_id",
                "position",
                "weight",
                "reps",
                "unit",
                "distance",
                "duration",
                "rpe",
            ],
        ),
        "exercise_catalog": (
            """CREATE TABLE exercise_catalog (
                    id TEXT PRIMARY KEY,
                    name_en TEXT NOT NULL,
                    name_es TEXT,
                    category TEXT NOT NULL DEFAULT 'General',
                    exercise_type TEXT NOT NULL DEFAULT 'strength',
                    is_bodyweight INTEGER NOT NULL DEFAULT 0,
                    is_custom INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "name_en",
                "name_es",
                "category",
                "exercise_type",
                "is_bodyweight",
                "is_custom",
            ],
        ),
        "exercise_aliases": (
            """CREATE TABLE exercise_aliases (
                    alias TEXT PRIMARY KEY,
                    exercise_id TEXT NOT NULL,
                    FOREIGN KEY(exercise_id) REFERENCES exercise_catalog(id) ON DELETE CASCADE
                );""",
            ["alias", "exercise_id"],
        ),
        "body_weight_logs": (
            """CREATE TABLE body_weight_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    weight REAL NOT NULL
                );""",
            ["id", "user_id", "date", "weight"],
        ),
        "user_records": (
            """CREATE TABLE user_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    exercise_name TEXT NOT NULL,
                    max_weight_kg REAL NOT NULL DEFAULT 0,
                    max_weight_reps INTEGER NOT NULL DEFAULT 0,
                    max_weight_date TEXT,
                    max_weight_workout_id INTEGER,
                    max_1rm_kg REAL NOT NULL DEFAULT 0,
                    max_1rm_date TEXT,
                    max_1rm_workout_id INTEGER,
                    total_volume_kg REAL NOT NULL DEFAULT 0,
                    max_reps INTEGER NOT NULL DEFAULT 0,
                    max_reps_date TEXT,
                    max_reps_workout_id INTEGER,
                    best_single_set_weight_kg REAL,
                    best_single_set_reps INTEGER,
                    best_single_set_volume_kg REAL,
                    best_single_set_date TEXT,
                    best_single_set_workout_id INTEGER,
                    best_near_max_weight_kg REAL,
                    best_near_max_reps INTEGER,
                    best_near_max_date TEXT,
                    best_near_max_workout_id INTEGER,
                    daily_max TEXT NOT NULL DEFAULT '[]',
                    is_bodyweight INTEGER NOT NULL DEFAULT 0,
                    category TEXT,
                    exercise_type TEXT,
                    unit TEXT NOT NULL DEFAULT 'kg',
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT,
                    updated_at TEXT,
                    UNIQUE(user_id, exercise_id)
                );""",
            [
                "id",
                "user_id",
                "exercise_id",
                "exercise_name",
                *RECORD_VALUE_FIELDS,
                "is_bodyweight",
                "category",
                "exercise_type",
                "unit",
                "version",
                "created_at",
                "updated_at",
            ],
        ),
    }

    _COLUMN_DEFAULTS = {
        "source": "'web'",
        "position": "0",
        "unilateral": "0",
        "unit": "'kg'",
        "is_bodyweight": "0",
        "is_custom": "0",
        "version": "1",
        "daily_max": "'[]'",
        "created_at": "''",
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._import_exercise_catalog_data()
        self._sync_aliases()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys = ON;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [
                c
                for c in columns
                if c not in existing_cols and c in self._COLUMN_DEFAULTS
            ]
            if missing:
                defaults = ", ".join(self._COLUMN_DEFAULTS[c] for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _import_exercise_catalog_data(self) -> None:
        csv_path = os.path.join(os.path.dirname(__file__), "exercise_catalog.csv")
        if not os.path.exists(csv_path):
            return
        with open(csv_path, newline="", encoding="utf-8") as csvfile:
            reader = csv.DictReader(csvfile)
            records = [
                (
                    row["id"],
                    row["name_en"],
                    row.get("name_es", ""),
                    row.get("category") or "General",
                    row.get("type") or "strength",
                    int(row.get("is_bodyweight") or 0),
                )
                for row in reader
            ]
        with self._connection() as conn:
            for exercise_id, name_en, name_es, category, ex_type, bodyweight in records:
                conn.execute(
                    "INSERT INTO exercise_catalog (id, name_en, name_es, category, exercise_type, is_bodyweight, is_custom) "
                    "VALUES (?, ?, ?, ?, ?, ?, 0) "
                    "ON CONFLICT(id) DO UPDATE SET name_en=excluded.name_en, name_es=excluded.name_es, category=excluded.category, "
                    "exercise_type=excluded.exercise_type, is_bodyweight=excluded.is_bodyweight "
                    "WHERE exercise_catalog.is_custom = 0;",
                    (exercise_id, name_en, name_es, category, ex_type, bodyweight),
                )

    def _sync_aliases(self) -> None:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, name_en, name_es FROM exercise_catalog;"
            ).fetchall()
            for exercise_id, name_en, name_es in rows:
                for name in (exercise_id, name_en, name_es):
                    alias = normalize_name(name or "")
                    if alias:
                        conn.execute(
                            "INSERT OR IGNORE INTO exercise_aliases (alias, exercise_id) VALUES (?, ?);",
                            (alias, exercise_id),
                        )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def execute_count(self, query: str, params: Tuple = ()) -> int:
        """Run a write and return the number of affected rows."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.rowcount

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


class WorkoutRepository(BaseRepository):
    """Repository for the workout log."""

    _WORKOUT_COLUMNS = "w.id, w.user_id, w.date, w.created_at, w.notes, w.user_weight, w.source"

    def insert(self, workout: WorkoutEntry) -> int:
        created = workout.created_at or _utcnow()
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO workouts (user_id, date, created_at, notes, user_weight, source) VALUES (?, ?, ?, ?, ?, ?);",
                (
                    workout.user_id,
                    workout.date,
                    created,
                    workout.notes,
                    workout.user_weight,
                    workout.source,
                ),
            )
            workout_id = cur.lastrowid
            self._insert_exercises(conn, workout_id, workout.exercises)
        return workout_id

    @staticmethod
    def _insert_exercises(
        conn: sqlite3.Connection, workout_id: int, exercises: Iterable[ExerciseEntry]
    ) -> None:
        for position, ex in enumerate(exercises):
            cur = conn.execute(
                "INSERT INTO workout_exercises (workout_id, position, name, unilateral, exercise_type, category) VALUES (?, ?, ?, ?, ?, ?);",
                (workout_id, position, ex.name, int(ex.unilateral), ex.type, ex.category),
            )
            exercise_id = cur.lastrowid
            for set_pos, s in enumerate(ex.sets):
                conn.execute(
                    "INSERT INTO workout_sets (exercise_id, position, weight, reps, unit, distance, duration, rpe) VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
                    (
                        exercise_id,
                        set_pos,
                        float(s.weight or 0.0),
                        int(s.reps or 0),
                        s.unit or "kg",
                        s.distance,
                        s.time,
                        s.rpe,
                    ),
                )

    def update(self, workout: WorkoutEntry) -> None:
        """Replace the stored workout, exercises included."""
        if workout.id is None:
            raise ValueError("workout id required")
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE workouts SET date = ?, notes = ?, user_weight = ?, source = ? WHERE id = ?;",
                (
                    workout.date,
                    workout.notes,
                    workout.user_weight,
                    workout.source,
                    workout.id,
                ),
            )
            if cur.rowcount == 0:
                raise ValueError("workout not found")
            conn.execute(
                "DELETE FROM workout_exercises WHERE workout_id = ?;", (workout.id,)
            )
            self._insert_exercises(conn, workout.id, workout.exercises)

    def delete(self, workout_id: int) -> None:
        rows = self.fetch_all("SELECT id FROM workouts WHERE id = ?;", (workout_id,))
        if not rows:
            raise ValueError("workout not found")
        self.execute("DELETE FROM workouts WHERE id = ?;", (workout_id,))

    def fetch(self, workout_id: int) -> Optional[WorkoutEntry]:
        rows = self._fetch_workouts("w.id = ?", (workout_id,))
        return rows[0] if rows else None

    def list_by_user(self, user_id: str) -> List[WorkoutEntry]:
        """Return the user's workouts in chronological order."""
        return self._fetch_workouts("w.user_id = ?", (user_id,))

    def fetch_for_date(self, user_id: str, date: str) -> Optional[WorkoutEntry]:
        rows = self._fetch_workouts(
            "w.user_id = ? AND substr(w.date, 1, 10) = ?", (user_id, date[:10])
        )
        return rows[0] if rows else None

    def list_users(self) -> List[str]:
        rows = self.fetch_all("SELECT DISTINCT user_id FROM workouts ORDER BY user_id;")
        return [r[0] for r in rows]

    def _fetch_workouts(self, where: str, params: Tuple) -> List[WorkoutEntry]:
        rows = self.fetch_all(
            f"SELECT {self._WORKOUT_COLUMNS} FROM workouts w WHERE {where} "
            "ORDER BY substr(w.date, 1, 10), w.created_at, w.id;",
            params,
        )
        if not rows:
            return []
        ex_rows = self.fetch_all(
            "SELECT e.id, e.workout_id, e.name, e.unilateral, e.exercise_type, e.category "
            f"FROM workout_exercises e JOIN workouts w ON w.id = e.workout_id WHERE {where} "
            "ORDER BY e.workout_id, e.position, e.id;",
            params,
        )
        set_rows = self.fetch_all(
            "SELECT s.exercise_id, s.weight, s.reps, s.unit, s.distance, s.duration, s.rpe "
            "FROM workout_sets s JOIN workout_exercises e ON e.id = s.exercise_id "
            f"JOIN workouts w ON w.id = e.workout_id WHERE {where} "
            "ORDER BY s.exercise_id, s.position, s.id;",
            params,
        )
        sets_by_exercise: dict[int, list[SetEntry]] = {}
        for ex_id, weight, reps, unit, distance, duration, rpe in set_rows:
            sets_by_exercise.setdefault(ex_id, []).append(
                SetEntry(
                    weight=float(weight),
                    reps=int(reps),
                    unit=unit,
                    distance=distance,
                    time=duration,
                    rpe=rpe,
                )
            )
        exercises_by_workout: dict[int, list[ExerciseEntry]] = {}
        for ex_id, workout_id, name, unilateral, ex_type, category in ex_rows:
            exercises_by_workout.setdefault(workout_id, []).append(
                ExerciseEntry(
                    name=name,
                    sets=tuple(sets_by_exercise.get(ex_id, [])),
                    unilateral=bool(unilateral),
                    type=ex_type,
                    category=category,
                )
            )
        return [
            WorkoutEntry(
                id=wid,
                user_id=user_id,
                date=date,
                created_at=created_at,
                notes=notes,
                user_weight=user_weight,
                source=source,
                exercises=tuple(exercises_by_workout.get(wid, [])),
            )
            for wid, user_id, date, created_at, notes, user_weight, source in rows
        ]


class ExerciseCatalogRepository(BaseRepository):
    """Repository for catalog entries and free-text name resolution."""

    _BODYWEIGHT_IDS = {"pull_up", "chin_up", "dips_chest", "dips_triceps", "dominadas"}
    _COLUMNS = "id, name_en, name_es, category, exercise_type, is_bodyweight, is_custom"

    @staticmethod
    def _entry(row: Tuple) -> CatalogEntry:
        exercise_id, name_en, name_es, category, ex_type, bodyweight, custom = row
        return CatalogEntry(
            id=exercise_id,
            name_en=name_en,
            name_es=name_es or "",
            category=category,
            type=ex_type,
            is_bodyweight=bool(bodyweight),
            is_custom=bool(custom),
        )

    def list_entries(self) -> List[CatalogEntry]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog ORDER BY name_en;"
        )
        return [self._entry(r) for r in rows]

    def lookup(self, exercise_id: str) -> Optional[CatalogEntry]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE id = ?;",
            (exercise_id,),
        )
        return self._entry(rows[0]) if rows else None

    def resolve_canonical_id(self, name: str, cutoff: float = 0.85) -> str:
        """Map free text to a catalog id.

        Tries an exact alias hit, then the closest alias by ``difflib``
        ratio; names nothing resembles fall back to their slug.
        """
        alias = normalize_name(name)
        if not alias:
            return ""
        rows = self.fetch_all(
            "SELECT exercise_id FROM exercise_aliases WHERE alias = ?;", (alias,)
        )
        if rows:
            return rows[0][0]
        rows = self.fetch_all("SELECT alias, exercise_id FROM exercise_aliases;")
        lookup = {a: eid for a, eid in rows}
        match = difflib.get_close_matches(alias, list(lookup), n=1, cutoff=cutoff)
        if match:
            return lookup[match[0]]
        return slugify(name)

    def add(self, entry: CatalogEntry) -> None:
        if self.lookup(entry.id) is not None:
            raise ValueError("exercise already exists")
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO exercise_catalog (id, name_en, name_es, category, exercise_type, is_bodyweight, is_custom) VALUES (?, ?, ?, ?, ?, ?, 1);",
                (
                    entry.id,
                    entry.name_en,
                    entry.name_es,
                    entry.category,
                    entry.type,
                    int(entry.is_bodyweight),
                ),
            )
        self._sync_aliases()

    def add_alias(self, alias: str, exercise_id: str) -> None:
        if self.lookup(exercise_id) is None:
            raise ValueError("exercise not found")
        key = normalize_name(alias)
        if not key:
            raise ValueError("alias must not be empty")
        self.execute(
            "INSERT OR REPLACE INTO exercise_aliases (alias, exercise_id) VALUES (?, ?);",
            (key, exercise_id),
        )

    def aliases(self, exercise_id: str) -> List[str]:
        rows = self.fetch_all(
            "SELECT alias FROM exercise_aliases WHERE exercise_id = ? ORDER BY alias;",
            (exercise_id,),
        )
        return [r[0] for r in rows]

    def search(self, query: str, limit: int = 5) -> List[str]:
        """Return catalog ids whose names loosely match ``query``."""
        rows = self.fetch_all("SELECT alias, exercise_id FROM exercise_aliases;")
        lookup = {a: eid for a, eid in rows}
        matches = difflib.get_close_matches(
            normalize_name(query), list(lookup), n=limit * 3, cutoff=0.3
        )
        result: list[str] = []
        for alias in matches:
            if lookup[alias] not in result:
                result.append(lookup[alias])
        return result[:limit]

    @classmethod
    def guess_bodyweight(cls, canonical_id: str) -> bool:
        """Keyword fallback for ids missing from the catalog.

        Only dips and pull-up / chin-up patterns count; cable, machine, row
        and face-pull variants do not.
        """
        if canonical_id in cls._BODYWEIGHT_IDS:
            return True
        lower = canonical_id.lower()
        excluded = ("cable", "machine", "face")
        is_dip = "dip" in lower and not any(x in lower for x in excluded)
        is_pull_up = (
            any(x in lower for x in ("pull_up", "chin_up", "dominada"))
            and not any(x in lower for x in excluded + ("row",))
        )
        return is_dip or is_pull_up


RECORD_COLUMNS = (
    "id",
    "user_id",
    "exercise_id",
    "exercise_name",
    *RECORD_VALUE_FIELDS,
    "is_bodyweight",
    "category",
    "exercise_type",
    "unit",
    "version",
    "created_at",
    "updated_at",
)


def _record_from_row(row: Tuple) -> ExerciseRecord:
    return ExerciseRecord.from_row(dict(zip(RECORD_COLUMNS, row)))


class RecordRepository(BaseRepository):
    """Repository for per-exercise personal records."""

    _SELECT = f"SELECT {', '.join(RECORD_COLUMNS)} FROM user_records"

    def find_one(self, user_id: str, exercise_id: str) -> Optional[ExerciseRecord]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? AND exercise_id = ?;",
            (user_id, exercise_id),
        )
        return _record_from_row(rows[0]) if rows else None

    def fetch_for_user(self, user_id: str) -> List[ExerciseRecord]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? ORDER BY exercise_name;", (user_id,)
        )
        return [_record_from_row(r) for r in rows]

    def insert(self, record: ExerciseRecord) -> int:
        """Insert ``record``; a duplicate (user, exercise) raises IntegrityError."""
        now = _utcnow()
        values = record.values()
        columns = [
            "user_id",
            "exercise_id",
            "exercise_name",
            *values.keys(),
            "is_bodyweight",
            "category",
            "exercise_type",
            "unit",
            "version",
            "created_at",
            "updated_at",
        ]
        params = (
            record.user_id,
            record.exercise_id,
            record.exercise_name,
            *values.values(),
            int(record.is_bodyweight),
            record.category,
            record.exercise_type,
            record.unit,
            1,
            now,
            now,
        )
        placeholders = ", ".join("?" for _ in columns)
        return self.execute(
            f"INSERT INTO user_records ({', '.join(columns)}) VALUES ({placeholders});",
            params,
        )

    def update(
        self, record_id: int, fields: dict, expected_version: Optional[int] = None
    ) -> bool:
        """Update derived fields of one record.

        With ``expected_version`` the write only lands if the stored version
        still matches; the return value tells whether a row was changed.
        """
        unknown = set(fields) - set(RECORD_VALUE_FIELDS)
        if unknown:
            raise ValueError(f"unknown record fields: {', '.join(sorted(unknown))}")
        values = dict(fields)
        if "daily_max" in values and not isinstance(values["daily_max"], str):
            values["daily_max"] = dump_daily_max(values["daily_max"])
        assignments = [f"{name} = ?" for name in values]
        assignments += ["version = version + 1", "updated_at = ?"]
        query = f"UPDATE user_records SET {', '.join(assignments)} WHERE id = ?"
        params: list = [*values.values(), _utcnow(), record_id]
        if expected_version is not None:
            query += " AND version = ?"
            params.append(expected_version)
        return self.execute_count(query + ";", tuple(params)) == 1

    def delete_all_for_user(self, user_id: str) -> int:
        return self.execute_count(
            "DELETE FROM user_records WHERE user_id = ?;", (user_id,)
        )

    def total_volume(self, user_id: str) -> float:
        rows = self.fetch_all(
            "SELECT COALESCE(SUM(total_volume_kg), 0) FROM user_records WHERE user_id = ?;",
            (user_id,),
        )
        return float(rows[0][0])


class AsyncRecordRepository(AsyncBaseRepository):
    """Async read access to personal records."""

    _SELECT = f"SELECT {', '.join(RECORD_COLUMNS)} FROM user_records"

    async def find_one(self, user_id: str, exercise_id: str) -> Optional[ExerciseRecord]:
        rows = await self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? AND exercise_id = ?;",
            (user_id, exercise_id),
        )
        return _record_from_row(rows[0]) if rows else None

    async def fetch_for_user(self, user_id: str) -> List[ExerciseRecord]:
        rows = await self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? ORDER BY exercise_name;", (user_id,)
        )
        return [_record_from_row(r) for r in rows]

    async def total_volume(self, user_id: str) -> float:
        rows = await self.fetch_all(
            "SELECT COALESCE(SUM(total_volume_kg), 0) FROM user_records WHERE user_id = ?;",
            (user_id,),
        )
        return float(rows[0][0])


class BodyWeightRepository(BaseRepository):
    """Repository for body weight logs."""

    def log(self, user_id: str, date: str, weight: float) -> int:
        if weight <= 0:
            raise ValueError("weight must be positive")
        return self.execute(
            "INSERT INTO body_weight_logs (user_id, date, weight) VALUES (?, ?, ?);",
            (user_id, date, weight),
        )

    def fetch_history(self, user_id: str) -> list[tuple[int, str, float]]:
        rows = self.fetch_all(
            "SELECT id, date, weight FROM body_weight_logs WHERE user_id = ? ORDER BY date, id;",
            (user_id,),
        )
        return [(int(r[0]), r[1], float(r[2])) for r in rows]

    def delete(self, entry_id: int) -> None:
        rows = self.fetch_all(
            "SELECT id FROM body_weight_logs WHERE id = ?;",
            (entry_id,),
        )
        if not rows:
            raise ValueError("log not found")
        self.execute("DELETE FROM body_weight_logs WHERE id = ?;", (entry_id,))

    def fetch_latest_weight(self, user_id: str) -> float | None:
        """Return the most recent logged body weight if available."""
        row = self.fetch_all(
            "SELECT weight FROM body_weight_logs WHERE user_id = ? ORDER BY date DESC, id DESC LIMIT 1;",
            (user_id,),
        )
        if row:
            return float(row[0][0])
        return None
