import sqlite3
import aiosqlite
import csv
import os
import datetime
import json
import difflib
import re
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from models import CatalogFilter, CatalogSnapshot, ExerciseRecord, GeneratedWorkout
from schemas import UserPreferences


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    goal TEXT,
                    experience TEXT,
                    equipment TEXT,
                    injuries TEXT,
                    frequency INTEGER,
                    workout_days TEXT,
                    session_length_min INTEGER,
                    onboarding_completed INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "username",
                "goal",
                "experience",
                "equipment",
                "injuries",
                "frequency",
                "workout_days",
                "session_length_min",
                "onboarding_completed",
            ],
        ),
        "api_keys": (
            """CREATE TABLE api_keys (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    api_key TEXT NOT NULL UNIQUE,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "api_key"],
        ),
        "exercise_catalog": (
            """CREATE TABLE exercise_catalog (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    body_part TEXT NOT NULL,
                    target TEXT NOT NULL,
                    equipment TEXT NOT NULL,
                    secondary_muscles TEXT,
                    difficulty TEXT NOT NULL DEFAULT 'intermediate',
                    mechanic TEXT,
                    instructions TEXT,
                    position INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "name",
                "body_part",
                "target",
                "equipment",
                "secondary_muscles",
                "difficulty",
                "mechanic",
                "instructions",
                "position",
            ],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    day_of_week INTEGER,
                    estimated_duration_min INTEGER,
                    target_muscles TEXT NOT NULL DEFAULT '[]',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    archived_at TEXT,
                    restore_after_days INTEGER,
                    archive_batch INTEGER,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "name",
                "type",
                "day_of_week",
                "estimated_duration_min",
                "target_muscles",
                "is_active",
                "archived_at",
                "restore_after_days",
                "archive_batch",
            ],
        ),
        "workout_exercises": (
            """CREATE TABLE workout_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    exercise_id TEXT NOT NULL,
                    exercise_name TEXT NOT NULL,
                    order_index INTEGER NOT NULL,
                    target_sets INTEGER NOT NULL DEFAULT 3,
                    target_reps TEXT NOT NULL DEFAULT '8-12',
                    target_rpe REAL,
                    rest_seconds INTEGER DEFAULT 90,
                    notes TEXT,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "exercise_id",
                "exercise_name",
                "order_index",
                "target_sets",
                "target_reps",
                "target_rpe",
                "rest_seconds",
                "notes",
            ],
        ),
        "generation_log": (
            """CREATE TABLE generation_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER,
                    timestamp TEXT NOT NULL,
                    catalog_version TEXT,
                    status TEXT NOT NULL,
                    message TEXT
                );""",
            ["id", "user_id", "timestamp", "catalog_version", "status", "message"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._import_exercise_catalog_data()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=ON;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            # keep child foreign keys pointing at the rebuilt table, not *_old
            cursor.execute("PRAGMA legacy_alter_table=ON;")
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

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("is_active",):
                        return "1"
                    if col in ("onboarding_completed", "position", "order_index"):
                        return "0"
                    if col == "target_sets":
                        return "3"
                    if col == "target_reps":
                        return "'8-12'"
                    if col == "target_muscles":
                        return "'[]'"
                    if col == "difficulty":
                        return "'intermediate'"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
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
                ExerciseRecord.create(
                    id=row["id"],
                    name=row["name"],
                    body_part=row["body_part"],
                    target=row["target"],
                    equipment=row["equipment"],
                    secondary_muscles=_split(row.get("secondary_muscles")),
                    difficulty=row.get("difficulty"),
                    mechanic=row.get("mechanic"),
                    instructions=_split(row.get("instructions")),
                )
                for row in reader
            ]
        with self._connection() as conn:
            _upsert_exercises(conn, records)

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


def _split(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split("|") if v.strip()]


def _upsert_exercises(conn: sqlite3.Connection, records: Iterable[ExerciseRecord]) -> int:
    count = 0
    for rec in records:
        conn.execute(
            "INSERT INTO exercise_catalog (id, name, body_part, target, equipment, secondary_muscles, difficulty, mechanic, instructions, position) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, (SELECT COALESCE(MAX(position), 0) + 1 FROM exercise_catalog)) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, body_part=excluded.body_part, target=excluded.target, equipment=excluded.equipment, "
            "secondary_muscles=excluded.secondary_muscles, difficulty=excluded.difficulty, mechanic=excluded.mechanic, instructions=excluded.instructions;",
            (
                rec.id,
                rec.name,
                rec.body_part,
                rec.target,
                rec.equipment,
                "|".join(rec.secondary_muscles),
                rec.difficulty,
                rec.mechanic,
                json.dumps(list(rec.instructions)),
            ),
        )
        count += 1
    return count


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

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
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


_WORKOUT_COLUMNS = "id, user_id, name, type, day_of_week, estimated_duration_min, target_muscles, is_active, archived_at, restore_after_days, archive_batch"
_EXERCISE_COLUMNS = "id, workout_id, exercise_id, exercise_name, order_index, target_sets, target_reps, target_rpe, rest_seconds, notes"


def _workout_dict(row: Tuple) -> dict:
    return {
        "id": row[0],
        "user_id": row[1],
        "name": row[2],
        "type": row[3],
        "day_of_week": row[4],
        "estimated_duration_min": row[5],
        "target_muscles": json.loads(row[6] or "[]"),
        "is_active": bool(row[7]),
        "archived_at": row[8],
        "restore_after_days": row[9],
        "archive_batch": row[10],
    }


def _exercise_dict(row: Tuple) -> dict:
    return {
        "id": row[0],
        "workout_id": row[1],
        "exercise_id": row[2],
        "exercise_name": row[3],
        "order_index": row[4],
        "target_sets": row[5],
        "target_reps": row[6],
        "target_rpe": row[7],
        "rest_seconds": row[8],
        "notes": row[9],
    }


def _record_from_row(row: Tuple) -> ExerciseRecord:
    return ExerciseRecord(
        id=row[0],
        name=row[1],
        body_part=row[2],
        target=row[3],
        equipment=row[4],
        secondary_muscles=tuple(_split(row[5])),
        difficulty=row[6],
        mechanic=row[7],
        instructions=tuple(json.loads(row[8] or "[]")),
    )


class UserRepository(BaseRepository):
    """Repository for users and their stored training preferences."""

    def create(self, username: str) -> int:
        rows = self.fetch_all("SELECT id FROM users WHERE username = ?;", (username,))
        if rows:
            raise ValueError("username already exists")
        return self.execute("INSERT INTO users (username) VALUES (?);", (username,))

    def fetch_detail(self, user_id: int) -> dict:
        rows = self.fetch_all(
            "SELECT id, username, goal, experience, equipment, injuries, frequency, workout_days, session_length_min, onboarding_completed FROM users WHERE id = ?;",
            (user_id,),
        )
        if not rows:
            raise ValueError("user not found")
        row = rows[0]
        return {
            "id": row[0],
            "username": row[1],
            "preferences": self.fetch_preferences(user_id),
            "onboarding_completed": bool(row[9]),
        }

    def fetch_preferences(self, user_id: int) -> Optional[UserPreferences]:
        rows = self.fetch_all(
            "SELECT goal, experience, equipment, injuries, frequency, workout_days, session_length_min FROM users WHERE id = ?;",
            (user_id,),
        )
        if not rows:
            raise ValueError("user not found")
        goal, experience, equipment, injuries, frequency, days, session = rows[0]
        if frequency is None:
            return None
        return UserPreferences(
            goal=goal or "general",
            experience=experience or "intermediate",
            equipment=equipment or "full_gym",
            injuries=injuries or "none",
            frequency=frequency,
            workout_days=json.loads(days or "[]"),
            session_length_min=session or 60,
        )

    def save_preferences(
        self, user_id: int, prefs: UserPreferences, onboarding_completed: bool = True
    ) -> None:
        self.fetch_detail(user_id)
        self.execute(
            "UPDATE users SET goal = ?, experience = ?, equipment = ?, injuries = ?, frequency = ?, workout_days = ?, session_length_min = ?, onboarding_completed = ? WHERE id = ?;",
            (
                prefs.goal,
                prefs.experience,
                prefs.equipment,
                prefs.injuries,
                prefs.frequency,
                json.dumps(list(prefs.workout_days)),
                prefs.session_length_min,
                int(onboarding_completed),
                user_id,
            ),
        )

    def set_onboarding_completed(self, user_id: int, completed: bool) -> None:
        self.execute(
            "UPDATE users SET onboarding_completed = ? WHERE id = ?;",
            (int(completed), user_id),
        )


class APIKeyRepository(BaseRepository):
    """Repository for API keys used to authenticate REST callers."""

    def add(self, user_id: int, key: str) -> int:
        return self.execute(
            "INSERT INTO api_keys (user_id, api_key) VALUES (?, ?);",
            (user_id, key),
        )

    def user_for_key(self, key: str) -> Optional[int]:
        rows = self.fetch_all(
            "SELECT user_id FROM api_keys WHERE api_key = ?;", (key,)
        )
        return int(rows[0][0]) if rows else None

    def fetch_for_user(self, user_id: int) -> List[Tuple[int, str]]:
        return self.fetch_all(
            "SELECT id, api_key FROM api_keys WHERE user_id = ? ORDER BY id;",
            (user_id,),
        )

    def delete(self, key_id: int) -> None:
        self.execute("DELETE FROM api_keys WHERE id = ?;", (key_id,))


class ExerciseCatalogRepository(BaseRepository):
    """Read access to the exercise catalog plus bulk loading."""

    _COLUMNS = "id, name, body_part, target, equipment, secondary_muscles, difficulty, mechanic, instructions"

    def add(self, record: ExerciseRecord) -> str:
        rows = self.fetch_all(
            "SELECT id FROM exercise_catalog WHERE id = ?;", (record.id,)
        )
        if rows:
            raise ValueError("exercise already exists")
        with self._connection() as conn:
            _upsert_exercises(conn, [record])
        return record.id

    def bulk_upsert(self, records: Iterable[ExerciseRecord]) -> int:
        with self._connection() as conn:
            return _upsert_exercises(conn, records)

    def fetch_records(self) -> List[ExerciseRecord]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog ORDER BY position, id;"
        )
        return [_record_from_row(r) for r in rows]

    def snapshot(self, catalog_filter: Optional[CatalogFilter] = None) -> CatalogSnapshot:
        return CatalogSnapshot.from_records(self.get_eligible_exercises(catalog_filter))

    def get_eligible_exercises(
        self, catalog_filter: Optional[CatalogFilter] = None
    ) -> List[ExerciseRecord]:
        records = self.fetch_records()
        if catalog_filter is None:
            return records
        return [r for r in records if catalog_filter.matches(r)]

    def fetch_detail(self, exercise_id: str) -> ExerciseRecord:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return _record_from_row(rows[0])

    def find_by_name(self, name: str) -> Optional[ExerciseRecord]:
        """Resolve a human supplied exercise name to a catalog record."""
        query = name.strip().lower()
        if not query:
            return None
        records = self.fetch_records()
        normalized_id = re.sub(r"[^a-z0-9]+", "-", query).strip("-")
        for rec in records:
            if rec.id.lower() in (query, normalized_id):
                return rec
        for rec in records:
            if rec.name.lower() == query:
                return rec
        for rec in records:
            if rec.name.lower().startswith(query):
                return rec
        names = [rec.name.lower() for rec in records]
        matches = difflib.get_close_matches(query, names, n=1, cutoff=0.6)
        if matches:
            return records[names.index(matches[0])]
        return None

    def search(self, query: str, limit: int = 5) -> List[str]:
        names = [rec.name for rec in self.fetch_records()]
        lowered = [n.lower() for n in names]
        matches = difflib.get_close_matches(query.lower(), lowered, n=limit, cutoff=0.3)
        return [names[lowered.index(m)] for m in matches]

    def alternatives(
        self,
        exercise_id: str,
        limit: int = 5,
        catalog_filter: Optional[CatalogFilter] = None,
    ) -> List[ExerciseRecord]:
        original = self.fetch_detail(exercise_id)
        found = [
            rec
            for rec in self.get_eligible_exercises(catalog_filter)
            if rec.target == original.target and rec.id != original.id
        ]
        return found[:limit]


class WorkoutRepository(BaseRepository):
    """Repository for workouts and whole-program replacement."""

    def _check_day_free(
        self,
        conn: sqlite3.Connection,
        user_id: int,
        day_of_week: Optional[int],
        exclude_id: Optional[int] = None,
    ) -> None:
        if day_of_week is None:
            return
        rows = conn.execute(
            "SELECT id FROM workouts WHERE user_id = ? AND day_of_week = ? AND is_active = 1 AND id != ?;",
            (user_id, day_of_week, exclude_id or -1),
        ).fetchall()
        if rows:
            raise ValueError("an active workout already exists for that day")

    def create(
        self,
        user_id: int,
        name: str,
        training_type: str,
        day_of_week: Optional[int] = None,
        estimated_duration_min: Optional[int] = None,
        target_muscles: Optional[List[str]] = None,
        is_active: bool = True,
    ) -> int:
        with self._connection() as conn:
            if is_active:
                self._check_day_free(conn, user_id, day_of_week)
            cur = conn.execute(
                "INSERT INTO workouts (user_id, name, type, day_of_week, estimated_duration_min, target_muscles, is_active) VALUES (?, ?, ?, ?, ?, ?, ?);",
                (
                    user_id,
                    name,
                    training_type,
                    day_of_week,
                    estimated_duration_min,
                    json.dumps(target_muscles or []),
                    int(is_active),
                ),
            )
            return cur.lastrowid

    def fetch_for_user(
        self, user_id: int, include_inactive: bool = False
    ) -> List[dict]:
        query = f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE user_id = ?"
        if not include_inactive:
            query += " AND is_active = 1"
        query += " ORDER BY day_of_week, id;"
        return [_workout_dict(r) for r in self.fetch_all(query, (user_id,))]

    def fetch_detail(self, workout_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE id = ?;", (workout_id,)
        )
        if not rows:
            raise ValueError("workout not found")
        return _workout_dict(rows[0])

    def fetch_program(self, user_id: int, include_inactive: bool = False) -> List[dict]:
        """Return the user's workouts with their exercises attached."""
        workouts = self.fetch_for_user(user_id, include_inactive)
        for workout in workouts:
            rows = self.fetch_all(
                f"SELECT {_EXERCISE_COLUMNS} FROM workout_exercises WHERE workout_id = ? ORDER BY order_index;",
                (workout["id"],),
            )
            workout["exercises"] = [_exercise_dict(r) for r in rows]
        return workouts

    def update(self, workout_id: int, **fields) -> None:
        allowed = {
            "name",
            "type",
            "day_of_week",
            "estimated_duration_min",
            "target_muscles",
            "is_active",
        }
        updates = {k: v for k, v in fields.items() if k in allowed and v is not None}
        if not updates:
            return
        current = self.fetch_detail(workout_id)
        with self._connection() as conn:
            day = updates.get("day_of_week", current["day_of_week"])
            active = updates.get("is_active", current["is_active"])
            if active:
                self._check_day_free(conn, current["user_id"], day, workout_id)
            if "target_muscles" in updates:
                updates["target_muscles"] = json.dumps(updates["target_muscles"])
            if "is_active" in updates:
                updates["is_active"] = int(updates["is_active"])
            assignments = ", ".join(f"{k} = ?" for k in updates)
            conn.execute(
                f"UPDATE workouts SET {assignments} WHERE id = ?;",
                tuple(updates.values()) + (workout_id,),
            )

    def delete(self, workout_id: int) -> None:
        self.fetch_detail(workout_id)
        self.execute("DELETE FROM workouts WHERE id = ?;", (workout_id,))

    def delete_for_user(self, user_id: int) -> int:
        rows = self.fetch_all("SELECT COUNT(*) FROM workouts WHERE user_id = ?;", (user_id,))
        self.execute("DELETE FROM workouts WHERE user_id = ?;", (user_id,))
        return int(rows[0][0])

    def replace_program(
        self,
        user_id: int,
        workouts: Iterable[GeneratedWorkout],
        archive: bool = False,
        restore_after_days: Optional[int] = None,
    ) -> List[int]:
        """Atomically supersede the user's active program with ``workouts``.

        The previous active workouts are deleted, or marked inactive and
        archived when ``archive`` is set. Everything happens in one
        transaction; a failure leaves the old program untouched.
        """
        created: List[int] = []
        with self._connection() as conn:
            if archive:
                batch = conn.execute(
                    "SELECT COALESCE(MAX(archive_batch), 0) + 1 FROM workouts WHERE user_id = ?;",
                    (user_id,),
                ).fetchone()[0]
                conn.execute(
                    "UPDATE workouts SET is_active = 0, archived_at = ?, restore_after_days = ?, archive_batch = ? WHERE user_id = ? AND is_active = 1;",
                    (
                        datetime.datetime.now().isoformat(timespec="seconds"),
                        restore_after_days,
                        batch,
                        user_id,
                    ),
                )
            else:
                conn.execute(
                    "DELETE FROM workouts WHERE user_id = ? AND is_active = 1;",
                    (user_id,),
                )
            for workout in workouts:
                self._check_day_free(conn, user_id, workout.day_of_week)
                cur = conn.execute(
                    "INSERT INTO workouts (user_id, name, type, day_of_week, estimated_duration_min, target_muscles, is_active) VALUES (?, ?, ?, ?, ?, ?, 1);",
                    (
                        user_id,
                        workout.name,
                        workout.type,
                        workout.day_of_week,
                        workout.estimated_duration_min,
                        json.dumps(list(workout.target_muscles)),
                    ),
                )
                workout_id = cur.lastrowid
                for ex in workout.exercises:
                    conn.execute(
                        "INSERT INTO workout_exercises (workout_id, exercise_id, exercise_name, order_index, target_sets, target_reps, target_rpe, rest_seconds, notes) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
                        (
                            workout_id,
                            ex.exercise_id,
                            ex.exercise_name,
                            ex.order_index,
                            ex.target_sets,
                            ex.target_reps,
                            ex.target_rpe,
                            ex.rest_seconds,
                            ex.notes,
                        ),
                    )
                created.append(workout_id)
        return created

    def restore_archived(self, user_id: int) -> List[int]:
        """Drop the active program and reactivate the most recent archive.

        Only the latest archive batch comes back; older archives stay
        archived so a later restore can step further back.
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT MAX(archive_batch) FROM workouts WHERE user_id = ? AND is_active = 0;",
                (user_id,),
            ).fetchone()
            batch = row[0] if row else None
            if batch is not None:
                where = "user_id = ? AND is_active = 0 AND archive_batch = ?"
                params: Tuple = (user_id, batch)
            else:
                # rows archived before batches existed
                row = conn.execute(
                    "SELECT MAX(archived_at) FROM workouts WHERE user_id = ? AND is_active = 0 AND archived_at IS NOT NULL;",
                    (user_id,),
                ).fetchone()
                if row is None or row[0] is None:
                    raise ValueError("no archived program to restore")
                where = "user_id = ? AND is_active = 0 AND archived_at = ?"
                params = (user_id, row[0])
            rows = conn.execute(
                f"SELECT id, day_of_week FROM workouts WHERE {where} ORDER BY day_of_week, id;",
                params,
            ).fetchall()
            days = [r[1] for r in rows if r[1] is not None]
            if len(set(days)) != len(days):
                raise ValueError("archived program has more than one workout on a day")
            conn.execute(
                "DELETE FROM workouts WHERE user_id = ? AND is_active = 1;",
                (user_id,),
            )
            conn.execute(
                f"UPDATE workouts SET is_active = 1, archived_at = NULL, restore_after_days = NULL, archive_batch = NULL WHERE {where};",
                params,
            )
            ids = [r[0] for r in rows]
        return ids


class AsyncWorkoutRepository(AsyncBaseRepository):
    """Async read access to a user's program."""

    async def fetch_program(
        self, user_id: int, include_inactive: bool = False
    ) -> List[dict]:
        query = f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE user_id = ?"
        if not include_inactive:
            query += " AND is_active = 1"
        query += " ORDER BY day_of_week, id;"
        workouts = [_workout_dict(r) for r in await self.fetch_all(query, (user_id,))]
        for workout in workouts:
            rows = await self.fetch_all(
                f"SELECT {_EXERCISE_COLUMNS} FROM workout_exercises WHERE workout_id = ? ORDER BY order_index;",
                (workout["id"],),
            )
            workout["exercises"] = [_exercise_dict(r) for r in rows]
        return workouts


class WorkoutExerciseRepository(BaseRepository):
    """Repository for the ordered exercises of a workout."""

    def add(
        self,
        workout_id: int,
        exercise_id: str,
        exercise_name: str,
        target_sets: int = 3,
        target_reps: str = "8-12",
        target_rpe: Optional[float] = None,
        rest_seconds: Optional[int] = 90,
        notes: Optional[str] = None,
    ) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM workout_exercises WHERE workout_id = ?;",
            (workout_id,),
        )
        order_index = int(rows[0][0]) if rows else 0
        return self.execute(
            "INSERT INTO workout_exercises (workout_id, exercise_id, exercise_name, order_index, target_sets, target_reps, target_rpe, rest_seconds, notes) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                workout_id,
                exercise_id,
                exercise_name,
                order_index,
                target_sets,
                target_reps,
                target_rpe,
                rest_seconds,
                notes,
            ),
        )

    def fetch_for_workout(self, workout_id: int) -> List[dict]:
        rows = self.fetch_all(
            f"SELECT {_EXERCISE_COLUMNS} FROM workout_exercises WHERE workout_id = ? ORDER BY order_index;",
            (workout_id,),
        )
        return [_exercise_dict(r) for r in rows]

    def fetch_detail(self, exercise_id: int) -> dict:
        rows = self.fetch_all(
            f"SELECT {_EXERCISE_COLUMNS} FROM workout_exercises WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return _exercise_dict(rows[0])

    def update(self, exercise_id: int, /, **fields) -> None:
        allowed = {
            "exercise_id",
            "exercise_name",
            "target_sets",
            "target_reps",
            "target_rpe",
            "rest_seconds",
            "notes",
        }
        updates = {k: v for k, v in fields.items() if k in allowed and v is not None}
        self.fetch_detail(exercise_id)
        if not updates:
            return
        assignments = ", ".join(f"{k} = ?" for k in updates)
        self.execute(
            f"UPDATE workout_exercises SET {assignments} WHERE id = ?;",
            tuple(updates.values()) + (exercise_id,),
        )

    def remove(self, exercise_id: int) -> None:
        detail = self.fetch_detail(exercise_id)
        with self._connection() as conn:
            conn.execute("DELETE FROM workout_exercises WHERE id = ?;", (exercise_id,))
            conn.execute(
                "UPDATE workout_exercises SET order_index = order_index - 1 WHERE workout_id = ? AND order_index > ?;",
                (detail["workout_id"], detail["order_index"]),
            )

    def reorder(self, workout_id: int, order: list[int]) -> None:
        existing = [
            row[0]
            for row in self.fetch_all(
                "SELECT id FROM workout_exercises WHERE workout_id = ? ORDER BY order_index;",
                (workout_id,),
            )
        ]
        if set(order) != set(existing) or len(order) != len(existing):
            raise ValueError("invalid order")
        with self._connection() as conn:
            for pos, eid in enumerate(order):
                conn.execute(
                    "UPDATE workout_exercises SET order_index = ? WHERE id = ?;",
                    (pos, eid),
                )


class GenerationLogRepository(BaseRepository):
    """Records the outcome of every program generation."""

    def _log(
        self, user_id: Optional[int], status: str, version: Optional[str], message: Optional[str]
    ) -> None:
        self.execute(
            "INSERT INTO generation_log (user_id, timestamp, catalog_version, status, message) VALUES (?, ?, ?, ?, ?);",
            (
                user_id,
                datetime.datetime.now().isoformat(timespec="seconds"),
                version,
                status,
                message,
            ),
        )

    def log_success(
        self, user_id: Optional[int], version: Optional[str] = None, message: Optional[str] = None
    ) -> None:
        self._log(user_id, "success", version, message)

    def log_error(
        self, user_id: Optional[int], message: str, version: Optional[str] = None
    ) -> None:
        self._log(user_id, "error", version, message)

    def fetch_recent(self, user_id: Optional[int] = None, limit: int = 10) -> List[dict]:
        query = "SELECT id, user_id, timestamp, catalog_version, status, message FROM generation_log"
        params: tuple = ()
        if user_id is not None:
            query += " WHERE user_id = ?"
            params = (user_id,)
        query += " ORDER BY id DESC LIMIT ?;"
        rows = self.fetch_all(query, params + (limit,))
        return [
            {
                "id": r[0],
                "user_id": r[1],
                "timestamp": r[2],
                "catalog_version": r[3],
                "status": r[4],
                "message": r[5],
            }
            for r in rows
        ]
