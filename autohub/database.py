"""SQLite-backed persistence for customers and their submissions."""
from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .config import resolve_database_path
from .errors import ConflictError, PersistenceError
from .models import StoredCredential, TestDrive, User

logger = logging.getLogger("autohub.database")

# Columns accepted by ``insert_submission`` for each submission table. The
# owning ``userId`` column is always written separately.
SUBMISSION_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "test_drives": ("carModel", "name", "email", "phone", "preferredDate", "preferredTime"),
    "messages": ("name", "email", "phone", "interest", "message"),
    "financing_requests": ("name", "email", "phone", "amount", "term", "message"),
}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    firstName TEXT NOT NULL,
    lastName TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    phone TEXT NOT NULL,
    password TEXT NOT NULL,
    createdAt TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS test_drives (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    userId INTEGER NOT NULL REFERENCES users(id),
    carModel TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    preferredDate TEXT NOT NULL,
    preferredTime TEXT NOT NULL,
    createdAt TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    userId INTEGER REFERENCES users(id),
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    interest TEXT NOT NULL,
    message TEXT NOT NULL,
    createdAt TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS financing_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    userId INTEGER REFERENCES users(id),
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    amount REAL NOT NULL,
    term INTEGER NOT NULL,
    message TEXT,
    createdAt TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_test_drives_user_id ON test_drives(userId);
"""


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Database:
    """Process-wide SQLite handle, opened once at start-up and closed on shutdown."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "Database":
        """Connect and create the fixed schema; calling it again is a no-op."""

        with self._lock:
            if self._conn is not None:
                return self
            try:
                _ensure_directory(self._path)
                conn = sqlite3.connect(self._path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                conn.executescript(_SCHEMA)
                conn.commit()
            except (OSError, sqlite3.Error) as exc:
                logger.error("Unable to open database at %s: %s", self._path, exc)
                raise PersistenceError("Database unavailable") from exc
            self._conn = conn
        logger.info("Connected to the SQLite database at %s", self._path)
        return self

    def close(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()
            logger.info("Closed the SQLite database at %s", self._path)

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        password_hash: str,
    ) -> User:
        """Insert a new user; duplicate emails raise :class:`ConflictError`."""

        created_at = _current_timestamp()
        normalized_email = normalize_email(email)

        with self._cursor("user registration") as conn:
            existing = conn.execute(
                "SELECT id FROM users WHERE email = ?",
                (normalized_email,),
            ).fetchone()
            if existing is not None:
                raise ConflictError("Email already registered")
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (firstName, lastName, email, phone, password, createdAt)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        first_name,
                        last_name,
                        normalized_email,
                        phone,
                        password_hash,
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("Email already registered") from exc
            user_id = int(cursor.lastrowid)

        return User(
            id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=normalized_email,
            phone=phone,
            created_at=created_at,
        )

    def get_user(self, user_id: int) -> Optional[User]:
        with self._cursor("user lookup") as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        credential = self.get_credential(email)
        return credential.user if credential else None

    def get_credential(self, email: str) -> Optional[StoredCredential]:
        """Return the user row and password digest for ``email``, if registered."""

        with self._cursor("login user lookup") as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        if row is None:
            return None
        return StoredCredential(user=self._row_to_user(row), password_hash=row["password"])

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------
    def insert_submission(
        self,
        table: str,
        user_id: Optional[int],
        values: Mapping[str, object],
    ) -> int:
        """Write one submission row owned by ``user_id`` and return its id."""

        try:
            allowed = SUBMISSION_COLUMNS[table]
        except KeyError as exc:
            raise ValueError(f"Unknown submission table '{table}'") from exc

        unknown = set(values) - set(allowed)
        if unknown:
            raise ValueError(
                f"Unknown columns for {table}: {', '.join(sorted(unknown))}"
            )

        columns = [column for column in allowed if column in values]
        placeholders = ", ".join("?" for _ in range(len(columns) + 2))
        query = (
            f"INSERT INTO {table} (userId, {', '.join(columns)}, createdAt) "
            f"VALUES ({placeholders})"
        )
        params = [user_id, *(values[column] for column in columns)]
        params.append(_serialize_datetime(_current_timestamp()))

        with self._cursor(f"saving {table}") as conn:
            cursor = conn.execute(query, params)
            return int(cursor.lastrowid)

    def list_test_drives(self, user_id: int) -> List[TestDrive]:
        with self._cursor("retrieving test drives") as conn:
            rows = conn.execute(
                """
                SELECT id, carModel, preferredDate, preferredTime, createdAt
                  FROM test_drives
                 WHERE userId = ?
              ORDER BY createdAt DESC, id DESC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_test_drive(row) for row in rows]

    def count_rows(self, table: str, user_id: Optional[int] = None) -> int:
        if table != "users" and table not in SUBMISSION_COLUMNS:
            raise ValueError(f"Unknown table '{table}'")
        query = f"SELECT COUNT(*) FROM {table}"
        params: Tuple[object, ...] = ()
        if user_id is not None:
            query += " WHERE userId = ?"
            params = (user_id,)
        with self._cursor(f"counting {table}") as conn:
            return int(conn.execute(query, params).fetchone()[0])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _cursor(self, context: str) -> "_Transaction":
        return _Transaction(self, context)

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("Database connection is not open")
        return self._conn

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            first_name=str(row["firstName"]),
            last_name=str(row["lastName"]),
            email=str(row["email"]),
            phone=str(row["phone"]),
            created_at=_parse_datetime(str(row["createdAt"])),
        )

    def _row_to_test_drive(self, row: sqlite3.Row) -> TestDrive:
        return TestDrive(
            id=int(row["id"]),
            car_model=str(row["carModel"]),
            preferred_date=str(row["preferredDate"]),
            preferred_time=str(row["preferredTime"]),
            created_at=_parse_datetime(str(row["createdAt"])),
        )


class _Transaction:
    """Serialise access to the shared connection and translate store failures."""

    def __init__(self, database: Database, context: str) -> None:
        self._database = database
        self._context = context

    def __enter__(self) -> sqlite3.Connection:
        self._database._lock.acquire()
        try:
            self._conn = self._database._require_connection()
        except PersistenceError:
            self._database._lock.release()
            raise
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self._conn.commit()
                return False
            self._conn.rollback()
            if isinstance(exc, sqlite3.Error):
                self._fail(exc)
            return False
        except sqlite3.Error as commit_exc:
            self._fail(commit_exc)
            return False
        finally:
            self._database._lock.release()

    def _fail(self, exc: BaseException) -> None:
        logger.error("Database error during %s: %s", self._context, exc)
        raise PersistenceError(f"Server error during {self._context}") from exc


__all__ = ["Database", "SUBMISSION_COLUMNS", "normalize_email", "resolve_database_path"]
