"""SQLite-backed gateway with the same schema as the hosted backend."""

import asyncio
import hashlib
import hmac
import json
import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from config.exceptions import (
    AuthError,
    GatewayReadError,
    GatewayWriteError,
    InvalidCredentialsError,
    NotAuthenticatedError,
)
from gateway.base import PROFILES, TABLES, Filters
from gateway.mapping import build_user, now_iso
from models.user import User

logger = logging.getLogger(__name__)

# SQL for creating all tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    salt TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    avatar_url TEXT,
    bio TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS stories (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    genre TEXT,
    synopsis TEXT,
    cover_image TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    start_date TEXT NOT NULL DEFAULT (date('now')),
    notes TEXT,
    word_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chapters (
    id TEXT PRIMARY KEY,
    story_id TEXT NOT NULL REFERENCES stories(id) ON DELETE CASCADE,
    number INTEGER NOT NULL,
    title TEXT NOT NULL,
    content TEXT,
    word_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS characters (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    avatar TEXT,
    age TEXT,
    physical_description TEXT,
    personality TEXT,
    backstory TEXT,
    role TEXT NOT NULL DEFAULT 'other',
    relationships TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT,
    tags TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS story_characters (
    story_id TEXT NOT NULL REFERENCES stories(id) ON DELETE CASCADE,
    character_id TEXT NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
    PRIMARY KEY (story_id, character_id)
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_stories_user ON stories(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_chapters_story_number ON chapters(story_id, number)",
    "CREATE INDEX IF NOT EXISTS idx_characters_user ON characters(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_notes_user ON notes(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_story_characters_character ON story_characters(character_id)",
]

# Columns stored as JSON text
_JSON_COLUMNS = {"notes": ("tags",)}

_PBKDF2_ITERATIONS = 200_000


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ITERATIONS
    )
    return digest.hex()


class SQLiteGateway:
    """Local relational backend implementing the ``DataGateway`` protocol.

    A ``users`` table plays the identity service. Blocking sqlite calls are
    pushed to a worker thread so the event loop stays responsive.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._user: Optional[User] = None
        self._columns: dict[str, frozenset[str]] = {}
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _connection(self):
        conn = self._get_conn()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self):
        with self._connection() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
            for table in TABLES:
                info = conn.execute(f"PRAGMA table_info({table})").fetchall()
                self._columns[table] = frozenset(r["name"] for r in info)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._connection() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    # ---- SQL helpers ----

    def _check_table(self, table: str):
        if table not in self._columns:
            raise ValueError(f"Unknown table: {table}")

    def _check_column(self, table: str, column: str):
        self._check_table(table)
        if column not in self._columns[table]:
            raise ValueError(f"Unknown column {column!r} for table {table}")

    def _where(self, table: str, filters: Optional[Filters]) -> tuple[str, list]:
        if not filters:
            return "", []
        clauses, params = [], []
        for column, value in filters.items():
            self._check_column(table, column)
            if isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("0")  # IN () matches nothing
                    continue
                placeholders = ", ".join("?" for _ in values)
                clauses.append(f"{column} IN ({placeholders})")
                params.extend(values)
            elif value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    def _encode(self, table: str, row: dict) -> dict:
        encoded = dict(row)
        for column in _JSON_COLUMNS.get(table, ()):
            if encoded.get(column) is not None:
                encoded[column] = json.dumps(list(encoded[column]))
        return encoded

    def _decode(self, table: str, row: sqlite3.Row) -> dict:
        decoded = dict(row)
        for column in _JSON_COLUMNS.get(table, ()):
            raw = decoded.get(column)
            decoded[column] = json.loads(raw) if raw else []
        return decoded

    # ---- Sync record operations (run in a worker thread) ----

    def _select(self, table: str, filters: Optional[Filters], order_by: Optional[str],
                descending: bool) -> list[dict]:
        self._check_table(table)
        where, params = self._where(table, filters)
        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            self._check_column(table, order_by)
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._decode(table, r) for r in rows]

    def _insert(self, table: str, rows: list[dict]) -> list[dict]:
        columns = self._columns.get(table)
        if columns is None:
            raise ValueError(f"Unknown table: {table}")
        inserted = []
        with self._connection() as conn:
            for row in rows:
                row = self._encode(table, row)
                timestamp = now_iso()
                if "id" in columns:
                    row.setdefault("id", str(uuid.uuid4()))
                for stamp in ("created_at", "updated_at"):
                    if stamp in columns:
                        row.setdefault(stamp, timestamp)
                for column in row:
                    self._check_column(table, column)
                names = ", ".join(row)
                placeholders = ", ".join("?" for _ in row)
                cursor = conn.execute(
                    f"INSERT INTO {table} ({names}) VALUES ({placeholders})",
                    list(row.values()),
                )
                stored = conn.execute(
                    f"SELECT * FROM {table} WHERE rowid = ?", (cursor.lastrowid,)
                ).fetchone()
                inserted.append(self._decode(table, stored))
        return inserted

    def _update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        if not values:
            raise ValueError("update requires at least one column")
        values = self._encode(table, values)
        for column in values:
            self._check_column(table, column)
        where, params = self._where(table, filters)
        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._connection() as conn:
            rowids = [
                r[0] for r in conn.execute(f"SELECT rowid FROM {table}{where}", params).fetchall()
            ]
            if not rowids:
                return []
            placeholders = ", ".join("?" for _ in rowids)
            conn.execute(
                f"UPDATE {table} SET {assignments} WHERE rowid IN ({placeholders})",
                [*values.values(), *rowids],
            )
            rows = conn.execute(
                f"SELECT * FROM {table} WHERE rowid IN ({placeholders})", rowids
            ).fetchall()
        return [self._decode(table, r) for r in rows]

    def _delete(self, table: str, filters: Filters):
        self._check_table(table)
        where, params = self._where(table, filters)
        with self._connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table}{where}", params)
        logger.debug("Deleted %d row(s) from %s", cursor.rowcount, table)

    # ---- Async record operations ----

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        logger.debug("select %s filters=%s", table, filters)
        try:
            return await asyncio.to_thread(self._select, table, filters, order_by, descending)
        except sqlite3.Error as e:
            raise GatewayReadError(table, f"Failed to read from {table}: {e}") from e

    async def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        rows = [rows] if isinstance(rows, dict) else list(rows)
        logger.debug("insert %s rows=%d", table, len(rows))
        try:
            return await asyncio.to_thread(self._insert, table, rows)
        except sqlite3.Error as e:
            raise GatewayWriteError(table, "insert", f"Failed to insert into {table}: {e}") from e

    async def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        logger.debug("update %s columns=%s filters=%s", table, sorted(values), filters)
        try:
            return await asyncio.to_thread(self._update, table, values, filters)
        except sqlite3.Error as e:
            raise GatewayWriteError(table, "update", f"Failed to update {table}: {e}") from e

    async def delete(self, table: str, filters: Filters) -> None:
        logger.debug("delete %s filters=%s", table, filters)
        try:
            await asyncio.to_thread(self._delete, table, filters)
        except sqlite3.Error as e:
            raise GatewayWriteError(table, "delete", f"Failed to delete from {table}: {e}") from e

    # ---- Identity ----

    def _create_account(self, name: str, email: str, password: str) -> dict:
        salt = os.urandom(16).hex()
        user_id = str(uuid.uuid4())
        timestamp = now_iso()
        with self._connection() as conn:
            exists = conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone()
            if exists:
                raise AuthError("Email already registered", {"email": email})
            conn.execute(
                "INSERT INTO users (id, email, password_hash, salt, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (user_id, email, _hash_password(password, salt), salt, timestamp),
            )
            conn.execute(
                "INSERT INTO profiles (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (user_id, name, timestamp, timestamp),
            )
            profile = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
        return {"id": user_id, "email": email, "profile": dict(profile)}

    def _verify_account(self, email: str, password: str) -> dict:
        with self._connection() as conn:
            account = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            if account is None:
                raise InvalidCredentialsError()
            expected = _hash_password(password, account["salt"])
            if not hmac.compare_digest(expected, account["password_hash"]):
                raise InvalidCredentialsError()
            profile = conn.execute(
                "SELECT * FROM profiles WHERE id = ?", (account["id"],)
            ).fetchone()
        return {
            "id": account["id"],
            "email": account["email"],
            "profile": dict(profile) if profile else None,
        }

    async def sign_up(self, name: str, email: str, password: str) -> User:
        email = email.strip().lower()
        try:
            account = await asyncio.to_thread(self._create_account, name, email, password)
        except sqlite3.Error as e:
            raise AuthError(f"Sign-up failed: {e}") from e
        self._user = build_user(account["id"], account["email"], account["profile"], name)
        logger.info("Account created for %s", email)
        return self._user

    async def sign_in(self, email: str, password: str) -> User:
        email = email.strip().lower()
        try:
            account = await asyncio.to_thread(self._verify_account, email, password)
        except sqlite3.Error as e:
            raise AuthError(f"Sign-in failed: {e}") from e
        self._user = build_user(account["id"], account["email"], account["profile"])
        logger.info("Signed in as %s", email)
        return self._user

    async def sign_out(self) -> None:
        self._user = None

    async def current_user(self) -> Optional[User]:
        return self._user

    async def get_profile(self, user_id: str) -> Optional[dict]:
        rows = await self.select(PROFILES, {"id": user_id})
        return rows[0] if rows else None

    async def update_profile(self, user_id: str, values: dict) -> dict:
        if self._user is None or self._user.id != user_id:
            raise NotAuthenticatedError()
        rows = await self.update(PROFILES, values, {"id": user_id})
        if not rows:
            raise GatewayWriteError(PROFILES, "update", "Profile not found")
        self._user = build_user(user_id, self._user.email, rows[0])
        return rows[0]
