"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable

from config import get_settings

DB_FILE = get_settings().DB_FILE


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def replace_table(table: str, columns: tuple[str, ...], rows: list[tuple]) -> None:
    """Delete every row of `table` and insert `rows`, in one transaction."""
    placeholders = ",".join("?" for _ in columns)
    with get_conn() as conn:
        conn.execute(f"DELETE FROM {table}")
        conn.executemany(
            f"INSERT INTO {table}({','.join(columns)}) VALUES({placeholders})",
            rows,
        )


def create_data_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            contact TEXT NOT NULL DEFAULT '',
            plan TEXT NOT NULL,
            monthly_value REAL NOT NULL,
            due_date INTEGER NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('Ativo','Inativo'))
        )
        """
    )

    # No foreign key from clients.plan: deleting a plan leaves clients untouched
    execute(
        """
        CREATE TABLE IF NOT EXISTS plans (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            price REAL NOT NULL
        )
        """
    )


def _create_auth_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS admin_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(make_admin_hash: Callable[[], str]) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default admin (admin/admin123) if no admin exists
    - Force password change on first login
    """
    _create_auth_tables()
    create_data_tables()

    admin = fetch_one("SELECT id FROM admin_users LIMIT 1")
    if not admin:
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        execute(
            "INSERT INTO admin_users(username, password_hash, created_at) VALUES(?,?,?)",
            ("admin", make_admin_hash(), now),
        )
        _set_setting("force_password_change", "1")
    else:
        # ensure setting exists
        if _get_setting("force_password_change") is None:
            _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
