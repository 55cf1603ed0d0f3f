"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), applying migrations on application start
(``init_db``) and bootstrapping the first administrator account.

JSON-valued columns (custom fields, team members, links) are stored as
text and decoded by the service layer.  The migration mechanism stores
applied migration versions in the ``migrations`` table and executes new
migrations in order.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .config import settings


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS staff (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT,
            password TEXT NOT NULL,
            role_id INTEGER NOT NULL DEFAULT 2,
            disabled INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id)
        );

        CREATE TABLE IF NOT EXISTS event_forms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            subtitle TEXT,
            description TEXT,
            hero_image_url TEXT,
            background_image_url TEXT,
            watermark_url TEXT,
            logo_url TEXT,
            custom_links TEXT NOT NULL DEFAULT '[]',
            custom_fields TEXT NOT NULL DEFAULT '[]',
            base_fields TEXT NOT NULL DEFAULT '{}',
            success_title TEXT,
            success_message TEXT,
            is_published INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        -- form_id has no REFERENCES clause; registrations outlive their form.
        CREATE TABLE IF NOT EXISTS registrations (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            email TEXT NOT NULL DEFAULT '',
            phone TEXT NOT NULL DEFAULT '',
            organization TEXT NOT NULL DEFAULT '',
            group_size INTEGER NOT NULL DEFAULT 1,
            scans INTEGER NOT NULL DEFAULT 0,
            max_scans INTEGER NOT NULL DEFAULT 1,
            has_qr INTEGER NOT NULL DEFAULT 0,
            qr_code_data TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TEXT NOT NULL,
            form_id INTEGER,
            custom_field_data TEXT NOT NULL DEFAULT '{}',
            team_members TEXT NOT NULL DEFAULT '[]'
        );

        CREATE TABLE IF NOT EXISTS scan_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ticket_id TEXT NOT NULL,
            scanned_at TEXT NOT NULL,
            valid INTEGER NOT NULL,
            message TEXT
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id TEXT,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 2: indices for the per-form and scan-history lookups
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_registrations_form_id ON registrations(form_id);
        CREATE INDEX IF NOT EXISTS idx_registrations_created_at ON registrations(created_at);
        CREATE INDEX IF NOT EXISTS idx_scan_history_ticket_id ON scan_history(ticket_id);
        """,
    ),
]


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # event_checkin_api/
    return str((base_dir / db_url).resolve())


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` objects so columns can be
    accessed by name.  Timestamps are stored and returned as ISO
    strings; no type detection is enabled.  ``CASEFOLD(text)`` is
    available in SQL for Unicode-aware case-insensitive matching;
    SQLite's own ``LOWER`` only folds ASCII.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.create_function("CASEFOLD", 1, _casefold, deterministic=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any migrations from
    ``MIGRATIONS`` with a higher version.  Afterwards the default roles
    are ensured and, if the staff table is empty, the bootstrap
    administrator from ``settings`` is created.
    """
    # Imported lazily: security imports settings-dependent FastAPI helpers.
    from .security import hash_password

    logger = logging.getLogger(__name__)
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                logger.info("Applied database migration %s", version)
                current_version = version

        cursor.execute("INSERT OR IGNORE INTO roles (id, name) VALUES (1, 'admin')")
        cursor.execute("INSERT OR IGNORE INTO roles (id, name) VALUES (2, 'scanner')")

        staff_count = cursor.execute("SELECT COUNT(*) FROM staff").fetchone()[0]
        if staff_count == 0 and settings.admin_email and settings.admin_password:
            cursor.execute(
                "INSERT INTO staff (email, full_name, password, role_id) VALUES (?, ?, ?, 1)",
                (
                    settings.admin_email.lower(),
                    "Administrator",
                    hash_password(settings.admin_password),
                ),
            )
            logger.info("Bootstrapped administrator account %s", settings.admin_email)
