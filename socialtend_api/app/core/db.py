"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``) and applying migrations on application start
(``init_db``).  It uses SQLite as a lightweight embedded database; to
switch to another DBMS you would replace connection logic and adapt
SQL syntax accordingly.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from .config import settings


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: users and profiles
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'organizer',
            first_name TEXT,
            last_name TEXT,
            is_email_verified INTEGER NOT NULL DEFAULT 0,
            email_verification_token TEXT,
            email_verification_expires TIMESTAMP,
            password_reset_token TEXT,
            password_reset_expires TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS professional_profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            display_name TEXT,
            email TEXT,
            phone TEXT,
            location TEXT NOT NULL,
            services TEXT NOT NULL,
            hourly_rate REAL,
            bio TEXT,
            experience INTEGER,
            profile_image_url TEXT,
            verified INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS organizer_profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            company_name TEXT,
            email TEXT,
            phone TEXT,
            location TEXT NOT NULL,
            event_types TEXT NOT NULL,
            bio TEXT,
            profile_image_url TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );
        """,
    ),
    # Migration 2: messaging
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS conversations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organizer_id INTEGER NOT NULL,
            organizer_name TEXT NOT NULL,
            organizer_email TEXT NOT NULL,
            professional_id INTEGER NOT NULL,
            event_title TEXT NOT NULL,
            event_date TEXT,
            event_location TEXT,
            event_description TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(organizer_id) REFERENCES users(id),
            FOREIGN KEY(professional_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id INTEGER NOT NULL,
            sender_type TEXT NOT NULL,
            sender_name TEXT NOT NULL,
            content TEXT NOT NULL,
            is_read INTEGER NOT NULL DEFAULT 0,
            timestamp TIMESTAMP NOT NULL,
            FOREIGN KEY(conversation_id) REFERENCES conversations(id)
        );

        CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id, timestamp);
        CREATE INDEX IF NOT EXISTS idx_conversations_professional ON conversations(professional_id);
        CREATE INDEX IF NOT EXISTS idx_conversations_organizer ON conversations(organizer_id);
        """,
    ),
    # Migration 3: service requests and payments
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS service_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            organizer_id INTEGER NOT NULL,
            professional_id INTEGER NOT NULL,
            event_title TEXT NOT NULL,
            event_date TEXT,
            event_location TEXT,
            event_description TEXT,
            request_message TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            response_message TEXT,
            responded_at TIMESTAMP,
            expires_at TIMESTAMP,
            deposit_amount INTEGER,
            total_amount INTEGER,
            stripe_payment_intent_id TEXT,
            payment_status TEXT NOT NULL DEFAULT 'unpaid',
            paid_at TIMESTAMP,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY(organizer_id) REFERENCES users(id),
            FOREIGN KEY(professional_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_request_id INTEGER NOT NULL,
            organizer_id INTEGER NOT NULL,
            professional_id INTEGER NOT NULL,
            amount INTEGER NOT NULL,
            currency TEXT NOT NULL DEFAULT 'usd',
            stripe_payment_intent_id TEXT NOT NULL UNIQUE,
            type TEXT NOT NULL DEFAULT 'deposit',
            status TEXT NOT NULL DEFAULT 'pending',
            platform_fee INTEGER,
            professional_earnings INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(service_request_id) REFERENCES service_requests(id)
        );

        CREATE INDEX IF NOT EXISTS idx_service_requests_professional ON service_requests(professional_id);
        CREATE INDEX IF NOT EXISTS idx_service_requests_organizer ON service_requests(organizer_id);
        CREATE INDEX IF NOT EXISTS idx_payments_request ON payments(service_request_id);
        """,
    ),
    # Migration 4: feedback and audit trail
    (
        4,
        """
        CREATE TABLE IF NOT EXISTS feedback (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            rating INTEGER NOT NULL,
            recommendation_rating INTEGER NOT NULL,
            experience_rating INTEGER NOT NULL,
            category TEXT NOT NULL,
            message TEXT,
            user_intent TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the package root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # socialtend_api/
    return str((base_dir / db_url).resolve())


def _casefold(value: Any) -> Optional[str]:
    return None if value is None else str(value).casefold()


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    The connection uses a row factory to access columns by name.  No
    type detection is enabled; timestamps come back as ISO strings and
    are parsed by the Pydantic schemas.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    # Foreign key support is off by default in SQLite and must be enabled
    # per connection.
    conn.execute("PRAGMA foreign_keys = ON")
    # LIKE only folds ASCII; text filters compare casefold() on both sides.
    conn.create_function("casefold", 1, _casefold, deterministic=True)
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
    current schema version, and applies any new entries of
    ``MIGRATIONS``.  New migrations must be appended with an
    incremented version number.
    """
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
                current_version = version
