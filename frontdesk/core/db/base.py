"""
Database base module - connection management, initialization, and enums.
"""
import logging
import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from ..config import settings

logger = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class CardStatus(str, Enum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"


class LogAction(str, Enum):
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


# Whitelist of filterable columns (SQL injection prevention)
ALLOWED_REQUEST_COLUMNS = {'status', 'email', 'phone', 'assigned_card_id'}

ALLOWED_LOG_COLUMNS = {'action', 'card_number', 'request_id'}

SCHEMA = """
    -- Guest card requests submitted by visitors or staff
    CREATE TABLE IF NOT EXISTS requests (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        first_name TEXT,
        last_name TEXT,
        email TEXT,
        phone TEXT,
        status TEXT DEFAULT 'pending',  -- pending/assigned/completed
        assigned_card_id TEXT,          -- card number handed out for this request
        processed_by TEXT,
        created_at TEXT,
        updated_at TEXT
    );

    -- Current state of each physical card
    CREATE TABLE IF NOT EXISTS cards (
        id TEXT PRIMARY KEY,
        card_number TEXT NOT NULL UNIQUE,
        is_assigned INTEGER DEFAULT 0,
        status TEXT DEFAULT 'available',  -- available/assigned
        assigned_to TEXT,
        assigned_at TEXT,
        current_request_id TEXT,
        created_at TEXT,
        last_used TEXT
    );

    -- Append-only assignment/return history
    CREATE TABLE IF NOT EXISTS logs (
        id TEXT PRIMARY KEY,
        action TEXT NOT NULL,  -- assigned/unassigned
        card_number TEXT NOT NULL,
        user TEXT,
        user_identifier TEXT,
        user_email TEXT,
        user_phone TEXT,
        request_id TEXT,
        timestamp TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_requests_status ON requests(status);
    CREATE INDEX IF NOT EXISTS idx_requests_created ON requests(created_at);
    CREATE INDEX IF NOT EXISTS idx_logs_card ON logs(card_number);
    CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
    CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp);
"""


def get_db_path() -> Path:
    return Path(settings.DB_PATH)


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(str(get_db_path()))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database tables."""
    get_db_path().parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        # WAL lets the audit views read while a card is being assigned
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.executescript(SCHEMA)

    # Run migrations for existing databases
    migrate_db()
    logger.info("Database ready at %s", get_db_path())


# Columns added after the first release: table -> {column: definition}
_ADDED_COLUMNS = {
    "requests": {
        "first_name": "TEXT",
        "last_name": "TEXT",
        "email": "TEXT",
        "phone": "TEXT",
        "assigned_card_id": "TEXT",
        "processed_by": "TEXT",
        "updated_at": "TEXT",
    },
    "cards": {
        "status": "TEXT",
        "current_request_id": "TEXT",
        "created_at": "TEXT",
        "last_used": "TEXT",
    },
    "logs": {
        "user_identifier": "TEXT",
        "user_email": "TEXT",
        "user_phone": "TEXT",
        "request_id": "TEXT",
    },
}


def migrate_db():
    """Run database migrations for schema changes."""
    with get_db() as conn:
        for table, added in _ADDED_COLUMNS.items():
            cursor = conn.execute(f"PRAGMA table_info({table})")
            columns = [row[1] for row in cursor.fetchall()]

            for column, definition in added.items():
                if column not in columns:
                    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                    logger.info("Added column %s.%s", table, column)

        # Backfill status for cards created before the status column existed
        conn.execute("""
            UPDATE cards
            SET status = CASE WHEN is_assigned = 1 THEN 'assigned' ELSE 'available' END
            WHERE status IS NULL
        """)
