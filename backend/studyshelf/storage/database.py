"""
Database initialization and management for the StudyShelf search service.
"""

import sqlite3
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def _casefold(value) -> Optional[str]:
    return str(value).casefold() if value is not None else None


class Database:
    """Manages SQLite database connections and schema."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Create and return a database connection.

        Returns:
            SQLite connection object
        """
        if self.connection is None:
            self.connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self.connection.row_factory = sqlite3.Row
            # SQLite LOWER() and LIKE only fold ASCII
            self.connection.create_function("casefold", 1, _casefold, deterministic=True)
        return self.connection

    def initialize_schema(self):
        """Create all database tables and indexes."""
        conn = self.connect()
        cursor = conn.cursor()

        # Materials table
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS materials (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                tags_json TEXT,
                category TEXT NOT NULL DEFAULT 'Other',
                sub_category TEXT,
                file_name TEXT,
                file_url TEXT,
                file_type TEXT,
                file_size INTEGER DEFAULT 0,
                user_id TEXT,
                is_public BOOLEAN DEFAULT 1,
                download_count INTEGER DEFAULT 0,
                created_at DATETIME NOT NULL,
                updated_at DATETIME NOT NULL,
                extra_json TEXT
            )
        """)

        # Search query log (feeds trending searches)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS search_queries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                query TEXT NOT NULL,
                user_id TEXT,
                created_at DATETIME NOT NULL
            )
        """)

        # Create indexes
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_category ON materials(category)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_sub_category ON materials(sub_category)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_created_at ON materials(created_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_search_queries_query ON search_queries(query)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_search_queries_created_at ON search_queries(created_at)"
        )

        conn.commit()
        logger.info("Database schema initialized successfully")

    def close(self):
        """Close database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def init_database(db_path: str) -> Database:
    """
    Initialize database with schema.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Database instance
    """
    db = Database(db_path)
    db.initialize_schema()
    return db
