"""
Database configuration constants and settings.

Defines the default path, SQLite pragmas, and URL construction for the
order store.
"""

from order_lifecycle.config.models import DatabaseSettings


class DatabaseConfig:
    """Configuration for the SQLite order store."""

    # Default database file path
    ORDERS_DB_PATH: str = "data/orders.db"

    # SQLite pragmas applied on each connection via event listeners
    SQLITE_PRAGMAS: dict[str, str | int] = {
        # Write-Ahead Logging lets readers proceed while a writer holds the lock
        "journal_mode": "WAL",
        # NORMAL is sufficient with WAL
        "synchronous": "NORMAL",
        # Enable foreign key constraints (disabled by default in SQLite)
        "foreign_keys": 1,
        # Wait up to 5 seconds when database is locked
        "busy_timeout": 5000,
    }

    # Transactions opened by the engine take the write lock immediately.
    # Reads flagged with this execution option use a deferred BEGIN.
    READ_ONLY_OPTION: str = "order_lifecycle_read_only"

    # Logging
    ECHO_SQL: bool = False  # Set to True for SQL query logging

    @classmethod
    def get_db_url(cls, db_path: str | None = None) -> str:
        """
        Get SQLAlchemy database URL for the order store.

        Args:
            db_path: Database file path, or ":memory:"

        Returns:
            Database URL string
        """
        path = db_path or cls.ORDERS_DB_PATH
        if path == ":memory:":
            return "sqlite+aiosqlite://"
        return f"sqlite+aiosqlite:///{path}"

    @classmethod
    def pragmas_for(cls, settings: DatabaseSettings) -> dict[str, str | int]:
        """Pragmas with the configured busy timeout applied."""
        pragmas = dict(cls.SQLITE_PRAGMAS)
        pragmas["busy_timeout"] = settings.busy_timeout_ms
        if settings.path == ":memory:":
            # WAL is not available for in-memory databases
            pragmas.pop("journal_mode", None)
        return pragmas

    @classmethod
    def get_pragma_commands(cls, pragmas: dict[str, str | int] | None = None) -> list[str]:
        """
        Get list of PRAGMA commands to execute on each connection.

        Returns:
            List of SQL PRAGMA statements
        """
        pragmas = cls.SQLITE_PRAGMAS if pragmas is None else pragmas
        return [f"PRAGMA {pragma}={value}" for pragma, value in pragmas.items()]
