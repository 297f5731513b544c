import duckdb
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import ClassVar, Iterator, Optional

from ..config import DatabaseSettings, load_settings
from ..exceptions import DatabaseConnectionError
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)


class ConnectionProvider:
    """
    Single source of connection parameters for the flashcard database.

    Hands out one freshly opened DuckDB connection per operation; connections
    are never pooled or reused. One provider is shared by the whole process
    (see get_instance) and passed explicitly to every repository.
    """

    _instance: ClassVar[Optional["ConnectionProvider"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, settings: DatabaseSettings):
        """
        Initialize the provider from validated settings.

        Parameters:
            settings (DatabaseSettings): Connection parameters. `url` names the
                DuckDB database file; `pool_max_connections` caps the number of
                simultaneously open scoped connections and `pool_timeout`
                (milliseconds) bounds the wait for a free slot.

        Attributes set:
            db_path_resolved (Path): Absolute path of the database file.
        """
        self.settings = settings
        self.db_path_resolved: Path = settings.database_path
        self._slots = threading.BoundedSemaphore(settings.pool_max_connections)
        logger.info(
            f"ConnectionProvider initialized for DB at: {self.db_path_resolved} "
            f"(user: {settings.user}, driver: {settings.driver})"
        )

    @classmethod
    def get_instance(
        cls, settings: Optional[DatabaseSettings] = None
    ) -> "ConnectionProvider":
        """
        Return the process-wide provider, creating it on first use.

        Construction is guarded by double-checked locking so concurrent first
        callers still end up with a single instance. `settings` is only used
        when the instance is created; without it, settings are loaded from the
        layered configuration sources.

        Raises:
            ConfigurationError: If settings have to be loaded and are invalid.
        """
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls(
                        settings if settings is not None else load_settings()
                    )
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the process-wide provider (process teardown and tests)."""
        with cls._instance_lock:
            cls._instance = None

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Open a new DuckDB connection to the configured database file.

        The parent directory of the database file is created if needed. The
        caller owns the returned connection and must close it.

        Raises:
            DatabaseConnectionError: If DuckDB fails to open the database.
        """
        try:
            self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)
            conn = duckdb.connect(database=str(self.db_path_resolved))
        except (duckdb.Error, OSError) as e:
            raise DatabaseConnectionError(
                f"Cannot connect to database at {self.db_path_resolved}: {e}",
                original_exception=e,
            ) from e
        logger.debug("Database connection established")
        return conn

    @contextmanager
    def connection(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """
        Scoped acquisition: open a connection, yield it, and always close it.

        At most `pool_max_connections` scoped connections are open at a time.

        Raises:
            DatabaseConnectionError: If no slot frees up within `pool_timeout`
                milliseconds or the connection cannot be opened.
        """
        timeout_s = self.settings.pool_timeout / 1000
        if not self._slots.acquire(timeout=timeout_s):
            raise DatabaseConnectionError(
                f"Timed out after {self.settings.pool_timeout} ms waiting for a "
                "free database connection."
            )
        try:
            conn = self.get_connection()
            try:
                yield conn
            finally:
                self._close_quietly(conn)
        finally:
            self._slots.release()

    @staticmethod
    def _close_quietly(conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.close()
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")

    def test_connection(self) -> bool:
        """
        Open and immediately close one connection.

        Returns:
            bool: True if the database could be reached, False otherwise. Never
            raises; failures are logged.
        """
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except Exception as e:
            logger.warning(f"Database connection test failed: {e}")
            return False

    def initialize_database(self, seed_demo: bool = True) -> None:
        """
        Apply session settings, create the schema if absent and seed the demo
        deck once. Safe to call on every start.

        Raises:
            SchemaInitializationError: If any bootstrap step fails.
        """
        SchemaManager(self).initialize_schema(seed_demo=seed_demo)

    def shutdown(self) -> None:
        """
        Flush the database file during process teardown.

        Best effort: failures are logged and never raised.
        """
        try:
            with self.connection() as conn:
                conn.execute("CHECKPOINT;")
            logger.info("Database shutdown completed successfully")
        except Exception as e:
            logger.warning(f"Error during database shutdown: {e}")
