import duckdb
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from . import schema
from ..constants import DEMO_CARDS, DEMO_DECK_DESCRIPTION, DEMO_DECK_NAME
from ..exceptions import SchemaInitializationError

if TYPE_CHECKING:
    from .connection import ConnectionProvider

logger = logging.getLogger(__name__)


class SchemaManager:
    """Manages session tuning, schema creation and demo seeding."""

    def __init__(self, provider: "ConnectionProvider"):
        """
        Initializes the SchemaManager with a connection provider.

        Args:
            provider: The ConnectionProvider for the database.
        """
        self._provider = provider

    def initialize_schema(self, seed_demo: bool = True) -> None:
        """
        Bootstraps the database idempotently: applies session settings,
        creates tables and indexes if absent, then seeds the demo deck unless
        a deck with the demo name already exists. Table creation and seeding
        each run in their own transaction.
        """
        db_path = self._provider.db_path_resolved
        logger.info("Starting database initialization...")
        with self._provider.connection() as conn:
            try:
                self.configure_session(conn)
                self._run_in_transaction(conn, self._create_schema_from_sql)
                if seed_demo:
                    self._run_in_transaction(conn, self._seed_demo_deck)
            except duckdb.Error as e:
                logger.error(f"Error initializing database schema at {db_path}: {e}")
                raise SchemaInitializationError(
                    f"Failed to initialize schema: {e}", original_exception=e
                ) from e
        logger.info(f"Database schema at {db_path} initialized successfully (or already exists).")

    def configure_session(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Applies the session-level tuning settings."""
        for statement in schema.SESSION_SETTINGS_SQL:
            conn.execute(statement)
        logger.info("Database configured successfully")

    def _run_in_transaction(
        self,
        conn: duckdb.DuckDBPyConnection,
        step: Callable[[duckdb.DuckDBPyConnection], None],
    ) -> None:
        conn.begin()
        try:
            step(conn)
            conn.commit()
        except duckdb.Error:
            try:
                conn.rollback()
                logger.info("Transaction rolled back due to schema initialization error.")
            except duckdb.Error as rb_err:
                logger.error(f"Failed to rollback transaction: {rb_err}")
            raise

    def _create_schema_from_sql(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Executes the SQL statements to create the database schema."""
        conn.execute(schema.DB_SCHEMA_SQL)
        logger.info("Database tables and indexes created successfully")

    def _seed_demo_deck(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Inserts the demo deck and its cards unless the demo name is taken."""
        result = conn.execute(
            "SELECT COUNT(*) FROM decks WHERE name = $1;", (DEMO_DECK_NAME,)
        ).fetchone()
        if result and result[0] > 0:
            logger.info("Demo deck already exists, skipping creation")
            return

        now = datetime.now()
        deck_row = conn.execute(
            """
            INSERT INTO decks (name, description, created_at, updated_at)
            VALUES ($1, $2, $3, $4)
            RETURNING id;
            """,
            (DEMO_DECK_NAME, DEMO_DECK_DESCRIPTION, now, now),
        ).fetchone()
        if not deck_row:
            raise duckdb.Error("Demo deck insert returned no id.")
        deck_id = deck_row[0]

        conn.executemany(
            """
            INSERT INTO cards (question, answer, deck_id, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5);
            """,
            [(question, answer, deck_id, now, now) for question, answer in DEMO_CARDS],
        )
        logger.info(f"Demo deck created with {len(DEMO_CARDS)} cards")
