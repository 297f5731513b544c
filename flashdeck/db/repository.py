"""
Generic CRUD contract shared by the deck and card repositories.

Entity repositories only supply SQL and row mapping; connection handling and
error wrapping live here.
"""

import duckdb
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Generic, List, Optional, Sequence, TypeVar

from ..exceptions import DatabaseConnectionError, MarshallingError, RepositoryError
from .connection import ConnectionProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Operation = Callable[[duckdb.DuckDBPyConnection], R]


class BaseRepository(ABC, Generic[T]):
    """
    CRUD operations over one entity type.

    Every public call acquires one connection, runs one logical unit of work
    and releases the connection before returning. Storage failures surface as
    RepositoryError with the original exception attached.
    """

    entity_name: ClassVar[str] = "entity"

    def __init__(self, provider: ConnectionProvider):
        self._provider = provider

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert a new entity and assign its generated id."""

    @abstractmethod
    def update(self, entity: T) -> T:
        """Persist changes to an existing entity."""

    @abstractmethod
    def find_by_id(self, entity_id: int) -> Optional[T]:
        """Return the entity with the given id, or None."""

    @abstractmethod
    def find_all(self) -> List[T]:
        """Return all entities in repository order."""

    @abstractmethod
    def delete_by_id(self, entity_id: int) -> bool:
        """Delete by id; True if a row was removed."""

    @abstractmethod
    def exists_by_id(self, entity_id: int) -> bool:
        """True if an entity with the id exists."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored entities."""

    def delete(self, entity: T) -> bool:
        return self.delete_by_id(self._require_id(entity, "delete"))

    # --- Scoped execution helpers ---

    def _execute(self, operation: Operation[R], description: str) -> R:
        """
        Run `operation` with a freshly acquired connection that is always
        released afterwards.

        Parameters:
            operation: Callable receiving the open connection.
            description: Human-readable operation name used in errors.

        Returns:
            Whatever `operation` returns.

        Raises:
            RepositoryError: If the connection cannot be opened, DuckDB raises,
                or a row cannot be converted into a model.
        """
        try:
            with self._provider.connection() as conn:
                return operation(conn)
        except (duckdb.Error, DatabaseConnectionError, MarshallingError) as e:
            logger.error(f"Database operation failed ({description}): {e}")
            raise RepositoryError(
                f"Failed to {description}: {e}", original_exception=e
            ) from e

    def _execute_in_transaction(self, operation: Operation[R], description: str) -> R:
        """Like _execute, but runs `operation` inside BEGIN/COMMIT with rollback on any error."""

        def run(conn: duckdb.DuckDBPyConnection) -> R:
            conn.begin()
            try:
                result = operation(conn)
                conn.commit()
                return result
            except Exception:
                self._rollback(conn, description)
                raise

        return self._execute(run, description)

    @staticmethod
    def _rollback(conn: duckdb.DuckDBPyConnection, description: str) -> None:
        try:
            conn.rollback()
            logger.info(f"Transaction rolled back due to error in {description}.")
        except duckdb.Error as rb_err:
            # Log the rollback error but still raise the original error.
            logger.error(f"Failed to rollback transaction: {rb_err}")

    @staticmethod
    def _scalar(
        conn: duckdb.DuckDBPyConnection, sql: str, params: Sequence[Any] = ()
    ) -> Any:
        """Execute `sql` and return the first column of the first row (None if no rows)."""
        row = conn.execute(sql, params).fetchone()
        return row[0] if row else None

    @classmethod
    def _affected_rows(
        cls, conn: duckdb.DuckDBPyConnection, sql: str, params: Sequence[Any]
    ) -> int:
        """Execute an INSERT/UPDATE/DELETE and return DuckDB's changed-row count."""
        return int(cls._scalar(conn, sql, params) or 0)

    def _require_id(self, entity: Any, action: str) -> int:
        if entity.id is None:
            raise RepositoryError(
                f"Cannot {action} {self.entity_name} without an id."
            )
        return entity.id
