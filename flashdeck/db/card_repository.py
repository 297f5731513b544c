import duckdb
import logging
from typing import List, Optional

from ..exceptions import RepositoryError
from ..models import Card
from . import db_utils
from .repository import BaseRepository

logger = logging.getLogger(__name__)


class CardRepository(BaseRepository[Card]):
    """Single-table operations on the cards table."""

    entity_name = "card"

    # fmt: off
    _INSERT_SQL = """
        INSERT INTO cards (question, answer, deck_id, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id;
        """
    _UPDATE_SQL = """
        UPDATE cards
        SET question = $1, answer = $2, updated_at = $3
        WHERE id = $4;
        """
    # fmt: on

    def save(self, entity: Card) -> Card:
        """
        Insert a new card and assign its generated id.

        The owning deck is checked inside the same transaction as the insert,
        so a card can never reference a missing deck.

        Raises:
            RepositoryError: If the card has no deck_id, the deck does not
                exist, no id was generated, or the insert fails.
        """
        if entity.deck_id is None:
            raise RepositoryError("Cannot save card without a deck_id.")

        def insert(conn: duckdb.DuckDBPyConnection) -> int:
            if not self._scalar(conn, "SELECT COUNT(*) FROM decks WHERE id = $1;", (entity.deck_id,)):
                raise RepositoryError(
                    f"Creating card failed, deck not found with ID: {entity.deck_id}"
                )
            new_id = self._scalar(conn, self._INSERT_SQL, db_utils.card_to_insert_params(entity))
            if new_id is None:
                raise RepositoryError("Creating card failed, no ID obtained")
            return new_id

        entity.id = self._execute_in_transaction(insert, "save card")
        logger.info(f"Card saved with ID: {entity.id}")
        return entity

    def update(self, entity: Card) -> Card:
        """
        Persist question and answer of an existing card and refresh updated_at.

        Raises:
            RepositoryError: If the card has no id or no row matches it.
        """
        card_id = self._require_id(entity, "update")
        entity.touch()
        params = (entity.question, entity.answer, entity.updated_at, card_id)
        affected = self._execute(
            lambda conn: self._affected_rows(conn, self._UPDATE_SQL, params),
            f"update card {card_id}",
        )
        if affected == 0:
            raise RepositoryError(
                f"Updating card failed, card not found with ID: {card_id}"
            )
        logger.info(f"Card updated with ID: {card_id}")
        return entity

    def find_by_id(self, entity_id: int) -> Optional[Card]:
        cards = self._query(
            "SELECT * FROM cards WHERE id = $1;", (entity_id,), f"fetch card {entity_id}"
        )
        return cards[0] if cards else None

    def find_all(self) -> List[Card]:
        return self._query(
            "SELECT * FROM cards ORDER BY created_at DESC, id DESC;", (), "fetch all cards"
        )

    def delete_by_id(self, entity_id: int) -> bool:
        affected = self._execute(
            lambda conn: self._affected_rows(conn, "DELETE FROM cards WHERE id = $1;", (entity_id,)),
            f"delete card {entity_id}",
        )
        if affected:
            logger.info(f"Card deleted with ID: {entity_id}")
        return affected > 0

    def exists_by_id(self, entity_id: int) -> bool:
        found = self._execute(
            lambda conn: self._scalar(conn, "SELECT 1 FROM cards WHERE id = $1 LIMIT 1;", (entity_id,)),
            f"check card {entity_id}",
        )
        return found is not None

    def count(self) -> int:
        return self._execute(
            lambda conn: int(self._scalar(conn, "SELECT COUNT(*) FROM cards;")),
            "count cards",
        )

    # --- Deck-scoped queries ---

    def count_by_deck_id(self, deck_id: int) -> int:
        return self._execute(
            lambda conn: int(self._scalar(conn, "SELECT COUNT(*) FROM cards WHERE deck_id = $1;", (deck_id,))),
            f"count cards of deck {deck_id}",
        )

    def delete_by_deck_id(self, deck_id: int) -> bool:
        """Bulk-delete every card of a deck; True if any row was removed."""
        affected = self._execute(
            lambda conn: self._affected_rows(conn, "DELETE FROM cards WHERE deck_id = $1;", (deck_id,)),
            f"delete cards of deck {deck_id}",
        )
        if affected:
            logger.info(f"Deleted {affected} cards from deck ID: {deck_id}")
        return affected > 0

    def find_by_deck_id(self, deck_id: int) -> List[Card]:
        """Cards of one deck, oldest first."""
        return self._query(
            "SELECT * FROM cards WHERE deck_id = $1 ORDER BY created_at ASC, id ASC;",
            (deck_id,),
            f"fetch cards of deck {deck_id}",
        )

    def find_by_text_containing(self, search_text: str) -> List[Card]:
        """
        Case-insensitive substring search over question and answer.

        The text is matched literally (no LIKE wildcards). Results are ordered
        newest first.
        """
        sql = """
        SELECT * FROM cards
        WHERE contains(lower(question), lower($1)) OR contains(lower(answer), lower($1))
        ORDER BY created_at DESC, id DESC;
        """
        return self._query(sql, (search_text,), f"search cards for '{search_text}'")

    def _query(self, sql: str, params: tuple, description: str) -> List[Card]:
        def run(conn: duckdb.DuckDBPyConnection) -> List[Card]:
            cursor = conn.execute(sql, params)
            return [db_utils.db_row_to_card(row) for row in db_utils.rows_to_dicts(cursor)]

        return self._execute(run, description)
