import duckdb
import logging
from datetime import datetime
from typing import List, Optional

from ..exceptions import RepositoryError
from ..models import Deck
from . import db_utils
from .card_repository import CardRepository
from .connection import ConnectionProvider
from .repository import BaseRepository

logger = logging.getLogger(__name__)


class DeckRepository(BaseRepository[Deck]):
    """
    Operations on the decks table.

    Every lookup returns fully hydrated decks: the card list is loaded through
    the CardRepository once the deck query's connection has been released.
    """

    entity_name = "deck"

    # fmt: off
    _INSERT_SQL = """
        INSERT INTO decks (name, description, created_at, updated_at)
        VALUES ($1, $2, $3, $4)
        RETURNING id;
        """
    _UPDATE_SQL = """
        UPDATE decks
        SET name = $1, description = $2, updated_at = $3
        WHERE id = $4;
        """
    # fmt: on

    def __init__(self, provider: ConnectionProvider, card_repository: CardRepository):
        super().__init__(provider)
        self._card_repository = card_repository

    def save(self, entity: Deck) -> Deck:
        """
        Insert a new deck and assign its generated id.

        Only the deck row is written; cards are saved separately through the
        CardRepository. Name uniqueness is checked by DeckService before this
        call; the UNIQUE constraint turns a race into a RepositoryError.

        Raises:
            RepositoryError: If no id was generated or the insert fails.
        """
        params = db_utils.deck_to_insert_params(entity)
        new_id = self._execute(
            lambda conn: self._scalar(conn, self._INSERT_SQL, params),
            f"save deck '{entity.name}'",
        )
        if new_id is None:
            raise RepositoryError("Creating deck failed, no ID obtained")
        entity.id = new_id
        logger.info(f"Deck saved with ID: {entity.id}")
        return entity

    def update(self, entity: Deck) -> Deck:
        """
        Persist name and description of an existing deck and refresh updated_at.

        Raises:
            RepositoryError: If the deck has no id or no row matches it.
        """
        deck_id = self._require_id(entity, "update")
        entity.updated_at = datetime.now()
        params = (entity.name, entity.description, entity.updated_at, deck_id)
        affected = self._execute(
            lambda conn: self._affected_rows(conn, self._UPDATE_SQL, params),
            f"update deck {deck_id}",
        )
        if affected == 0:
            raise RepositoryError(
                f"Updating deck failed, deck not found with ID: {deck_id}"
            )
        logger.info(f"Deck updated with ID: {deck_id}")
        return entity

    def find_by_id(self, entity_id: int) -> Optional[Deck]:
        decks = self._query(
            "SELECT * FROM decks WHERE id = $1;", (entity_id,), f"fetch deck {entity_id}"
        )
        return decks[0] if decks else None

    def find_by_name(self, name: str) -> Optional[Deck]:
        decks = self._query(
            "SELECT * FROM decks WHERE name = $1;", (name,), f"fetch deck '{name}'"
        )
        return decks[0] if decks else None

    def find_all(self) -> List[Deck]:
        return self._query(
            "SELECT * FROM decks ORDER BY created_at DESC, id DESC;", (), "fetch all decks"
        )

    def delete_by_id(self, entity_id: int) -> bool:
        """
        Delete a deck together with all of its cards in one transaction.

        Returns:
            bool: True if the deck row was removed.
        """

        def delete(conn: duckdb.DuckDBPyConnection) -> int:
            removed_cards = self._affected_rows(
                conn, "DELETE FROM cards WHERE deck_id = $1;", (entity_id,)
            )
            logger.debug(f"Removed {removed_cards} cards owned by deck {entity_id}")
            return self._affected_rows(
                conn, "DELETE FROM decks WHERE id = $1;", (entity_id,)
            )

        affected = self._execute_in_transaction(delete, f"delete deck {entity_id}")
        if affected:
            logger.info(f"Deck deleted with ID: {entity_id}")
        return affected > 0

    def exists_by_id(self, entity_id: int) -> bool:
        found = self._execute(
            lambda conn: self._scalar(conn, "SELECT 1 FROM decks WHERE id = $1 LIMIT 1;", (entity_id,)),
            f"check deck {entity_id}",
        )
        return found is not None

    def count(self) -> int:
        return self._execute(
            lambda conn: int(self._scalar(conn, "SELECT COUNT(*) FROM decks;")),
            "count decks",
        )

    def _query(self, sql: str, params: tuple, description: str) -> List[Deck]:
        def run(conn: duckdb.DuckDBPyConnection) -> List[Deck]:
            cursor = conn.execute(sql, params)
            return [db_utils.db_row_to_deck(row) for row in db_utils.rows_to_dicts(cursor)]

        decks = self._execute(run, description)
        for deck in decks:
            self._hydrate(deck)
        return decks

    def _hydrate(self, deck: Deck) -> None:
        """Load the deck's cards without counting it as a modification."""
        updated_at = deck.updated_at
        deck.cards = self._card_repository.find_by_deck_id(deck.id)
        deck.updated_at = updated_at
