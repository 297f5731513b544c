import pytest
from datetime import datetime
from unittest.mock import patch

import duckdb

from flashdeck.db import CardRepository, DeckRepository
from flashdeck.exceptions import RepositoryError
from flashdeck.models import Card, Deck


def _card(deck_id, question="Q?", answer="A.", created_at=None) -> Card:
    created_at = created_at or datetime.now()
    return Card(
        question=question,
        answer=answer,
        deck_id=deck_id,
        created_at=created_at,
        updated_at=created_at,
    )


class TestCardSave:
    def test_save_assigns_id(self, card_repository: CardRepository, saved_deck: Deck):
        card = card_repository.save(_card(saved_deck.id))
        assert card.id is not None
        assert card_repository.exists_by_id(card.id)

    def test_save_round_trips_fields(self, card_repository: CardRepository, saved_deck: Deck):
        created = datetime(2023, 1, 1, 10, 0)
        card = card_repository.save(
            _card(saved_deck.id, "What is Java?", "A language", created_at=created)
        )
        loaded = card_repository.find_by_id(card.id)
        assert loaded.question == "What is Java?"
        assert loaded.answer == "A language"
        assert loaded.deck_id == saved_deck.id
        assert loaded.created_at == created
        assert loaded.updated_at == created

    def test_save_without_deck_id_fails(self, card_repository: CardRepository):
        with pytest.raises(RepositoryError, match="without a deck_id"):
            card_repository.save(Card(question="Q?", answer="A."))

    def test_save_with_missing_deck_fails(self, card_repository: CardRepository):
        with pytest.raises(RepositoryError, match="deck not found with ID: 999"):
            card_repository.save(_card(999))
        assert card_repository.count() == 0

    def test_save_wraps_duckdb_errors(self, card_repository: CardRepository, saved_deck: Deck):
        with patch.object(
            CardRepository, "_INSERT_SQL", "INSERT INTO no_such_table VALUES ($1);"
        ):
            with pytest.raises(RepositoryError, match="Failed to save card") as exc_info:
                card_repository.save(_card(saved_deck.id))
        assert isinstance(exc_info.value.original_exception, duckdb.Error)


class TestCardUpdate:
    def test_update_persists_text_and_refreshes_timestamp(
        self, card_repository: CardRepository, saved_deck: Deck
    ):
        old = datetime(2020, 1, 1)
        card = card_repository.save(_card(saved_deck.id, created_at=old))
        card.question = "New Q?"
        card.answer = "New A."

        updated = card_repository.update(card)
        loaded = card_repository.find_by_id(card.id)

        assert updated.updated_at > old
        assert loaded.question == "New Q?"
        assert loaded.answer == "New A."
        assert loaded.created_at == old
        assert loaded.updated_at == updated.updated_at

    def test_update_missing_card_fails(self, card_repository: CardRepository, saved_deck: Deck):
        ghost = _card(saved_deck.id)
        ghost.id = 12345
        with pytest.raises(RepositoryError, match="card not found with ID: 12345"):
            card_repository.update(ghost)

    def test_update_without_id_fails(self, card_repository: CardRepository, saved_deck: Deck):
        with pytest.raises(RepositoryError, match="Cannot update card without an id"):
            card_repository.update(_card(saved_deck.id))


class TestCardQueries:
    def test_find_by_id_missing(self, card_repository: CardRepository):
        assert card_repository.find_by_id(42) is None

    def test_find_all_newest_first(self, card_repository: CardRepository, saved_deck: Deck):
        older = card_repository.save(_card(saved_deck.id, "Old?", created_at=datetime(2023, 1, 1)))
        newer = card_repository.save(_card(saved_deck.id, "New?", created_at=datetime(2023, 6, 1)))
        assert [c.id for c in card_repository.find_all()] == [newer.id, older.id]

    def test_find_by_deck_id_oldest_first(
        self,
        card_repository: CardRepository,
        deck_repository: DeckRepository,
        saved_deck: Deck,
    ):
        other = deck_repository.save(Deck(name="Other"))
        second = card_repository.save(_card(saved_deck.id, "Second?", created_at=datetime(2023, 2, 1)))
        first = card_repository.save(_card(saved_deck.id, "First?", created_at=datetime(2023, 1, 1)))
        card_repository.save(_card(other.id, "Elsewhere?"))

        assert [c.id for c in card_repository.find_by_deck_id(saved_deck.id)] == [first.id, second.id]
        assert card_repository.count_by_deck_id(saved_deck.id) == 2
        assert card_repository.count() == 3

    def test_find_by_text_containing_is_case_insensitive(
        self, card_repository: CardRepository, saved_deck: Deck
    ):
        in_question = card_repository.save(_card(saved_deck.id, "What is JAVA?", "A language"))
        in_answer = card_repository.save(_card(saved_deck.id, "What is the JVM?", "Runs java bytecode"))
        card_repository.save(_card(saved_deck.id, "What is OOP?", "A paradigm"))

        found = {c.id for c in card_repository.find_by_text_containing("java")}
        assert found == {in_question.id, in_answer.id}

    def test_find_by_text_treats_wildcards_literally(
        self, card_repository: CardRepository, saved_deck: Deck
    ):
        card_repository.save(_card(saved_deck.id, "Plain question", "Plain answer"))
        assert card_repository.find_by_text_containing("%") == []
        assert card_repository.find_by_text_containing("_") == []


class TestCardDelete:
    def test_delete_by_id(self, card_repository: CardRepository, saved_deck: Deck):
        card = card_repository.save(_card(saved_deck.id))
        assert card_repository.delete_by_id(card.id) is True
        assert card_repository.find_by_id(card.id) is None
        assert card_repository.delete_by_id(card.id) is False

    def test_delete_entity(self, card_repository: CardRepository, saved_deck: Deck):
        card = card_repository.save(_card(saved_deck.id))
        assert card_repository.delete(card) is True
        assert not card_repository.exists_by_id(card.id)

    def test_delete_by_deck_id(self, card_repository: CardRepository, saved_deck: Deck):
        card_repository.save(_card(saved_deck.id, "Q1?"))
        card_repository.save(_card(saved_deck.id, "Q2?"))
        assert card_repository.delete_by_deck_id(saved_deck.id) is True
        assert card_repository.count_by_deck_id(saved_deck.id) == 0
        assert card_repository.delete_by_deck_id(saved_deck.id) is False


class TestCardRepositoryErrors:
    @patch("flashdeck.db.connection.duckdb.connect")
    def test_connection_failure_becomes_repository_error(
        self, mock_connect, card_repository: CardRepository
    ):
        mock_connect.side_effect = duckdb.Error("Connection failed")
        with pytest.raises(RepositoryError, match="Failed to count cards"):
            card_repository.count()

    def test_bad_row_becomes_repository_error(
        self, card_repository: CardRepository, saved_deck: Deck
    ):
        card = card_repository.save(_card(saved_deck.id))
        with card_repository._provider.connection() as conn:
            conn.execute("UPDATE cards SET question = '' WHERE id = $1;", (card.id,))
        with pytest.raises(RepositoryError, match=f"Failed to fetch card {card.id}"):
            card_repository.find_by_id(card.id)
