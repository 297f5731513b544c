import pytest
from datetime import datetime
from unittest.mock import MagicMock

from pydantic import ValidationError

from flashdeck.db import CardRepository, DeckRepository
from flashdeck.exceptions import EntityAlreadyExistsError, NotFoundError, RepositoryError
from flashdeck.models import Card, Deck
from flashdeck.services import CardService, DeckService


@pytest.fixture
def deck_service(deck_repository: DeckRepository, card_repository: CardRepository) -> DeckService:
    return DeckService(deck_repository, card_repository)


@pytest.fixture
def card_service(card_repository: CardRepository) -> CardService:
    return CardService(card_repository)


class TestDeckServiceWithMocks:
    def test_create_deck_checks_name_before_saving(self):
        deck_repository = MagicMock(spec=DeckRepository)
        deck_repository.find_by_name.return_value = Deck(id=1, name="Java Basics")
        service = DeckService(deck_repository, MagicMock(spec=CardRepository))

        with pytest.raises(EntityAlreadyExistsError, match="Deck with name Java Basics already exists"):
            service.create_deck("Java Basics", "Basic Java concepts")

        deck_repository.find_by_name.assert_called_once_with("Java Basics")
        deck_repository.save.assert_not_called()

    def test_delete_deck_delegates(self):
        deck_repository = MagicMock(spec=DeckRepository)
        deck_repository.delete_by_id.return_value = False
        service = DeckService(deck_repository, MagicMock(spec=CardRepository))

        assert service.delete_deck(999) is False
        deck_repository.delete_by_id.assert_called_once_with(999)


class TestDeckService:
    def test_create_and_get(self, deck_service: DeckService):
        deck = deck_service.create_deck("Java Basics", "Basic Java concepts")
        assert deck.id is not None
        assert deck_service.get_deck_by_id(deck.id).name == "Java Basics"
        assert deck_service.get_deck_by_name("Java Basics") == deck
        assert deck_service.get_deck_count() == 1

    def test_create_duplicate_name(self, deck_service: DeckService):
        deck_service.create_deck("Java Basics")
        with pytest.raises(EntityAlreadyExistsError):
            deck_service.create_deck("Java Basics")
        assert deck_service.get_deck_count() == 1

    def test_create_blank_name_is_rejected(self, deck_service: DeckService):
        with pytest.raises(ValidationError):
            deck_service.create_deck("  ")

    def test_get_missing_deck(self, deck_service: DeckService):
        with pytest.raises(NotFoundError, match="Deck not found"):
            deck_service.get_deck_by_id(999)
        with pytest.raises(NotFoundError, match="Deck not found"):
            deck_service.get_deck_by_name("Nope")

    def test_get_all_decks(self, deck_service: DeckService):
        deck_service.create_deck("A")
        deck_service.create_deck("B")
        assert {d.name for d in deck_service.get_all_decks()} == {"A", "B"}

    def test_update_deck(self, deck_service: DeckService):
        deck = deck_service.create_deck("Old name")
        deck.name = "New name"
        deck.description = "Now described"
        deck_service.update_deck(deck)

        loaded = deck_service.get_deck_by_id(deck.id)
        assert loaded.name == "New name"
        assert loaded.description == "Now described"

    def test_update_deck_keeping_its_own_name(self, deck_service: DeckService):
        deck = deck_service.create_deck("Same")
        deck.description = "Changed"
        assert deck_service.update_deck(deck).description == "Changed"

    def test_update_deck_onto_taken_name(self, deck_service: DeckService):
        deck_service.create_deck("Taken")
        deck = deck_service.create_deck("Free")
        deck.name = "Taken"
        with pytest.raises(EntityAlreadyExistsError):
            deck_service.update_deck(deck)

    def test_update_unsaved_deck(self, deck_service: DeckService):
        with pytest.raises(NotFoundError):
            deck_service.update_deck(Deck(name="Unsaved"))
        with pytest.raises(NotFoundError):
            deck_service.update_deck(Deck(id=999, name="Ghost"))

    def test_delete_deck(self, deck_service: DeckService, card_service: CardService):
        deck = deck_service.create_deck("Doomed")
        card_service.create_card("Q?", "A.", deck.id)

        assert deck_service.delete_deck(deck.id) is True
        assert deck_service.get_deck_count() == 0
        assert card_service.get_total_card_count() == 0
        assert deck_service.delete_deck(deck.id) is False

    def test_import_deck_assigns_fresh_identities(
        self, deck_service: DeckService, card_service: CardService
    ):
        created = datetime(2023, 1, 1, 10, 0)
        imported = Deck(
            id=42,
            name="Imported",
            description="From file",
            cards=[
                Card(id=7, question="Q1?", answer="A1.", deck_id=42, created_at=created, updated_at=created),
                Card(id=8, question="Q2?", answer="A2.", deck_id=42, created_at=created, updated_at=created),
            ],
        )

        saved = deck_service.import_deck(imported)

        assert saved.id is not None
        assert saved.name == "Imported"
        assert saved.description == "From file"
        assert saved.card_count == 2
        assert all(c.deck_id == saved.id for c in saved.cards)
        assert all(c.created_at == created for c in saved.cards)
        assert card_service.get_total_card_count() == 2

    def test_import_deck_with_taken_name(self, deck_service: DeckService):
        deck_service.create_deck("Imported")
        with pytest.raises(EntityAlreadyExistsError):
            deck_service.import_deck(Deck(name="Imported", cards=[Card(question="Q?", answer="A.")]))
        assert deck_service.get_deck_count() == 1


class TestCardService:
    def test_create_and_get_card(self, card_service: CardService, saved_deck: Deck):
        card = card_service.create_card("What is Java?", "A language", saved_deck.id)
        assert card_service.get_card_by_id(card.id).question == "What is Java?"
        assert card_service.get_cards_by_deck_id(saved_deck.id) == [card]
        assert card_service.get_cards() == [card]
        assert card_service.get_total_card_count() == 1

    def test_create_card_in_missing_deck(self, card_service: CardService):
        with pytest.raises(RepositoryError, match="deck not found"):
            card_service.create_card("Q?", "A.", 999)

    def test_create_card_with_blank_answer(self, card_service: CardService, saved_deck: Deck):
        with pytest.raises(ValidationError):
            card_service.create_card("Q?", "   ", saved_deck.id)

    def test_get_missing_card(self, card_service: CardService):
        with pytest.raises(NotFoundError, match="Card not found"):
            card_service.get_card_by_id(999)

    def test_update_card(self, card_service: CardService, saved_deck: Deck):
        card = card_service.create_card("Q?", "A.", saved_deck.id)
        card_service.update_card(card.id, "New Q?", "New A.")
        loaded = card_service.get_card_by_id(card.id)
        assert (loaded.question, loaded.answer) == ("New Q?", "New A.")

    def test_update_missing_card(self, card_service: CardService):
        with pytest.raises(NotFoundError):
            card_service.update_card(999, "Q?", "A.")

    def test_delete_card(self, card_service: CardService, saved_deck: Deck):
        card = card_service.create_card("Q?", "A.", saved_deck.id)
        assert card_service.delete_card(card.id) is True
        assert card_service.delete_card(card.id) is False

    def test_search_cards(self, card_service: CardService, saved_deck: Deck):
        match = card_service.create_card("What is Java?", "A language", saved_deck.id)
        card_service.create_card("What is OOP?", "A paradigm", saved_deck.id)
        assert card_service.search_cards("jAvA") == [match]
