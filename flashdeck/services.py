"""
Deck and card use cases on top of the repositories.

The services add the rules the storage layer does not express itself: unique
deck names, not-found errors for lookups, and persisting an imported deck
graph under fresh identities.
"""

import logging
from typing import List, Optional

from .db.card_repository import CardRepository
from .db.deck_repository import DeckRepository
from .exceptions import EntityAlreadyExistsError, NotFoundError
from .models import Card, Deck

logger = logging.getLogger(__name__)

DECK_NOT_FOUND = "Deck not found"
CARD_NOT_FOUND = "Card not found"


class DeckService:
    """Deck management: creation, lookup, rename, deletion and import."""

    def __init__(self, deck_repository: DeckRepository, card_repository: CardRepository):
        self.deck_repository = deck_repository
        self.card_repository = card_repository

    def create_deck(self, name: str, description: Optional[str] = None) -> Deck:
        """
        Create and persist an empty deck.

        Raises:
            EntityAlreadyExistsError: If a deck with `name` already exists.
                Nothing is inserted in that case.
        """
        self._ensure_name_available(name)
        return self.deck_repository.save(Deck(name=name, description=description))

    def get_all_decks(self) -> List[Deck]:
        return self.deck_repository.find_all()

    def get_deck_by_id(self, deck_id: int) -> Deck:
        deck = self.deck_repository.find_by_id(deck_id)
        if deck is None:
            raise NotFoundError(DECK_NOT_FOUND)
        return deck

    def get_deck_by_name(self, name: str) -> Deck:
        deck = self.deck_repository.find_by_name(name)
        if deck is None:
            raise NotFoundError(DECK_NOT_FOUND)
        return deck

    def update_deck(self, deck: Deck) -> Deck:
        """
        Persist a changed name or description.

        Raises:
            NotFoundError: If the deck has no id or is not stored.
            EntityAlreadyExistsError: If the new name belongs to another deck.
        """
        if deck.id is None or not self.deck_repository.exists_by_id(deck.id):
            raise NotFoundError(DECK_NOT_FOUND)
        self._ensure_name_available(deck.name, allowed_id=deck.id)
        return self.deck_repository.update(deck)

    def delete_deck(self, deck_id: int) -> bool:
        """Delete a deck and all of its cards; False if no such deck."""
        return self.deck_repository.delete_by_id(deck_id)

    def get_deck_count(self) -> int:
        return self.deck_repository.count()

    def import_deck(self, deck: Deck) -> Deck:
        """
        Persist an imported deck graph as a new deck.

        Stored ids in the incoming graph are ignored: the deck and every card
        receive fresh identities, and the cards are attached to the new deck.
        Card timestamps from the import are kept.

        Returns:
            Deck: The stored deck, hydrated with its cards.

        Raises:
            EntityAlreadyExistsError: If a deck with the same name exists.
        """
        saved = self.create_deck(deck.name, deck.description)
        for card in deck.cards:
            self.card_repository.save(
                Card(
                    question=card.question,
                    answer=card.answer,
                    deck_id=saved.id,
                    created_at=card.created_at,
                    updated_at=card.updated_at,
                )
            )
        logger.info(
            f"Imported deck '{saved.name}' (ID: {saved.id}) with {len(deck.cards)} cards"
        )
        return self.get_deck_by_id(saved.id)

    def _ensure_name_available(self, name: str, allowed_id: Optional[int] = None) -> None:
        existing = self.deck_repository.find_by_name(name)
        if existing is not None and existing.id != allowed_id:
            raise EntityAlreadyExistsError(f"Deck with name {name} already exists")


class CardService:
    """Card management within existing decks."""

    def __init__(self, card_repository: CardRepository):
        self.card_repository = card_repository

    def create_card(self, question: str, answer: str, deck_id: int) -> Card:
        """
        Create a card in deck `deck_id`.

        Raises:
            pydantic.ValidationError: If question or answer is blank.
            RepositoryError: If the deck does not exist.
        """
        return self.card_repository.save(
            Card(question=question, answer=answer, deck_id=deck_id)
        )

    def get_cards(self) -> List[Card]:
        return self.card_repository.find_all()

    def get_card_by_id(self, card_id: int) -> Card:
        card = self.card_repository.find_by_id(card_id)
        if card is None:
            raise NotFoundError(CARD_NOT_FOUND)
        return card

    def update_card(self, card_id: int, question: str, answer: str) -> Card:
        card = self.get_card_by_id(card_id)
        card.question = question
        card.answer = answer
        return self.card_repository.update(card)

    def delete_card(self, card_id: int) -> bool:
        return self.card_repository.delete_by_id(card_id)

    def get_cards_by_deck_id(self, deck_id: int) -> List[Card]:
        return self.card_repository.find_by_deck_id(deck_id)

    def get_total_card_count(self) -> int:
        return self.card_repository.count()

    def search_cards(self, text: str) -> List[Card]:
        """Cards whose question or answer contains `text`, ignoring case."""
        return self.card_repository.find_by_text_containing(text)
