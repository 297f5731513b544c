"""Database package for flashdeck.

Provides the connection provider, schema bootstrap and the deck/card
repositories built on the generic repository contract.
"""

from .card_repository import CardRepository
from .connection import ConnectionProvider
from .deck_repository import DeckRepository
from .repository import BaseRepository

__all__ = ["BaseRepository", "CardRepository", "ConnectionProvider", "DeckRepository"]
