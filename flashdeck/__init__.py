"""Flashdeck - flashcard decks on DuckDB with JSON/CSV interchange."""

from .models import Card, Deck
from .config import DatabaseSettings, load_settings
from .db import CardRepository, ConnectionProvider, DeckRepository
from .interchange import (
    export_to_document,
    export_to_tabular,
    import_from_document,
    import_from_tabular,
)
from .services import CardService, DeckService

__all__ = [
    "Card",
    "Deck",
    "DatabaseSettings",
    "load_settings",
    "CardRepository",
    "ConnectionProvider",
    "DeckRepository",
    "export_to_document",
    "export_to_tabular",
    "import_from_document",
    "import_from_tabular",
    "CardService",
    "DeckService",
]
