"""
Utility functions for data marshalling between Pydantic models and database formats.
This module helps decouple the repositories from the specifics of data conversion.
"""

from typing import Any, Dict, List, Tuple

import duckdb
from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Card, Deck


def rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def card_to_insert_params(card: Card) -> Tuple:
    """
    Convert a Card into the parameter tuple of the cards INSERT statement.

    Returns:
        tuple: (question, answer, deck_id, created_at, updated_at)
    """
    return (
        card.question,
        card.answer,
        card.deck_id,
        card.created_at,
        card.updated_at,
    )


def deck_to_insert_params(deck: Deck) -> Tuple:
    """
    Convert a Deck into the parameter tuple of the decks INSERT statement.

    Returns:
        tuple: (name, description, created_at, updated_at)
    """
    return (deck.name, deck.description, deck.created_at, deck.updated_at)


def db_row_to_card(row_dict: Dict[str, Any]) -> Card:
    """
    Create a Card model from a database row dictionary.

    Raises:
        MarshallingError: If the row cannot be validated into a Card (wraps the original ValidationError).
    """
    try:
        return Card(**row_dict)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse card from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def db_row_to_deck(row_dict: Dict[str, Any]) -> Deck:
    """
    Create a Deck model (without cards) from a database row dictionary.

    The card list is left empty; the deck repository hydrates it.

    Raises:
        MarshallingError: If the row cannot be validated into a Deck.
    """
    try:
        return Deck(**row_dict)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse deck from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e
