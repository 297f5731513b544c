"""
Deck and Card entities shared by the repositories and the interchange codec.

Timestamps are naive local datetimes, matching the TIMESTAMP columns of the
schema and the `yyyy-MM-dd HH:mm:ss` format used by the CSV interchange.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _reject_blank(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} must not be blank.")
    return value


class Card(BaseModel):
    """
    A single question/answer pair owned by exactly one deck.

    Two cards are equal only when both carry the same non-null identity.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: Optional[int] = Field(
        default=None,
        description="Storage-assigned identity (None until first save).",
    )
    question: str = Field(..., description="Question text shown to the user.")
    answer: str = Field(..., description="Expected answer text.")
    deck_id: Optional[int] = Field(
        default=None,
        description="Identity of the owning deck (required to persist).",
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Local timestamp when the card was created.",
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Local timestamp of the last modification.",
    )

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        return _reject_blank(v, "question")

    @field_validator("answer")
    @classmethod
    def answer_not_blank(cls, v: str) -> str:
        return _reject_blank(v, "answer")

    def touch(self) -> None:
        """Refresh the last-modified timestamp."""
        self.updated_at = datetime.now()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Card):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"Card(id={self.id}, question={self.question!r}, answer={self.answer!r})"


# Assigning any of these refreshes Deck.updated_at.
_DECK_TRACKED_FIELDS = frozenset({"name", "description", "cards"})


class Deck(BaseModel):
    """
    A named collection of cards.

    The deck owns its card list: assigning `cards` stores a private copy, and
    any change to name, description or cards refreshes `updated_at`.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: Optional[int] = Field(
        default=None,
        description="Storage-assigned identity (None until first save).",
    )
    name: str = Field(..., description="Unique deck name.")
    description: Optional[str] = Field(
        default=None, description="Optional free-text description."
    )
    cards: List[Card] = Field(
        default_factory=list,
        description="Owned cards, ascending by creation time when loaded.",
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Local timestamp when the deck was created.",
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Local timestamp of the last modification.",
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _reject_blank(v, "name")

    @field_validator("cards", mode="before")
    @classmethod
    def copy_cards(cls, v: Any) -> List[Any]:
        """Store a private copy of the incoming list; None means no cards."""
        return list(v) if v is not None else []

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in _DECK_TRACKED_FIELDS:
            super().__setattr__("updated_at", datetime.now())

    def add_card(self, card: Card) -> None:
        self.cards.append(card)
        self.updated_at = datetime.now()

    def remove_card(self, card: Card) -> bool:
        """Remove `card` from the deck; returns False if it was not present."""
        try:
            self.cards.remove(card)
        except ValueError:
            return False
        self.updated_at = datetime.now()
        return True

    @property
    def card_count(self) -> int:
        return len(self.cards)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Deck):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"Deck(id={self.id}, name={self.name!r}, card_count={self.card_count})"
