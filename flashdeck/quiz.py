"""
Self-test over one deck: ask every card once in random order and score it.

The quiz does no I/O of its own. Callers supply an `ask` callable that shows a
question and returns the typed answer, and an optional `report` callable that
receives per-card feedback.
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional

from .models import Card, Deck

QUIT_COMMAND = "quit"

AskFn = Callable[[int, int, Card], str]
ReportFn = Callable[[Card, bool], None]


def is_correct_answer(user_answer: str, correct_answer: str) -> bool:
    """Compare answers ignoring case and surrounding whitespace."""
    return user_answer.strip().lower() == correct_answer.strip().lower()


@dataclass
class QuizResult:
    correct: int
    total: int
    answered: int
    stopped_early: bool = False

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct * 100 / self.total

    @property
    def verdict(self) -> str:
        percentage = self.percentage
        if percentage >= 90:
            return "Excellent!"
        if percentage >= 70:
            return "Good!"
        if percentage >= 50:
            return "Satisfied. Need more practice!"
        return "It is necessary to read the material better!"


def run_quiz(
    deck: Deck,
    ask: AskFn,
    shuffle: bool = True,
    report: Optional[ReportFn] = None,
) -> Optional[QuizResult]:
    """
    Run one pass over the deck's cards.

    Parameters:
        deck: Deck to quiz on. Its card list is not reordered.
        ask: Called as ask(position, total, card); returns the user's answer.
            Answering `quit` (any case) stops the quiz.
        shuffle: Randomize the question order.
        report: Called as report(card, correct) after each answer.

    Returns:
        QuizResult, or None if the deck has no cards.
    """
    cards = list(deck.cards)
    if not cards:
        return None
    if shuffle:
        random.shuffle(cards)

    total = len(cards)
    correct = 0
    for position, card in enumerate(cards, start=1):
        answer = ask(position, total, card).strip()
        if answer.lower() == QUIT_COMMAND:
            return QuizResult(correct, total, position - 1, stopped_early=True)
        ok = is_correct_answer(answer, card.answer)
        if ok:
            correct += 1
        if report is not None:
            report(card, ok)
    return QuizResult(correct, total, total)
