import pytest
from pathlib import Path
from typing import Generator
from datetime import datetime

from flashdeck.config import DatabaseSettings
from flashdeck.db import CardRepository, ConnectionProvider, DeckRepository
from flashdeck.models import Card, Deck


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Run every test inside its own temporary working directory, so that
    configuration file discovery never picks up files from the repository,
    and without FLASHDECK_DB_* variables leaking in from the environment.
    """
    for name in (
        "FLASHDECK_DB_URL",
        "FLASHDECK_DB_USER",
        "FLASHDECK_DB_PASSWORD",
        "FLASHDECK_DB_DRIVER",
        "FLASHDECK_DB_POOL_MAX_CONNECTIONS",
        "FLASHDECK_DB_POOL_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True)
def reset_provider_singleton() -> Generator[None, None, None]:
    """Make sure no test sees a ConnectionProvider created by another test."""
    ConnectionProvider.reset_instance()
    yield
    ConnectionProvider.reset_instance()


# --- Database Fixtures ---
@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    """
    Provide the filesystem path for a temporary test DuckDB database file.

    Returns:
        Path: Path to the file named "test.duckdb" inside `tmp_path`.
    """
    return tmp_path / "test.duckdb"


@pytest.fixture
def db_settings(db_path_file: Path) -> DatabaseSettings:
    """Settings pointing at the temporary database file."""
    return DatabaseSettings(url=f"duckdb:{db_path_file}")


@pytest.fixture
def provider(db_settings: DatabaseSettings) -> ConnectionProvider:
    """A ConnectionProvider for the temporary database (schema not created)."""
    return ConnectionProvider(db_settings)


@pytest.fixture
def initialized_provider(provider: ConnectionProvider) -> ConnectionProvider:
    """
    Ensure the provider's database has its schema created and return it.

    The demo deck is not seeded, so tests start from empty tables.
    """
    provider.initialize_database(seed_demo=False)
    return provider


@pytest.fixture
def card_repository(initialized_provider: ConnectionProvider) -> CardRepository:
    return CardRepository(initialized_provider)


@pytest.fixture
def deck_repository(
    initialized_provider: ConnectionProvider, card_repository: CardRepository
) -> DeckRepository:
    return DeckRepository(initialized_provider, card_repository)


@pytest.fixture
def saved_deck(deck_repository: DeckRepository) -> Deck:
    """A persisted, empty deck named "Java Basics"."""
    return deck_repository.save(
        Deck(name="Java Basics", description="Basic Java concepts")
    )


@pytest.fixture
def sample_card() -> Card:
    """
    Create an unsaved Card used across interchange and model tests.

    Returns:
        Card: question "What is Java?", answer "Java is a programming language",
        created_at and updated_at both 2023-01-01 10:00:00.
    """
    return Card(
        question="What is Java?",
        answer="Java is a programming language",
        created_at=datetime(2023, 1, 1, 10, 0),
        updated_at=datetime(2023, 1, 1, 10, 0),
    )


@pytest.fixture
def sample_deck(sample_card: Card) -> Deck:
    """An unsaved "Java Basics" deck holding `sample_card`."""
    return Deck(
        name="Java Basics",
        description="Basic Java concepts",
        cards=[sample_card],
    )
