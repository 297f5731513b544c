"""
CLI entry point for flashdeck.
"""

# Standard library imports
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

# Third-party imports
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Local application imports
from flashdeck.config import load_settings, with_url
from flashdeck.constants import TIMESTAMP_FORMAT
from flashdeck.db.card_repository import CardRepository
from flashdeck.db.connection import ConnectionProvider
from flashdeck.db.deck_repository import DeckRepository
from flashdeck.exceptions import DatabaseConnectionError, DatabaseError
from flashdeck.interchange import (
    export_to_document,
    export_to_tabular,
    import_from_document,
    import_from_tabular,
)
from flashdeck.models import Card, Deck
from flashdeck.quiz import QuizResult, run_quiz
from flashdeck.services import CardService, DeckService


console = Console()

app = typer.Typer(
    name="flashdeck",
    help="Flashdeck: flashcard decks with JSON/CSV import and export.",
    add_completion=False,
    rich_markup_mode="markdown",
)

FORMAT_JSON = "json"
FORMAT_CSV = "csv"


# ---------------------------------------------------------------------------
# Bootstrap and error reporting
# ---------------------------------------------------------------------------


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Database URL or file path (overrides db.url and FLASHDECK_DB_URL).",
)

_format_option = typer.Option(  # noqa: B008
    None,
    "--format",
    "-f",
    help="File format: json or csv. Inferred from the file suffix if omitted.",
)


@contextmanager
def _services(db: Optional[str]) -> Iterator[Tuple[DeckService, CardService]]:
    """
    Bootstrap storage for one command and tear it down afterwards.

    Loads settings (with the --db override), verifies the database can be
    reached, creates the schema and the demo deck if needed, and yields the
    deck and card services. The provider is flushed and released on exit.

    Raises:
        ConfigurationError: If the configuration is invalid.
        DatabaseConnectionError: If the database cannot be reached.
        SchemaInitializationError: If the schema cannot be created.
    """
    settings = load_settings()
    if db is not None:
        settings = with_url(settings, db)

    provider = ConnectionProvider.get_instance(settings)
    try:
        if not provider.test_connection():
            raise DatabaseConnectionError(
                f"Cannot connect to database at {provider.db_path_resolved}"
            )
        provider.initialize_database()
        card_repository = CardRepository(provider)
        deck_repository = DeckRepository(provider, card_repository)
        yield DeckService(deck_repository, card_repository), CardService(card_repository)
    finally:
        provider.shutdown()
        ConnectionProvider.reset_instance()


@contextmanager
def _exit_on_error(action: str) -> Iterator[None]:
    """Report expected failures as one red line and exit with code 1."""
    try:
        yield
    except DatabaseError as e:
        console.print(f"[bold red]Error {action}:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(
            f"[bold red]Invalid input {action}:[/bold red] "
            f"{escape(e.errors()[0]['msg'])}"
        )
        raise typer.Exit(code=1)
    except OSError as e:
        console.print(f"[bold red]File error {action}:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _resolve_deck(deck_service: DeckService, ref: str) -> Deck:
    """Look a deck up by numeric ID, falling back to its name."""
    if ref.isdigit():
        return deck_service.get_deck_by_id(int(ref))
    return deck_service.get_deck_by_name(ref)


def _resolve_format(path: Path, file_format: Optional[str]) -> str:
    chosen = (file_format or path.suffix.lstrip(".") or FORMAT_JSON).lower()
    if chosen not in (FORMAT_JSON, FORMAT_CSV):
        console.print(
            f"[bold red]Error: unsupported format '{escape(chosen)}' "
            "(use json or csv).[/bold red]"
        )
        raise typer.Exit(code=1)
    return chosen


def _fmt(value) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value is not None else ""


def _cards_table(title: str, cards: List[Card]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Question", style="cyan")
    table.add_column("Answer", style="magenta")
    table.add_column("Deck", style="dim")
    table.add_column("Created", style="yellow")
    for card in cards:
        table.add_row(
            str(card.id),
            escape(card.question),
            escape(card.answer),
            str(card.deck_id),
            _fmt(card.created_at),
        )
    return table


# ---------------------------------------------------------------------------
# Database commands
# ---------------------------------------------------------------------------


@app.command()
def init(db: Optional[str] = _db_option):
    """Create the database schema and the demo deck if they do not exist yet."""
    with _exit_on_error("initializing the database"):
        with _services(db) as (deck_service, card_service):
            console.print("[bold green]Database ready.[/bold green]")
            console.print(
                f"- [green]{deck_service.get_deck_count()}[/green] decks, "
                f"[green]{card_service.get_total_card_count()}[/green] cards."
            )


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------


@app.command()
def decks(db: Optional[str] = _db_option):
    """List all decks, newest first."""
    with _exit_on_error("listing decks"):
        with _services(db) as (deck_service, _):
            all_decks = deck_service.get_all_decks()

    if not all_decks:
        console.print("[yellow]No decks found.[/yellow]")
        return

    table = Table(title="Decks")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Cards", style="magenta")
    table.add_column("Created", style="yellow")
    for deck in all_decks:
        table.add_row(
            str(deck.id),
            escape(deck.name),
            escape(deck.description or ""),
            str(deck.card_count),
            _fmt(deck.created_at),
        )
    console.print(table)


@app.command()
def show(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    db: Optional[str] = _db_option,
):
    """Show one deck with all of its cards."""
    with _exit_on_error("loading deck"):
        with _services(db) as (deck_service, _):
            deck = _resolve_deck(deck_service, deck_ref)

    console.print(f"[bold cyan]{escape(deck.name)}[/bold cyan] (ID: {deck.id})")
    if deck.description:
        console.print(escape(deck.description))
    if not deck.cards:
        console.print("[yellow]This deck has no cards.[/yellow]")
        return
    console.print(_cards_table("Cards", deck.cards))


@app.command("create-deck")
def create_deck(
    name: str = typer.Argument(..., help="Name of the new deck."),  # noqa: B008
    description: Optional[str] = typer.Option(  # noqa: B008
        None, "--description", "-d", help="Optional deck description."
    ),
    db: Optional[str] = _db_option,
):
    """Create a new, empty deck."""
    with _exit_on_error("creating deck"):
        with _services(db) as (deck_service, _):
            deck = deck_service.create_deck(name, description)
    console.print(
        f"[green]Deck '{escape(deck.name)}' created with ID {deck.id}.[/green]"
    )


@app.command("edit-deck")
def edit_deck(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    name: Optional[str] = typer.Option(  # noqa: B008
        None, "--name", "-n", help="New deck name."
    ),
    description: Optional[str] = typer.Option(  # noqa: B008
        None, "--description", "-d", help="New deck description."
    ),
    db: Optional[str] = _db_option,
):
    """Rename a deck or change its description."""
    if name is None and description is None:
        console.print(
            "[bold red]Error: nothing to change "
            "(use --name and/or --description).[/bold red]"
        )
        raise typer.Exit(code=1)

    with _exit_on_error("updating deck"):
        with _services(db) as (deck_service, _):
            deck = _resolve_deck(deck_service, deck_ref)
            if name is not None:
                deck.name = name
            if description is not None:
                deck.description = description
            deck_service.update_deck(deck)
    console.print(f"[green]Deck {deck.id} updated.[/green]")


@app.command("delete-deck")
def delete_deck(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    yes: bool = typer.Option(  # noqa: B008
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
    db: Optional[str] = _db_option,
):
    """Delete a deck together with all of its cards."""
    with _exit_on_error("deleting deck"):
        with _services(db) as (deck_service, _):
            deck = _resolve_deck(deck_service, deck_ref)
            if not yes and not typer.confirm(
                f"Delete deck '{deck.name}' and its {deck.card_count} cards?"
            ):
                console.print("[yellow]Aborted.[/yellow]")
                return
            deck_service.delete_deck(deck.id)
    console.print(f"[green]Deck '{escape(deck.name)}' deleted.[/green]")


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


@app.command("add-card")
def add_card(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    question: str = typer.Argument(..., help="Question text."),  # noqa: B008
    answer: str = typer.Argument(..., help="Answer text."),  # noqa: B008
    db: Optional[str] = _db_option,
):
    """Add a card to a deck."""
    with _exit_on_error("adding card"):
        with _services(db) as (deck_service, card_service):
            deck = _resolve_deck(deck_service, deck_ref)
            card = card_service.create_card(question, answer, deck.id)
    console.print(
        f"[green]Card {card.id} added to deck '{escape(deck.name)}'.[/green]"
    )


@app.command("edit-card")
def edit_card(
    card_id: int = typer.Argument(..., help="ID of the card to edit."),  # noqa: B008
    question: Optional[str] = typer.Option(  # noqa: B008
        None, "--question", "-q", help="New question text."
    ),
    answer: Optional[str] = typer.Option(  # noqa: B008
        None, "--answer", "-a", help="New answer text."
    ),
    db: Optional[str] = _db_option,
):
    """Change the question and/or answer of a card."""
    with _exit_on_error("updating card"):
        with _services(db) as (_, card_service):
            current = card_service.get_card_by_id(card_id)
            card = card_service.update_card(
                card_id,
                question if question is not None else current.question,
                answer if answer is not None else current.answer,
            )
    console.print(f"[green]Card {card.id} updated.[/green]")


@app.command("delete-card")
def delete_card(
    card_id: int = typer.Argument(..., help="ID of the card to delete."),  # noqa: B008
    db: Optional[str] = _db_option,
):
    """Delete a single card."""
    with _exit_on_error("deleting card"):
        with _services(db) as (_, card_service):
            deleted = card_service.delete_card(card_id)
    if not deleted:
        console.print(f"[bold red]Error: card {card_id} not found.[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Card {card_id} deleted.[/green]")


@app.command()
def search(
    text: str = typer.Argument(..., help="Text to look for."),  # noqa: B008
    db: Optional[str] = _db_option,
):
    """Find cards whose question or answer contains TEXT (case-insensitive)."""
    with _exit_on_error("searching cards"):
        with _services(db) as (_, card_service):
            cards = card_service.search_cards(text)
    if not cards:
        console.print(f"[yellow]No cards match '{escape(text)}'.[/yellow]")
        return
    console.print(_cards_table(f"Cards matching '{escape(text)}'", cards))


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.command()
def export(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    output: Path = typer.Argument(..., help="File to write."),  # noqa: B008
    file_format: Optional[str] = _format_option,
    db: Optional[str] = _db_option,
):
    """Export a deck with its cards to a JSON or CSV file."""
    chosen = _resolve_format(output, file_format)
    with _exit_on_error("exporting deck"):
        with _services(db) as (deck_service, _):
            deck = _resolve_deck(deck_service, deck_ref)
        if chosen == FORMAT_CSV:
            export_to_tabular(deck, output)
        else:
            export_to_document(deck, output)
    console.print(
        f"[green]Exported {deck.card_count} cards from '{escape(deck.name)}' "
        f"to[/green] [cyan]{escape(str(output))}[/cyan]"
    )


@app.command("import")
def import_deck(
    source: Path = typer.Argument(..., help="JSON or CSV file to read."),  # noqa: B008
    name: Optional[str] = typer.Option(  # noqa: B008
        None,
        "--name",
        "-n",
        help="Name of the new deck (CSV default: the file name without suffix).",
    ),
    description: Optional[str] = typer.Option(  # noqa: B008
        None, "--description", "-d", help="Description of the new deck."
    ),
    file_format: Optional[str] = _format_option,
    db: Optional[str] = _db_option,
):
    """Import a deck from a JSON or CSV file as a new deck."""
    chosen = _resolve_format(source, file_format)
    with _exit_on_error("importing deck"):
        if chosen == FORMAT_CSV:
            deck = import_from_tabular(source, name or source.stem, description)
        else:
            deck = import_from_document(source)
            if name is not None:
                deck.name = name
            if description is not None:
                deck.description = description
        with _services(db) as (deck_service, _):
            saved = deck_service.import_deck(deck)
    console.print(
        f"[green]Imported deck '{escape(saved.name)}' (ID {saved.id}) "
        f"with {saved.card_count} cards.[/green]"
    )


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------


def _ask(position: int, total: int, card: Card) -> str:
    console.print(
        f"[bold]Question {position}/{total}:[/bold] {escape(card.question)}"
    )
    return console.input("Your answer: ")


def _report(card: Card, correct: bool) -> None:
    if correct:
        console.print("[green]Right![/green]\n")
    else:
        console.print("[red]Wrong![/red]")
        console.print(f"The correct answer is: {escape(card.answer)}\n")


def _display_quiz_result(result: QuizResult) -> None:
    console.print("[bold]=== Quiz results ===[/bold]")
    console.print(f"Correct answers: {result.correct}/{result.total}")
    console.print(f"Percent of correct answers: {result.percentage:.1f}%")
    console.print(result.verdict)


@app.command()
def quiz(
    deck_ref: str = typer.Argument(..., help="Deck ID or name."),  # noqa: B008
    shuffle: bool = typer.Option(  # noqa: B008
        True, "--shuffle/--no-shuffle", help="Ask the cards in random order."
    ),
    db: Optional[str] = _db_option,
):
    """Quiz yourself on a deck. Answer `quit` to stop early."""
    with _exit_on_error("loading deck"):
        with _services(db) as (deck_service, _):
            deck = _resolve_deck(deck_service, deck_ref)

    if not deck.cards:
        console.print("[yellow]The deck has no cards to quiz on.[/yellow]")
        return

    console.print(f"\n[bold cyan]=== Start of quiz: {escape(deck.name)} ===[/bold cyan]")
    console.print(f"Number of cards: {deck.card_count}")
    console.print("Enter 'quit' to exit the quiz\n")

    result = run_quiz(deck, _ask, shuffle=shuffle, report=_report)
    if result.stopped_early:
        console.print("[yellow]The quiz was interrupted by the user.[/yellow]")
        return
    _display_quiz_result(result)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
