"""
Export and import of whole decks to interchange files.

Two formats are supported: an indented JSON document mirroring the Deck model,
and a CSV file with a descriptive comment header. Writes run on a worker
thread while the caller waits; the written file is verified afterwards.
"""

import csv
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from pydantic import ValidationError

from .constants import (
    CREATED_AT_COLUMN,
    CSV_COMMENT_MARKER,
    CSV_HEADERS,
    TIMESTAMP_FORMAT,
    UPDATED_AT_COLUMN,
)
from .models import Card, Deck

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_QUESTION_KEY = "question"
_ANSWER_KEY = "answer"


# --- Shared helpers ---


def _ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create output directory {path.parent}: {e}")
        raise IOError(f"Failed to create output directory: {e}") from e


def _write_off_thread(write: Callable[[], None], path: Path, kind: str) -> None:
    """
    Run `write` on a worker thread, wait for it, then verify the file.

    Raises:
        IOError: If the write fails or leaves a missing or empty file.
        KeyboardInterrupt: Re-raised after logging if the wait is interrupted.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="flashdeck-export") as executor:
        future = executor.submit(write)
        try:
            future.result()
        except KeyboardInterrupt:
            logger.error(f"{kind} export to {path} was interrupted")
            raise
        except (OSError, ValueError) as e:
            logger.error(f"Failed to export deck to {kind}: {e}")
            raise IOError(f"Failed to write {kind} file {path}: {e}") from e
    _verify_written(path, kind)


def _verify_written(path: Path, kind: str) -> None:
    if not path.exists() or path.stat().st_size == 0:
        raise IOError(f"{kind} file was not created successfully: {path}")


def _require_existing(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")


# --- Document (JSON) format ---


def export_to_document(deck: Deck, path: PathLike) -> None:
    """
    Write `deck` and all of its cards to an indented JSON document.

    Fields use camelCase names (deckId, createdAt, ...) and None values are
    omitted. Missing parent directories are created.

    Raises:
        IOError: If the file cannot be written or is empty afterwards.
    """
    path = Path(path)
    _ensure_parent_dir(path)

    def write() -> None:
        content = deck.model_dump_json(indent=2, by_alias=True, exclude_none=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

    _write_off_thread(write, path, "JSON")
    logger.info(f"Exported deck '{deck.name}' ({deck.card_count} cards) to {path}")


def import_from_document(path: PathLike) -> Deck:
    """
    Read a deck previously written by export_to_document.

    Unknown fields are ignored so newer files still load.

    Raises:
        FileNotFoundError: If `path` does not exist.
        IOError: If the file cannot be read or does not describe a valid deck.
    """
    path = Path(path)
    _require_existing(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IOError(f"Could not read file {path}: {e}") from e

    try:
        deck = Deck.model_validate_json(content)
    except ValidationError as e:
        raise IOError(f"Malformed deck document {path}: {e}") from e

    logger.info(f"Imported deck '{deck.name}' with {deck.card_count} cards from {path}")
    return deck


# --- Tabular (CSV) format ---


def _format_timestamp(value: Optional[datetime]) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value is not None else ""


def _comment_line(text: str) -> str:
    # Comment lines must stay single-line.
    return f"{CSV_COMMENT_MARKER} {' '.join(text.splitlines())}\n"


def _write_tabular(deck: Deck, path: Path) -> None:
    cards = [card for card in (deck.cards or []) if card is not None]
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(_comment_line(f"Deck: {deck.name}"))
        if deck.description and deck.description.strip():
            f.write(_comment_line(f"Description: {deck.description}"))
        f.write(_comment_line(f"Exported: {_format_timestamp(datetime.now())}"))
        f.write(_comment_line(f"Total Cards: {len(cards)}"))
        f.write("\n")
        f.write(",".join(CSV_HEADERS) + "\n")

        writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for card in cards:
            writer.writerow(
                [
                    card.question,
                    card.answer,
                    _format_timestamp(card.created_at),
                    _format_timestamp(card.updated_at),
                ]
            )
        f.flush()
        os.fsync(f.fileno())


def export_to_tabular(deck: Deck, path: PathLike) -> None:
    """
    Write `deck` to a CSV file.

    Layout: comment lines `# Deck: ...`, `# Description: ...` (only when the
    description is not blank), `# Exported: ...` and `# Total Cards: n`, one
    blank line, the header row `Question,Answer,Created_At,Updated_At`, then
    one fully quoted row per card with `yyyy-MM-dd HH:mm:ss` timestamps.

    Raises:
        IOError: If the file cannot be written or is empty afterwards.
    """
    path = Path(path)
    _ensure_parent_dir(path)
    _write_off_thread(lambda: _write_tabular(deck, path), path, "CSV")
    logger.info(f"Exported deck '{deck.name}' ({deck.card_count} cards) to {path}")


def _skip_preamble(lines: Iterable[str]) -> Iterator[str]:
    """Drop leading comment and blank lines; everything after is passed through."""
    iterator = iter(lines)
    for line in iterator:
        stripped = line.strip()
        if not stripped or stripped.startswith(CSV_COMMENT_MARKER):
            continue
        yield line
        break
    yield from iterator


def _column_index(header: Sequence[str]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for position, name in enumerate(header):
        index.setdefault(name.strip().lower(), position)
    return index


def _field(row: Sequence[str], position: Optional[int]) -> str:
    if position is None or position >= len(row):
        return ""
    return row[position].strip()


def _parse_timestamp(raw: str, column: str, row_number: int) -> datetime:
    """Parse a CSV timestamp, falling back to now when empty or malformed."""
    if not raw:
        return datetime.now()
    try:
        return datetime.strptime(raw, TIMESTAMP_FORMAT)
    except ValueError:
        logger.warning(
            f"Malformed {column} value '{raw}' in row {row_number}; using current time"
        )
        return datetime.now()


def import_from_tabular(path: PathLike, name: str, description: Optional[str]) -> Deck:
    """
    Build a new, unsaved deck from a CSV file.

    Leading `#` comment lines and blank lines are skipped. The header row is
    required and matched case-insensitively; Question and Answer columns must
    be present, timestamp columns are optional. Rows with both Question and
    Answer blank are skipped silently. Created_At and Updated_At each fall back
    to the current time when missing, empty or malformed. Any other row that
    cannot form a valid card is logged and skipped.

    Parameters:
        path: CSV file to read.
        name: Name of the returned deck.
        description: Description of the returned deck.

    Raises:
        FileNotFoundError: If `path` does not exist.
        IOError: If the file cannot be read or lacks a usable header row.
    """
    path = Path(path)
    _require_existing(path)

    cards: List[Card] = []
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(_skip_preamble(f))
            header = next(reader, None)
            if header is None:
                raise IOError(f"CSV file has no header row: {path}")

            columns = _column_index(header)
            if _QUESTION_KEY not in columns or _ANSWER_KEY not in columns:
                raise IOError(
                    f"CSV header must contain Question and Answer columns: {path}"
                )
            created_col = columns.get(CREATED_AT_COLUMN.lower())
            updated_col = columns.get(UPDATED_AT_COLUMN.lower())

            for row_number, row in enumerate(reader, start=1):
                question = _field(row, columns[_QUESTION_KEY])
                answer = _field(row, columns[_ANSWER_KEY])
                if not question and not answer:
                    logger.debug(f"Skipping empty row {row_number} in {path}")
                    continue

                created_at = _parse_timestamp(_field(row, created_col), CREATED_AT_COLUMN, row_number)
                updated_at = _parse_timestamp(_field(row, updated_col), UPDATED_AT_COLUMN, row_number)
                try:
                    cards.append(
                        Card(
                            question=question,
                            answer=answer,
                            created_at=created_at,
                            updated_at=updated_at,
                        )
                    )
                except ValidationError as e:
                    logger.warning(f"Skipping invalid row {row_number} in {path}: {e}")
    except (csv.Error, UnicodeDecodeError) as e:
        raise IOError(f"Malformed CSV file {path}: {e}") from e

    logger.info(f"Imported {len(cards)} cards from {path}")
    return Deck(name=name, description=description, cards=cards)
