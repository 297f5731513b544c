"""
Static constants shared by the storage and interchange layers.

No runtime configuration here - see flashdeck.config for settings.
"""
from typing import Tuple

# --- Configuration defaults ---
# Candidate configuration files, checked in order relative to the working
# directory. The first one that exists wins.
CONFIG_CANDIDATES: Tuple[str, ...] = (
    "flashdeck.yaml",
    "config/flashdeck.yaml",
    "database.yaml",
)

DB_URL_SCHEME = "duckdb:"
DEFAULT_DB_URL = "duckdb:data/flashcards.duckdb"
DEFAULT_DB_USER = "sa"
DEFAULT_DB_PASSWORD = ""
DEFAULT_DB_DRIVER = "duckdb"
DEFAULT_POOL_MAX_CONNECTIONS = 10
DEFAULT_POOL_TIMEOUT_MS = 30000

SUPPORTED_DRIVERS: Tuple[str, ...] = ("duckdb",)

# --- Demo data seeded on first start ---
DEMO_DECK_NAME = "Demo Deck"
DEMO_DECK_DESCRIPTION = "A demonstration deck for getting to know the app"
DEMO_CARDS: Tuple[Tuple[str, str], ...] = (
    ("What is Java?", "An object-oriented programming language"),
    ("What is the JVM?", "Java Virtual Machine - the virtual machine that runs Java bytecode"),
    ("What is OOP?", "Object-oriented programming"),
    ("What is a class?", "A template for creating objects"),
    ("What is encapsulation?", "Hiding the internal implementation of a class"),
)

# --- Tabular (CSV) interchange ---
CREATED_AT_COLUMN = "Created_At"
UPDATED_AT_COLUMN = "Updated_At"
CSV_HEADERS: Tuple[str, ...] = (
    "Question",
    "Answer",
    CREATED_AT_COLUMN,
    UPDATED_AT_COLUMN,
)
CSV_COMMENT_MARKER = "#"
# Equivalent of yyyy-MM-dd HH:mm:ss
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
