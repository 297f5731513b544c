"""
Defines the database schema for flashdeck using SQL string constants.
This keeps the schema definition separate from the database connection and
operation logic.
"""

# Session-level tuning applied before the schema is created.
SESSION_SETTINGS_SQL = (
    "SET checkpoint_threshold = '16MB';",
    "PRAGMA enable_checkpoint_on_shutdown;",
)

# DuckDB rejects ON DELETE CASCADE, and a declared foreign key blocks updates
# of indexed deck columns. Card ownership is enforced by the repositories.
DB_SCHEMA_SQL = """
    CREATE SEQUENCE IF NOT EXISTS decks_id_seq START 1;
    CREATE SEQUENCE IF NOT EXISTS cards_id_seq START 1;

    CREATE TABLE IF NOT EXISTS decks (
        id BIGINT PRIMARY KEY DEFAULT nextval('decks_id_seq'),
        name VARCHAR NOT NULL UNIQUE,
        description TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS cards (
        id BIGINT PRIMARY KEY DEFAULT nextval('cards_id_seq'),
        question TEXT NOT NULL,
        answer TEXT NOT NULL,
        deck_id BIGINT NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_cards_deck_id ON cards (deck_id);
    CREATE INDEX IF NOT EXISTS idx_decks_name ON decks (name);
    CREATE INDEX IF NOT EXISTS idx_decks_created_at ON decks (created_at);
    CREATE INDEX IF NOT EXISTS idx_cards_created_at ON cards (created_at);
"""
