from typing import Optional


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class ConfigurationError(DatabaseError):
    """Raised when database configuration is missing, blank or unusable."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class RepositoryError(DatabaseError):
    """Raised for errors during deck or card operations (CRUD)."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class NotFoundError(DatabaseError):
    """Raised when a requested deck or card does not exist."""

    pass


class EntityAlreadyExistsError(DatabaseError):
    """Raised when a deck with the same name already exists."""

    pass
