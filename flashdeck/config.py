"""
Centralized database configuration for flashdeck.

Settings are layered: built-in defaults, then the first configuration file
found among CONFIG_CANDIDATES, then FLASHDECK_DB_* environment variables.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CONFIG_CANDIDATES,
    DB_URL_SCHEME,
    DEFAULT_DB_DRIVER,
    DEFAULT_DB_PASSWORD,
    DEFAULT_DB_URL,
    DEFAULT_DB_USER,
    DEFAULT_POOL_MAX_CONNECTIONS,
    DEFAULT_POOL_TIMEOUT_MS,
    SUPPORTED_DRIVERS,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Configuration file key -> settings field
_FILE_KEYS: Dict[str, str] = {
    "db.url": "url",
    "db.user": "user",
    "db.password": "password",
    "db.driver": "driver",
    "db.pool.maxConnections": "pool_max_connections",
    "db.pool.timeout": "pool_timeout",
}

_IN_MEMORY_PATHS = {"", ":memory:"}


class DatabaseSettings(BaseSettings):
    """
    Connection parameters for the flashcard database.

    Environment variables (FLASHDECK_DB_URL, FLASHDECK_DB_POOL_TIMEOUT, ...)
    take precedence over values passed in from a configuration file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_DB_", extra="ignore", validate_assignment=True
    )

    url: str = DEFAULT_DB_URL
    user: str = DEFAULT_DB_USER
    password: str = DEFAULT_DB_PASSWORD
    driver: str = DEFAULT_DB_DRIVER
    pool_max_connections: int = Field(default=DEFAULT_POOL_MAX_CONNECTIONS, ge=1)
    # Milliseconds to wait for a free connection slot.
    pool_timeout: int = Field(default=DEFAULT_POOL_TIMEOUT_MS, ge=1)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return env_settings, init_settings, file_secret_settings

    @field_validator("url", "user", "driver")
    @classmethod
    def required_not_blank(cls, v: str, info: ValidationInfo) -> str:
        if not v or not v.strip():
            raise ValueError(f"Required property missing: db.{info.field_name}")
        return v.strip()

    @field_validator("driver")
    @classmethod
    def driver_supported(cls, v: str) -> str:
        if v not in SUPPORTED_DRIVERS:
            raise ValueError(f"Unsupported database driver: {v}")
        return v

    @field_validator("url")
    @classmethod
    def url_is_file_backed(cls, v: str) -> str:
        if _strip_scheme(v).strip().lower() in _IN_MEMORY_PATHS:
            raise ValueError(
                "db.url must point to a database file; every operation opens "
                "its own connection, so an in-memory database would not persist."
            )
        return v

    @property
    def database_path(self) -> Path:
        """Resolved filesystem path of the database file named by `url`."""
        return Path(_strip_scheme(self.url)).resolve()


def _strip_scheme(url: str) -> str:
    if url.startswith(DB_URL_SCHEME):
        url = url[len(DB_URL_SCHEME):]
        if url.startswith("//"):
            url = url[2:]
    return url


def _flatten(data: Dict[Any, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys ({"db": {"url": x}} -> {"db.url": x})."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, full_key))
        else:
            flat[full_key] = value
    return flat


def find_config_file(
    candidates: Iterable[Union[str, Path]] = CONFIG_CANDIDATES,
    base_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Return the first candidate configuration file that exists, if any."""
    root = base_dir if base_dir is not None else Path.cwd()
    for candidate in candidates:
        path = root / candidate
        if path.is_file():
            return path
    return None


def read_config_file(path: Path) -> Dict[str, str]:
    """
    Read a YAML configuration file into settings keyword arguments.

    Keys may be flat (`db.url: ...`) or nested (`db: {url: ...}`). Values are
    passed on as strings so pydantic applies the same coercion as for
    environment variables; an empty value counts as present-but-blank.

    Raises:
        ConfigurationError: If the file cannot be read or is not a YAML mapping.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot read configuration file {path}: {e}", original_exception=e
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping at the top level."
        )

    values: Dict[str, str] = {}
    for key, value in _flatten(raw).items():
        field_name = _FILE_KEYS.get(key)
        if field_name is None:
            logger.debug(f"Ignoring unknown configuration key '{key}' in {path}")
            continue
        values[field_name] = "" if value is None else str(value)
    return values


def load_settings(
    candidates: Iterable[Union[str, Path]] = CONFIG_CANDIDATES,
    base_dir: Optional[Path] = None,
) -> DatabaseSettings:
    """
    Build DatabaseSettings from defaults, the first existing config file and
    the environment.

    Raises:
        ConfigurationError: If a mandatory key is blank, the driver is not
            supported, the URL is not file-backed, or a value is invalid.
    """
    values: Dict[str, str] = {}
    config_path = find_config_file(candidates, base_dir)
    if config_path is not None:
        values = read_config_file(config_path)
        logger.info(f"Configuration loaded from: {config_path}")
    else:
        logger.warning("No configuration file found, using defaults")

    try:
        return DatabaseSettings(**values)
    except ValidationError as e:
        raise _configuration_error(e) from e


def _configuration_error(e: ValidationError) -> ConfigurationError:
    error_details = e.errors()[0]
    field = ".".join(map(str, error_details["loc"]))
    return ConfigurationError(
        f"Invalid database configuration for '{field}': {error_details['msg']}",
        original_exception=e,
    )


def with_url(settings: DatabaseSettings, url: str) -> DatabaseSettings:
    """
    Return a copy of `settings` pointing at `url` (e.g. a --db command-line
    override). The new URL is validated like a configured one.

    Raises:
        ConfigurationError: If `url` is blank or not file-backed.
    """
    updated = settings.model_copy()
    try:
        updated.url = url
    except ValidationError as e:
        raise _configuration_error(e) from e
    return updated
