"""
Datasource configuration: .properties loading and SQLAlchemy engine construction.
"""

import os
import re
import logging
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import ArgumentError, DisconnectionError
from sqlalchemy.pool import QueuePool

from configuration import (
    CONNECTION_URL_KEY,
    DRIVER_CLASS_NAME_KEY,
    USERNAME_KEY,
    PASSWORD_KEY,
    VALIDATION_QUERY_KEY,
    MAX_WAIT_MILLIS_KEY,
    CONNECTION_PROPERTIES_PREFIX,
    POOL_TYPES,
    DEFAULT_POOL_TYPE,
    MILLIS_PER_SECOND,
)
from common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_CREDENTIAL_PROPERTIES = {"user": "username", "username": "username", "password": "password"}

_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_ESCAPED_CHARS = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(text: str) -> str:
    def replace(match):
        token = match.group(1)
        if len(token) == 5:
            return chr(int(token[1:], 16))
        return _ESCAPED_CHARS.get(token, token)

    return _ESCAPE.sub(replace, text)


def _logical_lines(lines):
    """Join backslash-continued lines and drop blanks and comments."""
    pending = None
    for raw in lines:
        line = raw.rstrip("\r\n").lstrip()
        if pending is None:
            if not line or line[0] in "#!":
                continue
        else:
            line = pending + line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending = line[:-1]
            continue
        pending = None
        yield line
    if pending is not None:
        yield pending


def _split_entry(line: str):
    # The key ends at the first unescaped '=', ':' or whitespace
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in "=:" or char.isspace():
            break
        index += 1
    key, rest = line[:index], line[index:].lstrip()
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip()
    return _unescape(key), _unescape(rest)


def load_properties(path: str) -> Dict[str, str]:
    """Read a Java-style .properties file.

    Supports `key=value`, `key: value` and `key value` lines, `#` / `!`
    comments, backslash escapes (`\\:`, `\\=`, `\\ `, `\\t`, `\\uXXXX`, ...)
    and lines continued with a trailing backslash. Keys keep their case and
    a repeated key keeps its last value.

    Args:
        path: Path to the properties file

    Returns:
        Mapping of property names to values

    Raises:
        ConfigurationError: If the file does not exist or cannot be read
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"Properties file does not exist: {path}")

    properties: Dict[str, str] = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in _logical_lines(f):
                key, value = _split_entry(line)
                properties[key] = value
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read properties file {path}: {e}") from e

    logger.debug(f"Loaded {len(properties)} properties from {path}")
    return properties


class DataSourceSettings:
    """Pool settings derived from datasource properties."""

    def __init__(
        self,
        url: URL,
        pool_size: int,
        pool_type: str = DEFAULT_POOL_TYPE,
        connect_args: Optional[Dict[str, Any]] = None,
        validation_query: Optional[str] = None,
        pool_timeout_seconds: Optional[float] = None,
    ):
        self.url = url
        self.pool_size = pool_size
        self.pool_type = pool_type
        self.connect_args = connect_args or {}
        self.validation_query = validation_query
        self.pool_timeout_seconds = pool_timeout_seconds

    @classmethod
    def from_properties(cls, properties: Dict[str, str], pool_size: int,
                        pool_type: str = DEFAULT_POOL_TYPE) -> "DataSourceSettings":
        """Map datasource properties onto pool settings.

        Raises:
            ConfigurationError: On a missing or malformed connection URL or an unknown pool type
        """
        if pool_type not in POOL_TYPES:
            raise ConfigurationError(f"Unknown pool type: {pool_type}. Must be one of {POOL_TYPES}")

        raw_url = (properties.get(CONNECTION_URL_KEY) or "").strip()
        if not raw_url:
            raise ConfigurationError(f"Property '{CONNECTION_URL_KEY}' is required")
        try:
            url = make_url(raw_url)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid {CONNECTION_URL_KEY} '{raw_url}': {e}") from e

        driver = (properties.get(DRIVER_CLASS_NAME_KEY) or "").strip()
        if driver:
            url = url.set(drivername=driver)

        credentials: Dict[str, str] = {}
        if properties.get(USERNAME_KEY) is not None:
            credentials["username"] = properties[USERNAME_KEY]
        if properties.get(PASSWORD_KEY) is not None:
            credentials["password"] = properties[PASSWORD_KEY]

        connect_args: Dict[str, Any] = {}
        validation_query = None
        pool_timeout_seconds = None
        for key, value in properties.items():
            if key.startswith(CONNECTION_PROPERTIES_PREFIX):
                name = key[len(CONNECTION_PROPERTIES_PREFIX):]
                if name in _CREDENTIAL_PROPERTIES:
                    credentials[_CREDENTIAL_PROPERTIES[name]] = value
                else:
                    connect_args[name] = value
            elif key == VALIDATION_QUERY_KEY and value.strip():
                validation_query = value.strip()
            elif key == MAX_WAIT_MILLIS_KEY:
                try:
                    timeout_ms = int(value)
                except ValueError:
                    logger.warning(f"Ignoring non-numeric {MAX_WAIT_MILLIS_KEY}: {value}")
                    continue
                if timeout_ms >= 0:
                    pool_timeout_seconds = timeout_ms / MILLIS_PER_SECOND

        if credentials:
            url = url.set(**credentials)

        return cls(
            url=url,
            pool_size=pool_size,
            pool_type=pool_type,
            connect_args=connect_args,
            validation_query=validation_query,
            pool_timeout_seconds=pool_timeout_seconds,
        )

    def __repr__(self) -> str:
        return (
            f"DataSourceSettings(url={self.url.render_as_string(hide_password=True)}, "
            f"pool_size={self.pool_size}, pool_type={self.pool_type})"
        )


def _install_validation_query(engine: Engine, validation_query: str) -> None:
    """Run the validation query on every checkout; a failure makes the pool replace the connection."""

    @event.listens_for(engine, "checkout")
    def _validate(dbapi_connection, connection_record, connection_proxy):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(validation_query)
            cursor.fetchall()
        except Exception as e:
            raise DisconnectionError(f"Validation query failed: {e}") from e
        finally:
            cursor.close()


def build_engine(settings: DataSourceSettings) -> Engine:
    """Create a fixed-size SQLAlchemy engine for the benchmark.

    The pool never overflows: at most `pool_size` connections exist, so the
    benchmark measures contention for exactly that many.
    """
    engine_kwargs: Dict[str, Any] = {
        "poolclass": QueuePool,
        "pool_size": settings.pool_size,
        "max_overflow": 0,
        "pool_use_lifo": settings.pool_type == "lifo",
    }
    if settings.pool_timeout_seconds is not None:
        engine_kwargs["pool_timeout"] = settings.pool_timeout_seconds
    if settings.connect_args:
        engine_kwargs["connect_args"] = dict(settings.connect_args)

    try:
        engine = create_engine(settings.url, **engine_kwargs)
    except (ArgumentError, ImportError, TypeError) as e:
        raise ConfigurationError(f"Cannot create engine for {settings!r}: {e}") from e

    if settings.validation_query:
        _install_validation_query(engine, settings.validation_query)

    logger.info(f"Configured {settings!r}")
    return engine
