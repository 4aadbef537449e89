"""Connection pool creation and schema setup."""

from __future__ import annotations

from urllib.parse import parse_qsl, quote, urlsplit

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from bento_indexer.schema import create_tables

DEFAULT_MAX_POOL_SIZE = 150

_QUERY_SAFE = "/:@!$'()*+,;?"


def parse_and_clean_db_url(url: str) -> tuple[str, str | None]:
    """Split the ``sslrootcert`` parameter off a database URL.

    Returns the URL without that parameter, every remaining query pair
    followed by ``&``, and the certificate path if one was given.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError("Could not parse database url")

    cert_path: str | None = None
    query = ""
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "sslrootcert":
            cert_path = value
        else:
            query += f"{quote(key, safe=_QUERY_SAFE)}={quote(value, safe=_QUERY_SAFE)}&"

    cleaned = f"{parts.scheme}://{parts.netloc}{parts.path}?{query}"
    if parts.fragment:
        cleaned += f"#{parts.fragment}"
    return cleaned, cert_path


def _engine_url(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if scheme == "postgres":
        scheme = "postgresql"
    return f"{scheme}{sep}{rest}".rstrip("&?")


def new_db_pool(database_url: str, max_pool_size: int | None = None) -> Engine:
    """Create a connection pool holding at most ``max_pool_size`` connections.

    A ``sslrootcert`` query parameter is handed to the driver as the root
    certificate of a TLS connection.
    """
    cleaned, cert_path = parse_and_clean_db_url(database_url)
    size = DEFAULT_MAX_POOL_SIZE if max_pool_size is None else max_pool_size
    connect_args = {}
    if cert_path is not None:
        connect_args = {"sslmode": "require", "sslrootcert": cert_path}
    return create_engine(
        _engine_url(cleaned),
        poolclass=QueuePool,
        pool_size=size,
        max_overflow=0,
        connect_args=connect_args,
    )


def run_pending_migrations(engine: Engine) -> None:
    """Bring the database schema up to date."""
    create_tables(engine)


__all__ = [
    "DEFAULT_MAX_POOL_SIZE",
    "parse_and_clean_db_url",
    "new_db_pool",
    "run_pending_migrations",
]