"""Database module for managing connections to the Supabase Postgres database.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import logging
import ssl
from typing import Optional, Dict, Any
from urllib.parse import urlparse, parse_qs
import backoff
import asyncpg

from .exceptions import DatabaseError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager
from .lib.queries import row_to_dict, rows_to_dicts, build_update

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None

# sslmode values that require an encrypted connection
SSL_MODES = {'require', 'verify-ca', 'verify-full'}


def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for hosted Postgres connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context


def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Supabase hosts require TLS, local development databases usually don't,
    so SSL is only enabled for a supabase.co host or an explicit sslmode.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)
    sslmode = params.get('sslmode', [''])[0]

    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '60000',  # 1 minute
            'application_name': 'anarchybay',
        }
    }
    if sslmode in SSL_MODES or (parsed.hostname or '').endswith('.supabase.co'):
        kwargs['ssl'] = _get_ssl_context()
    elif sslmode == 'disable':
        kwargs['ssl'] = False

    return kwargs


@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None) -> None:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.

    Raises:
        ValueError: If database URL is not provided
        Exception: If initialization fails after retries
    """
    global _pool, _schema_manager

    if _pool:
        return

    try:
        # Import here to avoid circular imports
        from config import settings_conf

        url = db_url or settings_conf.get('db_url')
        if not url:
            raise ValueError("Database URL not provided")

        _pool = await asyncpg.create_pool(
            url,
            min_size=1,
            max_size=10,
            max_inactive_connection_lifetime=300.0,  # 5 minutes
            command_timeout=60.0,
            # Supabase's transaction pooler does not support prepared statements
            statement_cache_size=0,
            **_get_connection_kwargs(url)
        )

        _schema_manager = SchemaManager(_pool)
        await _schema_manager.initialize()
        logger.info(f"Database ready at schema version {_schema_manager.current_version}")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        if _pool:
            await _pool.close()
            _pool = None
        raise


async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.

    Returns:
        The connection pool

    Raises:
        RuntimeError: If pool hasn't been initialized
    """
    if not _pool:
        await init_db()
    if not _pool:
        raise RuntimeError("Failed to initialize database pool")
    return _pool


async def close() -> None:
    """Close the database connection pool."""
    global _pool, _schema_manager

    if _pool:
        await _pool.close()
        _pool = None
        _schema_manager = None


class PoolRepository:
    """Base for repositories backed by the shared connection pool."""

    def __init__(self, pool=None):
        """Initialize repository.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()


# Export public interface
__all__ = [
    'init_db',
    'get_pool',
    'close',
    'PoolRepository',
    'DatabaseError',
    'DatabaseSchemaError',
    'row_to_dict',
    'rows_to_dicts',
    'build_update',
]
