"""Database module for managing connections to PostgreSQL / CockroachDB.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import json
import logging
import ssl
from typing import Optional, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, urlunparse

from .exceptions import DatabaseError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for managed cluster connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(use_ssl: bool) -> Dict[str, Any]:
    """Get connection kwargs shared by the pool and maintenance connections.
    
    Args:
        use_ssl: Whether to connect with a verified TLS context
        
    Returns:
        Dict of connection parameters
    """
    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '300000',  # 5 minutes
        }
    }
    if use_ssl:
        kwargs['ssl'] = _get_ssl_context()
    return kwargs

async def _init_connection(conn: asyncpg.Connection) -> None:
    """Register JSON codecs so JSONB columns round-trip as Python objects."""
    for type_name in ('json', 'jsonb'):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema='pg_catalog'
        )

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def create_database_if_not_exists(db_url: str, use_ssl: bool = False) -> None:
    """Create the database named in the URL if it doesn't exist.
    
    Args:
        db_url: Database connection URL
        use_ssl: Whether to connect with TLS
        
    Raises:
        Exception: If database creation fails after retries
    """
    parsed = urlparse(db_url)
    db_name = parsed.path.strip('/')
    if not db_name:
        return
    
    # Connect to the maintenance database present on both PostgreSQL and CockroachDB
    base_url = urlunparse(parsed._replace(path='/postgres'))
    logger.info(f"Connecting to maintenance database to create {db_name} if needed")
    
    conn = await asyncpg.connect(base_url, **_get_connection_kwargs(use_ssl))
    try:
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = $1)',
            db_name
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Created database {db_name}")
    except Exception as e:
        logger.error(f"Error creating database: {e}")
        raise
    finally:
        await conn.close()

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None, force_recreate: bool = False) -> None:
    """Initialize the database connection pool and schema.
    
    Args:
        db_url: Optional database URL. If not provided, will use settings.
        force_recreate: If True, drop and recreate all tables
        
    Raises:
        ValueError: If database URL is not provided
        Exception: If initialization fails after retries
    """
    global _pool, _schema_manager
    
    if _pool is not None and not force_recreate:
        return
    
    # Import here to avoid circular imports
    from config import settings_conf
    
    url = db_url or settings_conf.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")
    use_ssl = settings_conf.get('db_ssl', False)
    
    try:
        await create_database_if_not_exists(url, use_ssl)
        
        if _pool is not None:
            await _pool.close()
        
        _pool = await asyncpg.create_pool(
            url,
            min_size=settings_conf.get('db_min_pool', 2),
            max_size=settings_conf.get('db_max_pool', 20),
            max_queries=10000,   # Reset connection after this many queries
            max_inactive_connection_lifetime=300.0,  # 5 minutes
            command_timeout=60.0,  # 1 minute command timeout
            init=_init_connection,
            **_get_connection_kwargs(use_ssl)
        )
        
        _schema_manager = SchemaManager(_pool)
        
        if force_recreate:
            logger.info("Force recreate requested. Resetting schema version...")
            async with _pool.acquire() as conn:
                await conn.execute('DROP TABLE IF EXISTS schema_version')
                
        await _schema_manager.initialize()
        
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
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

def paginate(page: int, limit: int, total: int) -> Dict[str, int]:
    """Build the pagination block returned by list queries."""
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': (total + limit - 1) // limit if limit else 0
    }

# Export public interface
__all__ = ['init_db', 'get_pool', 'close', 'paginate', 'DatabaseError', 'DatabaseSchemaError']
