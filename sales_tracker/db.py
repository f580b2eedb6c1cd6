# sales_tracker/db.py
"""
Database Connection Management

Version: 2.1.0
Features:
- Singleton pattern with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check utilities
- Table definitions for users and credentials
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Integer, MetaData, String, Table,
    create_engine, text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError
from urllib.parse import quote_plus
import logging
import threading
from typing import Tuple, Optional, Dict, Any
from contextlib import contextmanager

from .config import config

logger = logging.getLogger(__name__)

# ==================== SCHEMA ====================

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(64), nullable=False, unique=True, index=True),
    Column("name", String(128), nullable=False),
    Column("email", String(255), nullable=True),
    Column("role", String(32), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("team_id", Integer, nullable=True, index=True),
    Column("is_hidden", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

# One row per username; `format` is 'plain' for legacy cleartext rows
user_passwords_table = Table(
    "user_passwords",
    metadata,
    Column("username", String(64), primary_key=True),
    Column("secret", String(255), nullable=False),
    Column("format", String(16), nullable=False, default="hashed"),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)


def ensure_schema(engine: Optional[Engine] = None) -> None:
    """Create the users / user_passwords tables if they do not exist"""
    engine = engine or get_db_engine()
    metadata.create_all(engine)
    logger.info("✅ Schema verified (users, user_passwords)")


# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.
    Reuses the same engine across all calls to prevent
    connection pool exhaustion.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def build_database_url(db_config: Dict[str, Any]) -> str:
    """Build the connection URL, DATABASE_URL wins over the DB_* parts"""
    if db_config.get("url"):
        return db_config["url"]

    if not all([db_config.get("host"), db_config.get("user"), db_config.get("password")]):
        raise ValueError("Missing required database configuration. Please check .env file.")

    user = db_config["user"]
    password = quote_plus(str(db_config["password"]))
    host = db_config["host"]
    port = db_config["port"]
    database = db_config["database"]

    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


def _create_engine() -> Engine:
    """Create new database engine with configured settings"""
    db_config = config.get_db_config()
    app_config = config.app_config

    url = build_database_url(db_config)

    if url.startswith("sqlite"):
        logger.info("🔌 Creating database engine: sqlite")
        return create_engine(url, echo=False)

    logger.info(f"🔌 Creating database engine: {url.split('://')[0]}://{db_config['user']}:***@{db_config['host']}")

    pool_size = app_config.get("DB_POOL_SIZE", 5)
    pool_recycle = app_config.get("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine: Optional[Engine] = None) -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        error_msg = "Cannot connect to database. Please check your network/VPN connection."
        logger.error(f"❌ Database connection failed: {e}")
        return False, error_msg
    except Exception as e:
        error_msg = f"Database error: {str(e)}"
        logger.error(f"❌ Database error: {e}")
        return False, error_msg


def reset_db_engine():
    """
    Reset the database engine (force new connection)

    Call this after persistent connection errors or
    when you need to reconnect with different settings.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            try:
                _engine.dispose()
                logger.info("🔄 Database engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            _engine = None

    logger.info("🔄 Database engine reset - will reconnect on next query")


def get_connection_pool_status() -> Dict[str, Any]:
    """
    Get connection pool statistics for monitoring

    Returns:
        Dictionary with pool statistics
    """
    if _engine is None:
        return {"status": "not_initialized"}

    try:
        pool = _engine.pool
        if not isinstance(pool, QueuePool):
            return {"status": "active", "pool": type(pool).__name__}
        return {
            "status": "active",
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


# ==================== CONTEXT MANAGERS ====================

@contextmanager
def get_connection(engine: Optional[Engine] = None):
    """
    Context manager for database connections

    Usage:
        with get_connection() as conn:
            result = conn.execute(select(users_table))
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def get_transaction(engine: Optional[Engine] = None):
    """
    Context manager for database transactions

    Usage:
        with get_transaction() as conn:
            conn.execute(users_table.insert().values(...))
            conn.execute(user_passwords_table.insert().values(...))
            # Auto-commit on success, auto-rollback on exception
    """
    engine = engine or get_db_engine()
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
        trans.commit()
    except Exception:
        trans.rollback()
        raise
    finally:
        conn.close()


# ==================== EXPORTS ====================

__all__ = [
    'metadata',
    'users_table',
    'user_passwords_table',
    'ensure_schema',
    'get_db_engine',
    'build_database_url',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
    'get_connection',
    'get_transaction',
]
