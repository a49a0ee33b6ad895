import os
import time
import uuid
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal

import psycopg2
from psycopg2 import pool
from psycopg2.extensions import register_adapter
from psycopg2.extras import RealDictCursor, UUID_adapter


logger = logging.getLogger('backoffice.database')

# Route ids arrive as uuid.UUID (Flask <uuid:...> converter)
register_adapter(uuid.UUID, UUID_adapter)

# PostgreSQL connection - DATABASE_URL is required
DATABASE_URL = os.environ.get('DATABASE_URL')

if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required. Set it to your PostgreSQL connection string.")

# Small pool: one kiosk tablet, a handful of admins, 2 gunicorn workers
_connection_pool = None
_pool_lock = threading.Lock()

POOL_MIN_CONN = int(os.environ.get('DB_POOL_MIN_CONN', '1'))
POOL_MAX_CONN = int(os.environ.get('DB_POOL_MAX_CONN', '6'))
POOL_GETCONN_TIMEOUT = int(os.environ.get('DB_POOL_TIMEOUT', '10'))


def _get_pool():
    """Get or create the connection pool (lazy initialization, thread-safe)."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                _connection_pool = pool.ThreadedConnectionPool(
                    minconn=POOL_MIN_CONN,
                    maxconn=POOL_MAX_CONN,
                    dsn=DATABASE_URL,
                    keepalives=1,
                    keepalives_idle=30,
                    keepalives_interval=10,
                    keepalives_count=5,
                    connect_timeout=5,
                )
                logger.info(f'Connection pool created: min={POOL_MIN_CONN}, max={POOL_MAX_CONN}')
    return _connection_pool


def _getconn_with_timeout(timeout=None):
    """Get connection from pool, giving up after `timeout` seconds.

    ThreadedConnectionPool.getconn() raises immediately when the pool is
    exhausted, so we poll until a connection frees up or the deadline passes.
    """
    if timeout is None:
        timeout = POOL_GETCONN_TIMEOUT

    deadline = time.monotonic() + timeout
    while True:
        try:
            return _get_pool().getconn()
        except pool.PoolError:
            if time.monotonic() >= deadline:
                raise psycopg2.OperationalError(
                    f"Connection pool exhausted, timed out after {timeout}s waiting for available connection"
                )
            time.sleep(0.1)


def get_db():
    """Get PostgreSQL database connection from pool.

    Validates connection health before returning. Stale connections (closed
    by the server) are discarded; up to 3 attempts are made.
    """
    max_retries = 3
    last_error = None

    for attempt in range(max_retries):
        conn = _getconn_with_timeout()

        try:
            with conn.cursor() as cur:
                cur.execute('SELECT 1')
            conn.rollback()
            conn.autocommit = True
            return conn
        except (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.DatabaseError) as e:
            last_error = e
            logger.warning(f'Stale connection discarded (attempt {attempt + 1}/{max_retries}): {e}')
            try:
                _get_pool().putconn(conn, close=True)
            except Exception:
                pass

    raise psycopg2.OperationalError(f"Failed to get valid connection after {max_retries} attempts: {last_error}")


def release_db(conn):
    """Return connection to pool.

    Broken connections are closed instead of being handed back.
    """
    if conn and _connection_pool:
        try:
            if conn.closed:
                _connection_pool.putconn(conn, close=True)
                return
            conn.autocommit = False
            _connection_pool.putconn(conn)
        except Exception:
            try:
                _connection_pool.putconn(conn, close=True)
            except Exception:
                pass


@contextmanager
def transaction():
    """Context manager for atomic database transactions.

    Usage:
        with transaction() as conn:
            cursor = get_cursor(conn)
            cursor.execute('UPDATE sts_recipients ...')
            cursor.execute('UPDATE sts_envelopes ...')
        # Auto-commits on success, auto-rollbacks on exception
    """
    conn = get_db()
    try:
        conn.autocommit = False
        yield conn
        conn.commit()
        logger.debug('Transaction committed successfully')
    except Exception as e:
        conn.rollback()
        logger.warning(f'Transaction rolled back: {e}')
        raise
    finally:
        release_db(conn)


_ping_cache = {'ok': False, 'ts': 0}


def ping_db():
    """Ping the database. Caches a positive result for 5 seconds.

    Returns True if successful, False otherwise.
    """
    now = time.time()
    if _ping_cache['ok'] and (now - _ping_cache['ts']) < 5:
        return True

    try:
        conn = get_db()
        try:
            with conn.cursor() as cur:
                cur.execute('SELECT 1')
            _ping_cache['ok'] = True
            _ping_cache['ts'] = now
            return True
        finally:
            release_db(conn)
    except Exception:
        _ping_cache['ok'] = False
        return False


def get_cursor(conn):
    """Get cursor with dict row factory."""
    return conn.cursor(cursor_factory=RealDictCursor)


def init_db():
    """Create tables, indexes and seed rows if the schema is missing.

    Delegates to migrations.init_schema.create_schema(). Skips when the
    `sts_envelopes` table already exists so worker start-up stays cheap.
    """
    with transaction() as conn:
        cursor = get_cursor(conn)
        cursor.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = 'sts_envelopes'
            )
        """)
        if cursor.fetchone()['exists']:
            logger.info('Database schema already initialized, skipping init_db()')
            return

        from migrations.init_schema import create_schema
        create_schema(conn, cursor)
    logger.info('Database schema initialized successfully')


def dict_from_row(row):
    """Convert a database row to a dictionary with ISO-formatted dates.

    UUIDs and Decimals are converted to str/float so rows serialize cleanly
    with jsonify().
    """
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
        elif isinstance(value, uuid.UUID):
            result[key] = str(value)
        elif isinstance(value, Decimal):
            result[key] = float(value)
    return result
