"""Base Repository: shared connection handling for every table repository.

query_one(), query_all(), execute() and execute_many() take care of
get_db()/get_cursor()/release_db(), commit and rollback.

Usage:
    class JobRepository(BaseRepository):
        def get(self, job_id):
            return self.query_one('SELECT * FROM tc_jobs WHERE id = %s', (job_id,))

        def create(self, name):
            return self.execute(
                'INSERT INTO tc_jobs (name) VALUES (%s) RETURNING *',
                (name,), returning=True
            )

        def swap(self):
            def _work(cursor):
                cursor.execute('UPDATE ...')
                cursor.execute('INSERT ...')
                return cursor.fetchone()
            return self.execute_many(_work)
"""

from database import get_db, get_cursor, release_db, dict_from_row


class BaseRepository:

    def query_one(self, sql, params=None):
        """Execute a SELECT and return a single row as dict, or None."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            row = cursor.fetchone()
            return dict_from_row(row) if row else None
        finally:
            release_db(conn)

    def query_all(self, sql, params=None):
        """Execute a SELECT and return all rows as list of dicts."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            return [dict_from_row(r) for r in cursor.fetchall()]
        finally:
            release_db(conn)

    def execute(self, sql, params=None, returning=False):
        """Execute an INSERT/UPDATE/DELETE and commit.

        Args:
            sql: SQL statement
            params: Query parameters
            returning: If True, fetchone() and return dict. If False, return rowcount.

        Returns:
            dict if returning=True, else int (rowcount)
        """
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            if returning:
                result = cursor.fetchone()
                conn.commit()
                return dict_from_row(result) if result else None
            conn.commit()
            return cursor.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)

    def execute_many(self, callback):
        """Run several statements on one connection inside a single transaction.

        Args:
            callback: Function that receives (cursor) and returns a result.

        Returns:
            Whatever callback returns
        """
        conn = get_db()
        try:
            conn.autocommit = False
            cursor = get_cursor(conn)
            result = callback(cursor)
            conn.commit()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)
