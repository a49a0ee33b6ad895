"""Commission cache repository.

One row per date range (`"{start}_{end}"`) holding the full rollup as JSONB.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from psycopg2.extras import Json

from core.base_repository import BaseRepository


def date_range_key(start_date, end_date) -> str:
    return f'{start_date}_{end_date}'


class CommissionCacheRepository(BaseRepository):

    def get_fresh(self, key: str) -> Optional[Dict[str, Any]]:
        """Cached results for `key` if the row has not expired yet."""
        row = self.query_one('''
            SELECT results, fetched_at, expires_at
            FROM phorest_commission_cache
            WHERE date_range_key = %s AND expires_at > NOW()
        ''', (key,))
        return row['results'] if row else None

    def upsert(self, key: str, results: Dict[str, Any], ttl_hours: int = 1) -> bool:
        now = datetime.now(timezone.utc)
        return self.execute('''
            INSERT INTO phorest_commission_cache (date_range_key, results, fetched_at, expires_at)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (date_range_key) DO UPDATE SET
                results = EXCLUDED.results,
                fetched_at = EXCLUDED.fetched_at,
                expires_at = EXCLUDED.expires_at
        ''', (key, Json(results), now, now + timedelta(hours=ttl_hours))) > 0

    def delete_expired(self) -> int:
        """Remove expired rows. Returns number of rows deleted."""
        return self.execute('DELETE FROM phorest_commission_cache WHERE expires_at <= NOW()')

    def clear(self) -> int:
        return self.execute('DELETE FROM phorest_commission_cache')
