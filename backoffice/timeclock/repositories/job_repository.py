"""Job Repository - tc_jobs (optional tag on a time entry)."""
from typing import Optional, Dict, Any, List

from core.base_repository import BaseRepository


class JobRepository(BaseRepository):

    def get_all(self, active_only: bool = False) -> List[Dict[str, Any]]:
        where = 'WHERE is_active = TRUE' if active_only else ''
        return self.query_all(f'SELECT * FROM tc_jobs {where} ORDER BY name')

    def get_by_id(self, job_id) -> Optional[Dict[str, Any]]:
        return self.query_one('SELECT * FROM tc_jobs WHERE id = %s', (job_id,))

    def create(self, name: str) -> Dict[str, Any]:
        return self.execute('''
            INSERT INTO tc_jobs (name, is_active) VALUES (%s, TRUE)
            RETURNING *
        ''', (name,), returning=True)

    def set_active(self, job_id, is_active: bool) -> Optional[Dict[str, Any]]:
        return self.execute('''
            UPDATE tc_jobs SET is_active = %s WHERE id = %s
            RETURNING *
        ''', (is_active, job_id), returning=True)
