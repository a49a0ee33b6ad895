"""Time Entry Repository - tc_time_entries."""
from typing import Optional, Dict, Any, List

from core.base_repository import BaseRepository
from database import dict_from_row

_ENTRY_SELECT = '''
    SELECT t.*, j.name AS job_name
    FROM tc_time_entries t
    LEFT JOIN tc_jobs j ON t.job_id = j.id
'''


class TimeEntryRepository(BaseRepository):

    def get_by_id(self, entry_id) -> Optional[Dict[str, Any]]:
        return self.query_one(_ENTRY_SELECT + ' WHERE t.id = %s', (entry_id,))

    def get_open_entry(self, employee_id) -> Optional[Dict[str, Any]]:
        """Most recent entry without a clock-out."""
        return self.query_one(_ENTRY_SELECT + '''
            WHERE t.employee_id = %s AND t.clock_out IS NULL
            ORDER BY t.clock_in DESC
            LIMIT 1
        ''', (employee_id,))

    def get_between(self, start, end) -> List[Dict[str, Any]]:
        """Entries whose clock_in falls in [start, end)."""
        return self.query_all(_ENTRY_SELECT + '''
            WHERE t.clock_in >= %s AND t.clock_in < %s
            ORDER BY t.clock_in
        ''', (start, end))

    def get_open_before(self, cutoff) -> List[Dict[str, Any]]:
        return self.query_all('''
            SELECT t.*, e.employee_number, e.first_name, e.last_name
            FROM tc_time_entries t
            JOIN tc_employees e ON t.employee_id = e.id
            WHERE t.clock_out IS NULL AND t.clock_in < %s
            ORDER BY t.clock_in
        ''', (cutoff,))

    def clock_in(self, employee_id, job_id=None) -> Optional[Dict[str, Any]]:
        """Open a new entry unless one is already open.

        The employee row is locked for the duration so a double tap on the
        kiosk cannot create two open entries. Returns None when an entry is
        already open.
        """
        def _work(cursor):
            cursor.execute('SELECT id FROM tc_employees WHERE id = %s FOR UPDATE', (employee_id,))
            cursor.execute('''
                SELECT id FROM tc_time_entries
                WHERE employee_id = %s AND clock_out IS NULL
                LIMIT 1
            ''', (employee_id,))
            if cursor.fetchone():
                return None
            cursor.execute('''
                INSERT INTO tc_time_entries (employee_id, job_id, clock_in)
                VALUES (%s, %s, NOW())
                RETURNING *
            ''', (employee_id, job_id))
            return cursor.fetchone()

        row = self.execute_many(_work)
        return dict_from_row(row) if row else None

    def clock_out(self, entry_id) -> Optional[Dict[str, Any]]:
        return self.execute('''
            UPDATE tc_time_entries SET clock_out = NOW()
            WHERE id = %s AND clock_out IS NULL
            RETURNING *
        ''', (entry_id,), returning=True)

    def update(self, entry_id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update clock_out and/or notes."""
        allowed = {k: v for k, v in fields.items() if k in ('clock_out', 'notes')}
        if not allowed:
            return self.get_by_id(entry_id)
        assignments = ', '.join(f'{k} = %s' for k in allowed)
        return self.execute(
            f'UPDATE tc_time_entries SET {assignments} WHERE id = %s RETURNING *',
            (*allowed.values(), entry_id), returning=True
        )
