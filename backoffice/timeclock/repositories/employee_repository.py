"""Employee Repository - tc_employees."""
from typing import Optional, Dict, Any, List

from core.base_repository import BaseRepository
from database import dict_from_row


class EmployeeRepository(BaseRepository):

    def get_all(self, active_only: bool = False) -> List[Dict[str, Any]]:
        where = 'WHERE is_active = TRUE' if active_only else ''
        return self.query_all(f'''
            SELECT * FROM tc_employees {where}
            ORDER BY employee_number
        ''')

    def get_by_id(self, employee_id) -> Optional[Dict[str, Any]]:
        return self.query_one('SELECT * FROM tc_employees WHERE id = %s', (employee_id,))

    def get_active_by_number(self, employee_number: str) -> Optional[Dict[str, Any]]:
        return self.query_one('''
            SELECT * FROM tc_employees
            WHERE employee_number = %s AND is_active = TRUE
        ''', (employee_number,))

    def create(self, first_name: str, last_name: str, first_number: int = 1001) -> Dict[str, Any]:
        """Insert with the next free employee number (max numeric + 1).

        Serialized with a transaction-level advisory lock so two admins adding
        at once cannot draw the same number.
        """
        def _work(cursor):
            cursor.execute("SELECT pg_advisory_xact_lock(hashtext('tc_employees.employee_number'))")
            cursor.execute('''
                SELECT COALESCE(MAX(employee_number::int), %s) + 1 AS next_number
                FROM tc_employees
                WHERE employee_number ~ '^[0-9]+$'
            ''', (first_number - 1,))
            next_number = max(cursor.fetchone()['next_number'], first_number)
            cursor.execute('''
                INSERT INTO tc_employees (employee_number, first_name, last_name, is_active)
                VALUES (%s, %s, %s, TRUE)
                RETURNING *
            ''', (str(next_number), first_name, last_name))
            return cursor.fetchone()

        row = self.execute_many(_work)
        return dict_from_row(row)

    def set_active(self, employee_id, is_active: bool) -> Optional[Dict[str, Any]]:
        return self.execute('''
            UPDATE tc_employees SET is_active = %s
            WHERE id = %s
            RETURNING *
        ''', (is_active, employee_id), returning=True)
