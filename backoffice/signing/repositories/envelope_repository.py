"""Envelope repository - sts_envelopes."""
from typing import Optional, Dict, Any, List

from core.base_repository import BaseRepository

_UPDATABLE = ('title', 'message', 'status', 'sent_at', 'completed_at', 'voided_at', 'void_reason')


class EnvelopeRepository(BaseRepository):

    def get_all(self, status: str = None, search: str = None) -> List[Dict[str, Any]]:
        """Most recently updated first, with document and recipient counts."""
        conditions = []
        params = []
        if status:
            conditions.append('e.status = %s')
            params.append(status)
        if search:
            conditions.append('(e.title ILIKE %s OR e.created_by ILIKE %s OR e.message ILIKE %s)')
            pattern = f'%{search}%'
            params.extend([pattern, pattern, pattern])
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ''

        return self.query_all(f'''
            SELECT e.*,
                   (SELECT COUNT(*) FROM sts_documents d WHERE d.envelope_id = e.id) AS document_count,
                   (SELECT COUNT(*) FROM sts_recipients r WHERE r.envelope_id = e.id) AS recipient_count,
                   (SELECT COUNT(*) FROM sts_recipients r
                     WHERE r.envelope_id = e.id AND r.role = 'signer' AND r.status = 'signed') AS signed_count
            FROM sts_envelopes e
            {where}
            ORDER BY e.updated_at DESC
        ''', tuple(params))

    def count_by_status(self) -> Dict[str, int]:
        rows = self.query_all('SELECT status, COUNT(*) AS count FROM sts_envelopes GROUP BY status')
        return {r['status']: r['count'] for r in rows}

    def get_by_id(self, envelope_id) -> Optional[Dict[str, Any]]:
        return self.query_one('SELECT * FROM sts_envelopes WHERE id = %s', (envelope_id,))

    def create(self, title: str, message: str = '', created_by: str = '') -> Dict[str, Any]:
        return self.execute('''
            INSERT INTO sts_envelopes (title, message, status, created_by)
            VALUES (%s, %s, 'draft', %s)
            RETURNING *
        ''', (title, message, created_by), returning=True)

    def update(self, envelope_id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        allowed = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if not allowed:
            return self.get_by_id(envelope_id)
        assignments = ', '.join(f'{k} = %s' for k in allowed)
        return self.execute(
            f'UPDATE sts_envelopes SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING *',
            (*allowed.values(), envelope_id), returning=True
        )

    def transition(self, envelope_id, from_statuses, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update only if the envelope is still in one of `from_statuses`.

        Returns the updated row, or None when the status moved underneath us.
        """
        allowed = {k: v for k, v in fields.items() if k in _UPDATABLE}
        assignments = ', '.join(f'{k} = %s' for k in allowed)
        return self.execute(
            f'''UPDATE sts_envelopes SET {assignments}, updated_at = NOW()
                WHERE id = %s AND status = ANY(%s) RETURNING *''',
            (*allowed.values(), envelope_id, list(from_statuses)), returning=True
        )

    def touch(self, envelope_id) -> int:
        return self.execute('UPDATE sts_envelopes SET updated_at = NOW() WHERE id = %s', (envelope_id,))

    def delete(self, envelope_id) -> bool:
        return self.execute('DELETE FROM sts_envelopes WHERE id = %s', (envelope_id,)) > 0
