"""Audit log repository - sts_audit_log (append-only)."""
from psycopg2.extras import Json

from core.base_repository import BaseRepository

INSERT_AUDIT_SQL = '''
    INSERT INTO sts_audit_log
        (envelope_id, event_type, actor_name, actor_email, recipient_id, metadata, ip_address)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    RETURNING *
'''


def audit_params(envelope_id, event_type, actor_name='', actor_email='',
                 recipient_id=None, metadata=None, ip_address=None):
    return (envelope_id, event_type, actor_name or '', actor_email or '',
            recipient_id, Json(metadata or {}), ip_address)


class AuditRepository(BaseRepository):

    def log(self, envelope_id, event_type, actor_name='', actor_email='',
            recipient_id=None, metadata=None, ip_address=None):
        return self.execute(INSERT_AUDIT_SQL, audit_params(
            envelope_id, event_type, actor_name, actor_email, recipient_id, metadata, ip_address,
        ), returning=True)

    def get_for_envelope(self, envelope_id):
        """Entries oldest first."""
        return self.query_all('''
            SELECT * FROM sts_audit_log
            WHERE envelope_id = %s
            ORDER BY created_at ASC, id
        ''', (envelope_id,))
