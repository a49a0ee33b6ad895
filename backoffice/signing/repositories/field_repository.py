"""Field repository - sts_fields, plus the atomic signing submission."""
from psycopg2.extras import Json

from core.base_repository import BaseRepository
from database import dict_from_row
from .audit_repository import INSERT_AUDIT_SQL, audit_params

_COLUMNS = ('document_id', 'recipient_id', 'field_type', 'page_number', 'x_position',
            'y_position', 'width', 'height', 'is_required', 'dropdown_options')
_UPDATABLE = ('page_number', 'x_position', 'y_position', 'width', 'height', 'is_required',
              'dropdown_options', 'recipient_id')

_INSERT_SQL = f'''
    INSERT INTO sts_fields (envelope_id, {', '.join(_COLUMNS)})
    VALUES (%s, {', '.join(['%s'] * len(_COLUMNS))})
    RETURNING *
'''


def _params(envelope_id, field):
    values = [field[c] for c in _COLUMNS]
    values[_COLUMNS.index('dropdown_options')] = Json(field.get('dropdown_options') or [])
    return (envelope_id, *values)


class FieldRepository(BaseRepository):

    def get_for_envelope(self, envelope_id):
        return self.query_all('''
            SELECT * FROM sts_fields WHERE envelope_id = %s
            ORDER BY page_number, y_position, x_position
        ''', (envelope_id,))

    def get_for_recipient(self, recipient_id):
        return self.query_all('''
            SELECT * FROM sts_fields WHERE recipient_id = %s
            ORDER BY page_number, y_position, x_position
        ''', (recipient_id,))

    def get_by_id(self, field_id):
        return self.query_one('SELECT * FROM sts_fields WHERE id = %s', (field_id,))

    def count_for_envelope(self, envelope_id):
        row = self.query_one('SELECT COUNT(*) AS count FROM sts_fields WHERE envelope_id = %s', (envelope_id,))
        return row['count'] if row else 0

    def create(self, envelope_id, field):
        return self.execute(_INSERT_SQL, _params(envelope_id, field), returning=True)

    def bulk_create(self, envelope_id, fields):
        """Insert several fields in one transaction."""
        def _work(cursor):
            created = []
            for field in fields:
                cursor.execute(_INSERT_SQL, _params(envelope_id, field))
                created.append(dict_from_row(cursor.fetchone()))
            return created
        return self.execute_many(_work)

    def update(self, field_id, changes):
        allowed = {k: v for k, v in changes.items() if k in _UPDATABLE}
        if not allowed:
            return self.get_by_id(field_id)
        if 'dropdown_options' in allowed:
            allowed['dropdown_options'] = Json(allowed['dropdown_options'] or [])
        assignments = ', '.join(f'{k} = %s' for k in allowed)
        return self.execute(
            f'UPDATE sts_fields SET {assignments} WHERE id = %s RETURNING *',
            (*allowed.values(), field_id), returning=True
        )

    def delete(self, field_id):
        return self.execute('DELETE FROM sts_fields WHERE id = %s', (field_id,)) > 0

    def submit_signing(self, envelope_id, recipient, values, ip_address=None):
        """Store a recipient's field values and advance the envelope.

        In one transaction: write values, mark the recipient signed, log
        `recipient_signed`, then move the envelope to `completed` (logging
        `envelope_completed`) when every signer has signed, else to
        `in_progress`. Returns the new envelope status, or None when the
        recipient was no longer eligible to sign.
        """
        def _work(cursor):
            cursor.execute('''
                SELECT status FROM sts_envelopes WHERE id = %s FOR UPDATE
            ''', (envelope_id,))
            envelope = cursor.fetchone()
            if not envelope or envelope['status'] not in ('sent', 'in_progress'):
                return None

            cursor.execute('''
                UPDATE sts_recipients SET status = 'signed', signed_at = NOW(), updated_at = NOW()
                WHERE id = %s AND status IN ('pending', 'viewed')
            ''', (recipient['id'],))
            if cursor.rowcount == 0:
                return None

            for field_id, value in values.items():
                cursor.execute('''
                    UPDATE sts_fields SET field_value = %s
                    WHERE id = %s AND recipient_id = %s
                ''', (value, field_id, recipient['id']))

            cursor.execute(INSERT_AUDIT_SQL, audit_params(
                envelope_id, 'recipient_signed', recipient['name'], recipient['email'],
                recipient['id'], {'field_count': len(values)}, ip_address,
            ))

            cursor.execute('''
                SELECT COUNT(*) AS pending FROM sts_recipients
                WHERE envelope_id = %s AND role = 'signer' AND status <> 'signed'
            ''', (envelope_id,))
            if cursor.fetchone()['pending'] == 0:
                cursor.execute('''
                    UPDATE sts_envelopes SET status = 'completed', completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s
                ''', (envelope_id,))
                cursor.execute(INSERT_AUDIT_SQL, audit_params(
                    envelope_id, 'envelope_completed', 'System', '', None, {}, None,
                ))
                return 'completed'

            cursor.execute('''
                UPDATE sts_envelopes SET status = 'in_progress', updated_at = NOW()
                WHERE id = %s
            ''', (envelope_id,))
            return 'in_progress'

        return self.execute_many(_work)
