"""Recipient repository - sts_recipients."""
from core.base_repository import BaseRepository

_UPDATABLE = ('name', 'email', 'role', 'signing_order', 'color_hex')


class RecipientRepository(BaseRepository):

    def get_for_envelope(self, envelope_id):
        return self.query_all('''
            SELECT * FROM sts_recipients
            WHERE envelope_id = %s
            ORDER BY signing_order, created_at
        ''', (envelope_id,))

    def get_by_id(self, recipient_id):
        return self.query_one('SELECT * FROM sts_recipients WHERE id = %s', (recipient_id,))

    def get_by_token(self, access_token):
        return self.query_one('SELECT * FROM sts_recipients WHERE access_token = %s', (access_token,))

    def create(self, envelope_id, name, email, role, signing_order, color_hex):
        """Insert; the database assigns a random access token."""
        return self.execute('''
            INSERT INTO sts_recipients (envelope_id, name, email, role, signing_order, color_hex)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
        ''', (envelope_id, name, email, role, signing_order, color_hex), returning=True)

    def update(self, recipient_id, fields):
        allowed = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if not allowed:
            return self.get_by_id(recipient_id)
        assignments = ', '.join(f'{k} = %s' for k in allowed)
        return self.execute(
            f'UPDATE sts_recipients SET {assignments}, updated_at = NOW() WHERE id = %s RETURNING *',
            (*allowed.values(), recipient_id), returning=True
        )

    def delete(self, recipient_id):
        return self.execute('DELETE FROM sts_recipients WHERE id = %s', (recipient_id,)) > 0

    def mark_viewed(self, recipient_id):
        """pending -> viewed. Returns True when the status changed."""
        return self.execute('''
            UPDATE sts_recipients SET status = 'viewed', viewed_at = NOW(), updated_at = NOW()
            WHERE id = %s AND status = 'pending'
        ''', (recipient_id,)) > 0

    def mark_declined(self, recipient_id, reason):
        return self.execute('''
            UPDATE sts_recipients
            SET status = 'declined', decline_reason = %s, updated_at = NOW()
            WHERE id = %s AND status IN ('pending', 'viewed')
            RETURNING *
        ''', (reason, recipient_id), returning=True)
