"""Saved signature repository - sts_signatures."""
from core.base_repository import BaseRepository
from database import dict_from_row


class SavedSignatureRepository(BaseRepository):

    def get_all(self):
        return self.query_all('SELECT * FROM sts_signatures ORDER BY created_at DESC')

    def create(self, name, sig_type, method, data_url, font_family=None, is_default=False):
        """Insert; a new default replaces the previous default of the same type."""
        def _work(cursor):
            if is_default:
                cursor.execute('''
                    UPDATE sts_signatures SET is_default = FALSE
                    WHERE type = %s AND is_default = TRUE
                ''', (sig_type,))
            cursor.execute('''
                INSERT INTO sts_signatures (name, type, method, data_url, font_family, is_default)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING *
            ''', (name, sig_type, method, data_url, font_family, is_default))
            return cursor.fetchone()

        row = self.execute_many(_work)
        return dict_from_row(row)

    def delete(self, signature_id):
        return self.execute('DELETE FROM sts_signatures WHERE id = %s', (signature_id,)) > 0
