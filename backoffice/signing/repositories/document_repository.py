"""Document repository - sts_documents."""
from core.base_repository import BaseRepository


class DocumentRepository(BaseRepository):

    def get_for_envelope(self, envelope_id):
        return self.query_all('''
            SELECT * FROM sts_documents
            WHERE envelope_id = %s
            ORDER BY sort_order, created_at
        ''', (envelope_id,))

    def get_by_id(self, document_id):
        return self.query_one('SELECT * FROM sts_documents WHERE id = %s', (document_id,))

    def create(self, envelope_id, file_name, file_path, file_size, page_count, file_hash):
        """Append at the end of the envelope's document order."""
        return self.execute('''
            INSERT INTO sts_documents
                (envelope_id, file_name, file_path, file_size, page_count, file_hash, sort_order)
            VALUES (%s, %s, %s, %s, %s, %s,
                    (SELECT COALESCE(MAX(sort_order) + 1, 0) FROM sts_documents WHERE envelope_id = %s))
            RETURNING *
        ''', (envelope_id, file_name, file_path, file_size, page_count, file_hash, envelope_id),
            returning=True)

    def delete(self, document_id):
        """Delete and return the removed row (fields cascade)."""
        return self.execute('DELETE FROM sts_documents WHERE id = %s RETURNING *', (document_id,), returning=True)
