"""Template repository - sts_templates."""
from psycopg2.extras import Json

from core.base_repository import BaseRepository


class TemplateRepository(BaseRepository):

    def get_all(self):
        return self.query_all('SELECT * FROM sts_templates ORDER BY updated_at DESC')

    def get_by_id(self, template_id):
        return self.query_one('SELECT * FROM sts_templates WHERE id = %s', (template_id,))

    def create(self, name, description, envelope_config):
        return self.execute('''
            INSERT INTO sts_templates (name, description, envelope_config)
            VALUES (%s, %s, %s)
            RETURNING *
        ''', (name, description, Json(envelope_config)), returning=True)

    def update(self, template_id, name, description, envelope_config):
        return self.execute('''
            UPDATE sts_templates
            SET name = %s, description = %s, envelope_config = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        ''', (name, description, Json(envelope_config), template_id), returning=True)

    def delete(self, template_id):
        return self.execute('DELETE FROM sts_templates WHERE id = %s', (template_id,)) > 0
