"""Settings Repository - tc_settings key/JSON rows."""
from typing import Optional, Dict, Any

from psycopg2.extras import Json

from core.base_repository import BaseRepository


class SettingsRepository(BaseRepository):

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        row = self.query_one('SELECT setting_value FROM tc_settings WHERE setting_key = %s', (key,))
        return row['setting_value'] if row else None

    def get_all(self) -> Dict[str, Any]:
        rows = self.query_all('SELECT setting_key, setting_value FROM tc_settings')
        return {r['setting_key']: r['setting_value'] for r in rows}

    def save(self, key: str, value: Dict[str, Any]) -> Dict[str, Any]:
        row = self.execute('''
            INSERT INTO tc_settings (setting_key, setting_value, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (setting_key) DO UPDATE SET
                setting_value = EXCLUDED.setting_value,
                updated_at = NOW()
            RETURNING setting_value
        ''', (key, Json(value)), returning=True)
        return row['setting_value']
