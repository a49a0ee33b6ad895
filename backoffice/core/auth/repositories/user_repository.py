"""User Repository - Data access layer for user operations."""
from typing import Optional, Dict, Any
from werkzeug.security import generate_password_hash, check_password_hash

from core.base_repository import BaseRepository

_USER_SELECT = '''
    SELECT u.*, r.name as role_name,
           r.can_access_commissions, r.can_access_timeclock_admin,
           r.can_access_signing, r.can_access_settings
    FROM users u
    LEFT JOIN roles r ON u.role_id = r.id
'''


class UserRepository(BaseRepository):
    """Repository for user data access operations."""

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Get a user by ID with role information."""
        return self.query_one(_USER_SELECT + ' WHERE u.id = %s', (user_id,))

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get a user by email address (case-insensitive) with role information."""
        return self.query_one(_USER_SELECT + ' WHERE LOWER(u.email) = LOWER(%s)', (email,))

    def create(self, email: str, name: str, password: str, role_id: int = None) -> Dict[str, Any]:
        return self.execute('''
            INSERT INTO users (email, name, password_hash, role_id)
            VALUES (%s, %s, %s, %s)
            RETURNING id, email, name, role_id, is_active
        ''', (email.strip().lower(), name, generate_password_hash(password), role_id), returning=True)

    def update_password(self, user_id: int, password: str) -> bool:
        """Update the password for a user."""
        password_hash = generate_password_hash(password)
        return self.execute('''
            UPDATE users SET password_hash = %s, updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
        ''', (password_hash, user_id)) > 0

    def update_last_login(self, user_id: int) -> bool:
        """Update the last login timestamp for a user."""
        return self.execute('''
            UPDATE users SET last_login = CURRENT_TIMESTAMP
            WHERE id = %s
        ''', (user_id,)) > 0

    def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Authenticate user by email and password."""
        user = self.get_by_email(email)
        if not user or not user.get('is_active', False) or not user.get('password_hash'):
            return None
        if not check_password_hash(user['password_hash'], password):
            return None
        return user

    def get_role_id(self, role_name: str) -> Optional[int]:
        row = self.query_one('SELECT id FROM roles WHERE name = %s', (role_name,))
        return row['id'] if row else None
