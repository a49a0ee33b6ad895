"""Auth models.

User model for Flask-Login authentication.
"""
from flask_login import UserMixin

PERMISSION_FLAGS = (
    'can_access_commissions',
    'can_access_timeclock_admin',
    'can_access_signing',
    'can_access_settings',
)


class User(UserMixin):
    """User class for Flask-Login."""

    def __init__(self, user_data):
        self.id = user_data['id']
        self.email = user_data['email']
        self.name = user_data['name']
        self.role_id = user_data.get('role_id')
        self.role_name = user_data.get('role_name')
        self.is_active_user = user_data.get('is_active', True)

        # Role permissions
        self.can_access_commissions = bool(user_data.get('can_access_commissions', False))
        self.can_access_timeclock_admin = bool(user_data.get('can_access_timeclock_admin', False))
        self.can_access_signing = bool(user_data.get('can_access_signing', False))
        self.can_access_settings = bool(user_data.get('can_access_settings', False))

        self._permission_map = {
            'commissions.access': self.can_access_commissions,
            'timeclock.admin': self.can_access_timeclock_admin,
            'signing.access': self.can_access_signing,
            'system.settings': self.can_access_settings,
        }

    @property
    def is_active(self):
        return self.is_active_user

    def has_permission(self, module: str, permission: str = None) -> bool:
        """
        Check if user has a specific permission.
        Usage:
            user.has_permission('signing', 'access')
            user.has_permission('signing.access')
        """
        if permission is None and '.' in module:
            module, permission = module.split('.', 1)

        if self.can_access_settings:
            return True
        return self._permission_map.get(f'{module}.{permission}', False)

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role_id': self.role_id,
            'role_name': self.role_name,
            'is_active': self.is_active,
        }
        for flag in PERMISSION_FLAGS:
            data[flag] = getattr(self, flag)
        return data
