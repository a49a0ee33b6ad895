"""Back-office core platform module.

Shared infrastructure used by every micro-app:
- Base repository over the connection pool
- Authentication (users, roles, permission flags)
- Logging and API helpers
"""
