"""Back-office authentication module.

Handles login/logout and the role flags that gate each micro-app.
"""
from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from . import routes  # noqa: E402, F401
