"""Time Clock.

Kiosk clock-in/clock-out by employee number plus admin reporting.
"""
from flask import Blueprint

timeclock_bp = Blueprint('timeclock', __name__)

from . import routes  # noqa: E402, F401
