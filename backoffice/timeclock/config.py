"""Time clock settings."""
import os
import re
from zoneinfo import ZoneInfo

# Day boundaries for reports are computed in the business's local time
TIMEZONE = ZoneInfo(os.environ.get('TIMECLOCK_TZ', 'UTC'))

STALE_AFTER_HOURS = 12
FIRST_EMPLOYEE_NUMBER = 1001
EMPLOYEE_NUMBER_RE = re.compile(r'^\d{1,4}$')

DEFAULT_OVERTIME = {'daily_threshold': 8, 'weekly_threshold': 40}
DEFAULT_LOCATION = {'name': 'R Alexander Barn', 'lat': None, 'lng': None, 'radius_meters': None}
