"""Business logic for the kiosk and the time clock admin panel."""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from ..config import (
    TIMEZONE, EMPLOYEE_NUMBER_RE, FIRST_EMPLOYEE_NUMBER, STALE_AFTER_HOURS,
    DEFAULT_OVERTIME, DEFAULT_LOCATION,
)
from ..repositories import EmployeeRepository, TimeEntryRepository, JobRepository, SettingsRepository
from . import reports
from core.utils.api_helpers import is_uuid

logger = logging.getLogger('backoffice.timeclock.service')


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: int = 200


def _positive_number(value, default, label):
    if value is None or value == '':
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f'{label} must be a number')
    if number <= 0:
        raise ValueError(f'{label} must be greater than zero')
    return int(number) if number.is_integer() else number


def _optional_number(value, label):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f'{label} must be a number')


class TimeClockService:

    def __init__(self, tz=TIMEZONE):
        self.employee_repo = EmployeeRepository()
        self.entry_repo = TimeEntryRepository()
        self.job_repo = JobRepository()
        self.settings_repo = SettingsRepository()
        self.tz = tz

    # ============== Kiosk ==============

    def _find_employee(self, employee_number):
        number = str(employee_number or '').strip()
        if not EMPLOYEE_NUMBER_RE.match(number):
            return None, ServiceResult(success=False, error='Employee number must be 1-4 digits', status_code=400)
        employee = self.employee_repo.get_active_by_number(number)
        if not employee:
            return None, ServiceResult(success=False, error='Employee not found', status_code=404)
        return employee, None

    def lookup(self, employee_number):
        employee, error = self._find_employee(employee_number)
        if error:
            return error
        open_entry = self.entry_repo.get_open_entry(employee['id'])
        return ServiceResult(success=True, data={'employee': employee, 'openEntry': open_entry})

    def clock_in(self, employee_number, job_id=None):
        employee, error = self._find_employee(employee_number)
        if error:
            return error

        if job_id:
            job = self.job_repo.get_by_id(job_id) if is_uuid(job_id) else None
            if not job or not job.get('is_active'):
                return ServiceResult(success=False, error='Job not found or inactive', status_code=400)

        entry = self.entry_repo.clock_in(employee['id'], job_id or None)
        if entry is None:
            return ServiceResult(success=False, error='Already clocked in', status_code=409)

        logger.info(f"Employee {employee['employee_number']} clocked in")
        return ServiceResult(success=True, data={'employee': employee, 'entry': entry}, status_code=201)

    def clock_out(self, employee_number):
        employee, error = self._find_employee(employee_number)
        if error:
            return error

        open_entry = self.entry_repo.get_open_entry(employee['id'])
        if not open_entry:
            return ServiceResult(success=False, error='Not clocked in', status_code=409)

        entry = self.entry_repo.clock_out(open_entry['id'])
        if not entry:
            return ServiceResult(success=False, error='Not clocked in', status_code=409)

        hours = reports.round2(reports.entry_hours(entry))
        logger.info(f"Employee {employee['employee_number']} clocked out after {hours}h")
        return ServiceResult(success=True, data={'employee': employee, 'entry': entry, 'hours': hours})

    # ============== Employees & jobs ==============

    def list_employees(self):
        return self.employee_repo.get_all()

    def add_employee(self, first_name, last_name):
        first_name = (first_name or '').strip()
        last_name = (last_name or '').strip()
        if not first_name or not last_name:
            return ServiceResult(success=False, error='First and last name are required', status_code=400)
        employee = self.employee_repo.create(first_name, last_name, first_number=FIRST_EMPLOYEE_NUMBER)
        logger.info(f"Added employee #{employee['employee_number']}")
        return ServiceResult(success=True, data=employee, status_code=201)

    def set_employee_active(self, employee_id, is_active):
        employee = self.employee_repo.set_active(employee_id, bool(is_active))
        if not employee:
            return ServiceResult(success=False, error='Employee not found', status_code=404)
        return ServiceResult(success=True, data=employee)

    def list_jobs(self, active_only=False):
        return self.job_repo.get_all(active_only=active_only)

    def add_job(self, name):
        name = (name or '').strip()
        if not name:
            return ServiceResult(success=False, error='Job name is required', status_code=400)
        return ServiceResult(success=True, data=self.job_repo.create(name), status_code=201)

    def set_job_active(self, job_id, is_active):
        job = self.job_repo.set_active(job_id, bool(is_active))
        if not job:
            return ServiceResult(success=False, error='Job not found', status_code=404)
        return ServiceResult(success=True, data=job)

    # ============== Entries ==============

    def update_entry(self, entry_id, clock_out=None, notes=None):
        entry = self.entry_repo.get_by_id(entry_id)
        if not entry:
            return ServiceResult(success=False, error='Time entry not found', status_code=404)

        fields = {}
        if clock_out is not None:
            try:
                clock_out_dt = reports.to_datetime(clock_out)
            except ValueError:
                return ServiceResult(success=False, error='clock_out must be an ISO date-time', status_code=400)
            if clock_out_dt <= reports.to_datetime(entry['clock_in']):
                return ServiceResult(success=False, error='Clock out must be after clock in', status_code=400)
            fields['clock_out'] = clock_out_dt
        if notes is not None:
            fields['notes'] = str(notes)

        updated = self.entry_repo.update(entry_id, fields)
        return ServiceResult(success=True, data=updated)

    def stale_open_entries(self, now=None):
        now = now or datetime.now(timezone.utc)
        return self.entry_repo.get_open_before(now - timedelta(hours=STALE_AFTER_HOURS))

    # ============== Settings ==============

    def get_overtime(self):
        return {**DEFAULT_OVERTIME, **(self.settings_repo.get('overtime') or {})}

    def get_location(self):
        return {**DEFAULT_LOCATION, **(self.settings_repo.get('location') or {})}

    def get_settings(self):
        return {'overtime': self.get_overtime(), 'location': self.get_location()}

    def update_overtime(self, data):
        """Blank thresholds fall back to the 8h/40h defaults."""
        value = {
            'daily_threshold': _positive_number(
                data.get('daily_threshold'), DEFAULT_OVERTIME['daily_threshold'], 'Daily threshold'),
            'weekly_threshold': _positive_number(
                data.get('weekly_threshold'), DEFAULT_OVERTIME['weekly_threshold'], 'Weekly threshold'),
        }
        return self.settings_repo.save('overtime', value)

    def update_location(self, data):
        value = {
            'name': (data.get('name') or DEFAULT_LOCATION['name']).strip(),
            'lat': _optional_number(data.get('lat'), 'Latitude'),
            'lng': _optional_number(data.get('lng'), 'Longitude'),
            'radius_meters': _optional_number(data.get('radius_meters'), 'Radius'),
        }
        if value['lat'] is not None and not -90 <= value['lat'] <= 90:
            raise ValueError('Latitude must be between -90 and 90')
        if value['lng'] is not None and not -180 <= value['lng'] <= 180:
            raise ValueError('Longitude must be between -180 and 180')
        if value['radius_meters'] is not None and value['radius_meters'] <= 0:
            raise ValueError('Radius must be greater than zero')
        return self.settings_repo.save('location', value)

    # ============== Reports ==============

    def _entries_for_days(self, first_day, last_day):
        start, _ = reports.day_bounds(first_day, self.tz)
        _, end = reports.day_bounds(last_day, self.tz)
        return self.entry_repo.get_between(start, end)

    def daily_report(self, day: date):
        overtime = self.get_overtime()
        rows = reports.daily_report(
            self.employee_repo.get_all(), self._entries_for_days(day, day),
            day, overtime['daily_threshold'], tz=self.tz,
        )
        return {'date': day.isoformat(), 'overtime': overtime, 'rows': rows}

    def weekly_report(self, any_day: date):
        overtime = self.get_overtime()
        monday, sunday = reports.week_range(any_day)
        summary = reports.weekly_summary(
            self.employee_repo.get_all(), self._entries_for_days(monday, sunday), monday,
            overtime['daily_threshold'], overtime['weekly_threshold'], tz=self.tz,
        )
        summary['overtime'] = overtime
        return summary

    def monthly_report(self, year: int, month: int):
        if not 1 <= month <= 12:
            raise ValueError('month must be between 1 and 12')
        weeks = reports.month_weeks(year, month)
        return reports.monthly_summary(
            self.employee_repo.get_all(), self._entries_for_days(weeks[0][0], weeks[-1][1]),
            year, month, tz=self.tz,
        )
