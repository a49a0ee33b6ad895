"""Time clock repositories package."""
from .employee_repository import EmployeeRepository
from .entry_repository import TimeEntryRepository
from .job_repository import JobRepository
from .settings_repository import SettingsRepository

__all__ = ['EmployeeRepository', 'TimeEntryRepository', 'JobRepository', 'SettingsRepository']
