"""Time Clock routes.

Kiosk endpoints are open (shared tablet, employee number only); everything
under /api/admin requires can_access_timeclock_admin.
"""
import logging
from datetime import datetime

from flask import jsonify, request, Response

from . import timeclock_bp
from .config import TIMEZONE
from .services.timeclock_service import TimeClockService
from .services import export
from core.utils.api_helpers import (
    permission_required, get_json_or_error, error_response, safe_error_response,
    parse_iso_date, client_ip, RateLimiter,
)

logger = logging.getLogger('backoffice.timeclock.routes')

_service = TimeClockService()
_kiosk_limiter = RateLimiter()

admin_only = permission_required('can_access_timeclock_admin')


def _result_response(result):
    if not result.success:
        return error_response(result.error, result.status_code)
    return jsonify({'success': True, 'data': result.data}), result.status_code


def _kiosk_throttled():
    allowed, retry_after = _kiosk_limiter.is_allowed(
        f'kiosk:{client_ip()}', max_requests=30, window_seconds=60)
    if not allowed:
        return error_response(f'Too many attempts. Try again in {retry_after} seconds.', 429)
    return None


def _csv_response(filename, content):
    return Response(
        content,
        mimetype='text/csv',
        headers={
            'Content-Disposition': f'attachment; filename={filename}',
            'Content-Type': 'text/csv; charset=utf-8'
        }
    )


def _report_day(param='date'):
    value = request.args.get(param)
    if not value:
        return datetime.now(TIMEZONE).date()
    return parse_iso_date(value, param)


def _report_month():
    today = datetime.now(TIMEZONE).date()
    year = request.args.get('year', default=today.year, type=int)
    month = request.args.get('month', default=today.month, type=int)
    return year, month


# ============== Kiosk ==============

@timeclock_bp.route('/api/kiosk/lookup', methods=['POST'])
def api_kiosk_lookup():
    throttled = _kiosk_throttled()
    if throttled:
        return throttled
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.lookup(data.get('employee_number')))
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/kiosk/jobs', methods=['GET'])
def api_kiosk_jobs():
    """Active jobs for the clock-in picker."""
    try:
        return jsonify({'success': True, 'data': _service.list_jobs(active_only=True)})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/kiosk/clock-in', methods=['POST'])
def api_kiosk_clock_in():
    throttled = _kiosk_throttled()
    if throttled:
        return throttled
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.clock_in(data.get('employee_number'), data.get('job_id')))
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/kiosk/clock-out', methods=['POST'])
def api_kiosk_clock_out():
    throttled = _kiosk_throttled()
    if throttled:
        return throttled
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.clock_out(data.get('employee_number')))
    except Exception as e:
        return safe_error_response(e)


# ============== Admin: employees ==============

@timeclock_bp.route('/api/admin/employees', methods=['GET'])
@admin_only
def api_list_employees():
    try:
        return jsonify({'success': True, 'data': _service.list_employees()})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/employees', methods=['POST'])
@admin_only
def api_add_employee():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.add_employee(data.get('first_name'), data.get('last_name')))
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/employees/<uuid:employee_id>/active', methods=['PUT'])
@admin_only
def api_set_employee_active(employee_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.set_employee_active(employee_id, data.get('is_active')))
    except Exception as e:
        return safe_error_response(e)


# ============== Admin: jobs ==============

@timeclock_bp.route('/api/admin/jobs', methods=['GET'])
@admin_only
def api_list_jobs():
    try:
        return jsonify({'success': True, 'data': _service.list_jobs()})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/jobs', methods=['POST'])
@admin_only
def api_add_job():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.add_job(data.get('name')))
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/jobs/<uuid:job_id>/active', methods=['PUT'])
@admin_only
def api_set_job_active(job_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.set_job_active(job_id, data.get('is_active')))
    except Exception as e:
        return safe_error_response(e)


# ============== Admin: entries ==============

@timeclock_bp.route('/api/admin/entries/<uuid:entry_id>', methods=['PUT'])
@admin_only
def api_update_entry(entry_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_service.update_entry(entry_id, data.get('clock_out'), data.get('notes')))
    except Exception as e:
        return safe_error_response(e)


# ============== Admin: settings ==============

@timeclock_bp.route('/api/admin/settings', methods=['GET'])
@admin_only
def api_get_settings():
    try:
        return jsonify({'success': True, 'data': _service.get_settings()})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/settings/overtime', methods=['PUT'])
@admin_only
def api_update_overtime():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return jsonify({'success': True, 'data': _service.update_overtime(data)})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/settings/location', methods=['PUT'])
@admin_only
def api_update_location():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return jsonify({'success': True, 'data': _service.update_location(data)})
    except Exception as e:
        return safe_error_response(e)


# ============== Admin: reports ==============

@timeclock_bp.route('/api/admin/reports/daily', methods=['GET'])
@admin_only
def api_daily_report():
    try:
        return jsonify({'success': True, 'data': _service.daily_report(_report_day())})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/reports/weekly', methods=['GET'])
@admin_only
def api_weekly_report():
    try:
        return jsonify({'success': True, 'data': _service.weekly_report(_report_day('week'))})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/reports/monthly', methods=['GET'])
@admin_only
def api_monthly_report():
    try:
        return jsonify({'success': True, 'data': _service.monthly_report(*_report_month())})
    except Exception as e:
        return safe_error_response(e)


@timeclock_bp.route('/api/admin/export/daily.csv', methods=['GET'])
@admin_only
def api_export_daily():
    try:
        filename, content = export.daily_csv(_service.daily_report(_report_day()), tz=_service.tz)
    except Exception as e:
        return safe_error_response(e)
    return _csv_response(filename, content)


@timeclock_bp.route('/api/admin/export/weekly.csv', methods=['GET'])
@admin_only
def api_export_weekly():
    try:
        filename, content = export.weekly_csv(_service.weekly_report(_report_day('week')))
    except Exception as e:
        return safe_error_response(e)
    return _csv_response(filename, content)


@timeclock_bp.route('/api/admin/export/monthly.csv', methods=['GET'])
@admin_only
def api_export_monthly():
    try:
        filename, content = export.monthly_csv(_service.monthly_report(*_report_month()))
    except Exception as e:
        return safe_error_response(e)
    return _csv_response(filename, content)
