"""Commission Calculator routes."""
import logging

from flask import jsonify, request, Response

from . import commissions_bp
from .services.commission_service import CommissionService
from .services.excel_export import build_commission_workbook
from core.utils.api_helpers import (
    permission_required, admin_required, get_json_or_error, error_response, safe_error_response,
)

logger = logging.getLogger('backoffice.commissions.routes')

_service = CommissionService()


@commissions_bp.route('/api/calculate', methods=['POST'])
@permission_required('can_access_commissions')
def api_calculate():
    """Body: {startDate, endDate, forceRefresh}. Returns the rollup."""
    data, error = get_json_or_error()
    if error:
        return error

    result = _service.calculate(
        data.get('startDate'), data.get('endDate'),
        force_refresh=data.get('forceRefresh') in (True, 'true', '1'),
    )
    if not result.success:
        return error_response(result.error, result.status_code)
    return jsonify(result.data)


@commissions_bp.route('/api/export.xlsx', methods=['GET'])
@permission_required('can_access_commissions')
def api_export_excel():
    start_date = request.args.get('startDate')
    end_date = request.args.get('endDate')

    result = _service.calculate(start_date, end_date)
    if not result.success:
        return error_response(result.error, result.status_code)

    try:
        content = build_commission_workbook(result.data, start_date, end_date)
    except Exception as e:
        return safe_error_response(e)

    filename = f'commissions-{start_date}-to-{end_date}.xlsx'
    return Response(
        content,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )


@commissions_bp.route('/api/cache', methods=['DELETE'])
@admin_required
def api_clear_cache():
    try:
        deleted = _service.clear_cache()
    except Exception as e:
        return safe_error_response(e)
    logger.info(f'Commission cache cleared ({deleted} rows)')
    return jsonify({'success': True, 'deleted': deleted})
