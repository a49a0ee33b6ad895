"""Signed-to-Sealed routes.

Admin endpoints live under /api/envelopes, /api/templates and /api/signatures
and require can_access_signing. Public signing endpoints under /api/sign/<token>
are authenticated by the recipient's access token only.
"""
import os
import logging

from flask import jsonify, request, send_file
from flask_login import current_user

from . import signing_bp
from .services.envelope_service import EnvelopeService
from .services.signing_service import SigningService
from core.utils.api_helpers import (
    permission_required, get_json_or_error, error_response, safe_error_response,
    client_ip, RateLimiter,
)

logger = logging.getLogger('backoffice.signing.routes')

_envelopes = EnvelopeService()
_signing = SigningService()
_public_limiter = RateLimiter()

signing_access = permission_required('can_access_signing')


def _result_response(result):
    if not result.success:
        return error_response(result.error, result.status_code)
    return jsonify({'success': True, 'data': result.data}), result.status_code


def _actor():
    return {'name': current_user.name, 'email': current_user.email}


def _public_throttled():
    allowed, retry_after = _public_limiter.is_allowed(
        f'sign:{client_ip()}', max_requests=60, window_seconds=60)
    if not allowed:
        logger.warning(f'Signing requests throttled for {client_ip()}')
        return error_response(f'Too many requests. Try again in {retry_after} seconds.', 429)
    return None


def _send_document(result):
    if not result.success:
        return error_response(result.error, result.status_code)
    document, path = result.data
    if not os.path.isfile(path):
        logger.error(f"Document file missing on disk: {document['file_path']}")
        return error_response('Document file not found', 404)
    return send_file(path, mimetype='application/pdf', download_name=document['file_name'])


# ============== Envelopes ==============

@signing_bp.route('/api/envelopes', methods=['GET'])
@signing_access
def api_list_envelopes():
    try:
        return _result_response(_envelopes.list_envelopes(
            status=request.args.get('status'), search=request.args.get('search')))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes', methods=['POST'])
@signing_access
def api_create_envelope():
    data = request.get_json(silent=True) or {}
    try:
        return _result_response(_envelopes.create_envelope(
            data.get('title'), data.get('message'), created_by=current_user.name))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>', methods=['GET'])
@signing_access
def api_get_envelope(envelope_id):
    try:
        return _result_response(_envelopes.get_detail(envelope_id))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>', methods=['PUT'])
@signing_access
def api_update_envelope(envelope_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.update_envelope(envelope_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>', methods=['DELETE'])
@signing_access
def api_delete_envelope(envelope_id):
    try:
        return _result_response(_envelopes.delete_envelope(envelope_id))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/send', methods=['POST'])
@signing_access
def api_send_envelope(envelope_id):
    try:
        return _result_response(_envelopes.send(envelope_id, actor=_actor(), ip_address=client_ip()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/void', methods=['POST'])
@signing_access
def api_void_envelope(envelope_id):
    data = request.get_json(silent=True) or {}
    try:
        return _result_response(_envelopes.void(
            envelope_id, data.get('reason'), actor=_actor(), ip_address=client_ip()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/complete', methods=['POST'])
@signing_access
def api_complete_envelope(envelope_id):
    try:
        return _result_response(_envelopes.mark_complete(envelope_id))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/audit', methods=['GET'])
@signing_access
def api_envelope_audit(envelope_id):
    try:
        return _result_response(_envelopes.audit_trail(envelope_id))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/apply-template', methods=['POST'])
@signing_access
def api_apply_template(envelope_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.apply_template(envelope_id, data.get('template_id')))
    except Exception as e:
        return safe_error_response(e)


# ============== Documents ==============

@signing_bp.route('/api/envelopes/<uuid:envelope_id>/documents', methods=['POST'])
@signing_access
def api_upload_document(envelope_id):
    if 'file' not in request.files:
        return error_response('No file uploaded')
    file = request.files['file']
    if file.filename == '':
        return error_response('No file selected')
    try:
        return _result_response(_envelopes.upload_document(envelope_id, file.filename, file.read()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/documents/<uuid:document_id>', methods=['GET'])
@signing_access
def api_download_document(envelope_id, document_id):
    try:
        result = _envelopes.get_document(envelope_id, document_id)
    except Exception as e:
        return safe_error_response(e)
    return _send_document(result)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/documents/<uuid:document_id>', methods=['DELETE'])
@signing_access
def api_delete_document(envelope_id, document_id):
    try:
        return _result_response(_envelopes.delete_document(envelope_id, document_id))
    except Exception as e:
        return safe_error_response(e)


# ============== Recipients ==============

@signing_bp.route('/api/envelopes/<uuid:envelope_id>/recipients', methods=['POST'])
@signing_access
def api_add_recipient(envelope_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.add_recipient(envelope_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/recipients/<uuid:recipient_id>', methods=['PUT'])
@signing_access
def api_update_recipient(envelope_id, recipient_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.update_recipient(envelope_id, recipient_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/recipients/<uuid:recipient_id>', methods=['DELETE'])
@signing_access
def api_remove_recipient(envelope_id, recipient_id):
    try:
        return _result_response(_envelopes.remove_recipient(envelope_id, recipient_id))
    except Exception as e:
        return safe_error_response(e)


# ============== Fields ==============

@signing_bp.route('/api/envelopes/<uuid:envelope_id>/fields', methods=['POST'])
@signing_access
def api_add_field(envelope_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.add_field(envelope_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/fields/bulk', methods=['POST'])
@signing_access
def api_add_fields(envelope_id):
    data, error = get_json_or_error()
    if error:
        return error
    items = data.get('fields')
    if not isinstance(items, list) or not items:
        return error_response('fields must be a non-empty list')
    try:
        return _result_response(_envelopes.add_fields(envelope_id, items))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/fields/<uuid:field_id>', methods=['PUT'])
@signing_access
def api_update_field(envelope_id, field_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.update_field(envelope_id, field_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/envelopes/<uuid:envelope_id>/fields/<uuid:field_id>', methods=['DELETE'])
@signing_access
def api_remove_field(envelope_id, field_id):
    try:
        return _result_response(_envelopes.remove_field(envelope_id, field_id))
    except Exception as e:
        return safe_error_response(e)


# ============== Templates ==============

@signing_bp.route('/api/templates', methods=['GET'])
@signing_access
def api_list_templates():
    try:
        return jsonify({'success': True, 'data': _envelopes.list_templates()})
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/templates', methods=['POST'])
@signing_access
def api_create_template():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.create_template(data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/templates/<uuid:template_id>', methods=['PUT'])
@signing_access
def api_update_template(template_id):
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.update_template(template_id, data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/templates/<uuid:template_id>', methods=['DELETE'])
@signing_access
def api_delete_template(template_id):
    try:
        return _result_response(_envelopes.delete_template(template_id))
    except Exception as e:
        return safe_error_response(e)


# ============== Saved signatures ==============

@signing_bp.route('/api/signatures', methods=['GET'])
@signing_access
def api_list_signatures():
    try:
        return jsonify({'success': True, 'data': _envelopes.list_signatures()})
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/signatures', methods=['POST'])
@signing_access
def api_save_signature():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_envelopes.save_signature(data))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/signatures/<uuid:signature_id>', methods=['DELETE'])
@signing_access
def api_delete_signature(signature_id):
    try:
        return _result_response(_envelopes.delete_signature(signature_id))
    except Exception as e:
        return safe_error_response(e)


# ============== Public signing ==============

@signing_bp.route('/api/sign/<token>', methods=['GET'])
def api_open_signing(token):
    throttled = _public_throttled()
    if throttled:
        return throttled
    try:
        return _result_response(_signing.open(token, ip_address=client_ip()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/sign/<token>', methods=['POST'])
def api_submit_signing(token):
    throttled = _public_throttled()
    if throttled:
        return throttled
    data, error = get_json_or_error()
    if error:
        return error
    try:
        return _result_response(_signing.submit(token, data.get('field_values'), ip_address=client_ip()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/sign/<token>/decline', methods=['POST'])
def api_decline_signing(token):
    throttled = _public_throttled()
    if throttled:
        return throttled
    data = request.get_json(silent=True) or {}
    try:
        return _result_response(_signing.decline(token, data.get('reason'), ip_address=client_ip()))
    except Exception as e:
        return safe_error_response(e)


@signing_bp.route('/api/sign/<token>/documents/<uuid:document_id>', methods=['GET'])
def api_signing_document(token, document_id):
    throttled = _public_throttled()
    if throttled:
        return throttled
    try:
        result = _signing.get_document(token, document_id)
    except Exception as e:
        return safe_error_response(e)
    return _send_document(result)
