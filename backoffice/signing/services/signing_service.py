"""Public signing by access token.

A recipient's token is a bearer credential for exactly one envelope; every
lookup starts from the token and never from an id the caller supplies.
"""
import uuid
import logging
from datetime import date

from ..config import MAX_TEXT_VALUE_LENGTH
from ..repositories import (
    EnvelopeRepository, DocumentRepository, RecipientRepository, FieldRepository, AuditRepository,
)
from .document_storage import DocumentStorage
from .envelope_service import ServiceResult, _fail

logger = logging.getLogger('backoffice.signing.signing_service')

INVALID_LINK = 'Invalid or expired signing link'
ENVELOPE_VOIDED = 'This envelope has been voided'
ENVELOPE_COMPLETED = 'This envelope has already been completed'
ALREADY_SIGNED = 'You have already signed this document'
ALREADY_DECLINED = 'You have declined to sign this document'
NOT_SENT = 'This envelope has not been sent yet'

_PUBLIC_RECIPIENT_KEYS = ('id', 'name', 'role', 'signing_order', 'status', 'color_hex')
_PUBLIC_ENVELOPE_KEYS = ('id', 'title', 'message', 'status', 'sent_at')


def format_signed_date(day):
    """e.g. 'March 5, 2025'."""
    return f'{day:%B} {day.day}, {day.year}'


def normalize_field_value(field, value):
    """Coerce and validate a submitted value for one field.

    Returns the stored string, or '' for an empty value.
    Raises ValueError with a user-facing message.
    """
    field_type = field['field_type']
    if value is None:
        return ''

    if field_type == 'checkbox':
        if isinstance(value, bool):
            return 'true' if value else 'false'
        text = str(value).strip().lower()
        if text not in ('true', 'false', ''):
            raise ValueError('Checkbox values must be "true" or "false"')
        return text

    text = str(value).strip()
    if not text:
        return ''
    if field_type == 'dropdown':
        if text not in (field.get('dropdown_options') or []):
            raise ValueError(f'"{text}" is not one of the dropdown options')
    elif field_type in ('signature', 'initials'):
        if not text.startswith('data:image/'):
            raise ValueError(f'{field_type.capitalize()} must be an image data URL')
    elif field_type == 'text' and len(text) > MAX_TEXT_VALUE_LENGTH:
        raise ValueError(f'Text values are limited to {MAX_TEXT_VALUE_LENGTH} characters')
    return text


def is_filled(field, value):
    """Required checkboxes must be ticked; everything else must be non-empty."""
    if field['field_type'] == 'checkbox':
        return value == 'true'
    return bool(value)


class SigningService:

    def __init__(self, storage=None):
        self.envelope_repo = EnvelopeRepository()
        self.document_repo = DocumentRepository()
        self.recipient_repo = RecipientRepository()
        self.field_repo = FieldRepository()
        self.audit_repo = AuditRepository()
        self.storage = storage or DocumentStorage()

    def _resolve(self, token):
        """Returns (recipient, envelope, error_result) for a signable token."""
        try:
            token = str(uuid.UUID(str(token)))
        except (TypeError, ValueError):
            return None, None, _fail(INVALID_LINK, 404)

        recipient = self.recipient_repo.get_by_token(token)
        if not recipient:
            return None, None, _fail(INVALID_LINK, 404)
        envelope = self.envelope_repo.get_by_id(recipient['envelope_id'])
        if not envelope:
            return None, None, _fail(INVALID_LINK, 404)

        if envelope['status'] == 'voided':
            return recipient, envelope, _fail(ENVELOPE_VOIDED, 410)
        if envelope['status'] == 'completed':
            return recipient, envelope, _fail(ENVELOPE_COMPLETED, 410)
        if recipient['status'] == 'signed':
            return recipient, envelope, _fail(ALREADY_SIGNED, 410)
        if recipient['status'] == 'declined':
            return recipient, envelope, _fail(ALREADY_DECLINED, 410)
        if envelope['status'] not in ('sent', 'in_progress'):
            return recipient, envelope, _fail(NOT_SENT, 409)
        return recipient, envelope, None

    def open(self, token, ip_address=None):
        """Signing session for the recipient; the first open marks them viewed."""
        recipient, envelope, error = self._resolve(token)
        if error:
            return error

        if recipient['status'] == 'pending' and self.recipient_repo.mark_viewed(recipient['id']):
            recipient = dict(recipient, status='viewed')
            self.audit_repo.log(
                envelope['id'], 'recipient_viewed', recipient['name'], recipient['email'],
                recipient_id=recipient['id'], ip_address=ip_address,
            )

        data = {k: envelope.get(k) for k in _PUBLIC_ENVELOPE_KEYS}
        data['documents'] = [
            {k: d.get(k) for k in ('id', 'file_name', 'page_count', 'sort_order')}
            for d in self.document_repo.get_for_envelope(envelope['id'])
        ]
        data['recipients'] = [
            {k: r.get(k) for k in _PUBLIC_RECIPIENT_KEYS}
            for r in self.recipient_repo.get_for_envelope(envelope['id'])
        ]
        data['fields'] = self.field_repo.get_for_recipient(recipient['id'])
        data['recipient'] = {k: recipient.get(k) for k in _PUBLIC_RECIPIENT_KEYS + ('email',)}
        return ServiceResult(success=True, data=data)

    def submit(self, token, field_values, ip_address=None, today=None):
        recipient, envelope, error = self._resolve(token)
        if error:
            return error
        if not isinstance(field_values, dict):
            return _fail('field_values must be an object')

        fields = {f['id']: f for f in self.field_repo.get_for_recipient(recipient['id'])}
        foreign = [fid for fid in field_values if fid not in fields]
        if foreign:
            return _fail('Some fields do not belong to this recipient')

        values = {}
        try:
            for field_id, field in fields.items():
                submitted = field_values.get(field_id, field.get('field_value'))
                values[field_id] = normalize_field_value(field, submitted)
        except ValueError as e:
            return _fail(str(e))

        signed_on = format_signed_date(today or date.today())
        for field_id, field in fields.items():
            if field['field_type'] == 'date_signed' and not values[field_id]:
                values[field_id] = signed_on

        missing = [f for fid, f in fields.items() if f.get('is_required') and not is_filled(f, values[fid])]
        if missing:
            return _fail(f'Please complete all required fields. {len(missing)} remaining.')

        to_store = {fid: v for fid, v in values.items() if v != ''}
        status = self.field_repo.submit_signing(envelope['id'], recipient, to_store, ip_address)
        if status is None:
            return _fail(ALREADY_SIGNED, 410)

        logger.info(f"Recipient {recipient['id']} signed envelope {envelope['id']} -> {status}")
        return ServiceResult(success=True, data={'envelope_status': status, 'field_count': len(to_store)})

    def decline(self, token, reason, ip_address=None):
        recipient, envelope, error = self._resolve(token)
        if error:
            return error
        reason = (reason or '').strip()
        if not reason:
            return _fail('Please give a reason for declining')

        updated = self.recipient_repo.mark_declined(recipient['id'], reason)
        if not updated:
            return _fail(ALREADY_SIGNED, 410)
        self.audit_repo.log(
            envelope['id'], 'recipient_declined', recipient['name'], recipient['email'],
            recipient_id=recipient['id'], metadata={'reason': reason}, ip_address=ip_address,
        )
        logger.info(f"Recipient {recipient['id']} declined envelope {envelope['id']}")
        return ServiceResult(success=True)

    def get_document(self, token, document_id):
        """Document of the token's envelope, as (document, absolute_path).

        Readable while the link is valid, and also after the recipient signed
        or the envelope completed so signers can keep a copy.
        """
        recipient, envelope, error = self._resolve(token)
        if error and error.status_code not in (410,):
            return error
        if envelope is None or envelope['status'] == 'voided':
            return error or _fail(INVALID_LINK, 404)

        document = self.document_repo.get_by_id(document_id)
        if not document or document['envelope_id'] != envelope['id']:
            return _fail('Document not found', 404)
        return ServiceResult(success=True, data=(document, self.storage.resolve(document['file_path'])))
