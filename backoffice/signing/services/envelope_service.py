"""Envelope administration: drafting, sending, voiding and completing envelopes."""
import re
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..config import (
    ENVELOPE_STATUSES, RECIPIENT_ROLES, FIELD_ROLES, FIELD_TYPES, DEFAULT_FIELD_SIZES,
    RECIPIENT_COLORS, DEFAULT_ENVELOPE_TITLE, MAX_UPLOAD_MB, SIGNATURE_TYPES, SIGNATURE_METHODS,
    signing_url,
)
from ..repositories import (
    EnvelopeRepository, DocumentRepository, RecipientRepository, FieldRepository,
    AuditRepository, TemplateRepository, SavedSignatureRepository,
)
from .document_storage import DocumentStorage
from .pdf_utils import read_page_count, hash_bytes
from core.utils.api_helpers import is_uuid

logger = logging.getLogger('backoffice.signing.envelope_service')

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: int = 200


def _fail(error, status_code=400):
    return ServiceResult(success=False, error=error, status_code=status_code)


def _now():
    return datetime.now(timezone.utc)


def _number(value, label, minimum=None, maximum=None):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f'{label} must be a number')
    if minimum is not None and number < minimum:
        raise ValueError(f'{label} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise ValueError(f'{label} must be at most {maximum}')
    return number


def _dropdown_options(value):
    if not isinstance(value, list):
        raise ValueError('Dropdown options must be a list')
    options = [str(o).strip() for o in value if str(o).strip()]
    if not options:
        raise ValueError('Dropdown fields need at least one option')
    return options


def _recipient_with_link(recipient):
    data = {k: v for k, v in recipient.items() if k != 'access_token'}
    data['signing_url'] = signing_url(recipient['access_token'])
    return data


class EnvelopeService:
    """Orchestrates envelope drafting and lifecycle through the repositories."""

    def __init__(self, storage=None):
        self.envelope_repo = EnvelopeRepository()
        self.document_repo = DocumentRepository()
        self.recipient_repo = RecipientRepository()
        self.field_repo = FieldRepository()
        self.audit_repo = AuditRepository()
        self.template_repo = TemplateRepository()
        self.signature_repo = SavedSignatureRepository()
        self.storage = storage or DocumentStorage()

    # ============== Helpers ==============

    def _get_envelope(self, envelope_id, draft_only=False):
        """Returns (envelope, error_result)."""
        envelope = self.envelope_repo.get_by_id(envelope_id)
        if not envelope:
            return None, _fail('Envelope not found', 404)
        if draft_only and envelope['status'] != 'draft':
            return None, _fail('Only draft envelopes can be edited', 409)
        return envelope, None

    def _log(self, envelope_id, event_type, actor=None, metadata=None, ip_address=None):
        actor = actor or {}
        self.audit_repo.log(
            envelope_id, event_type,
            actor_name=actor.get('name') or 'Admin',
            actor_email=actor.get('email') or '',
            metadata=metadata, ip_address=ip_address,
        )

    # ============== Envelopes ==============

    def list_envelopes(self, status=None, search=None):
        """Dashboard listing plus per-status counts (counts ignore the filters)."""
        if status and status not in ENVELOPE_STATUSES:
            return _fail(f'Unknown status: {status}')
        search = (search or '').strip() or None
        envelopes = self.envelope_repo.get_all(status=status, search=search)
        counts = {s: 0 for s in ENVELOPE_STATUSES}
        counts.update(self.envelope_repo.count_by_status())
        counts['all'] = sum(counts[s] for s in ENVELOPE_STATUSES)
        return ServiceResult(success=True, data={'envelopes': envelopes, 'counts': counts})

    def create_envelope(self, title=None, message=None, created_by=''):
        envelope = self.envelope_repo.create(
            (title or '').strip() or DEFAULT_ENVELOPE_TITLE,
            message or '', created_by or '',
        )
        logger.info(f"Envelope {envelope['id']} created by {created_by or 'unknown'}")
        return ServiceResult(success=True, data=envelope, status_code=201)

    def get_detail(self, envelope_id):
        envelope, error = self._get_envelope(envelope_id)
        if error:
            return error
        detail = dict(envelope)
        detail['documents'] = self.document_repo.get_for_envelope(envelope_id)
        detail['recipients'] = [
            _recipient_with_link(r) for r in self.recipient_repo.get_for_envelope(envelope_id)
        ]
        detail['fields'] = self.field_repo.get_for_envelope(envelope_id)
        return ServiceResult(success=True, data=detail)

    def update_envelope(self, envelope_id, data):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        changes = {}
        if 'title' in data:
            changes['title'] = (data.get('title') or '').strip() or DEFAULT_ENVELOPE_TITLE
        if 'message' in data:
            changes['message'] = data.get('message') or ''
        return ServiceResult(success=True, data=self.envelope_repo.update(envelope_id, changes))

    def delete_envelope(self, envelope_id):
        _, error = self._get_envelope(envelope_id)
        if error:
            return error
        self.envelope_repo.delete(envelope_id)
        self.storage.delete_envelope(envelope_id)
        logger.info(f'Envelope {envelope_id} deleted')
        return ServiceResult(success=True)

    # ============== Lifecycle ==============

    def send(self, envelope_id, actor=None, ip_address=None):
        """draft -> sent. Needs at least one signer and one field."""
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error

        recipients = self.recipient_repo.get_for_envelope(envelope_id)
        signers = [r for r in recipients if r['role'] == 'signer']
        if not signers:
            return _fail('Add at least one signer before sending')
        field_count = self.field_repo.count_for_envelope(envelope_id)
        if field_count == 0:
            return _fail('Place at least one field before sending')
        missing_email = [r['name'] for r in recipients if not EMAIL_RE.match(r.get('email') or '')]
        if missing_email:
            return _fail(f"Recipients need a valid email address: {', '.join(missing_email)}")

        envelope = self.envelope_repo.transition(
            envelope_id, ('draft',), {'status': 'sent', 'sent_at': _now()})
        if not envelope:
            return _fail('Only draft envelopes can be sent', 409)

        self._log(envelope_id, 'envelope_sent', actor, {
            'recipient_count': len(recipients),
            'field_count': field_count,
        }, ip_address)
        logger.info(f'Envelope {envelope_id} sent to {len(recipients)} recipients')

        links = [
            {
                'recipient_id': r['id'], 'name': r['name'], 'email': r['email'],
                'role': r['role'], 'signing_url': signing_url(r['access_token']),
            }
            for r in recipients
        ]
        return ServiceResult(success=True, data={'envelope': envelope, 'links': links})

    def void(self, envelope_id, reason, actor=None, ip_address=None):
        reason = (reason or '').strip()
        if not reason:
            return _fail('A reason is required to void an envelope')
        envelope, error = self._get_envelope(envelope_id)
        if error:
            return error
        if envelope['status'] in ('completed', 'voided'):
            return _fail(f"Cannot void a {envelope['status']} envelope", 409)

        updated = self.envelope_repo.transition(
            envelope_id, ('draft', 'sent', 'in_progress'),
            {'status': 'voided', 'voided_at': _now(), 'void_reason': reason},
        )
        if not updated:
            return _fail('Envelope status changed, reload and try again', 409)

        self._log(envelope_id, 'envelope_voided', actor, {'reason': reason}, ip_address)
        logger.info(f'Envelope {envelope_id} voided: {reason}')
        return ServiceResult(success=True, data=updated)

    def mark_complete(self, envelope_id):
        """Manual completion; refused while any signer has not signed."""
        envelope, error = self._get_envelope(envelope_id)
        if error:
            return error
        if envelope['status'] not in ('sent', 'in_progress'):
            return _fail(f"Cannot complete a {envelope['status']} envelope", 409)

        signers = [r for r in self.recipient_repo.get_for_envelope(envelope_id) if r['role'] == 'signer']
        unsigned = [r['name'] for r in signers if r['status'] != 'signed']
        if not signers or unsigned:
            return _fail(f"Waiting on signatures from: {', '.join(unsigned) or 'no signers'}", 409)

        updated = self.envelope_repo.transition(
            envelope_id, ('sent', 'in_progress'), {'status': 'completed', 'completed_at': _now()})
        if not updated:
            return _fail('Envelope status changed, reload and try again', 409)

        self.audit_repo.log(envelope_id, 'envelope_completed', actor_name='System')
        return ServiceResult(success=True, data=updated)

    def audit_trail(self, envelope_id):
        _, error = self._get_envelope(envelope_id)
        if error:
            return error
        return ServiceResult(success=True, data=self.audit_repo.get_for_envelope(envelope_id))

    # ============== Documents ==============

    def upload_document(self, envelope_id, file_name, content):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        if not file_name or not file_name.lower().endswith('.pdf'):
            return _fail('Only PDF files can be uploaded')
        if len(content) > MAX_UPLOAD_MB * 1024 * 1024:
            return _fail(f'File too large. Max: {MAX_UPLOAD_MB}MB', 413)
        try:
            page_count = read_page_count(content)
        except ValueError as e:
            return _fail(str(e))

        relative_path = self.storage.save(envelope_id, file_name, content)
        try:
            document = self.document_repo.create(
                envelope_id, file_name, relative_path, len(content), page_count, hash_bytes(content))
        except Exception:
            self.storage.delete(relative_path)
            raise
        self.envelope_repo.touch(envelope_id)
        return ServiceResult(success=True, data=document, status_code=201)

    def get_document(self, envelope_id, document_id):
        """Returns (document, absolute_path) or error result."""
        document = self.document_repo.get_by_id(document_id)
        if not document or document['envelope_id'] != str(envelope_id):
            return _fail('Document not found', 404)
        return ServiceResult(success=True, data=(document, self.storage.resolve(document['file_path'])))

    def delete_document(self, envelope_id, document_id):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        document = self.document_repo.get_by_id(document_id)
        if not document or document['envelope_id'] != str(envelope_id):
            return _fail('Document not found', 404)
        self.document_repo.delete(document_id)
        self.storage.delete(document['file_path'])
        self.envelope_repo.touch(envelope_id)
        return ServiceResult(success=True)

    # ============== Recipients ==============

    def _validate_recipient(self, data, partial=False):
        changes = {}
        if not partial or 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise ValueError('Recipient name is required')
            changes['name'] = name
        if not partial or 'email' in data:
            email = (data.get('email') or '').strip().lower()
            if not EMAIL_RE.match(email):
                raise ValueError('A valid email address is required')
            changes['email'] = email
        if not partial or 'role' in data:
            role = data.get('role') or 'signer'
            if role not in RECIPIENT_ROLES:
                raise ValueError(f"Role must be one of: {', '.join(RECIPIENT_ROLES)}")
            changes['role'] = role
        if data.get('signing_order') is not None:
            order = int(_number(data['signing_order'], 'Signing order', minimum=1))
            changes['signing_order'] = order
        return changes

    def add_recipient(self, envelope_id, data):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        try:
            values = self._validate_recipient(data)
        except ValueError as e:
            return _fail(str(e))

        existing = self.recipient_repo.get_for_envelope(envelope_id)
        recipient = self.recipient_repo.create(
            envelope_id, values['name'], values['email'], values['role'],
            values.get('signing_order', len(existing) + 1),
            RECIPIENT_COLORS[len(existing) % len(RECIPIENT_COLORS)],
        )
        self.envelope_repo.touch(envelope_id)
        return ServiceResult(success=True, data=_recipient_with_link(recipient), status_code=201)

    def _get_recipient(self, envelope_id, recipient_id):
        recipient = self.recipient_repo.get_by_id(recipient_id)
        if not recipient or recipient['envelope_id'] != str(envelope_id):
            return None
        return recipient

    def update_recipient(self, envelope_id, recipient_id, data):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        if not self._get_recipient(envelope_id, recipient_id):
            return _fail('Recipient not found', 404)
        try:
            changes = self._validate_recipient(data, partial=True)
        except ValueError as e:
            return _fail(str(e))
        if changes.get('role') == 'cc' and self.field_repo.get_for_recipient(recipient_id):
            return _fail('Remove this recipient\'s fields before making them CC')
        recipient = self.recipient_repo.update(recipient_id, changes)
        return ServiceResult(success=True, data=_recipient_with_link(recipient))

    def remove_recipient(self, envelope_id, recipient_id):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        if not self._get_recipient(envelope_id, recipient_id):
            return _fail('Recipient not found', 404)
        self.recipient_repo.delete(recipient_id)
        self.envelope_repo.touch(envelope_id)
        return ServiceResult(success=True)

    # ============== Fields ==============

    def _validate_field(self, data, documents, recipients):
        field_type = data.get('field_type') or 'signature'
        if field_type not in FIELD_TYPES:
            raise ValueError(f"Field type must be one of: {', '.join(FIELD_TYPES)}")

        document = documents.get(str(data.get('document_id')))
        if not document:
            raise ValueError('Field must reference a document of this envelope')
        recipient = recipients.get(str(data.get('recipient_id')))
        if not recipient:
            raise ValueError('Field must reference a recipient of this envelope')
        if recipient['role'] not in FIELD_ROLES:
            raise ValueError('CC recipients cannot be assigned fields')

        page = int(_number(data.get('page_number', 1), 'Page number', minimum=1))
        if page > (document.get('page_count') or 1):
            raise ValueError(f"Page number exceeds the document's {document['page_count']} pages")

        default_w, default_h = DEFAULT_FIELD_SIZES[field_type]
        field = {
            'document_id': document['id'],
            'recipient_id': recipient['id'],
            'field_type': field_type,
            'page_number': page,
            'x_position': _number(data.get('x_position', 0), 'X position', 0, 100),
            'y_position': _number(data.get('y_position', 0), 'Y position', 0, 100),
            'width': _number(data.get('width') or default_w, 'Width', 0, 100),
            'height': _number(data.get('height') or default_h, 'Height', 0, 100),
            'is_required': bool(data.get('is_required', True)),
            'dropdown_options': [],
        }
        if field_type == 'dropdown':
            field['dropdown_options'] = _dropdown_options(data.get('dropdown_options'))
        return field

    def _field_context(self, envelope_id):
        documents = {d['id']: d for d in self.document_repo.get_for_envelope(envelope_id)}
        recipients = {r['id']: r for r in self.recipient_repo.get_for_envelope(envelope_id)}
        return documents, recipients

    def add_field(self, envelope_id, data):
        return self.add_fields(envelope_id, [data], single=True)

    def add_fields(self, envelope_id, items, single=False):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        if not isinstance(items, list) or not items:
            return _fail('No fields given')
        documents, recipients = self._field_context(envelope_id)
        try:
            fields = [self._validate_field(item, documents, recipients) for item in items]
        except ValueError as e:
            return _fail(str(e))

        if single:
            created = self.field_repo.create(envelope_id, fields[0])
        else:
            created = self.field_repo.bulk_create(envelope_id, fields)
        self.envelope_repo.touch(envelope_id)
        return ServiceResult(success=True, data=created, status_code=201)

    def update_field(self, envelope_id, field_id, data):
        """Move/resize, toggle required, reassign, or edit dropdown options."""
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        field = self.field_repo.get_by_id(field_id)
        if not field or field['envelope_id'] != str(envelope_id):
            return _fail('Field not found', 404)

        changes = {}
        try:
            for key, label in (('x_position', 'X position'), ('y_position', 'Y position'),
                               ('width', 'Width'), ('height', 'Height')):
                if key in data:
                    changes[key] = _number(data[key], label, 0, 100)
            if 'page_number' in data:
                document = self.document_repo.get_by_id(field['document_id'])
                page = int(_number(data['page_number'], 'Page number', minimum=1))
                if page > (document.get('page_count') or 1):
                    raise ValueError(f"Page number exceeds the document's {document['page_count']} pages")
                changes['page_number'] = page
            if 'is_required' in data:
                changes['is_required'] = bool(data['is_required'])
            if 'recipient_id' in data:
                recipient = None
                if is_uuid(data['recipient_id']):
                    recipient = self._get_recipient(envelope_id, data['recipient_id'])
                if not recipient:
                    raise ValueError('Field must reference a recipient of this envelope')
                if recipient['role'] not in FIELD_ROLES:
                    raise ValueError('CC recipients cannot be assigned fields')
                changes['recipient_id'] = recipient['id']
            if 'dropdown_options' in data and field['field_type'] == 'dropdown':
                changes['dropdown_options'] = _dropdown_options(data['dropdown_options'])
        except ValueError as e:
            return _fail(str(e))

        return ServiceResult(success=True, data=self.field_repo.update(field_id, changes))

    def remove_field(self, envelope_id, field_id):
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        field = self.field_repo.get_by_id(field_id)
        if not field or field['envelope_id'] != str(envelope_id):
            return _fail('Field not found', 404)
        self.field_repo.delete(field_id)
        return ServiceResult(success=True)

    # ============== Templates ==============

    def _validate_template(self, data):
        name = (data.get('name') or '').strip()
        if not name:
            raise ValueError('Template name is required')
        config = data.get('envelope_config') or {}
        if not isinstance(config, dict):
            raise ValueError('envelope_config must be an object')

        roles = []
        for index, role in enumerate(config.get('roles') or [], 1):
            role_name = (role.get('name') or '').strip()
            if not role_name:
                raise ValueError(f'Role {index} needs a name')
            role_type = role.get('role') or 'signer'
            if role_type not in RECIPIENT_ROLES:
                raise ValueError(f"Role must be one of: {', '.join(RECIPIENT_ROLES)}")
            roles.append({
                'name': role_name,
                'role': role_type,
                'signing_order': int(_number(role.get('signing_order', index), 'Signing order', minimum=1)),
            })

        envelope_config = {
            'title': config.get('title') or '',
            'message': config.get('message') or '',
            'roles': roles,
        }
        return name, (data.get('description') or '').strip(), envelope_config

    def list_templates(self):
        return self.template_repo.get_all()

    def create_template(self, data):
        try:
            name, description, config = self._validate_template(data)
        except ValueError as e:
            return _fail(str(e))
        return ServiceResult(success=True, data=self.template_repo.create(name, description, config),
                             status_code=201)

    def update_template(self, template_id, data):
        try:
            name, description, config = self._validate_template(data)
        except ValueError as e:
            return _fail(str(e))
        template = self.template_repo.update(template_id, name, description, config)
        if not template:
            return _fail('Template not found', 404)
        return ServiceResult(success=True, data=template)

    def delete_template(self, template_id):
        if not self.template_repo.delete(template_id):
            return _fail('Template not found', 404)
        return ServiceResult(success=True)

    def apply_template(self, envelope_id, template_id):
        """Copy title/message and add one placeholder recipient per template role.

        Placeholders carry the role name and an empty email, which has to be
        filled in before the envelope can be sent.
        """
        _, error = self._get_envelope(envelope_id, draft_only=True)
        if error:
            return error
        template = self.template_repo.get_by_id(template_id) if is_uuid(template_id) else None
        if not template:
            return _fail('Template not found', 404)

        config = template.get('envelope_config') or {}
        changes = {k: config[k] for k in ('title', 'message') if config.get(k)}
        if changes:
            self.envelope_repo.update(envelope_id, changes)

        existing = len(self.recipient_repo.get_for_envelope(envelope_id))
        for offset, role in enumerate(sorted(config.get('roles') or [], key=lambda r: r.get('signing_order', 1))):
            index = existing + offset
            self.recipient_repo.create(
                envelope_id, role['name'], '', role.get('role', 'signer'),
                role.get('signing_order', index + 1),
                RECIPIENT_COLORS[index % len(RECIPIENT_COLORS)],
            )
        logger.info(f'Template {template_id} applied to envelope {envelope_id}')
        return self.get_detail(envelope_id)

    # ============== Saved signatures ==============

    def list_signatures(self):
        return self.signature_repo.get_all()

    def save_signature(self, data):
        sig_type = data.get('type') or 'signature'
        method = data.get('method') or 'draw'
        data_url = data.get('data_url') or ''
        if sig_type not in SIGNATURE_TYPES:
            return _fail(f"Type must be one of: {', '.join(SIGNATURE_TYPES)}")
        if method not in SIGNATURE_METHODS:
            return _fail(f"Method must be one of: {', '.join(SIGNATURE_METHODS)}")
        if not data_url.startswith('data:image/'):
            return _fail('data_url must be an image data URL')
        signature = self.signature_repo.create(
            (data.get('name') or '').strip(), sig_type, method, data_url,
            font_family=data.get('font_family') if method == 'type' else None,
            is_default=bool(data.get('is_default')),
        )
        return ServiceResult(success=True, data=signature, status_code=201)

    def delete_signature(self, signature_id):
        if not self.signature_repo.delete(signature_id):
            return _fail('Signature not found', 404)
        return ServiceResult(success=True)
