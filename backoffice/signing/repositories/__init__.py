"""Signed-to-Sealed repositories package."""
from .envelope_repository import EnvelopeRepository
from .document_repository import DocumentRepository
from .recipient_repository import RecipientRepository
from .field_repository import FieldRepository
from .audit_repository import AuditRepository
from .template_repository import TemplateRepository
from .signature_repository import SavedSignatureRepository

__all__ = [
    'EnvelopeRepository', 'DocumentRepository', 'RecipientRepository', 'FieldRepository',
    'AuditRepository', 'TemplateRepository', 'SavedSignatureRepository',
]
