"""Signed-to-Sealed settings and constants."""
import os

STORAGE_DIR = os.environ.get(
    'SIGNING_STORAGE_DIR',
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'static', 'sts_documents'),
)
MAX_UPLOAD_MB = int(os.environ.get('SIGNING_MAX_UPLOAD_MB', '25'))
PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://localhost:5000').rstrip('/')
SIGNING_PATH = '/signed-to-sealed/sign'

ENVELOPE_STATUSES = ('draft', 'sent', 'in_progress', 'completed', 'voided')
RECIPIENT_ROLES = ('signer', 'cc', 'in_person')
RECIPIENT_STATUSES = ('pending', 'viewed', 'signed', 'declined')
FIELD_ROLES = ('signer', 'in_person')  # cc recipients only receive copies
SIGNATURE_TYPES = ('signature', 'initials')
SIGNATURE_METHODS = ('draw', 'type', 'upload')

RECIPIENT_COLORS = [
    '#3b82f6', '#ef4444', '#10b981', '#f59e0b',
    '#8b5cf6', '#ec4899', '#06b6d4', '#f97316',
]

# Width x height as a percentage of the page
DEFAULT_FIELD_SIZES = {
    'signature': (30, 12),
    'initials': (15, 10),
    'date_signed': (25, 6),
    'text': (30, 6),
    'checkbox': (5, 5),
    'dropdown': (30, 6),
}
FIELD_TYPES = tuple(DEFAULT_FIELD_SIZES)

DEFAULT_ENVELOPE_TITLE = 'Untitled Envelope'
MAX_TEXT_VALUE_LENGTH = 1000


def signing_url(access_token):
    return f'{PUBLIC_BASE_URL}{SIGNING_PATH}?token={access_token}'
