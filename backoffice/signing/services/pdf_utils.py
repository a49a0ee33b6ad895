"""PDF utilities: validation, page count and hashing."""
import hashlib
import io
import logging

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

logger = logging.getLogger('backoffice.signing.pdf_utils')

PDF_MAGIC = b'%PDF-'


def read_page_count(pdf_bytes):
    """Validate a PDF and return its page count.

    Raises:
        ValueError: If the bytes are not a readable, non-empty PDF.
    """
    if not pdf_bytes or pdf_bytes.lstrip()[:5] != PDF_MAGIC:
        raise ValueError('File is not a valid PDF')
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        if reader.is_encrypted:
            raise ValueError('Password-protected PDFs are not supported')
        page_count = len(reader.pages)
    except PdfReadError as e:
        logger.warning(f'Rejected unreadable PDF: {e}')
        raise ValueError('File is not a valid PDF')
    if page_count < 1:
        raise ValueError('PDF has no pages')
    return page_count


def hash_bytes(data):
    """SHA-256 hex digest of in-memory content."""
    return hashlib.sha256(data).hexdigest()
