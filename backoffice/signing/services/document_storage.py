"""Local disk storage for envelope PDFs.

Files live under STORAGE_DIR/<envelope_id>/<timestamp>_<name>; the database
keeps the path relative to STORAGE_DIR.
"""
import os
import shutil
import time
import logging

from werkzeug.utils import secure_filename

from ..config import STORAGE_DIR

logger = logging.getLogger('backoffice.signing.storage')


class DocumentStorage:

    def __init__(self, base_dir=None):
        self.base_dir = os.path.realpath(base_dir or STORAGE_DIR)

    def resolve(self, relative_path):
        """Absolute path for a stored file; refuses paths escaping base_dir."""
        path = os.path.realpath(os.path.join(self.base_dir, relative_path))
        if os.path.commonpath([path, self.base_dir]) != self.base_dir:
            raise ValueError('Invalid document path')
        return path

    def save(self, envelope_id, file_name, content):
        safe_name = secure_filename(file_name) or 'document.pdf'
        relative_path = os.path.join(str(envelope_id), f'{int(time.time() * 1000)}_{safe_name}')
        path = self.resolve(relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(content)
        logger.info(f'Stored document {relative_path} ({len(content)} bytes)')
        return relative_path

    def delete(self, relative_path):
        try:
            os.remove(self.resolve(relative_path))
        except FileNotFoundError:
            logger.warning(f'Document already missing from storage: {relative_path}')

    def delete_envelope(self, envelope_id):
        shutil.rmtree(self.resolve(str(envelope_id)), ignore_errors=True)
