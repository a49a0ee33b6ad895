"""Signed-to-Sealed.

Envelope based e-signature workflow: PDFs, recipients, typed fields,
per-recipient signing links and an append-only audit trail.
"""
from flask import Blueprint

signing_bp = Blueprint('signing', __name__)

from . import routes  # noqa: E402, F401
