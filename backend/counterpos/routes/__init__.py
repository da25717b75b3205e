# Overview: Shared helpers for the API blueprints.

from flask import jsonify

from ..errors import PosError
from ..validation import ValidationError


def error_response(exc: Exception):
    """JSON body and status for a domain or validation error."""
    if isinstance(exc, PosError):
        return jsonify(exc.to_dict()), exc.status
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc), "code": "VALIDATION_ERROR"}), 400
    raise exc
