# Overview: Request decorators for API routes.

import hmac
from functools import wraps

from flask import current_app, jsonify, request

from .errors import NotFound, StoreError


def require_staff(f):
    """
    Require the X-Staff-Code header for staff-only writes.

    The expected code comes from STAFF_ACCESS_CODE; when it is not
    configured every staff request is refused.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("STAFF_ACCESS_CODE")
        supplied = request.headers.get("X-Staff-Code", "")

        if not expected:
            return jsonify({"error": "Staff access is not configured"}), 403
        if not hmac.compare_digest(supplied.encode(), str(expected).encode()):
            return jsonify({"error": "Staff access required"}), 403

        return f(*args, **kwargs)

    return decorated_function


def handle_store_errors(action: str):
    """
    Map domain errors to JSON responses.

    - NotFound -> 404
    - other StoreError -> 400 with {"error", "code", "details"}
    - anything else is logged and returned as 500
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except NotFound as e:
                return jsonify(e.to_dict()), 404
            except StoreError as e:
                return jsonify(e.to_dict()), 400
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
