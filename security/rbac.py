import hmac
from functools import wraps
from flask import current_app, request, jsonify

def admin_denied():
    """
    None when the request may act as admin, else the (response, status) to
    return. No ADMIN_API_TOKEN configured = open.
    """
    expected = current_app.config.get("ADMIN_API_TOKEN")
    if not expected:
        return None

    header = current_app.config.get("ADMIN_TOKEN_HEADER", "X-Admin-Token")
    supplied = request.headers.get(header)
    if not supplied:
        return jsonify(error="Authentication required"), 401
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        return jsonify(error="Forbidden"), 403
    return None

def require_admin(fn):
    """
    Usage: @require_admin

    Identity lives with the external auth provider; admin calls prove
    themselves with the shared ADMIN_API_TOKEN.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        failure = admin_denied()
        if failure:
            return failure
        return fn(*args, **kwargs)
    return wrapper
