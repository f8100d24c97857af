from functools import wraps
from flask import session, jsonify


def current_session_user():
    """The logged-in user as plain values, or None.

    Controllers pass these values on to the services explicitly.
    """
    if "user_id" not in session:
        return None
    return {
        "id": session["user_id"],
        "email": session.get("user_email"),
        "role": session.get("role"),
    }


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "error": "Unauthorized"}), 401
        if session.get("role") != "admin":
            return jsonify({"success": False, "error": "Forbidden"}), 403
        return view(*args, **kwargs)
    return wrapped
