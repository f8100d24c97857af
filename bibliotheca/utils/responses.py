from flask import current_app, jsonify, request

from bibliotheca.errors import LibraryError


def json_error(message, code=400):
    return jsonify({"success": False, "error": message}), code


def library_error(e: LibraryError):
    return jsonify(e.to_dict()), e.status_code


def server_error(e: Exception, action: str):
    current_app.logger.exception("Error %s (%s %s): %s", action, request.method, request.path, e)
    return json_error(f"Server error while {action}", 500)


def request_data() -> dict:
    """JSON body when there is one, form fields otherwise."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()
