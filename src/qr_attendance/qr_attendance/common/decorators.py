from __future__ import annotations

from functools import wraps

from flask import jsonify, session

from ..core.enums import Role


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"message": "Not authenticated"}), 401
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    """Allow only the listed roles; everyone else gets a 403 body."""

    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"message": "Not authenticated"}), 401
            if session.get("role") not in allowed:
                return jsonify({"message": "You do not have access to this action"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator
