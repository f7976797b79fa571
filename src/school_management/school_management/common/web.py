"""Flask helpers shared by the feature controllers."""

from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue."}), 401
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Please log in to continue."}), 401
            if session.get("role") not in allowed:
                return jsonify({"success": False, "message": "You do not have access to this resource."}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


admin_required = roles_required(Role.ADMIN)


def json_endpoint(failure_message: str):
    """Map domain errors to JSON responses.

    Validation -> 422 with per-field errors, not found -> 404, auth -> 401/403,
    anything else -> 500 with the exception text.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ValidationError as e:
                return jsonify({"success": False, "message": str(e), "errors": e.errors}), 422
            except NotFoundError as e:
                return jsonify({"success": False, "message": str(e)}), 404
            except AuthenticationError as e:
                return jsonify({"success": False, "message": str(e)}), 401
            except AuthorizationError as e:
                return jsonify({"success": False, "message": str(e)}), 403
            except Exception as e:
                logger.exception("%s", failure_message)
                return jsonify({"success": False, "message": failure_message, "error": str(e)}), 500

        return wrapper

    return decorator


def current_user_id() -> int:
    return int(session["user_id"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def arg_date(name: str, default: Optional[date] = None) -> Optional[date]:
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}", {name: [f"The {name} is not a valid date."]})


def arg_int(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}", {name: [f"The {name} must be an integer."]})
