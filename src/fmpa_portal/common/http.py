from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import g, jsonify, session

from ..auth.capabilities import Caller, resolve_caller
from ..core.enums import ErrorKind, Permission
from ..core.result import Failure, Result

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BUSINESS_RULE: 422,
    ErrorKind.CONFLICT: 409,
}


def to_jsonable(value: Any) -> Any:
    """Dataclasses, enums, decimals and dates into plain JSON types."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value


def failure_response(failure: Failure):
    return jsonify({"success": False, "error": to_jsonable(failure.to_dict())}), STATUS_BY_KIND[failure.kind]


def result_response(result: Result, *, status: int = 200, **extra: Any):
    if not result.ok:
        return failure_response(result.error)
    body = {"success": True, "data": to_jsonable(result.value)}
    body.update({k: to_jsonable(v) for k, v in extra.items()})
    return jsonify(body), status


def current_caller() -> Optional[Caller]:
    if "caller" not in g:
        g.caller = resolve_caller(session.get("user_id"), session.get("role"), session.get("permissions"))
    return g.caller


def permission_required(permission: Permission):
    """401 without a session user, 403 when the caller lacks ``permission``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            caller = current_caller()
            if caller is None:
                return jsonify({"success": False, "message": "Authentication required"}), 401
            if not caller.can(permission):
                return (
                    jsonify({"success": False, "message": f"Missing permission {permission.value}"}),
                    403,
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator
