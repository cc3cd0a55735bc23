"""
Shared helpers used across blueprints.

Extracted from app.py to break circular dependencies.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, Optional

from flask import current_app, g, has_app_context, jsonify, request
from flask_login import current_user

from errors import ValidationError
from session_context import SessionContext
from storage_backend import get_storage
from stores import SchoolStore

logger = logging.getLogger(__name__)

STORAGE_REFUSED = "Storage is full or unavailable; the change was not saved."


# ── Store and session ──────────────────────────────────────

def _notify(message: str) -> None:
    """Collect refused-write messages for the current response."""
    if has_app_context():
        g.setdefault("warnings", []).append(message)
    else:
        logger.warning(message)


def get_store() -> SchoolStore:
    """Return the request's SchoolStore, bound to the active medium."""
    if "store" not in g:
        g.store = SchoolStore(get_storage(), notifier=_notify)
    return g.store


def current_user_id() -> Optional[str]:
    """Return the current authenticated user's ID, or None."""
    if current_user.is_authenticated:
        return current_user.id
    return None


def current_session() -> SessionContext:
    """The signed-in user as stored, cached for the rest of the request."""
    if "session_ctx" not in g:
        uid = current_user_id()
        user = get_store().users.get_by_id(uid) if uid else None
        g.session_ctx = SessionContext(user)
    return g.session_ctx


def refresh_session_user(updated) -> bool:
    """Swap in the stored copy of the signed-in user after an update."""
    return current_session().refresh(updated)


def role_required(*roles: str) -> Callable:
    """Decorator that requires a signed-in user with one of these roles."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated(*args: Any, **kwargs: Any) -> Any:
            if not current_user.is_authenticated:
                return jsonify({"error": "Login required"}), 401
            if roles and getattr(current_user, "role", "student") not in roles:
                return jsonify({"error": "Forbidden"}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


teacher_required = role_required("teacher", "admin")
admin_required = role_required("admin")


def grading_options() -> dict[str, Any]:
    return {"clamp_at_zero": bool(current_app.config.get("CLAMP_NEGATIVE_SCORES", False))}


# ── Request and response ───────────────────────────────────

def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def to_json(value: Any) -> Any:
    """Dataclass records (or lists of them) to plain JSON data."""
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def respond(payload: dict[str, Any], status: int = 200):
    """jsonify a payload, attaching any storage warnings raised by the request."""
    warnings = g.get("warnings")
    if warnings:
        payload = {**payload, "warnings": list(warnings)}
    return jsonify(payload), status


def saved(result: Any, key: str, status: int = 200):
    """Respond with a written record, or 507 when the medium refused it."""
    if result is None or result is False:
        return jsonify({"error": STORAGE_REFUSED, "warnings": list(g.get("warnings", []))}), 507
    if result is True:
        return respond({"success": True}, status)
    return respond({key: to_json(result)}, status)


def paginate_args(default_limit: int = 20, max_limit: int = 100) -> tuple[int, int]:
    """Extract page/limit from request.args. Returns (page, limit)."""
    try:
        page = max(1, int(request.args.get("page", 1)))
    except (ValueError, TypeError):
        page = 1
    try:
        limit = min(max_limit, max(1, int(request.args.get("limit", default_limit))))
    except (ValueError, TypeError):
        limit = default_limit
    return page, limit


def paginated_response(items: list, total: int, page: int, limit: int, key: str = "items") -> dict:
    """Standard pagination envelope."""
    return {
        key: items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": max(1, (total + limit - 1) // limit),
        },
    }


def paginate(records: list, key: str = "items") -> dict:
    """Slice a full list per the request's page/limit and wrap it."""
    page, limit = paginate_args()
    start = (page - 1) * limit
    return paginated_response(to_json(records[start:start + limit]), len(records), page, limit, key)
