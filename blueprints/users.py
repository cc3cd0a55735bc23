"""User directory and admin user management routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required, logout_user

from audit import log_event
from helpers import (
    admin_required,
    current_user_id,
    get_store,
    json_body,
    paginate,
    refresh_session_user,
    respond,
    saved,
)
from models import ROLES, User, new_id

bp = Blueprint("users", __name__)

EDITABLE_FIELDS = (
    "name", "email", "role", "profile_photo", "date_of_birth", "phone_number",
    "address", "enrollment_number", "department", "class_id", "classes",
)


@bp.route("/api/users")
@login_required
def list_users():
    store = get_store()
    role = request.args.get("role", "")
    users = store.users_with_role(role) if role in ROLES else store.users.get_all()
    q = request.args.get("q", "").strip().lower()
    if q:
        users = [u for u in users if q in u.name.lower() or q in u.email]
    return respond(paginate(users, "users"))


@bp.route("/api/users", methods=["POST"])
@admin_required
def create_user():
    data = json_body()
    fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    user = User.from_dict({"id": new_id("user"), **fields})
    if not get_store().add_user(user):
        return saved(None, "user")
    log_event("user_create", current_user_id(), f"user={user.id} role={user.role}")
    return saved(user, "user", 201)


@bp.route("/api/users/<user_id>")
@login_required
def get_user(user_id):
    user = get_store().users.get_by_id(user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return respond({"user": user.to_dict()})


@bp.route("/api/users/<user_id>", methods=["PATCH"])
@admin_required
def update_user(user_id):
    data = json_body()
    fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
    store = get_store()
    if store.users.get_by_id(user_id) is None:
        return jsonify({"error": "User not found"}), 404
    updated = store.update_user(user_id, fields)
    refresh_session_user(updated)
    log_event("user_update", current_user_id(), f"user={user_id}")
    return saved(updated, "user")


@bp.route("/api/users/<user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    store = get_store()
    if store.users.get_by_id(user_id) is None:
        return jsonify({"error": "User not found"}), 404
    deleted = store.delete_user(user_id)
    if deleted:
        log_event("user_delete", current_user_id(), f"user={user_id}")
        if current_user_id() == user_id:
            logout_user()
    return saved(deleted, "user")
