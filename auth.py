"""
User Authentication: Flask-Login blueprint.

Provides signup, login, logout and profile routes as JSON endpoints.
Users sign in by email alone; there are no passwords and role checks are
advisory.
"""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import LoginManager, UserMixin, current_user, login_required, login_user, logout_user

from audit import log_event
from helpers import current_session, get_store, json_body, refresh_session_user, respond, saved, to_json
from models import User as UserRecord, new_id

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()

# Fields a signed-in user may change on their own profile.
PROFILE_FIELDS = (
    "name", "email", "profile_photo", "date_of_birth", "phone_number", "address",
    "enrollment_number", "department",
)
SIGNUP_FIELDS = PROFILE_FIELDS + ("role",)


class User(UserMixin):
    """Wraps a stored user record for Flask-Login."""

    def __init__(self, record: UserRecord):
        self.record = record
        self.id = record.id
        self.name = record.name
        self.email = record.email
        self.role = record.role

    @property
    def is_teacher(self):
        return self.role == "teacher"

    @property
    def is_admin(self):
        return self.role == "admin"

    @staticmethod
    def get(user_id: str):
        record = get_store().users.get_by_id(user_id)
        return User(record) if record else None


@login_manager.user_loader
def load_user(user_id):
    return User.get(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Login required"}), 401


@auth_bp.route("/api/auth/signup", methods=["POST"])
def signup():
    data = json_body()
    fields = {k: data[k] for k in SIGNUP_FIELDS if k in data}
    fields.setdefault("role", "student")
    record = UserRecord.from_dict({"id": new_id("user"), **fields})

    store = get_store()
    if not store.add_user(record):
        return saved(None, "user")

    login_user(User(record), remember=True)
    log_event("signup", record.id, f"email={record.email} role={record.role}")
    return respond({"user": to_json(record)}, 201)


@auth_bp.route("/api/auth/login", methods=["POST"])
def login():
    data = json_body()
    email = str(data.get("email", "")).strip().lower()
    if not email:
        return jsonify({"error": "Email is required."}), 400

    record = get_store().get_user_by_email(email)
    if record is None:
        log_event("login_failed", None, f"email={email}")
        return jsonify({"error": "No account with this email."}), 401

    login_user(User(record), remember=True)
    log_event("login_success", record.id)
    return respond({"user": to_json(record)})


@auth_bp.route("/api/auth/logout", methods=["POST"])
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    log_event("logout", uid)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/auth/me")
@login_required
def me():
    session = current_session()
    if not session.is_authenticated:
        logout_user()
        return jsonify({"error": "Login required"}), 401
    return respond({"user": to_json(session.user)})


@auth_bp.route("/api/auth/me", methods=["PATCH"])
@login_required
def update_me():
    data = json_body()
    fields = {k: data[k] for k in PROFILE_FIELDS if k in data}
    updated = get_store().update_user(current_user.id, fields)
    if updated is not None:
        refresh_session_user(updated)
        log_event("profile_update", updated.id, ",".join(sorted(fields)))
    return saved(current_session().user if updated is not None else None, "user")
