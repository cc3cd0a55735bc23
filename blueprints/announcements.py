"""Announcement routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from audit import log_event
from classroom import mark_announcement_read, unread_count, visible_announcements
from helpers import (
    current_session,
    current_user_id,
    get_store,
    json_body,
    paginate,
    respond,
    saved,
    teacher_required,
)
from models import Announcement, new_id

bp = Blueprint("announcements", __name__)


@bp.route("/api/announcements")
@login_required
def list_announcements():
    session = current_session()
    store = get_store()
    page = paginate(visible_announcements(store, session.role), "announcements")
    page["unread"] = unread_count(store, session.role, session.user_id)
    return respond(page)


@bp.route("/api/announcements", methods=["POST"])
@teacher_required
def create_announcement():
    data = json_body()
    announcement = Announcement.from_dict({
        "id": new_id("ann"),
        **{k: data[k] for k in ("title", "content", "priority", "visibility", "attachments") if k in data},
        "created_by": current_user_id() or "",
    })
    ok = get_store().announcements.add(announcement)
    if ok:
        log_event("announcement_create", current_user_id(), f"announcement={announcement.id}")
    return saved(announcement if ok else None, "announcement", 201)


@bp.route("/api/announcements/<announcement_id>/read", methods=["POST"])
@login_required
def mark_read(announcement_id):
    store = get_store()
    if store.announcements.get_by_id(announcement_id) is None:
        return jsonify({"error": "Announcement not found"}), 404
    return saved(mark_announcement_read(store, announcement_id, current_user_id()), "announcement")


@bp.route("/api/announcements/<announcement_id>", methods=["DELETE"])
@teacher_required
def delete_announcement(announcement_id):
    store = get_store()
    if store.announcements.get_by_id(announcement_id) is None:
        return jsonify({"error": "Announcement not found"}), 404
    return saved(store.announcements.delete(announcement_id), "announcement")
