"""School calendar routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from helpers import current_user_id, get_store, json_body, paginate, respond, saved, teacher_required
from models import CalendarEvent, new_id

bp = Blueprint("calendar", __name__)

EVENT_FIELDS = ("title", "description", "type", "start_date", "end_date", "category", "color")


@bp.route("/api/calendar")
@login_required
def list_events():
    """Events sorted by start date, optionally limited to one YYYY-MM month."""
    events = get_store().calendar_events.get_all()
    month = request.args.get("month", "")
    if month:
        events = [e for e in events if e.start_date.startswith(month) or e.end_date.startswith(month)]
    event_type = request.args.get("type", "")
    if event_type:
        events = [e for e in events if e.type == event_type]
    events.sort(key=lambda e: e.start_date)
    return respond(paginate(events, "events"))


@bp.route("/api/calendar", methods=["POST"])
@teacher_required
def create_event():
    data = json_body()
    event = CalendarEvent.from_dict({
        "id": new_id("evt"),
        **{k: data[k] for k in EVENT_FIELDS if k in data},
        "created_by": current_user_id() or "",
    })
    ok = get_store().calendar_events.add(event)
    return saved(event if ok else None, "event", 201)


@bp.route("/api/calendar/<event_id>", methods=["DELETE"])
@teacher_required
def delete_event(event_id):
    store = get_store()
    if store.calendar_events.get_by_id(event_id) is None:
        return jsonify({"error": "Event not found"}), 404
    return saved(store.calendar_events.delete(event_id), "event")
