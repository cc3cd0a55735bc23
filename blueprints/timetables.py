"""Class timetable routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from classroom import add_slot, create_timetable, remove_slot, slots_by_day, update_slot
from helpers import admin_required, current_user_id, get_store, json_body, respond, saved, to_json

bp = Blueprint("timetables", __name__)


@bp.route("/api/classes/<class_id>/timetable")
@login_required
def get_timetable(class_id):
    timetable = get_store().timetable_for_class(class_id)
    if timetable is None:
        return jsonify({"error": "No timetable for this class"}), 404
    week = {day: to_json(slots) for day, slots in slots_by_day(timetable).items()}
    return respond({"timetable": timetable.to_dict(), "week": week})


@bp.route("/api/classes/<class_id>/timetable", methods=["POST"])
@admin_required
def create(class_id):
    return saved(create_timetable(get_store(), class_id, created_by=current_user_id() or ""), "timetable", 201)


@bp.route("/api/timetables/<timetable_id>", methods=["DELETE"])
@admin_required
def delete(timetable_id):
    store = get_store()
    if store.timetables.get_by_id(timetable_id) is None:
        return jsonify({"error": "Timetable not found"}), 404
    return saved(store.timetables.delete(timetable_id), "timetable")


@bp.route("/api/timetables/<timetable_id>/slots", methods=["POST"])
@admin_required
def create_slot(timetable_id):
    return saved(add_slot(get_store(), timetable_id, json_body()), "timetable", 201)


@bp.route("/api/timetables/<timetable_id>/slots/<slot_id>", methods=["PATCH"])
@admin_required
def edit_slot(timetable_id, slot_id):
    return saved(update_slot(get_store(), timetable_id, slot_id, json_body()), "timetable")


@bp.route("/api/timetables/<timetable_id>/slots/<slot_id>", methods=["DELETE"])
@admin_required
def delete_slot(timetable_id, slot_id):
    return saved(remove_slot(get_store(), timetable_id, slot_id), "timetable")
