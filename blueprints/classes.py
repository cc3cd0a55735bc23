"""Class management routes: CRUD, student assignment and teacher membership."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from audit import log_event
from helpers import admin_required, current_user_id, get_store, json_body, paginate, respond, saved, to_json
from models import SchoolClass, new_id

bp = Blueprint("classes", __name__)


@bp.route("/api/classes")
@login_required
def list_classes():
    return respond(paginate(get_store().classes.get_all(), "classes"))


@bp.route("/api/classes", methods=["POST"])
@admin_required
def create_class():
    data = json_body()
    school_class = SchoolClass.from_dict({
        "id": new_id("class"),
        "name": data.get("name", ""),
        "description": data.get("description", ""),
        "created_by": current_user_id() or "",
    })
    ok = get_store().classes.add(school_class)
    if ok:
        log_event("class_create", current_user_id(), f"class={school_class.id}")
    return saved(school_class if ok else None, "class", 201)


@bp.route("/api/classes/<class_id>")
@login_required
def get_class(class_id):
    store = get_store()
    school_class = store.classes.get_by_id(class_id)
    if school_class is None:
        return jsonify({"error": "Class not found"}), 404
    members = store.class_members(class_id)
    return respond({
        "class": school_class.to_dict(),
        "students": to_json(members["students"]),
        "teachers": to_json(members["teachers"]),
    })


@bp.route("/api/classes/<class_id>", methods=["PATCH"])
@admin_required
def update_class(class_id):
    data = json_body()
    fields = {k: data[k] for k in ("name", "description") if k in data}
    store = get_store()
    if store.classes.get_by_id(class_id) is None:
        return jsonify({"error": "Class not found"}), 404
    return saved(store.classes.update(class_id, fields), "class")


@bp.route("/api/classes/<class_id>", methods=["DELETE"])
@admin_required
def delete_class(class_id):
    store = get_store()
    if store.classes.get_by_id(class_id) is None:
        return jsonify({"error": "Class not found"}), 404
    deleted = store.delete_class(class_id)
    if deleted:
        log_event("class_delete", current_user_id(), f"class={class_id}")
    return saved(deleted, "class")


@bp.route("/api/classes/<class_id>/students/<user_id>", methods=["POST"])
@admin_required
def assign_student(class_id, user_id):
    store = get_store()
    if store.classes.get_by_id(class_id) is None:
        return jsonify({"error": "Class not found"}), 404
    student = store.users.get_by_id(user_id)
    if student is None or student.role != "student":
        return jsonify({"error": "Student not found"}), 404
    return saved(store.assign_student_to_class(user_id, class_id), "user")


@bp.route("/api/classes/<class_id>/students/<user_id>", methods=["DELETE"])
@admin_required
def unassign_student(class_id, user_id):
    store = get_store()
    student = store.users.get_by_id(user_id)
    if student is None or student.class_id != class_id:
        return jsonify({"error": "Student is not in this class"}), 404
    return saved(store.assign_student_to_class(user_id, None), "user")


@bp.route("/api/classes/<class_id>/teachers/<user_id>", methods=["POST"])
@admin_required
def toggle_teacher(class_id, user_id):
    store = get_store()
    if store.classes.get_by_id(class_id) is None:
        return jsonify({"error": "Class not found"}), 404
    teacher = store.users.get_by_id(user_id)
    if teacher is None or teacher.role == "student":
        return jsonify({"error": "Teacher not found"}), 404
    return saved(store.toggle_teacher_class(user_id, class_id), "user")
