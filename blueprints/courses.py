"""Course routes: CRUD, enrolment and a course's quizzes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from audit import log_event
from helpers import (
    current_session,
    current_user_id,
    get_store,
    json_body,
    paginate,
    respond,
    saved,
    teacher_required,
    to_json,
)
from models import Course, new_id

bp = Blueprint("courses", __name__)

COURSE_FIELDS = ("title", "description", "thumbnail")


@bp.route("/api/courses")
@login_required
def list_courses():
    store = get_store()
    session = current_session()
    scope = request.args.get("scope", "")
    if scope == "enrolled":
        courses = store.courses_for_student(session.user_id)
    elif scope == "mine":
        courses = store.courses_created_by(session.user_id)
    else:
        courses = store.courses.get_all()
    return respond(paginate(courses, "courses"))


@bp.route("/api/courses", methods=["POST"])
@teacher_required
def create_course():
    data = json_body()
    course = Course.from_dict({
        "id": new_id("course"),
        **{k: data[k] for k in COURSE_FIELDS if k in data},
        "created_by": current_user_id() or "",
    })
    ok = get_store().courses.add(course)
    if ok:
        log_event("course_create", current_user_id(), f"course={course.id}")
    return saved(course if ok else None, "course", 201)


@bp.route("/api/courses/<course_id>")
@login_required
def get_course(course_id):
    store = get_store()
    course = store.courses.get_by_id(course_id)
    if course is None:
        return jsonify({"error": "Course not found"}), 404
    return respond({
        "course": course.to_dict(),
        "quizzes": to_json(store.quizzes_for_course(course_id)),
        "assignments": to_json(store.assignments_for_course(course_id)),
    })


@bp.route("/api/courses/<course_id>", methods=["PATCH"])
@teacher_required
def update_course(course_id):
    data = json_body()
    store = get_store()
    if store.courses.get_by_id(course_id) is None:
        return jsonify({"error": "Course not found"}), 404
    fields = {k: data[k] for k in COURSE_FIELDS if k in data}
    return saved(store.courses.update(course_id, fields), "course")


@bp.route("/api/courses/<course_id>", methods=["DELETE"])
@teacher_required
def delete_course(course_id):
    store = get_store()
    if store.courses.get_by_id(course_id) is None:
        return jsonify({"error": "Course not found"}), 404
    deleted = store.courses.delete(course_id)
    if deleted:
        log_event("course_delete", current_user_id(), f"course={course_id}")
    return saved(deleted, "course")


@bp.route("/api/courses/<course_id>/enroll", methods=["POST"])
@login_required
def enroll(course_id):
    """Enrol the signed-in student, or the student_id a teacher names."""
    data = request.get_json(silent=True) or {}
    session = current_session()
    student_id = data.get("student_id") if session.role in ("teacher", "admin") else None
    student_id = student_id or session.user_id

    store = get_store()
    if store.courses.get_by_id(course_id) is None:
        return jsonify({"error": "Course not found"}), 404
    student = store.users.get_by_id(student_id)
    if student is None or student.role != "student":
        return jsonify({"error": "Only students can enrol in a course"}), 400
    return saved(store.enroll_student(course_id, student_id), "course")
