"""Assignment routes: CRUD, student submissions and grading."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from audit import log_event
from classroom import grade_submission, submit_assignment
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
from models import Assignment, new_id

bp = Blueprint("assignments", __name__)

ASSIGNMENT_FIELDS = (
    "title", "description", "course_id", "due_date", "max_marks", "attachments", "allow_late_submission",
)


@bp.route("/api/assignments")
@login_required
def list_assignments():
    store = get_store()
    course_id = request.args.get("course_id", "")
    assignments = store.assignments_for_course(course_id) if course_id else store.assignments.get_all()
    assignments.sort(key=lambda a: a.due_date)
    return respond(paginate(assignments, "assignments"))


@bp.route("/api/assignments", methods=["POST"])
@teacher_required
def create_assignment():
    data = json_body()
    store = get_store()
    if store.courses.get_by_id(data.get("course_id", "")) is None:
        return jsonify({"error": "Course not found"}), 404
    assignment = Assignment.from_dict({
        "id": new_id("asg"),
        **{k: data[k] for k in ASSIGNMENT_FIELDS if k in data},
        "created_by": current_user_id() or "",
    })
    ok = store.assignments.add(assignment)
    if ok:
        log_event("assignment_create", current_user_id(), f"assignment={assignment.id}")
    return saved(assignment if ok else None, "assignment", 201)


@bp.route("/api/assignments/<assignment_id>")
@login_required
def get_assignment(assignment_id):
    store = get_store()
    assignment = store.assignments.get_by_id(assignment_id)
    if assignment is None:
        return jsonify({"error": "Assignment not found"}), 404
    session = current_session()
    mine = [s.to_dict() for s in store.submissions_for_assignment(assignment_id)
            if s.student_id == session.user_id]
    return respond({"assignment": assignment.to_dict(), "my_submissions": mine})


@bp.route("/api/assignments/<assignment_id>", methods=["PATCH"])
@teacher_required
def update_assignment(assignment_id):
    data = json_body()
    store = get_store()
    if store.assignments.get_by_id(assignment_id) is None:
        return jsonify({"error": "Assignment not found"}), 404
    fields = {k: data[k] for k in ASSIGNMENT_FIELDS if k in data}
    return saved(store.assignments.update(assignment_id, fields), "assignment")


@bp.route("/api/assignments/<assignment_id>", methods=["DELETE"])
@teacher_required
def delete_assignment(assignment_id):
    store = get_store()
    if store.assignments.get_by_id(assignment_id) is None:
        return jsonify({"error": "Assignment not found"}), 404
    return saved(store.assignments.delete(assignment_id), "assignment")


# ── Submissions ────────────────────────────────────────────

@bp.route("/api/assignments/<assignment_id>/submissions")
@teacher_required
def list_submissions(assignment_id):
    store = get_store()
    if store.assignments.get_by_id(assignment_id) is None:
        return jsonify({"error": "Assignment not found"}), 404
    return respond(paginate(store.submissions_for_assignment(assignment_id), "submissions"))


@bp.route("/api/assignments/<assignment_id>/submissions", methods=["POST"])
@login_required
def submit(assignment_id):
    data = json_body()
    submission = submit_assignment(
        get_store(), assignment_id, current_user_id(), data.get("content", ""),
        attachments=data.get("attachments"),
    )
    return saved(submission, "submission", 201)


@bp.route("/api/submissions/<submission_id>/grade", methods=["POST"])
@teacher_required
def grade(submission_id):
    data = json_body()
    submission = grade_submission(get_store(), submission_id, data.get("marks"), str(data.get("feedback", "")))
    if submission is not None:
        log_event("submission_grade", current_user_id(), f"submission={submission_id} marks={submission.marks}")
    return saved(submission, "submission")
