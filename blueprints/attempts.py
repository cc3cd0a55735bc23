"""Quiz-taking routes: attempt lifecycle, results, rankings and analytics."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

import attempts as attempt_service
from audit import log_event
from helpers import (
    current_session,
    get_store,
    grading_options,
    json_body,
    respond,
    saved,
    teacher_required,
)
from quiz_analytics import course_progress, platform_stats, student_performance, student_rankings
from quiz_engine import rank_attempts

bp = Blueprint("attempts", __name__)


def _load_attempt(attempt_id):
    """Return (attempt, error_response). Students only see their own attempts."""
    attempt = get_store().attempts.get_by_id(attempt_id)
    if attempt is None:
        return None, (jsonify({"error": "Attempt not found"}), 404)
    session = current_session()
    if session.role == "student" and attempt.student_id != session.user_id:
        return None, (jsonify({"error": "Forbidden"}), 403)
    return attempt, None


def _question_id() -> str:
    return str(json_body().get("question_id", ""))


# ── Lifecycle ──────────────────────────────────────────────

@bp.route("/api/quizzes/<quiz_id>/attempts", methods=["POST"])
@login_required
def start(quiz_id):
    data = request.get_json(silent=True) or {}
    attempt = attempt_service.start_attempt(
        get_store(), quiz_id, current_session().user_id, language=data.get("language"),
    )
    return saved(attempt, "attempt", 201)


@bp.route("/api/quizzes/<quiz_id>/submit", methods=["POST"])
@login_required
def submit_sheet(quiz_id):
    """Create and grade an attempt from a complete answer sheet."""
    data = json_body()
    attempt = attempt_service.submit_answer_sheet(
        get_store(),
        quiz_id,
        current_session().user_id,
        data.get("answers", {}),
        visited=data.get("visited_questions"),
        attempted=data.get("attempted_questions"),
        marked_for_review=data.get("marked_for_review"),
        language=data.get("language"),
        **grading_options(),
    )
    if attempt is not None:
        log_event("quiz_submit", attempt.student_id, f"quiz={quiz_id} score={attempt.score}")
    return saved(attempt, "attempt", 201)


@bp.route("/api/attempts/<attempt_id>")
@login_required
def get_attempt(attempt_id):
    attempt, error = _load_attempt(attempt_id)
    if error:
        return error
    quiz = get_store().quizzes.get_by_id(attempt.quiz_id)
    remaining = attempt_service.time_remaining(attempt, quiz) if quiz and not attempt.is_submitted else 0
    return respond({"attempt": asdict(attempt), "time_remaining": remaining})


@bp.route("/api/attempts/<attempt_id>/answer", methods=["POST"])
@login_required
def answer(attempt_id):
    _, error = _load_attempt(attempt_id)
    if error:
        return error
    data = json_body()
    updated = attempt_service.record_answer(
        get_store(), attempt_id, str(data.get("question_id", "")), data.get("answer"),
        **grading_options(),
    )
    return saved(updated, "attempt")


@bp.route("/api/attempts/<attempt_id>/visit", methods=["POST"])
@login_required
def visit(attempt_id):
    _, error = _load_attempt(attempt_id)
    if error:
        return error
    return saved(attempt_service.visit_question(get_store(), attempt_id, _question_id()), "attempt")


@bp.route("/api/attempts/<attempt_id>/review", methods=["POST"])
@login_required
def review(attempt_id):
    _, error = _load_attempt(attempt_id)
    if error:
        return error
    return saved(attempt_service.toggle_review(get_store(), attempt_id, _question_id()), "attempt")


@bp.route("/api/attempts/<attempt_id>/submit", methods=["POST"])
@login_required
def submit(attempt_id):
    _, error = _load_attempt(attempt_id)
    if error:
        return error
    attempt = attempt_service.submit_attempt(get_store(), attempt_id, **grading_options())
    if attempt is not None:
        log_event("quiz_submit", attempt.student_id, f"quiz={attempt.quiz_id} score={attempt.score}")
    return saved(attempt, "attempt")


# ── Results ────────────────────────────────────────────────

@bp.route("/api/quizzes/<quiz_id>/result")
@login_required
def result(quiz_id):
    session = current_session()
    student_id = session.user_id
    if session.role in ("teacher", "admin"):
        student_id = request.args.get("student_id") or student_id
    summary = attempt_service.student_result(
        get_store(), quiz_id, student_id,
        pass_percentage=current_app.config.get("PASS_PERCENTAGE", 40),
    )
    if summary is None:
        return jsonify({"error": "No submitted attempt for this quiz"}), 404
    return respond({"result": summary})


@bp.route("/api/quizzes/<quiz_id>/ranking")
@login_required
def ranking(quiz_id):
    store = get_store()
    if store.quizzes.get_by_id(quiz_id) is None:
        return jsonify({"error": "Quiz not found"}), 404
    names = {u.id: u.name for u in store.users.get_all()}
    rows = [
        {"rank": position, "student_name": names.get(entry.student_id, ""), **asdict(entry)}
        for position, entry in enumerate(rank_attempts(store.attempts_for_quiz(quiz_id), quiz_id), start=1)
    ]
    return respond({"ranking": rows, "total_participants": len(rows)})


# ── Analytics ──────────────────────────────────────────────

@bp.route("/api/analytics/rankings")
@teacher_required
def rankings():
    store = get_store()
    rows = student_rankings(store.quizzes.get_all(), store.attempts.get_all(), store.users_with_role("student"))
    return respond({"rankings": rows})


@bp.route("/api/analytics/overview")
@teacher_required
def overview():
    return respond({"stats": platform_stats(get_store())})


def _analytics_student_id() -> str:
    session = current_session()
    if session.role in ("teacher", "admin"):
        return request.args.get("student_id") or session.user_id
    return session.user_id


@bp.route("/api/analytics/progress")
@login_required
def progress():
    """Per-course completion and certificate eligibility."""
    return respond({"courses": course_progress(get_store(), _analytics_student_id())})


@bp.route("/api/analytics/performance")
@login_required
def performance():
    course_id = request.args.get("course_id") or None
    return respond({"performance": student_performance(get_store(), _analytics_student_id(), course_id)})
