"""Quiz routes: CRUD, teacher reports and the shared question bank."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from audit import log_event
from classroom import search_questions
from helpers import (
    current_session,
    current_user_id,
    get_store,
    json_body,
    paginate,
    paginate_args,
    paginated_response,
    respond,
    saved,
    teacher_required,
)
from models import Question, Quiz, new_id
from quiz_analytics import quiz_report
from quiz_engine import total_marks

bp = Blueprint("quizzes", __name__)

QUIZ_FIELDS = ("title", "description", "course_id", "duration", "instructions", "supported_languages")


def _with_ids(questions: list) -> list:
    """Give every incoming question dict an id if it has none."""
    if not isinstance(questions, list):
        return questions  # left for Quiz.from_dict to refuse
    out = []
    for q in questions:
        if isinstance(q, dict) and not q.get("id"):
            q = {**q, "id": new_id("q")}
        out.append(q)
    return out


def _quiz_payload(quiz: Quiz, hide_answers: bool) -> dict:
    data = quiz.to_dict()
    data["total_marks"] = total_marks(quiz)
    if hide_answers:
        for q in data["questions"]:
            q.pop("correct_answer", None)
    return data


# ── Quizzes ────────────────────────────────────────────────

@bp.route("/api/quizzes")
@login_required
def list_quizzes():
    store = get_store()
    course_id = request.args.get("course_id", "")
    quizzes = store.quizzes_for_course(course_id) if course_id else store.quizzes.get_all()
    hide = current_session().role == "student"
    page, limit = paginate_args()
    start = (page - 1) * limit
    items = [_quiz_payload(q, hide) for q in quizzes[start:start + limit]]
    return respond(paginated_response(items, len(quizzes), page, limit, "quizzes"))


@bp.route("/api/quizzes", methods=["POST"])
@teacher_required
def create_quiz():
    data = json_body()
    store = get_store()
    course_id = data.get("course_id", "")
    if store.courses.get_by_id(course_id) is None:
        return jsonify({"error": "Course not found"}), 404

    quiz = Quiz.from_dict({
        "id": new_id("quiz"),
        **{k: data[k] for k in QUIZ_FIELDS if k in data},
        "questions": _with_ids(data.get("questions", [])),
        "created_by": current_user_id() or "",
    })
    ok = store.add_quiz(quiz)
    if ok:
        log_event("quiz_create", current_user_id(), f"quiz={quiz.id} course={course_id}")
    return saved(quiz if ok else None, "quiz", 201)


@bp.route("/api/quizzes/<quiz_id>")
@login_required
def get_quiz(quiz_id):
    quiz = get_store().quizzes.get_by_id(quiz_id)
    if quiz is None:
        return jsonify({"error": "Quiz not found"}), 404
    return respond({"quiz": _quiz_payload(quiz, current_session().role == "student")})


@bp.route("/api/quizzes/<quiz_id>", methods=["PATCH"])
@teacher_required
def update_quiz(quiz_id):
    data = json_body()
    store = get_store()
    quiz = store.quizzes.get_by_id(quiz_id)
    if quiz is None:
        return jsonify({"error": "Quiz not found"}), 404
    fields = {k: data[k] for k in QUIZ_FIELDS if k in data and k != "course_id"}
    if "questions" in data:
        fields["questions"] = _with_ids(data["questions"])
    return saved(store.quizzes.update(quiz_id, fields), "quiz")


@bp.route("/api/quizzes/<quiz_id>", methods=["DELETE"])
@teacher_required
def delete_quiz(quiz_id):
    store = get_store()
    if store.quizzes.get_by_id(quiz_id) is None:
        return jsonify({"error": "Quiz not found"}), 404
    deleted = store.delete_quiz(quiz_id)
    if deleted:
        log_event("quiz_delete", current_user_id(), f"quiz={quiz_id}")
    return saved(deleted, "quiz")


@bp.route("/api/quizzes/<quiz_id>/report")
@teacher_required
def report(quiz_id):
    store = get_store()
    quiz = store.quizzes.get_by_id(quiz_id)
    if quiz is None:
        return jsonify({"error": "Quiz not found"}), 404
    result = quiz_report(
        quiz,
        store.attempts_for_quiz(quiz_id),
        store.users.get_all(),
        pass_percentage=current_app.config.get("PASS_PERCENTAGE", 40),
    )
    return respond({"report": result})


# ── Question bank ──────────────────────────────────────────

@bp.route("/api/question-bank")
@teacher_required
def list_question_bank():
    questions = search_questions(
        get_store(),
        request.args.get("q", ""),
        request.args.get("difficulty") or None,
    )
    return respond(paginate(questions, "questions"))


@bp.route("/api/question-bank", methods=["POST"])
@teacher_required
def add_question():
    data = json_body()
    question = Question.from_dict(_with_ids([data])[0])
    ok = get_store().question_bank.add(question)
    return saved(question if ok else None, "question", 201)


@bp.route("/api/question-bank/<question_id>", methods=["DELETE"])
@teacher_required
def delete_question(question_id):
    store = get_store()
    if store.question_bank.get_by_id(question_id) is None:
        return jsonify({"error": "Question not found"}), 404
    return saved(store.question_bank.delete(question_id), "question")
