"""
Quiz attempt lifecycle against the store.

in-progress (submitted_at unset, answers mutable) -> submitted (terminal).
Service functions return the stored record, or None when the medium refused
the write; NotFoundError / AttemptClosedError / ValidationError signal caller
mistakes.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional

from errors import AttemptClosedError, NotFoundError, ValidationError
from models import Quiz, QuizAttempt, new_id, parse_iso
from quiz_engine import (
    best_attempt,
    grade_attempt,
    is_answered,
    percentage,
    rank_attempts,
    rank_of,
    score_attempt,
)
from stores import SchoolStore

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _get_quiz(store: SchoolStore, quiz_id: str) -> Quiz:
    quiz = store.quizzes.get_by_id(quiz_id)
    if quiz is None:
        raise NotFoundError("quiz", quiz_id)
    return quiz


def _get_attempt(store: SchoolStore, attempt_id: str) -> QuizAttempt:
    attempt = store.attempts.get_by_id(attempt_id)
    if attempt is None:
        raise NotFoundError("attempt", attempt_id)
    return attempt


def _open_attempt(store: SchoolStore, attempt_id: str, question_id: str) -> tuple[QuizAttempt, Quiz]:
    attempt = _get_attempt(store, attempt_id)
    if attempt.is_submitted:
        raise AttemptClosedError(f"attempt {attempt_id} was submitted at {attempt.submitted_at}")
    quiz = _get_quiz(store, attempt.quiz_id)
    if quiz.question(question_id) is None:
        raise ValidationError(f"question {question_id!r} is not part of quiz {quiz.id}")
    return attempt, quiz


def _with(ids: list[str], item: str) -> list[str]:
    return ids if item in ids else ids + [item]


def _without(ids: list[str], item: str) -> list[str]:
    return [i for i in ids if i != item]


# ── Lifecycle ──────────────────────────────────────────────

def start_attempt(store: SchoolStore, quiz_id: str, student_id: str,
                  language: Optional[str] = None, now: Optional[datetime] = None) -> Optional[QuizAttempt]:
    quiz = _get_quiz(store, quiz_id)
    language = language or quiz.supported_languages[0]
    if language not in quiz.supported_languages:
        raise ValidationError(f"quiz {quiz_id} is not offered in {language!r}")

    attempt = QuizAttempt(
        id=new_id("att"),
        quiz_id=quiz_id,
        student_id=student_id,
        started_at=_now(now).isoformat(),
        selected_language=language,
    )
    if not store.attempts.add(attempt):
        return None
    logger.info("Student %s started attempt %s on quiz %s", student_id, attempt.id, quiz_id)
    return attempt


def time_remaining(attempt: QuizAttempt, quiz: Quiz, now: Optional[datetime] = None) -> int:
    """Seconds left before the quiz duration runs out (never negative)."""
    started = parse_iso(attempt.started_at)
    if started is None:
        return int(quiz.duration * 60)
    elapsed = (_now(now) - started).total_seconds()
    return max(0, int(quiz.duration * 60 - elapsed))


def visit_question(store: SchoolStore, attempt_id: str, question_id: str) -> Optional[QuizAttempt]:
    attempt, _ = _open_attempt(store, attempt_id, question_id)
    return store.attempts.update(attempt_id, {
        "visited_questions": _with(attempt.visited_questions, question_id),
    })


def record_answer(store: SchoolStore, attempt_id: str, question_id: str, answer: Any,
                  now: Optional[datetime] = None, clamp_at_zero: bool = False) -> Optional[QuizAttempt]:
    """Store an answer; an empty answer clears the question instead.

    Once the quiz duration has elapsed the attempt is submitted as it stands
    and the answer is refused.
    """
    attempt, quiz = _open_attempt(store, attempt_id, question_id)
    if time_remaining(attempt, quiz, now) == 0:
        submit_attempt(store, attempt_id, now=now, clamp_at_zero=clamp_at_zero)
        raise AttemptClosedError(f"time is up for attempt {attempt_id}; it has been submitted")

    answers = dict(attempt.answers)
    if is_answered(answer):
        answers[question_id] = answer
        attempted = _with(attempt.attempted_questions, question_id)
    else:
        answers.pop(question_id, None)
        attempted = _without(attempt.attempted_questions, question_id)
    return store.attempts.update(attempt_id, {
        "answers": answers,
        "attempted_questions": attempted,
        "visited_questions": _with(attempt.visited_questions, question_id),
    })


def clear_answer(store: SchoolStore, attempt_id: str, question_id: str,
                 now: Optional[datetime] = None) -> Optional[QuizAttempt]:
    return record_answer(store, attempt_id, question_id, None, now=now)


def toggle_review(store: SchoolStore, attempt_id: str, question_id: str) -> Optional[QuizAttempt]:
    attempt, _ = _open_attempt(store, attempt_id, question_id)
    if question_id in attempt.marked_for_review:
        marked = _without(attempt.marked_for_review, question_id)
    else:
        marked = _with(attempt.marked_for_review, question_id)
    return store.attempts.update(attempt_id, {"marked_for_review": marked})


def submit_attempt(store: SchoolStore, attempt_id: str, now: Optional[datetime] = None,
                   clamp_at_zero: bool = False) -> Optional[QuizAttempt]:
    """Grade and persist an attempt. Submitting twice returns the stored result."""
    attempt = _get_attempt(store, attempt_id)
    if attempt.is_submitted:
        return attempt
    quiz = _get_quiz(store, attempt.quiz_id)
    graded = grade_attempt(quiz, attempt, now=_now(now), clamp_at_zero=clamp_at_zero)
    return store.attempts.update(attempt_id, {
        "score": graded.score,
        "submitted_at": graded.submitted_at,
    })


def submit_answer_sheet(store: SchoolStore, quiz_id: str, student_id: str, answers: dict[str, Any],
                        visited: Optional[list[str]] = None, attempted: Optional[list[str]] = None,
                        marked_for_review: Optional[list[str]] = None, language: Optional[str] = None,
                        started_at: Optional[str] = None, now: Optional[datetime] = None,
                        clamp_at_zero: bool = False) -> Optional[QuizAttempt]:
    """Create and grade an attempt in one step from a finished answer sheet."""
    quiz = _get_quiz(store, quiz_id)
    if not isinstance(answers, dict):
        raise ValidationError("answers must be an object keyed by question id")
    if attempted is None:
        attempted = [qid for qid, value in answers.items() if is_answered(value)]
    moment = _now(now)

    attempt = QuizAttempt.from_dict({
        "id": new_id("att"),
        "quiz_id": quiz_id,
        "student_id": student_id,
        "answers": answers,
        "visited_questions": visited if visited is not None else list(attempted),
        "attempted_questions": attempted,
        "marked_for_review": marked_for_review or [],
        "started_at": started_at or moment.isoformat(),
        "selected_language": language or quiz.supported_languages[0],
    })
    graded = grade_attempt(quiz, attempt, now=moment, clamp_at_zero=clamp_at_zero)
    return graded if store.attempts.add(graded) else None


# ── Results ────────────────────────────────────────────────

def student_result(store: SchoolStore, quiz_id: str, student_id: str,
                   pass_percentage: float = 40) -> Optional[dict]:
    """The student's best submitted attempt with rank and summary figures."""
    quiz = _get_quiz(store, quiz_id)
    attempts = store.attempts_for_quiz(quiz_id)
    best = best_attempt(attempts, quiz_id, student_id)
    if best is None:
        return None

    ranking = rank_attempts(attempts, quiz_id)
    rank, total = rank_of(ranking, best.id) or (0, len(ranking))
    breakdown = score_attempt(quiz, best)
    pct = round(percentage(best.score or 0, breakdown.total_marks), 2)
    return {
        "attempt": asdict(best),
        "score": best.score or 0,
        "total_marks": breakdown.total_marks,
        "percentage": pct,
        "passed": pct >= pass_percentage,
        "rank": rank,
        "total_participants": total,
        "correct_answers": breakdown.correct,
        "wrong_answers": breakdown.wrong,
        "unanswered": breakdown.skipped,
        "pending_manual": breakdown.pending_manual,
    }
