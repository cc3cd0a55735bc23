"""
Quiz Attempt Engine: answer checking, scoring and ranking.

Pure functions over Quiz / QuizAttempt records; persistence is the caller's
job (see attempts.py).

Per-type correctness:
    single-correct  submitted string == correct string (exact, case-sensitive)
    multi-correct   same strings regardless of order (sorted copies compared)
    numerical       submitted number == correct number (exact, no tolerance);
                    a string must be a whole decimal literal such as "42",
                    "-0.5" or "1e3", so "42abc", "inf" and "1_0" are wrong
    subjective      never auto-graded, always needs a manual mark

A malformed answer or correct_answer is "not correct"; checking never raises,
so one bad question cannot block scoring the rest of an attempt.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Optional

from models import Question, Quiz, QuizAttempt, now_iso

logger = logging.getLogger(__name__)

CORRECT = "correct"
WRONG = "wrong"
SKIPPED = "skipped"
MANUAL = "manual"

DECIMAL_LITERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class QuestionResult:
    question_id: str
    outcome: str  # correct / wrong / skipped / manual
    awarded: float = 0


@dataclass
class ScoreBreakdown:
    score: float
    total_marks: float
    correct: int = 0
    wrong: int = 0
    skipped: int = 0
    results: list[QuestionResult] = field(default_factory=list)
    pending_manual: list[str] = field(default_factory=list)


@dataclass
class AttemptSummary:
    attempt_id: str
    student_id: str
    score: float
    submitted_at: str


# ── Answer checking ────────────────────────────────────────

def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and DECIMAL_LITERAL.fullmatch(value.strip()):
        number = float(value.strip())
    else:
        return None
    return number if math.isfinite(number) else None


def _string_list(value: Any) -> Optional[list[str]]:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    return None


def is_answered(answer: Any) -> bool:
    if answer is None:
        return False
    if isinstance(answer, str):
        return bool(answer.strip())
    if isinstance(answer, (list, dict)):
        return bool(answer)
    return True


def is_correct(question: Question, answer: Any) -> bool:
    expected = question.correct_answer

    if question.type == "single-correct":
        return isinstance(answer, str) and isinstance(expected, str) and answer == expected

    if question.type == "multi-correct":
        given, wanted = _string_list(answer), _string_list(expected)
        if given is None or wanted is None:
            return False
        # sorted() builds new lists; neither caller-owned list is reordered
        return sorted(given) == sorted(wanted)

    if question.type == "numerical":
        if isinstance(expected, bool) or not isinstance(expected, (int, float)):
            return False
        given_number = _as_number(answer)
        return given_number is not None and given_number == expected

    return False


# ── Scoring ────────────────────────────────────────────────

def total_marks(quiz: Quiz) -> float:
    return sum(q.marks for q in quiz.questions)


def percentage(score: float, total: float) -> float:
    return (score / total) * 100 if total else 0.0


def evaluate_question(question: Question, attempt: QuizAttempt) -> QuestionResult:
    answer = attempt.answers.get(question.id)
    if question.type == "subjective":
        return QuestionResult(question.id, MANUAL)
    if question.id not in attempt.attempted_questions or not is_answered(answer):
        return QuestionResult(question.id, SKIPPED)
    if is_correct(question, answer):
        return QuestionResult(question.id, CORRECT, question.marks)
    return QuestionResult(question.id, WRONG, -question.penalty_marks)


def score_attempt(quiz: Quiz, attempt: QuizAttempt, clamp_at_zero: bool = False) -> ScoreBreakdown:
    """Score every question of the quiz against the attempt's answers.

    The score is the plain sum of awarded marks and may be negative;
    clamp_at_zero reproduces dashboards that never show a score below 0.
    """
    breakdown = ScoreBreakdown(score=0, total_marks=total_marks(quiz))
    for question in quiz.questions:
        result = evaluate_question(question, attempt)
        breakdown.results.append(result)
        breakdown.score += result.awarded
        if result.outcome == CORRECT:
            breakdown.correct += 1
        elif result.outcome == WRONG:
            breakdown.wrong += 1
        elif result.outcome == SKIPPED:
            breakdown.skipped += 1
        else:
            breakdown.pending_manual.append(question.id)
    if clamp_at_zero:
        breakdown.score = max(0, breakdown.score)
    return breakdown


def grade_attempt(quiz: Quiz, attempt: QuizAttempt, now: Optional[datetime] = None,
                  clamp_at_zero: bool = False) -> QuizAttempt:
    """Return a submitted copy of the attempt with its score.

    A submitted attempt is terminal: it comes back unchanged.
    """
    if attempt.is_submitted:
        logger.debug("Attempt %s already submitted at %s; not re-scoring", attempt.id, attempt.submitted_at)
        return attempt
    breakdown = score_attempt(quiz, attempt, clamp_at_zero=clamp_at_zero)
    submitted_at = now.isoformat() if now is not None else now_iso()
    logger.info(
        "Graded attempt %s on quiz %s: %s/%s (%d correct, %d wrong, %d skipped)",
        attempt.id, quiz.id, breakdown.score, breakdown.total_marks,
        breakdown.correct, breakdown.wrong, breakdown.skipped,
    )
    return replace(attempt, score=breakdown.score, submitted_at=submitted_at)


# ── Ranking ────────────────────────────────────────────────

def submitted_attempts(attempts: Iterable[QuizAttempt], quiz_id: str) -> list[QuizAttempt]:
    return [a for a in attempts if a.quiz_id == quiz_id and a.is_submitted]


def rank_attempts(attempts: Iterable[QuizAttempt], quiz_id: str) -> list[AttemptSummary]:
    """Submitted attempts for the quiz, best score first.

    sorted() is stable, so equal scores keep their stored order.
    """
    ordered = sorted(submitted_attempts(attempts, quiz_id), key=lambda a: -(a.score or 0))
    return [AttemptSummary(a.id, a.student_id, a.score or 0, a.submitted_at or "") for a in ordered]


def rank_of(ranking: list[AttemptSummary], attempt_id: str) -> Optional[tuple[int, int]]:
    """1-based (rank, total) of an attempt within a ranking."""
    for position, summary in enumerate(ranking, start=1):
        if summary.attempt_id == attempt_id:
            return position, len(ranking)
    return None


def best_attempt(attempts: Iterable[QuizAttempt], quiz_id: str, student_id: str) -> Optional[QuizAttempt]:
    own = [a for a in submitted_attempts(attempts, quiz_id) if a.student_id == student_id]
    if not own:
        return None
    return max(own, key=lambda a: a.score or 0)
