"""
Quiz analytics: per-quiz reports, student leaderboards, platform totals and
per-student course progress and performance.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from models import Quiz, QuizAttempt, User
from quiz_engine import is_answered, is_correct, percentage, submitted_attempts, total_marks

DISTRIBUTION_BUCKETS = (
    ("0-20%", 0.0, 0.2),
    ("21-40%", 0.2, 0.4),
    ("41-60%", 0.4, 0.6),
    ("61-80%", 0.6, 0.8),
    ("81-100%", 0.8, float("inf")),
)


def _bucket(fraction: float) -> str:
    if fraction <= DISTRIBUTION_BUCKETS[0][2]:
        return DISTRIBUTION_BUCKETS[0][0]
    for label, low, high in DISTRIBUTION_BUCKETS[1:]:
        if low < fraction <= high:
            return label
    return DISTRIBUTION_BUCKETS[-1][0]


def quiz_report(quiz: Quiz, attempts: Iterable[QuizAttempt], users: Iterable[User] = (),
                pass_percentage: float = 40, top_n: int = 10) -> dict:
    """Teacher-facing report over the submitted attempts of one quiz."""
    done = submitted_attempts(attempts, quiz.id)
    total = total_marks(quiz)
    scores = [a.score or 0 for a in done]
    count = len(done)

    distribution = {label: 0 for label, _, _ in DISTRIBUTION_BUCKETS}
    if total:
        for s in scores:
            distribution[_bucket(s / total)] += 1

    passed = sum(1 for s in scores if s >= total * pass_percentage / 100)
    names = {u.id: u.name for u in users}
    top = sorted(done, key=lambda a: -(a.score or 0))[:top_n]

    questions = []
    for index, question in enumerate(quiz.questions, start=1):
        tried = [a for a in done if question.id in a.attempted_questions]
        right = [a for a in tried if is_answered(a.answers.get(question.id))
                 and is_correct(question, a.answers.get(question.id))]
        questions.append({
            "question_number": index,
            "question_id": question.id,
            "attempts": len(tried),
            "accuracy": round(len(right) / len(tried) * 100, 1) if tried else 0.0,
            "difficulty": question.difficulty_level,
        })

    return {
        "quiz_id": quiz.id,
        "total_attempts": count,
        "average_score": round(sum(scores) / count, 2) if count else 0,
        "max_score": max(scores + [0]),
        "total_marks": total,
        "pass_rate": round(passed / count * 100, 1) if count else 0,
        "score_distribution": [{"range": label, "count": distribution[label]}
                               for label, _, _ in DISTRIBUTION_BUCKETS],
        "top_performers": [
            {"attempt_id": a.id, "student_id": a.student_id,
             "student_name": names.get(a.student_id, ""), "score": a.score or 0}
            for a in top
        ],
        "question_analysis": questions,
    }


def student_rankings(quizzes: Iterable[Quiz], attempts: Iterable[QuizAttempt],
                     users: Iterable[User]) -> list[dict]:
    """Leaderboard by average percentage over every submitted attempt."""
    quiz_totals = {q.id: total_marks(q) for q in quizzes}
    names = {u.id: u.name for u in users}
    scored: dict[str, list[tuple[float, float]]] = defaultdict(list)

    for attempt in attempts:
        if not attempt.is_submitted or attempt.quiz_id not in quiz_totals:
            continue
        scored[attempt.student_id].append((attempt.score or 0, quiz_totals[attempt.quiz_id]))

    rankings = []
    for student_id, rows in scored.items():
        if student_id not in names:
            continue
        total_score = sum(s for s, _ in rows)
        possible = sum(t for _, t in rows)
        rankings.append({
            "student_id": student_id,
            "student_name": names[student_id],
            "total_score": total_score,
            "total_attempts": len(rows),
            "average_percentage": round(percentage(total_score, possible)),
        })
    rankings.sort(key=lambda r: -r["average_percentage"])
    return rankings


def platform_stats(store) -> dict:
    """Headline numbers for the admin/teacher overview."""
    users = store.users.get_all()
    attempts = store.attempts.get_all()
    quizzes = store.quizzes.get_all()
    done = [a for a in attempts if a.is_submitted]
    by_role = {role: 0 for role in ("admin", "teacher", "student")}
    for u in users:
        by_role[u.role] = by_role.get(u.role, 0) + 1

    return {
        "users": by_role,
        "courses": store.courses.count(),
        "quizzes": len(quizzes),
        "attempts": len(attempts),
        "submitted_attempts": len(done),
        "average_score": round(sum(a.score or 0 for a in done) / len(done), 1) if done else 0,
        "completion_rate": round(len(done) / len(attempts) * 100) if attempts else 0,
    }


# ── Student progress ───────────────────────────────────────

CERTIFICATE_MIN_AVERAGE = 50

PERFORMANCE_BANDS = ("excellent", "good", "average", "needs_work")


def performance_band(pct: float) -> str:
    """excellent above 80%, good 60-80%, average 40-60%, needs_work below 40%."""
    if pct > 80:
        return "excellent"
    if pct >= 60:
        return "good"
    if pct >= 40:
        return "average"
    return "needs_work"


def course_progress(store, student_id: str) -> list[dict]:
    """Completion and average score per enrolled course, with certificate eligibility.

    A certificate needs every quiz of a course submitted at least once and an
    average of CERTIFICATE_MIN_AVERAGE percent over all submitted attempts.
    Courses without quizzes are never eligible.
    """
    names = {u.id: u.name for u in store.users.get_all()}
    done = [a for a in store.attempts_for_student(student_id) if a.is_submitted]

    progress = []
    for course in store.courses_for_student(student_id):
        quizzes = {q.id: q for q in store.quizzes_for_course(course.id)}
        course_attempts = [a for a in done if a.quiz_id in quizzes]
        completed = {a.quiz_id for a in course_attempts}
        score = sum(a.score or 0 for a in course_attempts)
        possible = sum(total_marks(quizzes[a.quiz_id]) for a in course_attempts)
        average = round(percentage(score, possible))
        progress.append({
            "course_id": course.id,
            "title": course.title,
            "instructor_name": names.get(course.created_by) or "Course Instructor",
            "total_quizzes": len(quizzes),
            "completed_quizzes": len(completed),
            "average_score": average,
            "certificate_eligible": bool(quizzes) and len(completed) >= len(quizzes)
            and average >= CERTIFICATE_MIN_AVERAGE,
        })
    return progress


def _subject_of(quiz: Quiz) -> str:
    words = quiz.title.split()
    return words[0] if words else "General"


def student_performance(store, student_id: str, course_id: str | None = None) -> dict:
    """One student's submitted attempts over time, by course, by subject and by band.

    The subject of a quiz is the first word of its title. The rank is the
    student's position on the school-wide leaderboard, 0 when unranked.
    """
    quizzes = {q.id: q for q in store.quizzes.get_all()}
    courses = {c.id: c.title for c in store.courses.get_all()}
    done = [
        a for a in store.attempts_for_student(student_id)
        if a.is_submitted and a.quiz_id in quizzes
        and (course_id is None or quizzes[a.quiz_id].course_id == course_id)
    ]
    done.sort(key=lambda a: a.submitted_at)

    timeline = []
    by_course: dict[str, list[float]] = defaultdict(list)
    by_subject: dict[str, list[float]] = defaultdict(list)
    bands = {band: 0 for band in PERFORMANCE_BANDS}
    percentages = []
    for attempt in done:
        quiz = quizzes[attempt.quiz_id]
        pct = percentage(attempt.score or 0, total_marks(quiz))
        percentages.append(pct)
        timeline.append({
            "quiz_id": quiz.id,
            "title": quiz.title,
            "percentage": round(pct),
            "submitted_at": attempt.submitted_at,
        })
        by_course[quiz.course_id].append(pct)
        by_subject[_subject_of(quiz)].append(pct)
        bands[performance_band(pct)] += 1

    leaderboard = student_rankings(quizzes.values(), store.attempts.get_all(),
                                   store.users_with_role("student"))
    rank = next((i for i, row in enumerate(leaderboard, start=1) if row["student_id"] == student_id), 0)

    return {
        "student_id": student_id,
        "total_quizzes": len(done),
        "average_percentage": round(sum(percentages) / len(percentages)) if percentages else 0,
        "rank": rank,
        "progress": timeline,
        "courses": [
            {"course_id": cid, "title": courses.get(cid, ""), "average": round(sum(p) / len(p))}
            for cid, p in by_course.items()
        ],
        "subjects": [
            {"name": name, "average": round(sum(p) / len(p))}
            for name, p in by_subject.items()
        ],
        "bands": bands,
    }
