"""Tests for quiz_analytics.py: quiz reports, leaderboards and platform totals, student progress."""

from __future__ import annotations

import pytest

from models import Course, Quiz, QuizAttempt
from quiz_analytics import (
    course_progress,
    performance_band,
    platform_stats,
    quiz_report,
    student_performance,
    student_rankings,
)


def _done(aid, student, score, answers=None, quiz_id="quiz_1", submitted_at="2026-05-01T09:00:00+00:00"):
    answers = answers or {}
    return QuizAttempt(id=aid, quiz_id=quiz_id, student_id=student, answers=answers,
                       attempted_questions=list(answers), score=score,
                       submitted_at=submitted_at)


class TestQuizReport:
    def test_empty_report(self, quiz):
        report = quiz_report(quiz, [])
        assert report["total_attempts"] == 0
        assert report["average_score"] == 0
        assert report["pass_rate"] == 0
        assert [b["count"] for b in report["score_distribution"]] == [0, 0, 0, 0, 0]

    def test_figures(self, quiz, users):
        attempts = [
            _done("a", users["student"].id, 10, {"q1": "B", "q2": ["A", "C"], "q3": 42}),
            _done("b", users["student2"].id, 3, {"q1": "A", "q2": ["A", "C"]}),
            _done("c", users["student"].id, 4, {"q1": "B"}),
            QuizAttempt(id="open", quiz_id="quiz_1", student_id="x"),
        ]
        report = quiz_report(quiz, attempts, users.values())

        assert report["total_attempts"] == 3
        assert report["average_score"] == round(17 / 3, 2)
        assert report["max_score"] == 10
        assert report["total_marks"] == 10
        assert report["pass_rate"] == 66.7
        counts = {b["range"]: b["count"] for b in report["score_distribution"]}
        assert counts == {"0-20%": 0, "21-40%": 2, "41-60%": 0, "61-80%": 0, "81-100%": 1}
        assert report["top_performers"][0]["student_name"] == "Sam Student"
        q1 = report["question_analysis"][0]
        assert q1["attempts"] == 3
        assert q1["accuracy"] == 66.7
        assert q1["difficulty"] == "medium"

    def test_top_performers_capped(self, quiz):
        attempts = [_done(f"a{i}", f"s{i}", i) for i in range(15)]
        report = quiz_report(quiz, attempts, top_n=10)
        assert len(report["top_performers"]) == 10
        assert report["top_performers"][0]["score"] == 14


class TestStudentRankings:
    def test_average_percentage_order(self, quiz, users):
        attempts = [
            _done("a", users["student"].id, 5),
            _done("b", users["student"].id, 7),
            _done("c", users["student2"].id, 9),
            _done("d", "ghost", 10),
        ]
        rows = student_rankings([quiz], attempts, users.values())
        assert [r["student_id"] for r in rows] == [users["student2"].id, users["student"].id]
        assert rows[1]["average_percentage"] == 60
        assert rows[1]["total_attempts"] == 2
        assert rows[1]["total_score"] == 12


class TestPlatformStats:
    def test_counts(self, store, quiz, users):
        store.attempts.add(_done("a", users["student"].id, 8))
        store.attempts.add(QuizAttempt(id="b", quiz_id=quiz.id, student_id=users["student2"].id))
        stats = platform_stats(store)
        assert stats["users"] == {"admin": 1, "teacher": 1, "student": 2}
        assert stats["quizzes"] == 1
        assert stats["attempts"] == 2
        assert stats["submitted_attempts"] == 1
        assert stats["completion_rate"] == 50
        assert stats["average_score"] == 8


@pytest.fixture
def motion_quiz(store, course, users):
    """A second Science quiz worth 4 marks."""
    quiz = Quiz.from_dict({
        "id": "quiz_2",
        "title": "Motion basics",
        "course_id": course.id,
        "duration": 10,
        "questions": [
            {"id": "m1", "type": "single-correct", "marks": 4, "correct_answer": "A",
             "content": {"english": {"question_text": "Speed is?", "options": ["A", "B"]}}},
        ],
    })
    assert store.add_quiz(quiz)
    return quiz


class TestCourseProgress:
    def test_partial_then_eligible(self, store, quiz, motion_quiz, users):
        sid = users["student"].id
        store.attempts.add(_done("a", sid, 8))
        store.attempts.add(QuizAttempt(id="open", quiz_id="quiz_2", student_id=sid))

        [row] = course_progress(store, sid)
        assert row["course_id"] == "course_sci"
        assert row["instructor_name"] == "Tom Teacher"
        assert (row["total_quizzes"], row["completed_quizzes"]) == (2, 1)
        assert row["average_score"] == 80
        assert row["certificate_eligible"] is False

        store.attempts.add(_done("b", sid, 2, quiz_id="quiz_2"))
        [row] = course_progress(store, sid)
        assert row["completed_quizzes"] == 2
        assert row["average_score"] == 71  # 10 of 14 marks
        assert row["certificate_eligible"] is True

    def test_low_average_not_eligible(self, store, quiz, users):
        store.attempts.add(_done("a", users["student"].id, 4))
        [row] = course_progress(store, users["student"].id)
        assert row["completed_quizzes"] == row["total_quizzes"] == 1
        assert row["certificate_eligible"] is False

    def test_course_without_quizzes(self, store, users):
        store.courses.add(Course(id="c_art", title="Art", created_by="gone",
                                 enrolled_students=[users["student"].id]))
        [row] = course_progress(store, users["student"].id)
        assert row["total_quizzes"] == 0
        assert row["average_score"] == 0
        assert row["certificate_eligible"] is False
        assert row["instructor_name"] == "Course Instructor"

    def test_only_enrolled_courses(self, store, quiz, users):
        assert course_progress(store, users["student2"].id) == []


class TestStudentPerformance:
    @pytest.mark.parametrize("pct, band", [
        (95, "excellent"), (80.5, "excellent"), (80, "good"), (60, "good"),
        (59.9, "average"), (40, "average"), (39, "needs_work"), (-10, "needs_work"),
    ])
    def test_bands(self, pct, band):
        assert performance_band(pct) == band

    def test_breakdown(self, store, quiz, motion_quiz, users):
        sid = users["student"].id
        store.attempts.add(_done("b", sid, 2, quiz_id="quiz_2", submitted_at="2026-05-02T09:00:00+00:00"))
        store.attempts.add(_done("a", sid, 8, submitted_at="2026-05-01T09:00:00+00:00"))
        store.attempts.add(_done("x", users["student2"].id, 10))

        perf = student_performance(store, sid)
        assert perf["total_quizzes"] == 2
        assert [p["quiz_id"] for p in perf["progress"]] == ["quiz_1", "quiz_2"]
        assert [p["percentage"] for p in perf["progress"]] == [80, 50]
        assert perf["average_percentage"] == 65
        assert perf["courses"] == [{"course_id": "course_sci", "title": "Science", "average": 65}]
        assert {s["name"]: s["average"] for s in perf["subjects"]} == {"Forces": 80, "Motion": 50}
        assert perf["bands"] == {"excellent": 0, "good": 1, "average": 1, "needs_work": 0}
        assert perf["rank"] == 2

    def test_course_filter_and_empty(self, store, quiz, users):
        store.attempts.add(_done("a", users["student"].id, 8))
        assert student_performance(store, users["student"].id, "course_sci")["total_quizzes"] == 1
        empty = student_performance(store, users["student"].id, "other")
        assert empty["total_quizzes"] == 0
        assert empty["average_percentage"] == 0
        assert empty["subjects"] == []
