"""
Test fixtures for SchoolHub.

Provides app, client, store and role-specific logged-in clients. Every app
gets its own in-memory storage medium.
"""

from __future__ import annotations

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def app(tmp_path):
    """Create app with an in-memory medium for testing."""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "STORAGE_BACKEND": "memory",
        "STORAGE_PATH": str(tmp_path / "school_data"),
        "STORAGE_QUOTA_BYTES": 0,
        "LOG_FORMAT": "text",
        "LOG_LEVEL": "WARNING",
        "PASS_PERCENTAGE": 40,
        "CLAMP_NEGATIVE_SCORES": False,
        "FEE_DUE_MONTHS": 3,
    })
    yield app


@pytest.fixture
def store(app):
    """Direct access to the app's collections (no notifier)."""
    from storage_backend import get_storage
    from stores import SchoolStore
    return SchoolStore(get_storage())


@pytest.fixture
def users(store):
    """One admin, one teacher and two students."""
    from models import User
    people = {
        "admin": User(id="user_admin", name="Ada Admin", email="admin@school.test", role="admin"),
        "teacher": User(id="user_teacher", name="Tom Teacher", email="teacher@school.test",
                        role="teacher", department="Science"),
        "student": User(id="user_student", name="Sam Student", email="student@school.test",
                        role="student", enrollment_number="S-001"),
        "student2": User(id="user_student2", name="Sara Second", email="sara@school.test",
                         role="student", enrollment_number="S-002"),
    }
    for user in people.values():
        assert store.add_user(user)
    return people


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


def _login(app, email):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"email": email})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def admin_client(app, users):
    return _login(app, users["admin"].email)


@pytest.fixture
def teacher_client(app, users):
    return _login(app, users["teacher"].email)


@pytest.fixture
def student_client(app, users):
    return _login(app, users["student"].email)


@pytest.fixture
def course(store, users):
    from models import Course
    course = Course(id="course_sci", title="Science", created_by=users["teacher"].id,
                    enrolled_students=[users["student"].id])
    assert store.courses.add(course)
    return course


@pytest.fixture
def quiz(store, course, users):
    """Three auto-graded questions worth 10 marks in total."""
    from models import Quiz
    quiz = Quiz.from_dict({
        "id": "quiz_1",
        "title": "Forces",
        "course_id": course.id,
        "duration": 30,
        "created_by": users["teacher"].id,
        "questions": [
            {"id": "q1", "type": "single-correct", "marks": 4, "penalty_marks": 1,
             "correct_answer": "B",
             "content": {"english": {"question_text": "Unit of force?", "options": ["A", "B", "C"]}}},
            {"id": "q2", "type": "multi-correct", "marks": 4, "penalty_marks": 2,
             "correct_answer": ["A", "C"],
             "content": {"english": {"question_text": "Vector quantities?", "options": ["A", "B", "C"]}}},
            {"id": "q3", "type": "numerical", "marks": 2, "correct_answer": 42,
             "content": {"english": {"question_text": "6 x 7?"}}},
        ],
    })
    assert store.add_quiz(quiz)
    return quiz
