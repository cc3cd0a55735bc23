"""Tests for stores.py: SchoolStore lookups, uniqueness and cascades."""

from __future__ import annotations

import pytest

from errors import DuplicateEmailError
from models import Course, Quiz, SchoolClass, Timetable, User
from storage_backend import InMemoryStorage
from stores import COLLECTION_KEYS, SchoolStore


@pytest.fixture
def school():
    return SchoolStore(InMemoryStorage())


def _user(uid, role="student", **extra):
    return User(id=uid, name=uid.title(), email=f"{uid}@school.test", role=role, **extra)


class TestCollectionKeys:
    def test_fixed_keys(self, school):
        assert school.users.key == "all_users"
        assert school.attempts.key == "quiz_attempts"
        assert {key for key, _ in COLLECTION_KEYS.values()} >= {
            "all_users", "classes", "courses", "quizzes", "quiz_attempts", "fee_records",
            "announcements", "assignments", "submissions", "salaries", "timetables",
        }


class TestUsers:
    def test_email_lookup_is_case_insensitive(self, school):
        school.add_user(_user("ann"))
        assert school.get_user_by_email("ANN@School.test").id == "ann"

    def test_duplicate_email_rejected(self, school):
        school.add_user(_user("ann"))
        with pytest.raises(DuplicateEmailError):
            school.add_user(User(id="other", name="Other", email="ann@school.test", role="teacher"))
        assert school.users.count() == 1

    def test_update_to_taken_email_rejected(self, school):
        school.add_user(_user("ann"))
        school.add_user(_user("bob"))
        with pytest.raises(DuplicateEmailError):
            school.update_user("bob", {"email": "ann@school.test"})

    def test_update_returns_stored_user(self, school):
        school.add_user(_user("ann"))
        updated = school.update_user("ann", {"name": "Ann Smith", "email": "ann@school.test"})
        assert updated.name == "Ann Smith"
        assert school.users.get_by_id("ann").name == "Ann Smith"

    def test_delete_user_unenrols_from_courses(self, school):
        school.add_user(_user("ann"))
        school.courses.add(Course(id="c1", title="Maths", enrolled_students=["ann", "bob"]))
        school.courses.add(Course(id="c2", title="Art", enrolled_students=["ann"]))
        assert school.delete_user("ann")
        assert school.users.get_by_id("ann") is None
        assert [c.enrolled_students for c in school.courses.get_all()] == [["bob"], []]

    def test_delete_missing_user(self, school):
        assert school.delete_user("ghost") is False


class TestClasses:
    def test_delete_class_cascades(self, school):
        school.classes.add(SchoolClass(id="7a", name="7A"))
        school.classes.add(SchoolClass(id="8b", name="8B"))
        school.add_user(_user("ann", class_id="7a"))
        school.add_user(_user("bob", class_id="8b"))
        school.add_user(_user("tom", role="teacher", classes=["7a", "8b"]))
        school.timetables.add(Timetable(id="t1", class_id="7a", name="7A Timetable"))

        assert school.delete_class("7a")

        assert school.classes.get_by_id("7a") is None
        assert school.users.get_by_id("ann").class_id is None
        assert school.users.get_by_id("bob").class_id == "8b"
        assert school.users.get_by_id("tom").classes == ["8b"]
        assert school.timetable_for_class("7a") is None

    def test_delete_class_rewrites_users_once(self, school):
        school.classes.add(SchoolClass(id="7a", name="7A"))
        for uid in ("ann", "bob", "cat"):
            school.add_user(_user(uid, class_id="7a"))
        writes = []
        original = school.medium.set_item
        school.medium.set_item = lambda k, v: (writes.append(k), original(k, v))
        school.delete_class("7a")
        assert writes.count("all_users") == 1

    def test_toggle_teacher_class(self, school):
        school.add_user(_user("tom", role="teacher"))
        assert school.toggle_teacher_class("tom", "7a").classes == ["7a"]
        assert school.toggle_teacher_class("tom", "7a").classes == []

    def test_class_members(self, school):
        school.add_user(_user("ann", class_id="7a"))
        school.add_user(_user("tom", role="teacher", classes=["7a"]))
        members = school.class_members("7a")
        assert [u.id for u in members["students"]] == ["ann"]
        assert [u.id for u in members["teachers"]] == ["tom"]


class TestCoursesAndQuizzes:
    def test_enroll_is_set_like(self, school):
        school.courses.add(Course(id="c1", title="Maths"))
        school.enroll_student("c1", "ann")
        school.enroll_student("c1", "ann")
        assert school.courses.get_by_id("c1").enrolled_students == ["ann"]
        assert [c.id for c in school.courses_for_student("ann")] == ["c1"]

    def test_enroll_missing_course(self, school):
        assert school.enroll_student("nope", "ann") is None

    def test_add_and_delete_quiz_maintain_course_list(self, school):
        school.courses.add(Course(id="c1", title="Maths"))
        quiz = Quiz(id="z1", title="Algebra", course_id="c1", duration=20)
        assert school.add_quiz(quiz)
        assert school.courses.get_by_id("c1").quizzes == ["z1"]
        assert school.delete_quiz("z1")
        assert school.courses.get_by_id("c1").quizzes == []
        assert school.quizzes.get_by_id("z1") is None

    def test_refused_write_notifies(self):
        messages = []
        school = SchoolStore(InMemoryStorage(quota_bytes=50), notifier=messages.append)
        assert school.courses.add(Course(id="c1", title="A" * 100)) is False
        assert messages
