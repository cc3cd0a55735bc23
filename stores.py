"""
SchoolStore: one typed Collection per entity plus cross-collection helpers.

Cascades (deleting a class, a user or a quiz) rewrite each affected
collection in a single batched write. There is no transaction across
collections: if a later write is refused, the earlier ones stay applied.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from collection_store import Collection, Notifier
from errors import DuplicateEmailError
from models import (
    Announcement,
    Assignment,
    AuditEntry,
    CalendarEvent,
    Course,
    FeeRecord,
    FeeStructure,
    Question,
    Quiz,
    QuizAttempt,
    SalaryRecord,
    SchoolClass,
    Submission,
    Timetable,
    User,
)
from storage_backend import StorageMedium

logger = logging.getLogger(__name__)

COLLECTION_KEYS: dict[str, tuple[str, type]] = {
    "users": ("all_users", User),
    "classes": ("classes", SchoolClass),
    "courses": ("courses", Course),
    "quizzes": ("quizzes", Quiz),
    "attempts": ("quiz_attempts", QuizAttempt),
    "question_bank": ("question_bank", Question),
    "fee_structures": ("fee_structures", FeeStructure),
    "fee_records": ("fee_records", FeeRecord),
    "announcements": ("announcements", Announcement),
    "assignments": ("assignments", Assignment),
    "submissions": ("submissions", Submission),
    "salaries": ("salaries", SalaryRecord),
    "timetables": ("timetables", Timetable),
    "calendar_events": ("calendar_events", CalendarEvent),
    "audit_log": ("audit_log", AuditEntry),
}

AUDIT_LOG_LIMIT = 500


class SchoolStore:
    """Entry point to every persisted collection."""

    users: Collection[User]
    classes: Collection[SchoolClass]
    courses: Collection[Course]
    quizzes: Collection[Quiz]
    attempts: Collection[QuizAttempt]
    question_bank: Collection[Question]
    fee_structures: Collection[FeeStructure]
    fee_records: Collection[FeeRecord]
    announcements: Collection[Announcement]
    assignments: Collection[Assignment]
    submissions: Collection[Submission]
    salaries: Collection[SalaryRecord]
    timetables: Collection[Timetable]
    calendar_events: Collection[CalendarEvent]
    audit_log: Collection[AuditEntry]

    def __init__(self, medium: StorageMedium, notifier: Optional[Notifier] = None) -> None:
        self.medium = medium
        self.notifier = notifier
        for attr, (key, model) in COLLECTION_KEYS.items():
            max_items = AUDIT_LOG_LIMIT if attr == "audit_log" else 0
            setattr(self, attr, Collection(medium, key, model, notifier, max_items=max_items))

    # ── Users ──────────────────────────────────────────────

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = (email or "").strip().lower()
        for user in self.users.get_all():
            if user.email == wanted:
                return user
        return None

    def add_user(self, user: User) -> bool:
        if self.get_user_by_email(user.email) is not None:
            raise DuplicateEmailError(user.email)
        return self.users.add(user)

    def update_user(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        """Update a user and return the stored result.

        The caller owns any cached session copy and refreshes it from the
        returned value.
        """
        if "email" in fields:
            clash = self.get_user_by_email(fields["email"])
            if clash is not None and clash.id != user_id:
                raise DuplicateEmailError(fields["email"])
        return self.users.update(user_id, fields)

    def delete_user(self, user_id: str) -> bool:
        """Admin delete: drop the user from course enrolments, then remove it."""
        if self.users.get_by_id(user_id) is None:
            return False

        def unenrol(courses: list[Course]) -> list[Course]:
            return [
                replace(c, enrolled_students=[s for s in c.enrolled_students if s != user_id])
                for c in courses
            ]

        if not self.courses.transform(unenrol):
            return False
        return self.users.delete(user_id)

    def users_with_role(self, role: str) -> list[User]:
        return self.users.filter(lambda u: u.role == role)

    # ── Classes ────────────────────────────────────────────

    def assign_student_to_class(self, student_id: str, class_id: Optional[str]) -> Optional[User]:
        return self.users.update(student_id, {"class_id": class_id or None})

    def toggle_teacher_class(self, teacher_id: str, class_id: str) -> Optional[User]:
        teacher = self.users.get_by_id(teacher_id)
        if teacher is None:
            return None
        if class_id in teacher.classes:
            classes = [c for c in teacher.classes if c != class_id]
        else:
            classes = teacher.classes + [class_id]
        return self.users.update(teacher_id, {"classes": classes})

    def class_members(self, class_id: str) -> dict[str, list[User]]:
        users = self.users.get_all()
        return {
            "students": [u for u in users if u.role == "student" and u.class_id == class_id],
            "teachers": [u for u in users if u.role != "student" and class_id in u.classes],
        }

    def delete_class(self, class_id: str) -> bool:
        """Unassign every member in one users rewrite, drop timetables, delete."""
        if self.classes.get_by_id(class_id) is None:
            return False

        def unassign(users: list[User]) -> list[User]:
            out = []
            for u in users:
                if u.class_id == class_id:
                    u = replace(u, class_id=None)
                if class_id in u.classes:
                    u = replace(u, classes=[c for c in u.classes if c != class_id])
                out.append(u)
            return out

        if not self.users.transform(unassign):
            return False
        if not self.timetables.transform(lambda ts: [t for t in ts if t.class_id != class_id]):
            return False
        return self.classes.delete(class_id)

    # ── Courses and quizzes ────────────────────────────────

    def courses_for_student(self, student_id: str) -> list[Course]:
        return self.courses.filter(lambda c: student_id in c.enrolled_students)

    def courses_created_by(self, user_id: str) -> list[Course]:
        return self.courses.filter(lambda c: c.created_by == user_id)

    def enroll_student(self, course_id: str, student_id: str) -> Optional[Course]:
        course = self.courses.get_by_id(course_id)
        if course is None:
            return None
        if student_id in course.enrolled_students:
            return course
        return self.courses.update(course_id, {"enrolled_students": course.enrolled_students + [student_id]})

    def add_quiz(self, quiz: Quiz) -> bool:
        """Persist a quiz and append it to its course's quiz list."""
        if not self.quizzes.add(quiz):
            return False
        course = self.courses.get_by_id(quiz.course_id)
        if course is not None and quiz.id not in course.quizzes:
            return self.courses.update(course.id, {"quizzes": course.quizzes + [quiz.id]}) is not None
        return True

    def delete_quiz(self, quiz_id: str) -> bool:
        quiz = self.quizzes.get_by_id(quiz_id)
        if quiz is None:
            return False
        if not self.quizzes.delete(quiz_id):
            return False
        course = self.courses.get_by_id(quiz.course_id)
        if course is not None and quiz_id in course.quizzes:
            return self.courses.update(course.id, {"quizzes": [q for q in course.quizzes if q != quiz_id]}) is not None
        return True

    def quizzes_for_course(self, course_id: str) -> list[Quiz]:
        return self.quizzes.filter(lambda q: q.course_id == course_id)

    def attempts_for_quiz(self, quiz_id: str) -> list[QuizAttempt]:
        return self.attempts.filter(lambda a: a.quiz_id == quiz_id)

    def attempts_for_student(self, student_id: str) -> list[QuizAttempt]:
        return self.attempts.filter(lambda a: a.student_id == student_id)

    # ── Other lookups ──────────────────────────────────────

    def fee_records_for_student(self, student_id: str) -> list[FeeRecord]:
        return self.fee_records.filter(lambda r: r.student_id == student_id)

    def salaries_for_user(self, user_id: str) -> list[SalaryRecord]:
        return self.salaries.filter(lambda s: s.user_id == user_id)

    def timetable_for_class(self, class_id: str) -> Optional[Timetable]:
        for t in self.timetables.get_all():
            if t.class_id == class_id:
                return t
        return None

    def submissions_for_assignment(self, assignment_id: str) -> list[Submission]:
        return self.submissions.filter(lambda s: s.assignment_id == assignment_id)

    def assignments_for_course(self, course_id: str) -> list[Assignment]:
        return self.assignments.filter(lambda a: a.course_id == course_id)
