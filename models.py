"""
Entity records for the school dashboard.

Every persisted entity is a dataclass serialized with asdict() into a JSON
object. from_dict() is the store boundary: it rejects unknown keys, missing
required keys and values of the wrong basic type, and normalizes set-like lists
(duplicates removed, first occurrence wins).
"""

from __future__ import annotations

import math
import secrets
from dataclasses import MISSING, asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from errors import ValidationError

ROLES = ("admin", "teacher", "student")
QUESTION_TYPES = ("single-correct", "multi-correct", "numerical", "subjective")
DIFFICULTY_LEVELS = ("easy", "medium", "hard")
FEE_STATUSES = ("pending", "partial", "paid", "overdue")
PRIORITIES = ("normal", "urgent")
VISIBILITIES = ("all",) + ROLES
SALARY_STATUSES = ("pending", "paid")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
EVENT_TYPES = ("holiday", "exam", "event", "meeting", "deadline")


def new_id(prefix: str = "") -> str:
    token = secrets.token_hex(8)
    return f"{prefix}_{token}" if prefix else token


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 date or timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Validation helpers ─────────────────────────────────────

def _build(cls, data: Any, nested: dict[str, Callable[[Any], Any]] | None = None):
    if isinstance(data, cls):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"{cls.__name__} must be an object, got {type(data).__name__}")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValidationError(f"{cls.__name__}: unknown field(s) {', '.join(unknown)}")
    missing = [
        name for name, f in known.items()
        if name not in data and f.default is MISSING and f.default_factory is MISSING
    ]
    if missing:
        raise ValidationError(f"{cls.__name__}: missing field(s) {', '.join(missing)}")

    # Nested record fields are never optional; None goes through the converter and is refused.
    kwargs = dict(data)
    for name, convert in (nested or {}).items():
        if name in kwargs:
            kwargs[name] = convert(kwargs[name])
    record = cls(**kwargs)
    record.validate()
    return record


def _list_of(record_cls) -> Callable[[Any], list]:
    def convert(value: Any) -> list:
        if not isinstance(value, list):
            raise ValidationError(f"expected a list of {record_cls.__name__}")
        return [record_cls.from_dict(item) for item in value]
    return convert


def _check_str(value: Any, name: str, required: bool = True) -> None:
    if value is None and not required:
        return
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    if required and not value.strip():
        raise ValidationError(f"{name} must not be empty")


def _check_choice(value: Any, choices: tuple[str, ...], name: str) -> None:
    if value not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_number(value: Any, name: str, minimum: float | None = None, exclusive: bool = False) -> None:
    if not _is_number(value):
        raise ValidationError(f"{name} must be a number")
    if minimum is not None:
        if exclusive and value <= minimum:
            raise ValidationError(f"{name} must be greater than {minimum}")
        if not exclusive and value < minimum:
            raise ValidationError(f"{name} must be at least {minimum}")


def _check_records(value: Any, record_cls, name: str) -> None:
    if not isinstance(value, list) or not all(isinstance(v, record_cls) for v in value):
        raise ValidationError(f"{name} must be a list of {record_cls.__name__}")


def _unique_strings(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings")
    return list(dict.fromkeys(value))


class Record:
    """Mixin for persisted dataclasses."""

    @classmethod
    def from_dict(cls, data: Any):
        return _build(cls, data)

    def to_dict(self) -> dict:
        return asdict(self)

    def validate(self) -> None:
        return None


# ── People and classes ─────────────────────────────────────

@dataclass
class User(Record):
    id: str
    name: str
    email: str
    role: str
    profile_photo: str = ""
    date_of_birth: str = ""
    phone_number: str = ""
    address: str = ""
    enrollment_number: str = ""  # students
    department: str = ""  # teachers and admins
    class_id: Optional[str] = None  # students belong to one class
    classes: list[str] = field(default_factory=list)  # teachers teach many
    created_at: str = field(default_factory=now_iso)

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.name, "name")
        _check_str(self.email, "email")
        if "@" not in self.email:
            raise ValidationError("email must contain '@'")
        self.email = self.email.strip().lower()
        _check_choice(self.role, ROLES, "role")
        _check_str(self.class_id, "class_id", required=False)
        self.classes = _unique_strings(self.classes, "classes")


@dataclass
class SchoolClass(Record):
    id: str
    name: str
    description: str = ""
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.name, "name")


# ── Courses and quizzes ────────────────────────────────────

@dataclass
class Course(Record):
    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)
    quizzes: list[str] = field(default_factory=list)
    enrolled_students: list[str] = field(default_factory=list)

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.title, "title")
        self.quizzes = _unique_strings(self.quizzes, "quizzes")
        self.enrolled_students = _unique_strings(self.enrolled_students, "enrolled_students")


@dataclass
class QuestionContent(Record):
    question_text: str
    options: list[str] = field(default_factory=list)

    def validate(self) -> None:
        _check_str(self.question_text, "question_text")
        if not isinstance(self.options, list) or not all(isinstance(o, str) for o in self.options):
            raise ValidationError("options must be a list of strings")


def _content_map(value: Any) -> dict[str, QuestionContent]:
    if not isinstance(value, dict) or not value:
        raise ValidationError("content must map at least one language to question text")
    return {str(lang): QuestionContent.from_dict(c) for lang, c in value.items()}


@dataclass
class Question(Record):
    """A quiz question.

    correct_answer is deliberately loose (str, list of str, number or None);
    the grading engine treats a shape that does not fit the type as "never
    correct" rather than refusing the whole quiz.
    """

    id: str
    type: str
    content: dict[str, QuestionContent]
    marks: float
    correct_answer: Any = None
    penalty_marks: float = 0
    difficulty_level: str = "medium"
    subject: str = ""
    topic: str = ""
    tags: list[str] = field(default_factory=list)
    question_image: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Question":
        return _build(cls, data, {"content": _content_map})

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_choice(self.type, QUESTION_TYPES, "type")
        _check_number(self.marks, "marks", minimum=0, exclusive=True)
        _check_number(self.penalty_marks, "penalty_marks", minimum=0)
        _check_choice(self.difficulty_level, DIFFICULTY_LEVELS, "difficulty_level")
        if not isinstance(self.content, dict) or not self.content:
            raise ValidationError("content must map at least one language to question text")
        if not all(isinstance(c, QuestionContent) for c in self.content.values()):
            raise ValidationError("content values must be QuestionContent")
        self.tags = _unique_strings(self.tags, "tags")

    def text(self, language: str | None = None) -> str:
        if language and language in self.content:
            return self.content[language].question_text
        return next(iter(self.content.values())).question_text


@dataclass
class Quiz(Record):
    id: str
    title: str
    course_id: str
    duration: int  # minutes
    questions: list[Question] = field(default_factory=list)
    description: str = ""
    instructions: str = ""
    supported_languages: list[str] = field(default_factory=lambda: ["english"])
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, data: Any) -> "Quiz":
        return _build(cls, data, {"questions": _list_of(Question)})

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.title, "title")
        _check_str(self.course_id, "course_id")
        _check_number(self.duration, "duration", minimum=0, exclusive=True)
        _check_records(self.questions, Question, "questions")
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValidationError("question ids must be unique within a quiz")
        self.supported_languages = _unique_strings(self.supported_languages, "supported_languages")
        if not self.supported_languages:
            raise ValidationError("supported_languages must not be empty")

    def question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


@dataclass
class QuizAttempt(Record):
    """One student's run through a quiz. submitted_at marks completion."""

    id: str
    quiz_id: str
    student_id: str
    answers: dict[str, Any] = field(default_factory=dict)
    visited_questions: list[str] = field(default_factory=list)
    attempted_questions: list[str] = field(default_factory=list)
    marked_for_review: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=now_iso)
    submitted_at: Optional[str] = None
    score: Optional[float] = None
    selected_language: str = "english"

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.quiz_id, "quiz_id")
        _check_str(self.student_id, "student_id")
        if not isinstance(self.answers, dict):
            raise ValidationError("answers must be an object keyed by question id")
        self.visited_questions = _unique_strings(self.visited_questions, "visited_questions")
        self.attempted_questions = _unique_strings(self.attempted_questions, "attempted_questions")
        self.marked_for_review = _unique_strings(self.marked_for_review, "marked_for_review")
        _check_str(self.submitted_at, "submitted_at", required=False)
        if self.score is not None:
            _check_number(self.score, "score")

    @property
    def is_submitted(self) -> bool:
        return bool(self.submitted_at)


# ── Fees and salaries ──────────────────────────────────────

@dataclass
class FeeComponent(Record):
    name: str
    amount: float

    def validate(self) -> None:
        _check_str(self.name, "name")
        _check_number(self.amount, "amount", minimum=0, exclusive=True)


@dataclass
class FeeStructure(Record):
    id: str
    name: str
    components: list[FeeComponent] = field(default_factory=list)
    academic_year: str = ""
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, data: Any) -> "FeeStructure":
        return _build(cls, data, {"components": _list_of(FeeComponent)})

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.name, "name")
        _check_records(self.components, FeeComponent, "components")


@dataclass
class Payment(Record):
    id: str
    amount: float
    date: str
    method: str
    transaction_id: Optional[str] = None
    receipt_number: str = ""

    def validate(self) -> None:
        _check_number(self.amount, "amount", minimum=0, exclusive=True)
        _check_str(self.method, "method")


@dataclass
class FeeRecord(Record):
    id: str
    student_id: str
    structure_id: str
    total_amount: float
    due_date: str
    paid_amount: float = 0
    status: str = "pending"
    payments: list[Payment] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, data: Any) -> "FeeRecord":
        return _build(cls, data, {"payments": _list_of(Payment)})

    def validate(self) -> None:
        _check_str(self.id, "id")
        _check_str(self.student_id, "student_id")
        _check_number(self.total_amount, "total_amount", minimum=0)
        _check_number(self.paid_amount, "paid_amount", minimum=0)
        _check_choice(self.status, FEE_STATUSES, "status")
        _check_records(self.payments, Payment, "payments")

    @property
    def balance(self) -> float:
        return max(0, self.total_amount - self.paid_amount)


@dataclass
class SalaryRecord(Record):
    id: str
    user_id: str
    month: str  # YYYY-MM
    base_pay: float
    bonus: float = 0
    deductions: float = 0
    net_pay: float = 0
    status: str = "pending"
    notes: str = ""
    paid_at: Optional[str] = None
    created_at: str = field(default_factory=now_iso)

    def validate(self) -> None:
        _check_str(self.user_id, "user_id")
        if not isinstance(self.month, str) or len(self.month) != 7 or self.month[4] != "-":
            raise ValidationError("month must look like YYYY-MM")
        _check_number(self.base_pay, "base_pay", minimum=0, exclusive=True)
        _check_number(self.bonus, "bonus", minimum=0)
        _check_number(self.deductions, "deductions", minimum=0)
        _check_number(self.net_pay, "net_pay")
        _check_choice(self.status, SALARY_STATUSES, "status")


# ── Announcements, assignments, schedules ──────────────────

@dataclass
class Attachment(Record):
    """A file already converted to a data URL by the client."""

    id: str
    name: str
    type: str = ""
    data: str = ""
    size: int = 0


@dataclass
class Announcement(Record):
    id: str
    title: str
    content: str
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)
    priority: str = "normal"
    visibility: str = "all"
    attachments: list[Attachment] = field(default_factory=list)
    read_by: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Announcement":
        return _build(cls, data, {"attachments": _list_of(Attachment)})

    def validate(self) -> None:
        _check_str(self.title, "title")
        _check_str(self.content, "content")
        _check_choice(self.priority, PRIORITIES, "priority")
        _check_choice(self.visibility, VISIBILITIES, "visibility")
        _check_records(self.attachments, Attachment, "attachments")
        self.read_by = _unique_strings(self.read_by, "read_by")


@dataclass
class Assignment(Record):
    id: str
    title: str
    course_id: str
    due_date: str
    max_marks: float
    description: str = ""
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)
    attachments: list[Attachment] = field(default_factory=list)
    allow_late_submission: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Assignment":
        return _build(cls, data, {"attachments": _list_of(Attachment)})

    def validate(self) -> None:
        _check_str(self.title, "title")
        _check_str(self.course_id, "course_id")
        if parse_iso(self.due_date) is None:
            raise ValidationError("due_date must be an ISO-8601 date")
        _check_number(self.max_marks, "max_marks", minimum=0, exclusive=True)
        _check_records(self.attachments, Attachment, "attachments")


@dataclass
class Submission(Record):
    id: str
    assignment_id: str
    student_id: str
    content: str
    submitted_at: str = field(default_factory=now_iso)
    is_late: bool = False
    attachments: list[Attachment] = field(default_factory=list)
    marks: Optional[float] = None
    feedback: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Submission":
        return _build(cls, data, {"attachments": _list_of(Attachment)})

    def validate(self) -> None:
        _check_str(self.content, "content")
        _check_records(self.attachments, Attachment, "attachments")
        if self.marks is not None:
            _check_number(self.marks, "marks", minimum=0)


@dataclass
class TimetableSlot(Record):
    id: str
    day: str
    start_time: str  # HH:MM
    end_time: str
    subject: str
    teacher_id: str = ""
    room_number: str = ""

    def validate(self) -> None:
        _check_choice(self.day, WEEKDAYS, "day")
        _check_str(self.subject, "subject")
        for name in ("start_time", "end_time"):
            value = getattr(self, name)
            try:
                datetime.strptime(value, "%H:%M")
            except (TypeError, ValueError):
                raise ValidationError(f"{name} must be HH:MM") from None
        if self.end_time <= self.start_time:
            raise ValidationError("end_time must be after start_time")


@dataclass
class Timetable(Record):
    id: str
    class_id: str
    name: str
    slots: list[TimetableSlot] = field(default_factory=list)
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, data: Any) -> "Timetable":
        return _build(cls, data, {"slots": _list_of(TimetableSlot)})

    def validate(self) -> None:
        _check_str(self.class_id, "class_id")
        _check_str(self.name, "name")
        _check_records(self.slots, TimetableSlot, "slots")


@dataclass
class CalendarEvent(Record):
    id: str
    title: str
    start_date: str
    type: str = "event"
    description: str = ""
    end_date: str = ""
    category: str = ""
    color: str = ""
    created_by: str = ""
    created_at: str = field(default_factory=now_iso)

    def validate(self) -> None:
        _check_str(self.title, "title")
        _check_choice(self.type, EVENT_TYPES, "type")
        if parse_iso(self.start_date) is None:
            raise ValidationError("start_date must be an ISO-8601 date")
        if not self.end_date:
            self.end_date = self.start_date
        if not self.category:
            self.category = self.type


@dataclass
class AuditEntry(Record):
    id: str
    action: str
    user_id: Optional[str] = None
    detail: str = ""
    created_at: str = field(default_factory=now_iso)
