"""
Announcements, assignments, timetables and the question bank.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional

from errors import NotFoundError, ValidationError
from models import (
    WEEKDAYS,
    Announcement,
    Question,
    Submission,
    Timetable,
    TimetableSlot,
    new_id,
    parse_iso,
)
from stores import SchoolStore

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


# ── Announcements ──────────────────────────────────────────

def visible_announcements(store: SchoolStore, role: str) -> list[Announcement]:
    """Announcements addressed to everyone or to this role, newest first."""
    visible = store.announcements.filter(lambda a: a.visibility in ("all", role))
    return sorted(visible, key=lambda a: a.created_at, reverse=True)


def mark_announcement_read(store: SchoolStore, announcement_id: str, user_id: str) -> Optional[Announcement]:
    """Add the reader to read_by. Readers are never removed."""
    announcement = store.announcements.get_by_id(announcement_id)
    if announcement is None:
        return None
    if user_id in announcement.read_by:
        return announcement
    return store.announcements.update(announcement_id, {"read_by": announcement.read_by + [user_id]})


def unread_count(store: SchoolStore, role: str, user_id: str) -> int:
    return sum(1 for a in visible_announcements(store, role) if user_id not in a.read_by)


# ── Assignments ────────────────────────────────────────────

def submit_assignment(store: SchoolStore, assignment_id: str, student_id: str, content: str,
                      attachments: Optional[list[dict]] = None,
                      now: Optional[datetime] = None) -> Optional[Submission]:
    assignment = store.assignments.get_by_id(assignment_id)
    if assignment is None:
        raise NotFoundError("assignment", assignment_id)

    moment = _now(now)
    due = parse_iso(assignment.due_date)
    is_late = due is not None and moment > due
    if is_late and not assignment.allow_late_submission:
        raise ValidationError("late submissions are not allowed for this assignment")

    submission = Submission.from_dict({
        "id": new_id("sub"),
        "assignment_id": assignment_id,
        "student_id": student_id,
        "content": content,
        "submitted_at": moment.isoformat(),
        "is_late": is_late,
        "attachments": attachments or [],
    })
    if not store.submissions.add(submission):
        return None
    logger.info("Student %s submitted assignment %s%s", student_id, assignment_id, " (late)" if is_late else "")
    return submission


def grade_submission(store: SchoolStore, submission_id: str, marks: float,
                     feedback: str = "") -> Optional[Submission]:
    submission = store.submissions.get_by_id(submission_id)
    if submission is None:
        raise NotFoundError("submission", submission_id)
    assignment = store.assignments.get_by_id(submission.assignment_id)
    if assignment is None:
        raise NotFoundError("assignment", submission.assignment_id)
    if isinstance(marks, bool) or not isinstance(marks, (int, float)) or not 0 <= marks <= assignment.max_marks:
        raise ValidationError(f"marks must be between 0 and {assignment.max_marks}")
    return store.submissions.update(submission_id, {"marks": marks, "feedback": feedback})


# ── Timetables ─────────────────────────────────────────────

def create_timetable(store: SchoolStore, class_id: str, created_by: str = "",
                     now: Optional[datetime] = None) -> Optional[Timetable]:
    school_class = store.classes.get_by_id(class_id)
    if school_class is None:
        raise NotFoundError("class", class_id)
    existing = store.timetable_for_class(class_id)
    if existing is not None:
        return existing
    stamp = _now(now).isoformat()
    timetable = Timetable(
        id=new_id("tt"),
        class_id=class_id,
        name=f"{school_class.name} Timetable",
        created_by=created_by,
        created_at=stamp,
        updated_at=stamp,
    )
    return timetable if store.timetables.add(timetable) else None


def _save_slots(store: SchoolStore, timetable: Timetable, slots: list[TimetableSlot],
                now: Optional[datetime]) -> Optional[Timetable]:
    return store.timetables.update(timetable.id, {
        "slots": [asdict(s) for s in slots],
        "updated_at": _now(now).isoformat(),
    })


def _get_timetable(store: SchoolStore, timetable_id: str) -> Timetable:
    timetable = store.timetables.get_by_id(timetable_id)
    if timetable is None:
        raise NotFoundError("timetable", timetable_id)
    return timetable


def add_slot(store: SchoolStore, timetable_id: str, slot: dict[str, Any],
             now: Optional[datetime] = None) -> Optional[Timetable]:
    timetable = _get_timetable(store, timetable_id)
    data = {"start_time": "08:00", "end_time": "08:45", **slot, "id": new_id("slot")}
    new_slot = TimetableSlot.from_dict(data)
    return _save_slots(store, timetable, timetable.slots + [new_slot], now)


def update_slot(store: SchoolStore, timetable_id: str, slot_id: str, fields: dict[str, Any],
                now: Optional[datetime] = None) -> Optional[Timetable]:
    timetable = _get_timetable(store, timetable_id)
    if not any(s.id == slot_id for s in timetable.slots):
        raise NotFoundError("slot", slot_id)
    slots = [
        TimetableSlot.from_dict({**asdict(s), **fields, "id": s.id}) if s.id == slot_id else s
        for s in timetable.slots
    ]
    return _save_slots(store, timetable, slots, now)


def remove_slot(store: SchoolStore, timetable_id: str, slot_id: str,
                now: Optional[datetime] = None) -> Optional[Timetable]:
    timetable = _get_timetable(store, timetable_id)
    slots = [s for s in timetable.slots if s.id != slot_id]
    if len(slots) == len(timetable.slots):
        return timetable
    return _save_slots(store, timetable, slots, now)


def slots_by_day(timetable: Timetable) -> dict[str, list[TimetableSlot]]:
    week: dict[str, list[TimetableSlot]] = {day: [] for day in WEEKDAYS}
    for slot in timetable.slots:
        week[slot.day].append(slot)
    for day in week:
        week[day].sort(key=lambda s: s.start_time)
    return week


# ── Question bank ──────────────────────────────────────────

def search_questions(store: SchoolStore, term: str = "", difficulty: Optional[str] = None) -> list[Question]:
    """Case-insensitive match on question text (any language), subject or topic."""
    needle = (term or "").strip().lower()

    def matches(q: Question) -> bool:
        if difficulty and q.difficulty_level != difficulty:
            return False
        if not needle:
            return True
        texts = [c.question_text for c in q.content.values()] + [q.subject, q.topic]
        return any(needle in t.lower() for t in texts if t)

    return store.question_bank.filter(matches)
