"""
Fee and salary ledgers.

A FeeRecord owes the sum of its structure's components. Payments accumulate
into paid_amount; the status is derived from paid vs. total and the due date.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from errors import NotFoundError, ValidationError
from models import FeeRecord, FeeStructure, Payment, SalaryRecord, new_id, parse_iso
from stores import SchoolStore

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def structure_total(structure: FeeStructure) -> float:
    return sum(c.amount for c in structure.components)


def derive_status(total: float, paid: float, due_date: str, today: Optional[date] = None) -> str:
    """paid >= total -> paid; paid > 0 -> partial; past due -> overdue; else pending."""
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    due = parse_iso(due_date)
    today = today or datetime.now(timezone.utc).date()
    if due is not None and due.date() < today:
        return "overdue"
    return "pending"


def refresh_statuses(store: SchoolStore, today: Optional[date] = None) -> int:
    """Recompute every record's status in one batched write; returns how many changed."""
    changed = 0

    def recompute(records: list[FeeRecord]) -> list[FeeRecord]:
        nonlocal changed
        for r in records:
            status = derive_status(r.total_amount, r.paid_amount, r.due_date, today)
            if status != r.status:
                r.status = status
                changed += 1
        return records

    store.fee_records.transform(recompute)
    return changed


def generate_fee_records(store: SchoolStore, structure_id: str, student_ids: Iterable[str],
                         now: Optional[datetime] = None, due_months: int = 3) -> list[FeeRecord]:
    """Create one pending record per student that has none for this structure."""
    structure = store.fee_structures.get_by_id(structure_id)
    if structure is None:
        raise NotFoundError("fee structure", structure_id)

    moment = _now(now)
    total = structure_total(structure)
    existing = {r.student_id for r in store.fee_records.filter(lambda r: r.structure_id == structure_id)}
    created = [
        FeeRecord(
            id=new_id("fee"),
            student_id=student_id,
            structure_id=structure_id,
            total_amount=total,
            due_date=_add_months(moment, due_months).isoformat(),
            created_at=moment.isoformat(),
        )
        for student_id in dict.fromkeys(student_ids)
        if student_id not in existing
    ]
    if not created:
        return []
    if not store.fee_records.transform(lambda records: records + created):
        return []
    logger.info("Created %d fee records for structure %s", len(created), structure_id)
    return created


def record_payment(store: SchoolStore, record_id: str, amount: float, method: str,
                   transaction_id: Optional[str] = None, now: Optional[datetime] = None) -> Optional[FeeRecord]:
    record = store.fee_records.get_by_id(record_id)
    if record is None:
        raise NotFoundError("fee record", record_id)
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        raise ValidationError("payment amount must be a positive number")

    moment = _now(now)
    payment = Payment(
        id=new_id("pay"),
        amount=amount,
        date=moment.isoformat(),
        method=method,
        transaction_id=transaction_id or None,
        receipt_number=f"RCP{int(moment.timestamp() * 1000)}",
    )
    paid = record.paid_amount + amount
    return store.fee_records.update(record_id, {
        "paid_amount": paid,
        "payments": [asdict(p) for p in record.payments] + [asdict(payment)],
        "status": derive_status(record.total_amount, paid, record.due_date, moment.date()),
    })


def pay_balance(store: SchoolStore, record_id: str, method: str = "online",
                now: Optional[datetime] = None) -> Optional[FeeRecord]:
    """Settle whatever is still owed on a record."""
    record = store.fee_records.get_by_id(record_id)
    if record is None:
        raise NotFoundError("fee record", record_id)
    if record.balance <= 0:
        return record
    return record_payment(store, record_id, record.balance, method, now=now)


def student_fee_summary(records: Iterable[FeeRecord]) -> dict:
    records = list(records)
    return {
        "total_amount": sum(r.total_amount for r in records),
        "total_paid": sum(r.paid_amount for r in records),
        "total_pending": sum(r.balance for r in records),
        "records": len(records),
    }


# ── Salaries ───────────────────────────────────────────────

def net_pay(base_pay: float, bonus: float = 0, deductions: float = 0) -> float:
    return base_pay + bonus - deductions


def create_salary(store: SchoolStore, user_id: str, month: str, base_pay: float,
                  bonus: float = 0, deductions: float = 0, notes: str = "",
                  now: Optional[datetime] = None) -> Optional[SalaryRecord]:
    if store.users.get_by_id(user_id) is None:
        raise NotFoundError("user", user_id)
    salary = SalaryRecord.from_dict({
        "id": new_id("sal"),
        "user_id": user_id,
        "month": month,
        "base_pay": base_pay,
        "bonus": bonus,
        "deductions": deductions,
        "notes": notes,
        "created_at": _now(now).isoformat(),
    })
    salary.net_pay = net_pay(salary.base_pay, salary.bonus, salary.deductions)
    return salary if store.salaries.add(salary) else None


def mark_salary_paid(store: SchoolStore, salary_id: str, now: Optional[datetime] = None) -> Optional[SalaryRecord]:
    return store.salaries.update(salary_id, {"status": "paid", "paid_at": _now(now).isoformat()})
