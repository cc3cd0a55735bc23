"""Tests for fees.py: fee records, payments and salaries."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

import fees
from errors import NotFoundError, ValidationError
from models import FeeStructure

NOW = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def structure(store):
    structure = FeeStructure.from_dict({
        "id": "fs_1", "name": "Term 1", "academic_year": "2025-26",
        "components": [{"name": "Tuition", "amount": 800}, {"name": "Library", "amount": 200}],
    })
    assert store.fee_structures.add(structure)
    return structure


class TestStatus:
    def test_derive_status(self):
        assert fees.derive_status(100, 100, "2026-01-01") == "paid"
        assert fees.derive_status(100, 40, "2020-01-01") == "partial"
        assert fees.derive_status(100, 0, "2026-01-01", today=date(2026, 2, 1)) == "overdue"
        assert fees.derive_status(100, 0, "2026-03-01", today=date(2026, 2, 1)) == "pending"

    def test_add_months_clamps_day(self):
        assert fees._add_months(NOW, 1).date() == date(2026, 2, 28)
        assert fees._add_months(NOW, 12).date() == date(2027, 1, 31)


class TestGenerate:
    def test_one_record_per_student(self, store, structure, users):
        ids = [users["student"].id, users["student2"].id]
        created = fees.generate_fee_records(store, structure.id, ids, now=NOW)
        assert len(created) == 2
        assert all(r.total_amount == 1000 for r in created)
        assert created[0].due_date.startswith("2026-04-30")

        again = fees.generate_fee_records(store, structure.id, ids + [users["student"].id], now=NOW)
        assert again == []
        assert store.fee_records.count() == 2

    def test_unknown_structure(self, store):
        with pytest.raises(NotFoundError):
            fees.generate_fee_records(store, "nope", ["s"])


class TestPayments:
    def test_partial_then_balance(self, store, structure, users):
        record = fees.generate_fee_records(store, structure.id, [users["student"].id], now=NOW)[0]

        partial = fees.record_payment(store, record.id, 300, "cash", now=NOW)
        assert partial.paid_amount == 300
        assert partial.status == "partial"
        assert partial.payments[0].receipt_number == f"RCP{int(NOW.timestamp() * 1000)}"

        settled = fees.pay_balance(store, record.id, now=NOW)
        assert settled.paid_amount == 1000
        assert settled.status == "paid"
        assert len(settled.payments) == 2
        assert settled.payments[1].amount == 700

    def test_pay_balance_on_settled_record(self, store, structure, users):
        record = fees.generate_fee_records(store, structure.id, [users["student"].id], now=NOW)[0]
        fees.pay_balance(store, record.id, now=NOW)
        again = fees.pay_balance(store, record.id, now=NOW)
        assert len(again.payments) == 1

    @pytest.mark.parametrize("amount", [0, -5, "100", True])
    def test_invalid_amount(self, store, structure, users, amount):
        record = fees.generate_fee_records(store, structure.id, [users["student"].id], now=NOW)[0]
        with pytest.raises(ValidationError):
            fees.record_payment(store, record.id, amount, "cash")

    def test_refresh_statuses_marks_overdue(self, store, structure, users):
        fees.generate_fee_records(store, structure.id, [users["student"].id], now=NOW)
        assert fees.refresh_statuses(store, today=date(2026, 6, 1)) == 1
        assert store.fee_records.get_all()[0].status == "overdue"
        assert fees.refresh_statuses(store, today=date(2026, 6, 1)) == 0

    def test_summary(self, store, structure, users):
        record = fees.generate_fee_records(store, structure.id, [users["student"].id], now=NOW)[0]
        fees.record_payment(store, record.id, 250, "card", now=NOW)
        summary = fees.student_fee_summary(store.fee_records_for_student(users["student"].id))
        assert summary == {"total_amount": 1000, "total_paid": 250, "total_pending": 750, "records": 1}


class TestSalaries:
    def test_net_pay(self):
        assert fees.net_pay(3000, 200, 150) == 3050

    def test_create_and_pay(self, store, users):
        salary = fees.create_salary(store, users["teacher"].id, "2026-01", 3000, bonus=200, deductions=150)
        assert salary.net_pay == 3050
        assert salary.status == "pending"

        paid = fees.mark_salary_paid(store, salary.id, now=NOW)
        assert paid.status == "paid"
        assert paid.paid_at == NOW.isoformat()

    def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            fees.create_salary(store, "ghost", "2026-01", 1000)

    def test_bad_month(self, store, users):
        with pytest.raises(ValidationError):
            fees.create_salary(store, users["teacher"].id, "Jan 2026", 1000)
