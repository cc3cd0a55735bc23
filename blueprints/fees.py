"""Fee routes: structures, record generation, payments and student summaries."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

import fees
from audit import log_event
from helpers import (
    admin_required,
    current_session,
    current_user_id,
    get_store,
    json_body,
    paginate,
    respond,
    saved,
)
from models import FeeStructure, new_id

bp = Blueprint("fees", __name__)


# ── Structures ─────────────────────────────────────────────

@bp.route("/api/fees/structures")
@login_required
def list_structures():
    structures = [
        {**s.to_dict(), "total": fees.structure_total(s)}
        for s in get_store().fee_structures.get_all()
    ]
    return respond(paginate(structures, "structures"))


@bp.route("/api/fees/structures", methods=["POST"])
@admin_required
def create_structure():
    data = json_body()
    structure = FeeStructure.from_dict({
        "id": new_id("fs"),
        "name": data.get("name", ""),
        "components": data.get("components", []),
        "academic_year": data.get("academic_year", ""),
        "created_by": current_user_id() or "",
    })
    ok = get_store().fee_structures.add(structure)
    return saved(structure if ok else None, "structure", 201)


@bp.route("/api/fees/structures/<structure_id>", methods=["PATCH"])
@admin_required
def update_structure(structure_id):
    data = json_body()
    store = get_store()
    if store.fee_structures.get_by_id(structure_id) is None:
        return jsonify({"error": "Fee structure not found"}), 404
    fields = {k: data[k] for k in ("name", "components", "academic_year") if k in data}
    return saved(store.fee_structures.update(structure_id, fields), "structure")


@bp.route("/api/fees/structures/<structure_id>", methods=["DELETE"])
@admin_required
def delete_structure(structure_id):
    store = get_store()
    if store.fee_structures.get_by_id(structure_id) is None:
        return jsonify({"error": "Fee structure not found"}), 404
    return saved(store.fee_structures.delete(structure_id), "structure")


@bp.route("/api/fees/structures/<structure_id>/generate", methods=["POST"])
@admin_required
def generate(structure_id):
    """Create pending records for the given students (all students by default)."""
    data = request.get_json(silent=True) or {}
    store = get_store()
    student_ids = data.get("student_ids") or [u.id for u in store.users_with_role("student")]
    created = fees.generate_fee_records(
        store, structure_id, student_ids,
        due_months=current_app.config.get("FEE_DUE_MONTHS", 3),
    )
    if created:
        log_event("fees_generate", current_user_id(), f"structure={structure_id} count={len(created)}")
    return respond({"records": [r.to_dict() for r in created], "created": len(created)}, 201)


# ── Records and payments ───────────────────────────────────

@bp.route("/api/fees/records")
@login_required
def list_records():
    store = get_store()
    session = current_session()
    fees.refresh_statuses(store)
    if session.role == "student":
        student_id = session.user_id
    else:
        student_id = request.args.get("student_id", "")
    records = store.fee_records_for_student(student_id) if student_id else store.fee_records.get_all()
    status = request.args.get("status", "")
    if status:
        records = [r for r in records if r.status == status]
    page = paginate(records, "records")
    page["summary"] = fees.student_fee_summary(records)
    return respond(page)


@bp.route("/api/fees/records/<record_id>/payments", methods=["POST"])
@login_required
def add_payment(record_id):
    data = json_body()
    record = fees.record_payment(
        get_store(), record_id, data.get("amount"), str(data.get("method", "cash")),
        transaction_id=data.get("transaction_id"),
    )
    if record is not None:
        log_event("fee_payment", current_user_id(), f"record={record_id} amount={data.get('amount')}")
    return saved(record, "record")


@bp.route("/api/fees/records/<record_id>/pay-balance", methods=["POST"])
@login_required
def pay_balance(record_id):
    data = request.get_json(silent=True) or {}
    record = fees.pay_balance(get_store(), record_id, str(data.get("method", "online")))
    if record is not None:
        log_event("fee_payment", current_user_id(), f"record={record_id} balance")
    return saved(record, "record")
