"""Staff salary routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from audit import log_event
from fees import create_salary, mark_salary_paid
from helpers import admin_required, current_session, current_user_id, get_store, json_body, paginate, respond, saved

bp = Blueprint("salaries", __name__)


@bp.route("/api/salaries")
@login_required
def list_salaries():
    store = get_store()
    session = current_session()
    if session.role == "admin":
        user_id = request.args.get("user_id", "")
        salaries = store.salaries_for_user(user_id) if user_id else store.salaries.get_all()
    else:
        salaries = store.salaries_for_user(session.user_id)
    month = request.args.get("month", "")
    if month:
        salaries = [s for s in salaries if s.month == month]
    salaries.sort(key=lambda s: s.month, reverse=True)
    return respond(paginate(salaries, "salaries"))


@bp.route("/api/salaries", methods=["POST"])
@admin_required
def create():
    data = json_body()
    salary = create_salary(
        get_store(),
        str(data.get("user_id", "")),
        data.get("month", ""),
        data.get("base_pay"),
        bonus=data.get("bonus", 0),
        deductions=data.get("deductions", 0),
        notes=data.get("notes", ""),
    )
    if salary is not None:
        log_event("salary_create", current_user_id(), f"salary={salary.id} user={salary.user_id}")
    return saved(salary, "salary", 201)


@bp.route("/api/salaries/<salary_id>/pay", methods=["POST"])
@admin_required
def pay(salary_id):
    store = get_store()
    if store.salaries.get_by_id(salary_id) is None:
        return jsonify({"error": "Salary record not found"}), 404
    salary = mark_salary_paid(store, salary_id)
    if salary is not None:
        log_event("salary_paid", current_user_id(), f"salary={salary_id}")
    return saved(salary, "salary")


@bp.route("/api/salaries/<salary_id>", methods=["DELETE"])
@admin_required
def delete(salary_id):
    store = get_store()
    if store.salaries.get_by_id(salary_id) is None:
        return jsonify({"error": "Salary record not found"}), 404
    return saved(store.salaries.delete(salary_id), "salary")
