"""Tests for helpers.py: request store, session context and JSON responses."""

from __future__ import annotations

from dataclasses import replace

import pytest

from models import SchoolClass


class TestStoreAndSession:
    def test_store_is_cached_per_request(self, app):
        from helpers import get_store
        with app.test_request_context("/"):
            assert get_store() is get_store()

    def test_anonymous_session(self, app):
        from helpers import current_session, current_user_id
        with app.test_request_context("/"):
            assert current_user_id() is None
            session = current_session()
            assert not session.is_authenticated
            assert session.role is None

    def test_refresh_only_swaps_current_user(self, users):
        from session_context import SessionContext
        session = SessionContext(users["student"])
        assert session.refresh(users["teacher"]) is False
        assert session.user is users["student"]

        updated = replace(users["student"], name="Samuel")
        assert session.refresh(updated) is True
        assert session.user.name == "Samuel"
        assert session.refresh(None) is False


class TestResponses:
    def test_to_json(self):
        from helpers import to_json
        data = to_json([SchoolClass(id="c1", name="7A", created_at="2026-01-01")])
        assert data == [{"id": "c1", "name": "7A", "description": "", "created_by": "",
                         "created_at": "2026-01-01"}]
        assert to_json({"plain": 1}) == {"plain": 1}

    def test_saved_record(self, app):
        from helpers import saved
        with app.test_request_context("/"):
            resp, status = saved(SchoolClass(id="c1", name="7A"), "class", 201)
            assert status == 201
            assert resp.get_json()["class"]["id"] == "c1"

    def test_saved_refusal_is_507_with_warnings(self, app):
        from flask import g
        from helpers import _notify, saved
        with app.test_request_context("/"):
            _notify("Could not save classes: storage is full or unavailable.")
            resp, status = saved(None, "class")
            assert status == 507
            assert resp.get_json()["warnings"] == ["Could not save classes: storage is full or unavailable."]
            assert g.warnings

    def test_respond_attaches_warnings(self, app):
        from helpers import _notify, respond
        with app.test_request_context("/"):
            _notify("careful")
            resp, _ = respond({"ok": True})
            assert resp.get_json() == {"ok": True, "warnings": ["careful"]}

    def test_json_body_requires_object(self, app):
        from errors import ValidationError
        from helpers import json_body
        with app.test_request_context("/", method="POST", json=[1, 2]):
            with pytest.raises(ValidationError):
                json_body()
