"""Tests for pagination helpers and paginated API endpoints."""

from __future__ import annotations

import pytest


class TestPaginateArgs:
    def test_defaults(self, app):
        with app.test_request_context("/api/test"):
            from helpers import paginate_args
            page, limit = paginate_args()
            assert page == 1
            assert limit == 20

    def test_custom_page_and_limit(self, app):
        with app.test_request_context("/api/test?page=3&limit=10"):
            from helpers import paginate_args
            page, limit = paginate_args()
            assert page == 3
            assert limit == 10

    def test_max_limit_enforced(self, app):
        with app.test_request_context("/api/test?limit=500"):
            from helpers import paginate_args
            page, limit = paginate_args(max_limit=100)
            assert limit == 100

    def test_invalid_values_use_defaults(self, app):
        with app.test_request_context("/api/test?page=abc&limit=xyz"):
            from helpers import paginate_args
            page, limit = paginate_args(default_limit=15)
            assert page == 1
            assert limit == 15

    def test_negative_page_clamps_to_one(self, app):
        with app.test_request_context("/api/test?page=-5"):
            from helpers import paginate_args
            page, limit = paginate_args()
            assert page == 1


class TestPaginatedResponse:
    def test_basic_envelope(self):
        from helpers import paginated_response
        result = paginated_response(["a", "b", "c"], total=10, page=1, limit=3)
        assert result["items"] == ["a", "b", "c"]
        assert result["pagination"]["total"] == 10
        assert result["pagination"]["page"] == 1
        assert result["pagination"]["limit"] == 3
        assert result["pagination"]["pages"] == 4  # ceil(10/3)

    def test_single_page(self):
        from helpers import paginated_response
        result = paginated_response(["x"], total=1, page=1, limit=20)
        assert result["pagination"]["pages"] == 1

    def test_named_collection(self):
        from helpers import paginated_response
        result = paginated_response([], total=0, page=1, limit=20, key="users")
        assert result["users"] == []
        assert "items" not in result

    def test_paginate_slices_records(self, app):
        from models import SchoolClass
        classes = [SchoolClass(id=f"c{i}", name=f"Class {i}") for i in range(5)]
        with app.test_request_context("/api/classes?page=2&limit=2"):
            from helpers import paginate
            result = paginate(classes, "classes")
        assert [c["id"] for c in result["classes"]] == ["c2", "c3"]
        assert result["pagination"]["pages"] == 3


class TestPaginatedEndpoints:
    def test_users_pagination(self, admin_client):
        resp = admin_client.get("/api/users?page=1&limit=2")
        assert resp.status_code == 200
        data = resp.get_json()
        assert "pagination" in data
        assert data["pagination"]["limit"] == 2
        assert data["pagination"]["total"] == 4
        assert len(data["users"]) == 2

    def test_role_filter(self, admin_client):
        data = admin_client.get("/api/users?role=student").get_json()
        assert data["pagination"]["total"] == 2
        assert {u["role"] for u in data["users"]} == {"student"}
