"""Integration tests for the exception ledger endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers
from scanning.api.routes import exception_router, session_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(session_router)
    app.include_router(exception_router)
    register_exception_handlers(app)
    return TestClient(app)


def _add(client, **fields):
    return client.post("/exceptions", json=fields)


class TestAddExceptionAPI:
    def test_add_returns_201(self, client, order_id):
        response = _add(client, order_id=order_id, code="12", comments="2 boxes short", created_by="op-1")

        assert response.status_code == 201
        assert "exception_id" in response.json()

    def test_unknown_code_is_400(self, client, order_id):
        assert _add(client, order_id=order_id, code="77").status_code == 400

    def test_unknown_order_is_404(self, client):
        assert _add(client, order_id="no-such-order", code="12").status_code == 404

    def test_comment_too_long_is_rejected(self, client, order_id):
        assert _add(client, order_id=order_id, code="12", comments="x" * 501).status_code == 422


class TestListExceptionsAPI:
    def test_by_order(self, client, order_id):
        _add(client, order_id=order_id, code="10")
        _add(client, order_id=order_id, code="12")

        response = client.get("/exceptions", params={"order_id": order_id})

        assert response.status_code == 200
        assert sorted(e["code"] for e in response.json()) == ["10", "12"]
        assert response.json()[0]["order_number"] == "2025011501SH"

    def test_by_session(self, client, order_id):
        session_id = client.post(
            "/sessions/build",
            json={"order_number": "2025011501SH", "dock_code": "1A", "operator_id": "op-1"},
        ).json()["session_id"]
        _add(client, order_id=order_id, code="14", related_skid_id="001A", session_id=session_id)
        _add(client, order_id=order_id, code="12")

        response = client.get("/exceptions", params={"session_id": session_id})

        assert [e["code"] for e in response.json()] == ["14"]

    def test_a_filter_is_required(self, client):
        assert client.get("/exceptions").status_code == 400


class TestRemoveExceptionAPI:
    def test_remove_then_remove_again(self, client, order_id):
        exception_id = _add(client, order_id=order_id, code="12").json()["exception_id"]

        first = client.delete(f"/exceptions/{exception_id}")
        second = client.delete(f"/exceptions/{exception_id}")

        assert first.json() == {"removed": True}
        assert second.json() == {"removed": False}
        assert client.get("/exceptions", params={"order_id": order_id}).json() == []
