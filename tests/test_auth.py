"""Tests for operator token parsing and the operator dependency."""
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from auth import operator_for, require_operator
from config import parse_operator_tokens


def _app():
    app = FastAPI()

    @app.get("/whoami")
    def whoami(request: Request, operator: str = Depends(require_operator)):
        return {"operator": operator, "state": request.state.operator}

    return app


class TestParseOperatorTokens:
    def test_named_and_unnamed_tokens(self):
        operators = parse_operator_tokens("abc:cashier, def , ghi:manager")

        assert operators == {"abc": "cashier", "def": "till-2", "ghi": "manager"}

    def test_blank_entries_are_skipped(self):
        assert parse_operator_tokens(" , abc:cashier,") == {"abc": "cashier"}


class TestOperatorLookup:
    def test_known_token(self):
        assert operator_for("Bearer test-token-789") == "front-till"
        assert operator_for("bearer test-token-790") == "back-office"

    def test_unknown_or_malformed(self):
        assert operator_for(None) is None
        assert operator_for("Bearer nope") is None
        assert operator_for("test-token-789") is None
        assert operator_for("Bearer test-token-789 extra") is None


class TestRequireOperator:
    def test_resolves_operator_onto_request(self):
        client = TestClient(_app())

        response = client.get("/whoami", headers={"Authorization": "Bearer test-token-790"})

        assert response.status_code == 200
        assert response.json() == {"operator": "back-office", "state": "back-office"}

    def test_rejections(self):
        client = TestClient(_app())

        missing = client.get("/whoami")
        malformed = client.get("/whoami", headers={"Authorization": "Token test-token-789"})
        unknown = client.get("/whoami", headers={"Authorization": "Bearer nope"})

        assert missing.json()["detail"] == "Missing authorization header"
        assert malformed.json()["detail"] == "Invalid authorization header format"
        assert unknown.json()["detail"] == "Invalid token"
        assert {missing.status_code, malformed.status_code, unknown.status_code} == {401}
