"""Shared fixtures and test doubles for the Rivalscope test suite."""

from __future__ import annotations

import copy

import pytest
from fastapi.testclient import TestClient

from backend import main
from backend.backends.base import ApiCost, CompletionResult
from backend.db.database import Database


class FakeBackend:
    """Test double that replays canned JSON payloads in call order."""

    name = "Fake"

    def __init__(self, *payloads, cost: ApiCost | None = None, error: Exception | None = None):
        self.payloads = list(payloads)
        self.cost = cost or ApiCost(total_tokens=1324, cost_usd=0.01324)
        self.error = error
        self.calls: list[str] = []

    async def complete_json(
        self, messages, schema, function_name, *, model=None, temperature=None, debug=False
    ) -> CompletionResult:
        self.calls.append(function_name)
        if self.error is not None:
            raise self.error
        return CompletionResult(data=copy.deepcopy(self.payloads.pop(0)), cost=self.cost)


CANONICAL_PAYLOAD = {
    "entity": {
        "name_brand": "Acme",
        "products": [
            {
                "name_brand": "Widget",
                "details": [
                    {
                        "type_research_detail": "market_share_estimate",
                        "data_confidence": "high",
                        "source_type": "analyst_estimate",
                        "discrete_value": 42,
                    }
                ],
                "competitors": [{"name_brand": "Bolt", "details": []}],
            }
        ],
    }
}

DEFAULT_STRUCTURE = {
    "entity": {"id": None, "name_brand": "Unknown Company", "details": [], "products": []},
    "_meta": {"cost": {"totalTokens": 0, "costUSD": 0}},
}


@pytest.fixture
def canonical_payload() -> dict:
    """Nested analysis payload in the current snake_case shape."""
    return copy.deepcopy(CANONICAL_PAYLOAD)


@pytest.fixture
def default_structure() -> dict:
    return copy.deepcopy(DEFAULT_STRUCTURE)


@pytest.fixture
def client(tmp_path, monkeypatch):
    """FastAPI test client backed by a throwaway SQLite file."""
    monkeypatch.setattr(main, "db", Database(str(tmp_path / "rivalscope-test.db")))
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides = {}
