"""Unit tests for the repair engine."""

from datetime import date
from unittest.mock import patch

import pytest

from backend.models.analysis import (
    AnalysisResult,
    DataConfidence,
    SourceType,
    TypeResearchDetail,
)
from backend.orchestrator.repair import map_analysis_to_entity_details, repair_analysis_data
from backend.orchestrator.validator import validate_analysis_data

MALFORMED_INPUTS = [
    None,
    42,
    "str",
    [],
    {},
    {"entity": None},
    {"entity": "Acme"},
    {"entity": {"name_brand": 5, "products": "Widget"}},
    {"entity": {"products": [None, 3, {"competitors": [None, {"details": [None, 7]}]}]}},
    {"entity": {"name_brand": "", "details": {"not": "a list"}}},
    {"company": {"name": 99}, "products": [None, {"competitors": "x"}]},
    {"_meta": None, "name": "Acme"},
]


class TestRepairTotality:
    """Repair must always hand back a usable structure."""

    @pytest.mark.parametrize("value", MALFORMED_INPUTS)
    def test_always_returns_named_company_with_products(self, value):
        result = repair_analysis_data(value)
        data = result.to_dict()
        assert isinstance(data["entity"]["name_brand"], str)
        assert data["entity"]["name_brand"].strip()
        assert isinstance(data["entity"]["products"], list)

    @pytest.mark.parametrize("value", MALFORMED_INPUTS)
    def test_output_passes_validation(self, value):
        assert validate_analysis_data(repair_analysis_data(value).to_dict()).is_valid is True

    @pytest.mark.parametrize("value", [None, 42, "str", [], {}, {"unrelated": True}])
    def test_unrecognised_input_yields_default_structure(self, value, default_structure):
        assert repair_analysis_data(value).to_dict() == default_structure

    def test_name_without_products_list_is_not_legacy(self, default_structure):
        assert repair_analysis_data({"name": "Acme", "products": "Widget"}).to_dict() == default_structure

    def test_unexpected_error_yields_default_structure(self, canonical_payload, default_structure):
        with patch("backend.orchestrator.repair._repair_nested", side_effect=RuntimeError("boom")):
            result = repair_analysis_data(canonical_payload)
        assert result.to_dict() == default_structure


class TestNestedShape:
    """Tests for the current entity → products → competitors payload."""

    def test_canonical_values_survive(self, canonical_payload):
        data = repair_analysis_data(canonical_payload).to_dict()
        product = data["entity"]["products"][0]
        assert data["entity"]["name_brand"] == "Acme"
        assert data["entity"]["id"] is None
        assert product["name_brand"] == "Widget"
        assert product["details"][0]["discrete_value"] == 42
        assert product["details"][0]["data_confidence"] == "high"
        assert product["competitors"][0]["name_brand"] == "Bolt"

    def test_repair_is_idempotent(self, canonical_payload):
        canonical_payload["entity"]["name_legal"] = "Acme, Inc."
        canonical_payload["entity"]["date_year_established"] = 1999
        once = repair_analysis_data(canonical_payload).to_dict()
        twice = repair_analysis_data(once).to_dict()
        assert once == twice
        assert once["entity"]["name_legal"] == "Acme, Inc."
        assert once["entity"]["date_year_established"] == 1999

    def test_missing_optional_fields_are_default_filled(self, canonical_payload):
        detail = repair_analysis_data(canonical_payload).entity.products[0].details[0]
        assert detail.as_of_date == date.today().isoformat()
        assert detail.text_value is None
        assert "text_value" not in detail.to_dict()

    def test_ids_are_never_carried_over(self, canonical_payload):
        canonical_payload["entity"]["id"] = "6f1c0c8e-0000-0000-0000-000000000000"
        canonical_payload["entity"]["products"][0]["id"] = "p-1"
        data = repair_analysis_data(canonical_payload).to_dict()
        assert data["entity"]["id"] is None
        assert data["entity"]["products"][0]["id"] is None

    def test_camel_case_detail_keys_are_accepted(self):
        payload = {
            "entity": {
                "nameBrand": "Acme",
                "details": [
                    {
                        "typeResearchDetail": "employee_count_estimate",
                        "dataConfidence": "low",
                        "sourceType": "news_article",
                        "asOfDate": "2024-03-01",
                        "discreteValue": 500,
                    }
                ],
                "products": [],
            }
        }
        result = repair_analysis_data(payload)
        detail = result.entity.details[0]
        assert result.entity.name_brand == "Acme"
        assert detail.type_research_detail is TypeResearchDetail.EMPLOYEE_COUNT_ESTIMATE
        assert detail.data_confidence is DataConfidence.LOW
        assert detail.source_type is SourceType.NEWS_ARTICLE
        assert detail.as_of_date == "2024-03-01"
        assert detail.discrete_value == 500

    def test_snake_case_wins_over_camel_case(self):
        payload = {"entity": {"name_brand": "Snake", "nameBrand": "Camel", "products": []}}
        assert repair_analysis_data(payload).entity.name_brand == "Snake"

    def test_unknown_enum_values_fall_back_to_defaults(self):
        payload = {
            "entity": {
                "name_brand": "Acme",
                "details": [
                    {"type_research_detail": "revenue_guess", "data_confidence": "certain", "source_type": "blog"}
                ],
            }
        }
        detail = repair_analysis_data(payload).entity.details[0]
        assert detail.type_research_detail is TypeResearchDetail.MARKET_SHARE_ESTIMATE
        assert detail.data_confidence is DataConfidence.MEDIUM
        assert detail.source_type is SourceType.ANALYST_ESTIMATE

    def test_wrongly_typed_values_fall_back(self):
        payload = {
            "entity": {
                "name_brand": "Acme",
                "date_year_established": "1999",
                "details": [{"discrete_value": True, "text_value": 12, "as_of_date": 2024}],
            }
        }
        result = repair_analysis_data(payload)
        detail = result.entity.details[0]
        assert result.entity.date_year_established is None
        assert detail.discrete_value is None
        assert detail.text_value is None
        assert detail.as_of_date == date.today().isoformat()

    def test_non_object_entries_get_placeholders(self):
        payload = {"entity": {"name_brand": "Acme", "details": [7], "products": ["x", {"competitors": [None]}]}}
        data = repair_analysis_data(payload).to_dict()
        assert data["entity"]["details"][0]["type_research_detail"] == "market_share_estimate"
        assert data["entity"]["products"][0] == {
            "id": None,
            "name_brand": "Unknown Product",
            "details": [],
            "competitors": [],
        }
        assert data["entity"]["products"][1]["name_brand"] == "Unknown Product"
        assert data["entity"]["products"][1]["competitors"][0]["name_brand"] == "Unknown Competitor"

    def test_blank_names_fall_back(self):
        payload = {"entity": {"name_brand": "   ", "products": [{"name_brand": ""}]}}
        result = repair_analysis_data(payload)
        assert result.entity.name_brand == "Unknown Company"
        assert result.entity.products[0].name_brand == "Unknown Product"

    def test_competitors_do_not_nest_further(self, canonical_payload):
        competitor = canonical_payload["entity"]["products"][0]["competitors"][0]
        competitor["competitors"] = [{"name_brand": "Deeper"}]
        data = repair_analysis_data(canonical_payload).to_dict()
        assert "competitors" not in data["entity"]["products"][0]["competitors"][0]

    def test_meta_is_copied_not_shared(self, canonical_payload):
        canonical_payload["_meta"] = {"cost": {"totalTokens": 10, "costUSD": 0.2}, "note": "x"}
        result = repair_analysis_data(canonical_payload)
        canonical_payload["_meta"]["cost"]["totalTokens"] = 999
        assert result.meta == {"cost": {"totalTokens": 10, "costUSD": 0.2}, "note": "x"}

    def test_missing_meta_gets_default_cost(self, canonical_payload):
        assert repair_analysis_data(canonical_payload).meta == {"cost": {"totalTokens": 0, "costUSD": 0}}


class TestLegacyShape:
    """Tests for the flat company_name/products payload."""

    def test_company_name_and_products(self):
        data = repair_analysis_data({"company_name": "Acme", "products": [{"name": "Widget"}]}).to_dict()
        assert data["entity"]["name_brand"] == "Acme"
        assert data["entity"]["products"][0]["name_brand"] == "Widget"
        assert data["entity"]["products"][0]["details"] == []

    def test_company_object_takes_precedence(self):
        payload = {
            "company": {"trade_name": "Acme Trade"},
            "company_name": "Acme Top Level",
            "products": [],
        }
        assert repair_analysis_data(payload).entity.name_brand == "Acme Trade"

    def test_top_level_name_used_when_company_object_is_empty(self):
        payload = {"company": {}, "name": "Acme", "products": []}
        assert repair_analysis_data(payload).entity.name_brand == "Acme"

    def test_empty_company_object_keeps_products(self):
        payload = {"company": {}, "products": [{"name": "Widget"}]}
        result = repair_analysis_data(payload)
        assert result.entity.name_brand == "Unknown Company"
        assert [p.name_brand for p in result.entity.products] == ["Widget"]

    @pytest.mark.parametrize("company", [{}, []])
    def test_empty_company_container_marks_flat_shape(self, company):
        result = repair_analysis_data({"company": company, "products": ["x"]})
        assert [p.name_brand for p in result.entity.products] == ["Product 1"]

    def test_meta_is_not_carried_over(self):
        payload = {"company_name": "Acme", "products": [], "_meta": {"cost": {"totalTokens": 5, "costUSD": 1}}}
        assert repair_analysis_data(payload).meta == {"cost": {"totalTokens": 0, "costUSD": 0}}

    def test_non_string_company_name_falls_back(self):
        payload = {"company": {"name": 99}, "products": []}
        assert repair_analysis_data(payload).entity.name_brand == "Unknown Company"

    def test_product_name_aliases_and_numbering(self):
        payload = {
            "name": "Acme",
            "products": [
                {"product_name": "Gadget"},
                "not an object",
                {"nameBrand": "Gizmo"},
                {"price": 10},
            ],
        }
        names = [p.name_brand for p in repair_analysis_data(payload).entity.products]
        assert names == ["Gadget", "Product 2", "Gizmo", "Product 4"]

    def test_competitors_are_numbered_by_their_own_index(self):
        payload = {
            "company_name": "Acme",
            "products": [
                {
                    "name": "Widget",
                    "details": [{"type_research_detail": "market_size_usd"}],
                    "competitors": [{"competitor_name": "Bolt"}, None, {"size": "big"}],
                }
            ],
        }
        product = repair_analysis_data(payload).to_dict()["entity"]["products"][0]
        assert product["details"] == []
        assert [c["name_brand"] for c in product["competitors"]] == [
            "Bolt",
            "Competitor 2",
            "Competitor 3",
        ]
        assert all(c["details"] == [] for c in product["competitors"])


class TestDetailRows:
    """Tests for flattening an analysis into storable detail rows."""

    def test_rows_follow_tree_order(self):
        payload = {
            "entity": {
                "name_brand": "Acme",
                "details": [{"type_research_detail": "market_size_usd", "discrete_value": 1e9}],
                "products": [
                    {
                        "name_brand": "Widget",
                        "details": [{"type_research_detail": "market_share_estimate", "discrete_value": 42}],
                        "competitors": [
                            {"name_brand": "Bolt", "details": [{"text_value": "Cheaper"}]},
                        ],
                    }
                ],
            }
        }
        rows = map_analysis_to_entity_details(repair_analysis_data(payload))
        assert [r["entity_name"] for r in rows] == ["Acme", "Widget", "Bolt"]
        assert rows[0]["type_research_detail"] == "market_size_usd"
        assert rows[2]["discrete_value"] is None
        assert rows[2]["text_value"] == "Cheaper"
        assert {r["creator"] for r in rows} == {"openai"}

    def test_default_structure_has_no_rows(self):
        assert map_analysis_to_entity_details(AnalysisResult()) == []
