"""Repair engine: coerces arbitrary LLM output into an AnalysisResult.

Two payload shapes are recognised:

* the current nested shape, ``{"entity": {..., "products": [...]}, "_meta": {...}}``
  with snake_case keys (camelCase accepted as a legacy alias);
* the older flat shape, ``{"company_name": ..., "products": [...]}``.

Anything else resolves to the default placeholder structure.  Every field is
read through ``_pick``: snake_case key, then camelCase key, then default.
A missing key and a wrongly typed value are treated the same way.
"""

from __future__ import annotations

import copy
import json
import logging
from enum import Enum
from typing import Any, Callable, TypeVar

from backend.models.analysis import (
    UNKNOWN_COMPANY,
    UNKNOWN_COMPETITOR,
    UNKNOWN_PRODUCT,
    AnalysisResult,
    CompanyRecord,
    CompetitorRecord,
    DataConfidence,
    Detail,
    ProductRecord,
    SourceType,
    TypeResearchDetail,
    default_meta,
    is_member,
    today_iso,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

LEGACY_COMPANY_KEYS = ("name", "company_name", "trade_name")
LEGACY_TOP_LEVEL_KEYS = ("company_name", "name", "trade_name")
LEGACY_PRODUCT_KEYS = ("name", "product_name", "name_brand", "nameBrand")
LEGACY_COMPETITOR_KEYS = ("name", "competitor_name", "name_brand", "nameBrand")


# --- Field helpers ---


def _is_text(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_str(value: object) -> bool:
    return isinstance(value, str)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_mapping(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(data: dict, key: str) -> list:
    value = data.get(key)
    return value if isinstance(value, list) else []


def _pick(
    data: dict,
    keys: tuple[str, ...],
    accept: Callable[[object], bool],
    default: Any = None,
) -> Any:
    """Return the first value under ``keys`` that passes ``accept``."""
    for key in keys:
        value = data.get(key)
        if value is not None and accept(value):
            return value
    return default


def _pick_enum(data: dict, keys: tuple[str, ...], enum_cls: type[E], default: E) -> E:
    value = _pick(data, keys, lambda v: is_member(enum_cls, v))
    return enum_cls(value) if value is not None else default


def _first_truthy(data: dict, keys: tuple[str, ...]) -> object:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


# --- Current (nested) shape ---


def _repair_detail(raw: object) -> Detail:
    data = _as_mapping(raw)
    return Detail(
        type_research_detail=_pick_enum(
            data,
            ("type_research_detail", "typeResearchDetail"),
            TypeResearchDetail,
            TypeResearchDetail.MARKET_SHARE_ESTIMATE,
        ),
        data_confidence=_pick_enum(
            data, ("data_confidence", "dataConfidence"), DataConfidence, DataConfidence.MEDIUM
        ),
        source_type=_pick_enum(
            data, ("source_type", "sourceType"), SourceType, SourceType.ANALYST_ESTIMATE
        ),
        as_of_date=_pick(data, ("as_of_date", "asOfDate"), _is_text) or today_iso(),
        discrete_value=_pick(data, ("discrete_value", "discreteValue"), _is_number),
        text_value=_pick(data, ("text_value", "textValue"), _is_str),
    )


def _entity_fields(data: dict, default_name: str) -> dict:
    return {
        "name_brand": _pick(data, ("name_brand", "nameBrand"), _is_text, default_name),
        "name_legal": _pick(data, ("name_legal", "nameLegal"), _is_text),
        "date_year_established": _pick(
            data, ("date_year_established", "dateYearEstablished"), _is_int
        ),
        "details": [_repair_detail(d) for d in _as_list(data, "details")],
    }


def _repair_competitor(raw: object) -> CompetitorRecord:
    if not isinstance(raw, dict):
        return CompetitorRecord()
    return CompetitorRecord(**_entity_fields(raw, UNKNOWN_COMPETITOR))


def _repair_product(raw: object) -> ProductRecord:
    if not isinstance(raw, dict):
        return ProductRecord()
    return ProductRecord(
        **_entity_fields(raw, UNKNOWN_PRODUCT),
        competitors=[_repair_competitor(c) for c in _as_list(raw, "competitors")],
    )


def _repair_nested(data: dict, entity: dict) -> AnalysisResult:
    company = CompanyRecord(
        **_entity_fields(entity, UNKNOWN_COMPANY),
        products=[_repair_product(p) for p in _as_list(entity, "products")],
    )
    return AnalysisResult(entity=company, meta=_repair_meta(data))


def _repair_meta(data: dict) -> dict:
    meta = data.get("_meta")
    return copy.deepcopy(meta) if isinstance(meta, dict) else default_meta()


# --- Legacy (flat) shape ---


def _looks_legacy(data: dict) -> bool:
    company = data.get("company")
    # An empty company object or list still marks the flat shape
    has_company = isinstance(company, (dict, list)) or bool(company)
    has_name = has_company or bool(data.get("company_name") or data.get("name"))
    return has_name and isinstance(data.get("products"), list)


def _legacy_company_name(data: dict) -> str:
    company = data.get("company")
    name = None
    if isinstance(company, dict):
        name = _first_truthy(company, LEGACY_COMPANY_KEYS)
    if not name:
        name = _first_truthy(data, LEGACY_TOP_LEVEL_KEYS)
    return name if _is_text(name) else UNKNOWN_COMPANY


def _legacy_name(data: dict, keys: tuple[str, ...], default_name: str) -> str:
    name = _first_truthy(data, keys)
    return name if _is_text(name) else default_name


def _repair_legacy_product(raw: object, index: int) -> ProductRecord:
    default_name = f"Product {index + 1}"
    if not isinstance(raw, dict):
        return ProductRecord(name_brand=default_name)

    competitors = []
    for comp_index, comp in enumerate(_as_list(raw, "competitors")):
        comp_default = f"Competitor {comp_index + 1}"
        if isinstance(comp, dict):
            comp_name = _legacy_name(comp, LEGACY_COMPETITOR_KEYS, comp_default)
        else:
            comp_name = comp_default
        competitors.append(CompetitorRecord(name_brand=comp_name))

    # Flat payloads carry no per-product details
    return ProductRecord(
        name_brand=_legacy_name(raw, LEGACY_PRODUCT_KEYS, default_name),
        competitors=competitors,
    )


def _repair_legacy(data: dict) -> AnalysisResult:
    company = CompanyRecord(
        name_brand=_legacy_company_name(data),
        products=[_repair_legacy_product(p, i) for i, p in enumerate(data["products"])],
    )
    # Flat payloads always get the zero-cost meta block
    return AnalysisResult(entity=company)


# --- Entry points ---


def repair_analysis_data(data: object, debug: bool = False) -> AnalysisResult:
    """Best-effort conversion of ``data`` into a schema-conforming AnalysisResult.

    Never raises.  Unrecognised input yields ``AnalysisResult()``, the default
    "Unknown Company" placeholder with zero cost.
    """
    if not isinstance(data, dict):
        logger.error(
            "Cannot repair %s payload, using default structure", type(data).__name__
        )
        return AnalysisResult()

    try:
        entity = data.get("entity")
        if isinstance(entity, dict):
            result = _repair_nested(data, entity)
            shape = "nested"
        elif _looks_legacy(data):
            result = _repair_legacy(data)
            shape = "legacy"
        else:
            logger.warning("Unrecognised analysis payload shape, using default structure")
            return AnalysisResult()
    except Exception:
        logger.exception("Error repairing analysis data, using default structure")
        return AnalysisResult()

    if debug:
        logger.info(
            "Repaired analysis data (%s format): %s",
            shape,
            json.dumps(result.to_dict(), indent=2, default=str),
        )
    return result


def map_analysis_to_entity_details(result: AnalysisResult, creator: str = "openai") -> list[dict]:
    """Flatten every detail in the tree into storable rows.

    Order: company details, then each product's details followed by its
    competitors' details.
    """
    rows: list[dict] = []

    def add(entity_name: str, details: list[Detail]) -> None:
        for detail in details:
            rows.append(
                {
                    "entity_name": entity_name,
                    **detail.to_dict(),
                    "discrete_value": detail.discrete_value,
                    "text_value": detail.text_value,
                    "creator": creator,
                }
            )

    company = result.entity
    add(company.name_brand, company.details)
    for product in company.products:
        add(product.name_brand, product.details)
        for competitor in product.competitors:
            add(competitor.name_brand, competitor.details)
    return rows
