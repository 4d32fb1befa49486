"""Competitive-analysis data model.

One document per analysis: a company entity owning product entities, each of
which owns competitor entities.  Every entity carries a list of typed details.
Nesting stops at competitors.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_COMPETITOR = "Unknown Competitor"

# Fields an LLM payload must carry on the root entity
REQUIRED_FIELDS = ("name_brand", "products")


class DataConfidence(Enum):
    VERIFIED = "verified"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    SPECULATIVE = "speculative"


class SourceType(Enum):
    INDUSTRY_REPORT = "industry_report"
    COMPANY_FILING = "company_filing"
    NEWS_ARTICLE = "news_article"
    ANALYST_ESTIMATE = "analyst_estimate"
    COMPANY_WEBSITE = "company_website"
    PRESS_RELEASE = "press_release"
    UNKNOWN = "unknown"


class TypeResearchDetail(Enum):
    # Market share
    MARKET_SHARE_MIN = "market_share_min"
    MARKET_SHARE_MAX = "market_share_max"
    MARKET_SHARE_EXACT = "market_share_exact"
    MARKET_SHARE_ESTIMATE = "market_share_estimate"
    # Employees
    EMPLOYEE_COUNT_EXACT = "employee_count_exact"
    EMPLOYEE_COUNT_ESTIMATE = "employee_count_estimate"
    EMPLOYEE_COUNT_MIN = "employee_count_min"
    EMPLOYEE_COUNT_MAX = "employee_count_max"
    # Customers
    CHURN_RATE_ESTIMATE = "churn_rate_estimate"
    CUSTOMER_COUNT_ESTIMATE = "customer_count_estimate"
    ACTIVE_USERS_ESTIMATE = "active_users_estimate"
    ARPU_ESTIMATE = "arpu_estimate"
    CAC_ESTIMATE = "cac_estimate"
    LTV_ESTIMATE = "ltv_estimate"
    RUNWAY_MONTHS_ESTIMATE = "runway_months_estimate"
    # Market
    MARKET_SIZE_USD = "market_size_usd"
    MARKET_GROWTH_RATE = "market_growth_rate"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """All string values of an enum, in declaration order."""
    return [member.value for member in enum_cls]


def is_member(enum_cls: type[Enum], value: object) -> bool:
    """True if ``value`` is one of the enum's string values."""
    return isinstance(value, str) and value in enum_values(enum_cls)


def today_iso() -> str:
    return date.today().isoformat()


def default_cost() -> dict:
    return {"totalTokens": 0, "costUSD": 0}


def default_meta() -> dict:
    return {"cost": default_cost()}


@dataclass
class Detail:
    """A single typed, sourced and dated fact about an entity."""

    type_research_detail: TypeResearchDetail = TypeResearchDetail.MARKET_SHARE_ESTIMATE
    data_confidence: DataConfidence = DataConfidence.MEDIUM
    source_type: SourceType = SourceType.ANALYST_ESTIMATE
    as_of_date: str = field(default_factory=today_iso)
    discrete_value: int | float | None = None
    text_value: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "type_research_detail": self.type_research_detail.value,
            "data_confidence": self.data_confidence.value,
            "source_type": self.source_type.value,
            "as_of_date": self.as_of_date,
        }
        if self.discrete_value is not None:
            data["discrete_value"] = self.discrete_value
        if self.text_value is not None:
            data["text_value"] = self.text_value
        return data


@dataclass
class EntityRecord:
    """Fields shared by companies, products and competitors.

    ``id`` is assigned by persistence, never by the pipeline.
    """

    name_brand: str
    id: str | None = None
    name_legal: str | None = None
    date_year_established: int | None = None
    details: list[Detail] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {"id": self.id, "name_brand": self.name_brand}
        if self.name_legal is not None:
            data["name_legal"] = self.name_legal
        if self.date_year_established is not None:
            data["date_year_established"] = self.date_year_established
        data["details"] = [d.to_dict() for d in self.details]
        return data


@dataclass
class CompetitorRecord(EntityRecord):
    """A rival product or company.  Carries no nested competitors."""

    name_brand: str = UNKNOWN_COMPETITOR


@dataclass
class ProductRecord(EntityRecord):
    """A product line of the analysed company."""

    name_brand: str = UNKNOWN_PRODUCT
    competitors: list[CompetitorRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["competitors"] = [c.to_dict() for c in self.competitors]
        return data


@dataclass
class CompanyRecord(EntityRecord):
    """The root entity of an analysis."""

    name_brand: str = UNKNOWN_COMPANY
    products: list[ProductRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["products"] = [p.to_dict() for p in self.products]
        return data


@dataclass
class AnalysisResult:
    """Root document: the company tree plus its provenance block.

    ``meta`` holds ``cost`` (passed through from the transport layer) and,
    once processed, a ``validation`` status tag.  A bare ``AnalysisResult()``
    is the default placeholder structure.
    """

    entity: CompanyRecord = field(default_factory=CompanyRecord)
    meta: dict = field(default_factory=default_meta)

    def to_dict(self) -> dict:
        return {"entity": self.entity.to_dict(), "_meta": copy.deepcopy(self.meta)}
