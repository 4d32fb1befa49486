"""Dashboard projection of an analysis."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ProductLine:
    name: str
    revenue_percentage: float
    growth: str
    description: str


@dataclass
class Competitor:
    name: str
    market_share: float
    primary_competition: str


@dataclass
class SwotItem:
    text: str
    impact: str = "medium"


@dataclass
class Swot:
    strengths: list[SwotItem] = field(default_factory=list)
    weaknesses: list[SwotItem] = field(default_factory=list)
    opportunities: list[SwotItem] = field(default_factory=list)
    threats: list[SwotItem] = field(default_factory=list)


@dataclass
class FiveForces:
    """Porter's five forces, each scored 1-5."""

    competitive_rivalry: int = 3
    supplier_power: int = 3
    buyer_power: int = 3
    threat_of_substitutes: int = 3
    threat_of_new_entrants: int = 3


@dataclass
class FutureScenario:
    title: str
    probability: float
    description: str
    impact: str = "medium"


@dataclass
class CompanyAnalysis:
    swot: Swot
    five_forces: FiveForces
    future_scenarios: list[FutureScenario] = field(default_factory=list)


@dataclass
class EnhancedCompanyData:
    """Flattened company view rendered by the dashboard."""

    slug: str
    name: str
    description: str
    industry: str
    sector: str
    product_lines: list[ProductLine] = field(default_factory=list)
    competitors: list[Competitor] = field(default_factory=list)
    analysis: CompanyAnalysis | None = None
