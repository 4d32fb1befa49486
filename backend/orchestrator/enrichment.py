"""Project a repaired analysis into the flat dashboard view."""

from __future__ import annotations

import re

from backend.models.analysis import UNKNOWN_COMPANY, AnalysisResult, Detail, ProductRecord
from backend.models.company import (
    CompanyAnalysis,
    Competitor,
    EnhancedCompanyData,
    FiveForces,
    FutureScenario,
    ProductLine,
    Swot,
    SwotItem,
)
from backend.orchestrator.repair import repair_analysis_data

DEFAULT_INDUSTRY = "Technology"
DEFAULT_SECTOR = "Software"
DEFAULT_COMPETITOR_SHARE = 5


def transform_to_enhanced_company_data(data: object, company_name: str) -> EnhancedCompanyData:
    """Build the dashboard view.  Never fails: missing data becomes placeholder text."""
    result = data if isinstance(data, AnalysisResult) else repair_analysis_data(data)
    company = result.entity

    name = company.name_brand
    if name == UNKNOWN_COMPANY and company_name:
        name = company_name

    description = ""
    industry = DEFAULT_INDUSTRY
    sector = DEFAULT_SECTOR
    # No TypeResearchDetail value names a description, industry or sector yet,
    # so these stay at their defaults until such detail types are added.
    for detail in company.details:
        if not detail.text_value:
            continue
        kind = detail.type_research_detail.value
        if "description" in kind:
            description = detail.text_value
        elif "industry" in kind:
            industry = detail.text_value
        elif "sector" in kind:
            sector = detail.text_value

    competitors = extract_competitors(company.products)
    return EnhancedCompanyData(
        slug=re.sub(r"\s+", "-", name.lower()),
        name=name,
        description=description or f"{name} provides services",
        industry=industry,
        sector=sector,
        product_lines=extract_product_lines(company.products, name),
        competitors=competitors,
        analysis=build_analysis(name, industry, competitors),
    )


def extract_product_lines(products: list[ProductRecord], company_name: str) -> list[ProductLine]:
    if not products:
        return [
            ProductLine(
                name=f"{company_name} Main Product",
                revenue_percentage=100,
                growth="0%",
                description=f"Main offering by {company_name}",
            )
        ]

    lines = []
    for product in products:
        revenue = 0
        growth = "0%"
        description = ""
        for detail in product.details:
            kind = detail.type_research_detail.value
            if "market_share" in kind and detail.discrete_value is not None:
                revenue = detail.discrete_value
            elif "growth" in kind and detail.discrete_value is not None:
                growth = f"{detail.discrete_value}%"
            # Waits on a description detail type, like the company-level scan
            elif "description" in kind and detail.text_value:
                description = detail.text_value

        lines.append(
            ProductLine(
                name=product.name_brand,
                revenue_percentage=revenue if revenue > 0 else 100 / len(products),
                growth=growth,
                description=description or f"{product.name_brand} by {company_name}",
            )
        )
    return lines


def _market_share(details: list[Detail]) -> float:
    for detail in details:
        if "market_share" in detail.type_research_detail.value and detail.discrete_value is not None:
            return detail.discrete_value
    return DEFAULT_COMPETITOR_SHARE


def extract_competitors(products: list[ProductRecord]) -> list[Competitor]:
    """Competitors across all products, deduplicated by name in first-seen order."""
    seen: dict[str, Competitor] = {}
    for product in products:
        for competitor in product.competitors:
            if competitor.name_brand in seen:
                continue
            seen[competitor.name_brand] = Competitor(
                name=competitor.name_brand,
                market_share=_market_share(competitor.details),
                primary_competition=f"Competitor for {product.name_brand}",
            )
    return list(seen.values())


def build_analysis(name: str, industry: str, competitors: list[Competitor]) -> CompanyAnalysis:
    rival = competitors[0].name if competitors else None
    crowded = len(competitors) > 3
    return CompanyAnalysis(
        swot=Swot(
            strengths=[SwotItem(f"{name} offers specialized services")],
            weaknesses=[SwotItem("Limited market presence")],
            opportunities=[SwotItem(f"Growth potential in the {industry} sector", impact="high")],
            threats=[
                SwotItem(
                    "Competition from established players"
                    + (f" like {rival}" if rival else "")
                )
            ],
        ),
        five_forces=FiveForces(
            competitive_rivalry=4 if crowded else 3,
            threat_of_new_entrants=4 if crowded else 3,
        ),
        future_scenarios=[
            FutureScenario(
                title="Market Expansion",
                probability=0.7,
                description=f"{name} expands its offerings to capture larger market share",
                impact="high",
            ),
            FutureScenario(
                title="Increased Competition",
                probability=0.6,
                description=(
                    f"{rival} and other competitors introduce similar offerings"
                    if rival
                    else "Major players introduce competing products"
                ),
            ),
        ],
    )
