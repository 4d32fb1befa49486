"""Analysis pipeline: generate, validate, repair.

A raw analysis is produced by one of two generation strategies and then
post-processed to the requested processing level:

* ``rawOpenAI``        : returned untouched
* ``validatedOpenAI``  : validated and tagged ``passed``/``failed``, never repaired
* ``repairedOpenAI``   : repaired only when validation fails
* ``transformedOpenAI``: always repaired (the default)

Transport failures propagate to the caller; malformed payloads never do.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backend.backends.base import ApiCost, LLMBackend
from backend.backends.schema import analysis_function, basic_company_info_function
from backend.config import settings
from backend.models.analysis import (
    AnalysisResult,
    CompanyRecord,
    CompetitorRecord,
    DataConfidence,
    Detail,
    ProductRecord,
    SourceType,
    TypeResearchDetail,
)
from backend.orchestrator.repair import repair_analysis_data
from backend.orchestrator.validator import validate_analysis_data, validate_basic_structure

logger = logging.getLogger(__name__)


class ProcessingLevel(Enum):
    RAW = "rawOpenAI"
    VALIDATED = "validatedOpenAI"
    REPAIRED = "repairedOpenAI"
    TRANSFORMED = "transformedOpenAI"

    @classmethod
    def parse(cls, value: str | None) -> ProcessingLevel:
        try:
            return cls(value)
        except ValueError:
            return cls.TRANSFORMED


class Strategy(Enum):
    SINGLE = "single"
    MULTI = "multi"

    @classmethod
    def parse(cls, value: str | None) -> Strategy:
        try:
            return cls(value)
        except ValueError:
            return cls.SINGLE


@dataclass
class AnalysisOptions:
    source_type: ProcessingLevel = ProcessingLevel.TRANSFORMED
    strategy: Strategy = Strategy.SINGLE
    skip_validation: bool = False
    debug: bool = False
    model: str | None = None


@dataclass
class BasicCompanyInfo:
    """Flat company summary returned by the first multi-step call."""

    company_name: str
    main_products: list[str] = field(default_factory=list)
    main_competitors: list[str] = field(default_factory=list)
    cost: ApiCost = field(default_factory=ApiCost)


ANALYST_SYSTEM_PROMPT = """\
You are an expert financial analyst with deep knowledge about companies, markets, \
and competitive landscapes.
Your task is to provide structured financial and competitive analysis of {company}.
Focus on accurate market positioning, competitors, and key metrics.
Structure your response exactly according to the provided JSON schema.\
"""

ANALYST_USER_PROMPT = """\
Perform a comprehensive competitive analysis of {company}.

Please analyze the company's market position, key products, and main competitors.

For each product, identify:
1. The product's name and main features
2. Its market positioning and target audience
3. Key competitive advantages and weaknesses
4. The main competitor products and companies

Return this information structured as a complete JSON object following the schema \
provided in the function.\
"""

BASIC_INFO_SYSTEM_PROMPT = """\
You are a business analyst who specializes in company research.
Provide basic information about {company} including the company name, main \
products/services, and key competitors.
Keep your response brief and structured according to the function schema.\
"""

BASIC_INFO_USER_PROMPT = (
    "What are the main products/services of {company} and who are their key competitors?"
)


def build_product_skeleton(
    product_name: str, company_name: str, competitors: list[str]
) -> ProductRecord:
    """Wrap a bare product name into a product entity with one synthetic detail."""
    if not isinstance(product_name, str) or not product_name.strip():
        raise ValueError(f"Invalid product name: {product_name!r}")
    return ProductRecord(
        name_brand=product_name,
        details=[
            Detail(
                type_research_detail=TypeResearchDetail.MARKET_SHARE_ESTIMATE,
                data_confidence=DataConfidence.HIGH,
                source_type=SourceType.ANALYST_ESTIMATE,
                text_value=f"Product offered by {company_name}",
            )
        ],
        competitors=[CompetitorRecord(name_brand=name) for name in competitors],
    )


def _with_meta(data: dict, **updates: Any) -> dict:
    meta = data.get("_meta")
    merged = copy.deepcopy(meta) if isinstance(meta, dict) else {}
    merged.update(updates)
    return {**data, "_meta": merged}


class AnalysisPipeline:
    """Runs a company analysis against one LLM backend."""

    def __init__(self, backend: LLMBackend) -> None:
        self.backend = backend

    async def process(self, company_name: str, options: AnalysisOptions | None = None) -> Any:
        """Generate an analysis for ``company_name`` at the requested processing level."""
        options = options or AnalysisOptions()
        debug = options.debug or settings.debug
        logger.info(
            "Processing analysis for %s (source_type=%s, strategy=%s, backend=%s)",
            company_name, options.source_type.value, options.strategy.value, self.backend.name,
        )

        try:
            if options.strategy is Strategy.MULTI:
                raw = await self._multi_step(company_name, options, debug)
            else:
                raw = await self._single_step(company_name, options, debug)
        except Exception as exc:
            logger.error("Error analyzing company %s: %s", company_name, exc)
            raise

        return self.apply_level(raw, options)

    def apply_level(self, raw: Any, options: AnalysisOptions) -> Any:
        """Post-process a raw analysis according to ``options.source_type``."""
        debug = options.debug or settings.debug
        if not isinstance(raw, dict):
            logger.warning("Raw analysis is not an object, using default structure")
            raw = AnalysisResult().to_dict()

        level = options.source_type
        if level is ProcessingLevel.RAW:
            return raw

        if level is ProcessingLevel.VALIDATED:
            result = validate_analysis_data(raw)
            return _with_meta(
                raw,
                validation="passed" if result.is_valid else "failed",
                validationErrors=[e.to_dict() for e in result.errors],
            )

        if level is ProcessingLevel.REPAIRED:
            result = validate_analysis_data(raw)
            if result.is_valid:
                return _with_meta(raw, validation="valid_at_source")
            if debug:
                logger.info("Validation failed, repairing: %s", [str(e) for e in result.errors])
            return _with_meta(repair_analysis_data(raw, debug).to_dict(), validation="repaired")

        # Transformed: repair unconditionally
        if options.skip_validation:
            return raw
        return _with_meta(repair_analysis_data(raw, debug).to_dict(), validation="repaired")

    async def _single_step(self, company_name: str, options: AnalysisOptions, debug: bool) -> Any:
        function = analysis_function()
        messages = [
            {"role": "system", "content": ANALYST_SYSTEM_PROMPT.format(company=company_name)},
            {"role": "user", "content": ANALYST_USER_PROMPT.format(company=company_name)},
        ]
        completion = await self.backend.complete_json(
            messages,
            function["parameters"],
            function["name"],
            model=options.model,
            debug=debug,
        )

        data = completion.data
        if not isinstance(data, dict):
            logger.warning(
                "Analysis payload for %s is %s, not an object; using default structure",
                company_name, type(data).__name__,
            )
            data = AnalysisResult().to_dict()
        elif debug:
            check = validate_basic_structure(data)
            if not check.is_valid:
                logger.info("Validation issues found: %s", ", ".join(str(e) for e in check.errors))

        return _with_meta(data, cost=completion.cost.to_dict())

    async def _multi_step(self, company_name: str, options: AnalysisOptions, debug: bool) -> dict:
        info = await self._basic_company_info(company_name, options, debug)

        products: list[ProductRecord] = []
        for product_name in info.main_products:
            try:
                if debug:
                    logger.info("Adding product: %s", product_name)
                products.append(
                    build_product_skeleton(product_name, company_name, info.main_competitors)
                )
            except Exception as exc:
                logger.error("Error adding product %s: %s", product_name, exc)

        result = AnalysisResult(
            entity=CompanyRecord(name_brand=info.company_name, products=products),
            meta={"cost": info.cost.to_dict()},
        )
        return result.to_dict()

    async def _basic_company_info(
        self, company_name: str, options: AnalysisOptions, debug: bool
    ) -> BasicCompanyInfo:
        if debug:
            logger.info("Getting basic info for %s", company_name)
        function = basic_company_info_function()
        messages = [
            {"role": "system", "content": BASIC_INFO_SYSTEM_PROMPT.format(company=company_name)},
            {"role": "user", "content": BASIC_INFO_USER_PROMPT.format(company=company_name)},
        ]
        completion = await self.backend.complete_json(
            messages,
            function["parameters"],
            function["name"],
            model=options.model,
            debug=debug,
        )

        data = completion.data if isinstance(completion.data, dict) else {}
        name = data.get("company_name")
        return BasicCompanyInfo(
            company_name=name if isinstance(name, str) and name.strip() else company_name,
            main_products=_string_list(data.get("main_products")),
            main_competitors=_string_list(data.get("main_competitors")),
            cost=completion.cost,
        )


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]
