"""Function schemas sent to the LLM.

Enum lists are taken from the data model so prompts and validation agree.
"""

from __future__ import annotations

from backend.models.analysis import DataConfidence, SourceType, TypeResearchDetail, enum_values

ANALYSIS_FUNCTION_NAME = "analyze_company"
BASIC_INFO_FUNCTION_NAME = "get_basic_company_info"


def detail_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "type_research_detail": {
                "type": "string",
                "description": "Type of research detail",
                "enum": enum_values(TypeResearchDetail),
            },
            "data_confidence": {
                "type": "string",
                "description": "Confidence level in this detail",
                "enum": enum_values(DataConfidence),
            },
            "source_type": {
                "type": "string",
                "description": "Source type for this detail",
                "enum": enum_values(SourceType),
            },
            "as_of_date": {
                "type": "string",
                "format": "date",
                "description": "Date this detail was recorded or reported (YYYY-MM-DD)",
            },
            "discrete_value": {
                "type": "number",
                "description": "Numeric value for this detail (if applicable)",
            },
            "text_value": {
                "type": "string",
                "description": "Text value for this detail (if applicable)",
            },
        },
        "required": ["type_research_detail", "data_confidence", "source_type"],
    }


def _id_schema(what: str) -> dict:
    return {
        "type": "string",
        "format": "uuid",
        "nullable": True,
        "description": f"{what} ID (use null for new entities)",
    }


def analysis_function() -> dict:
    """Function definition for the single-call company analysis."""
    details = detail_schema()
    competitor = {
        "type": "object",
        "properties": {
            "id": _id_schema("Competitor"),
            "name_brand": {"type": "string", "description": "Competitor name"},
            "details": {
                "type": "array",
                "description": "Details about this competitor",
                "items": details,
            },
        },
        "required": ["name_brand"],
    }
    product = {
        "type": "object",
        "properties": {
            "id": _id_schema("Product"),
            "name_brand": {"type": "string", "description": "Product name"},
            "date_year_established": {
                "type": "integer",
                "description": "Year when the product was launched",
            },
            "details": {
                "type": "array",
                "description": "Details about this product",
                "items": details,
            },
            "competitors": {
                "type": "array",
                "description": "Competing products and companies",
                "items": competitor,
            },
        },
        "required": ["name_brand"],
    }
    return {
        "name": ANALYSIS_FUNCTION_NAME,
        "description": (
            "Generate a structured financial and competitive analysis of a company "
            "following the entity-detail schema"
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "entity": {
                    "type": "object",
                    "description": "Company entity information",
                    "properties": {
                        "id": _id_schema("Entity"),
                        "name_brand": {
                            "type": "string",
                            "description": "The common trade name of the company",
                        },
                        "name_legal": {
                            "type": "string",
                            "description": "The formal legal name of the company (only provide if confident)",
                        },
                        "date_year_established": {
                            "type": "integer",
                            "description": "Year when the company was established (e.g., 1999)",
                        },
                        "details": {
                            "type": "array",
                            "description": "Key-value details about the company",
                            "items": details,
                        },
                        "products": {
                            "type": "array",
                            "description": "Products offered by this company",
                            "items": product,
                        },
                    },
                    "required": ["name_brand", "products"],
                },
                "_meta": {
                    "type": "object",
                    "description": "Optional metadata about the analysis",
                    "properties": {},
                },
            },
            "required": ["entity"],
        },
    }


def basic_company_info_function() -> dict:
    """Function definition for the first step of the multi-step analysis."""
    return {
        "name": BASIC_INFO_FUNCTION_NAME,
        "description": "Return basic information about a company, its products, and competitors",
        "parameters": {
            "type": "object",
            "properties": {
                "company_name": {"type": "string", "description": "The name of the company"},
                "main_products": {
                    "type": "array",
                    "description": "List of main products or services offered by the company",
                    "items": {"type": "string"},
                },
                "main_competitors": {
                    "type": "array",
                    "description": "List of primary competitors to this company",
                    "items": {"type": "string"},
                },
            },
            "required": ["company_name", "main_products", "main_competitors"],
        },
    }
