"""Structural validation of LLM analysis payloads.

Shape checks only: enum fields are checked to be strings, not enum members.
Coercing values into the schema is the repair engine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """A single path-qualified validation error."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message

    def to_dict(self) -> dict:
        return {"path": self.path, "message": self.message}


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)


# --- Shapes ---


class _DetailShape(BaseModel):
    type_research_detail: StrictStr
    data_confidence: StrictStr
    source_type: StrictStr
    as_of_date: StrictStr | None = None
    discrete_value: StrictInt | StrictFloat | None = None
    text_value: StrictStr | None = None


class _CompetitorShape(BaseModel):
    id: StrictStr | None = None
    name_brand: StrictStr
    name_legal: StrictStr | None = None
    date_year_established: StrictInt | None = None
    details: list[_DetailShape] | None = None


class _ProductShape(_CompetitorShape):
    competitors: list[_CompetitorShape] | None = None


class _EntityShape(_CompetitorShape):
    products: list[_ProductShape] | None = None


class _CostShape(BaseModel):
    totalTokens: StrictInt | StrictFloat
    costUSD: StrictInt | StrictFloat


class _MetaShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    cost: _CostShape | None = None
    validation: StrictStr | None = None


class _AnalysisShape(BaseModel):
    entity: _EntityShape
    meta: _MetaShape | None = Field(default=None, alias="_meta")


class _BasicEntityShape(BaseModel):
    name_brand: StrictStr | None = None
    details: list | None = None
    products: list | None = None


class _BasicShape(BaseModel):
    entity: _BasicEntityShape


# --- Validators ---


def _issues(exc: ValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            path=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
        )
        for err in exc.errors()
    ]


def _validate(shape: type[BaseModel], value: object, fallback_message: str) -> ValidationResult:
    try:
        shape.model_validate(value)
    except ValidationError as exc:
        return ValidationResult(is_valid=False, errors=_issues(exc))
    except Exception:
        logger.exception("Unexpected error during %s validation", shape.__name__)
        return ValidationResult(
            is_valid=False, errors=[ValidationIssue(path="", message=fallback_message)]
        )
    return ValidationResult(is_valid=True)


def validate_basic_structure(value: object) -> ValidationResult:
    """Check only that ``value`` has an ``entity`` object with list-typed children."""
    return _validate(_BasicShape, value, "Invalid data structure")


def validate_analysis_data(value: object) -> ValidationResult:
    """Check ``value`` against the full company → product → competitor shape."""
    return _validate(_AnalysisShape, value, "Invalid analysis data structure")
