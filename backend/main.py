"""Rivalscope FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from backend.backends.providers import get_backend
from backend.config import settings
from backend.db.database import Database
from backend.orchestrator.enrichment import transform_to_enhanced_company_data
from backend.orchestrator.pipeline import (
    AnalysisOptions,
    AnalysisPipeline,
    ProcessingLevel,
    Strategy,
)
from backend.orchestrator.repair import map_analysis_to_entity_details, repair_analysis_data

logger = logging.getLogger(__name__)

db = Database(settings.database_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.connect()
    yield
    await db.close()


app = FastAPI(
    title="Rivalscope",
    description="LLM-backed company competitive analysis",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request / Response models ---


class AnalysisEnvelope(BaseModel):
    success: bool = True
    data: Any


class CreateAnalysisRequest(BaseModel):
    name: str
    approach: str = "single"


class CreateAnalysisResponse(BaseModel):
    analysis_id: str
    data: dict


class StoredAnalysisResponse(BaseModel):
    analysis_id: str
    company_name: str
    strategy: str
    data: dict
    details: list[dict]


# --- Dependencies ---


def get_pipeline() -> AnalysisPipeline:
    try:
        return AnalysisPipeline(get_backend())
    except ValueError as exc:
        logger.error("LLM backend unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to analyze company") from exc


def _is_quota_error(exc: Exception) -> bool:
    if not isinstance(exc, httpx.HTTPStatusError):
        return False
    if exc.response.status_code == 429:
        return True
    try:
        body = exc.response.json()
    except ValueError:
        return False
    error = body.get("error") if isinstance(body, dict) else None
    return isinstance(error, dict) and "insufficient_quota" in (error.get("type"), error.get("code"))


def _analysis_error(exc: Exception, company_name: str) -> HTTPException:
    logger.error("Error analyzing %s: %s", company_name, exc)
    if _is_quota_error(exc):
        return HTTPException(status_code=429, detail="OpenAI API quota exceeded")
    return HTTPException(status_code=500, detail="Failed to analyze company")


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/rest/v1/company/competitive-analysis", response_model=AnalysisEnvelope)
async def competitive_analysis(
    name: str | None = None,
    sourceType: str = ProcessingLevel.TRANSFORMED.value,
    validation: str = "on",
    debug: str = "off",
    approach: str = Strategy.SINGLE.value,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Run a competitive analysis at the requested processing level."""
    if not name:
        raise HTTPException(status_code=400, detail="Company name is required")

    options = AnalysisOptions(
        source_type=ProcessingLevel.parse(sourceType),
        strategy=Strategy.parse(approach),
        skip_validation=validation == "off",
        debug=debug == "on",
    )
    logger.info(
        "Request: %s (sourceType=%s, strategy=%s, validation=%s)",
        name, options.source_type.value, options.strategy.value, validation,
    )

    try:
        data = await pipeline.process(name, options)
    except Exception as exc:
        raise _analysis_error(exc, name) from exc

    cost = data.get("_meta", {}).get("cost") if isinstance(data, dict) else None
    if isinstance(cost, dict):
        logger.info(
            "Cost for %s: $%.6f (%s tokens)",
            name, cost.get("costUSD", 0), cost.get("totalTokens", 0),
        )
    return AnalysisEnvelope(data=data)


@app.post("/api/analyses", response_model=CreateAnalysisResponse)
async def create_analysis(
    req: CreateAnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Run a fully processed analysis and store it with its detail rows."""
    strategy = Strategy.parse(req.approach)
    try:
        data = await pipeline.process(req.name, AnalysisOptions(strategy=strategy))
    except Exception as exc:
        raise _analysis_error(exc, req.name) from exc

    analysis_id = await db.create_analysis(req.name, strategy.value, data)
    rows = map_analysis_to_entity_details(repair_analysis_data(data))
    await db.add_entity_details(analysis_id, rows)
    logger.info("Stored analysis %s for %s (%d details)", analysis_id, req.name, len(rows))
    return CreateAnalysisResponse(analysis_id=analysis_id, data=data)


@app.get("/api/analyses/{analysis_id}", response_model=StoredAnalysisResponse)
async def get_analysis(analysis_id: str):
    """Fetch a stored analysis and its detail rows."""
    analysis = await db.get_analysis(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    details = await db.get_entity_details(analysis_id)
    return StoredAnalysisResponse(
        analysis_id=analysis["id"],
        company_name=analysis["company_name"],
        strategy=analysis["strategy"],
        data=analysis["result"],
        details=details,
    )


@app.get("/api/analyses/{analysis_id}/overview")
async def get_analysis_overview(analysis_id: str):
    """Dashboard view of a stored analysis."""
    analysis = await db.get_analysis(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")

    overview = transform_to_enhanced_company_data(analysis["result"], analysis["company_name"])
    return asdict(overview)
