"""citescope: FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from citescope.config import settings
from citescope.db.database import Database
from citescope.errors import ValidationError
from citescope.models.citation import ProviderId
from citescope.models.query import Query
from citescope.models.summary import CompetitorBrand
from citescope.orchestrator.competitors import score_competitors
from citescope.orchestrator.dispatcher import Dispatcher
from citescope.orchestrator.summary import cross_validate, summarize
from citescope.providers.registry import build_adapters, build_timeouts

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

db = Database(settings.database_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.connect()
    yield
    await db.close()


app = FastAPI(
    title="citescope",
    description="Cross-provider answer citation analysis",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request / Response models ---


class CompetitorInput(BaseModel):
    name: str
    aliases: list[str] = []


class AnalyzeRequest(BaseModel):
    query: str
    domain: str | None = None
    brand: str | None = None
    brand_aliases: list[str] = []
    competitors: list[CompetitorInput] = []
    skip_save: bool = False
    max_competitors: int = Field(default=5, ge=1, le=50)


class AnalyzeResponse(BaseModel):
    success: bool
    analysis_id: str
    results: dict
    summary: dict
    cross_validation: dict
    competitors: list[dict]


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/analyze", response_model=AnalyzeResponse)
async def analyze(req: AnalyzeRequest):
    """Ask every configured provider, normalize their citations and summarize."""
    try:
        query = Query(
            text=req.query,
            target_domain=req.domain,
            target_brand=req.brand,
            brand_aliases=tuple(req.brand_aliases),
        )
    except ValidationError as exc:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": {"message": str(exc), "code": "INVALID_INPUT"}},
        )

    analysis_id = ""
    if not req.skip_save:
        analysis_id = await db.create_analysis(query.text, query.target_domain, query.target_brand)

    try:
        dispatcher = Dispatcher(build_adapters(settings), build_timeouts(settings))
        results = await dispatcher.dispatch(query, on_progress=_log_progress)

        competitors = [CompetitorBrand(c.name, tuple(c.aliases)) for c in req.competitors]
        summary = summarize(
            results, query.target_domain, query.target_brand, query.brand_aliases, competitors
        )
        validation = cross_validate(results, query.target_domain)
        ranking = score_competitors(results, query.target_domain, req.max_competitors)
    except Exception:
        logger.exception("Analysis failed for query %r", query.text[:100])
        if analysis_id:
            await db.fail_analysis(analysis_id, "Analysis pipeline failed")
        raise HTTPException(status_code=500, detail="Analysis pipeline failed")

    response = AnalyzeResponse(
        success=True,
        analysis_id=analysis_id,
        results=results.to_dict(),
        summary=summary.to_dict(),
        cross_validation=validation.to_dict(),
        competitors=[c.to_dict() for c in ranking],
    )

    if analysis_id:
        await db.complete_analysis(
            analysis_id,
            response.results,
            response.summary,
            {"cross_validation": response.cross_validation, "competitors": response.competitors},
        )
    return response


@app.get("/api/analyses/{analysis_id}")
async def get_analysis(analysis_id: str):
    """Fetch a stored analysis document."""
    analysis = await db.get_analysis(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return analysis


@app.get("/api/analyses")
async def list_analyses(limit: int = 20, offset: int = 0):
    return await db.list_analyses(limit=limit, offset=offset)


def _log_progress(provider_id: ProviderId, phase: str) -> None:
    logger.info("Provider %s: %s", provider_id.value, phase)
