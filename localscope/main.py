# localscope/main.py
# -----------------------------------------------------------------------------
# FastAPI entrypoint
# - creates tables on startup
# - builds the shared HTTP client, response cache and analyzer once
# -----------------------------------------------------------------------------
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import localscope.core.logging  # noqa: F401  (configures loguru)
from localscope.core.cache import ResponseCache
from localscope.core.config import settings
from localscope.db.session import AsyncSessionLocal, engine, init_models
from localscope.routers import admin, analysis
from localscope.services.analyzer import OpportunityAnalyzer
from localscope.services.category import CategoryResolver
from localscope.services.census import CensusClient
from localscope.services.geocoding import LocationResolver
from localscope.services.overpass import OverpassClient


def build_analyzer(client: httpx.AsyncClient, cache: ResponseCache) -> OpportunityAnalyzer:
    return OpportunityAnalyzer(
        locations=LocationResolver(client),
        categories=CategoryResolver(client, session_factory=AsyncSessionLocal),
        census=CensusClient(client),
        competitors=OverpassClient(client),
        cache=cache,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models(engine)

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT, connect=6.0),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        headers={"User-Agent": settings.HTTP_USER_AGENT},
    ) as client:
        app.state.cache = ResponseCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
        app.state.analyzer = build_analyzer(client, app.state.cache)
        yield

    await engine.dispose()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    # malformed input is a 400, not FastAPI's default 422
    messages = [str(e.get("msg", "")).removeprefix("Value error, ") for e in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages)})


app.include_router(analysis.router)
app.include_router(admin.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
