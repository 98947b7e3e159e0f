"""
mailbrief - API Service

FastAPI application providing:
- Batch summary queueing (cached results now, the rest pushed later)
- Cached summary reads
- Runtime Ollama settings
- On-demand task extraction and related search terms
- Socket.IO endpoint for summary_update events

Mailbox sync, authentication and the board UI live elsewhere; the account
id arrives as a request parameter.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import socketio
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from mailbrief.api.models import (
    CachedSummaryResponse,
    ExtractTasksRequest,
    ExtractTasksResponse,
    OllamaSettings,
    QueueSummaryRequest,
    QueueSummaryResponse,
    RelatedTermsResponse,
)
from mailbrief.config import Config
from mailbrief.engine.errors import ProviderError
from mailbrief.services.notifier import create_socket_server
from mailbrief.services.pipeline import SummaryPipeline

logger = logging.getLogger("api.service")

# ------------------------------------------------------------------
# SOCKET.IO (WEBSOCKET + POLLING FALLBACK)
# ------------------------------------------------------------------
sio = create_socket_server(
    cors_origins=[origin for origin in [Config.FRONTEND_URL, "http://localhost:5173"] if origin],
    redis_url=Config.REDIS_URL,
)

api_router = APIRouter(prefix="/api")


def get_pipeline(request: Request) -> SummaryPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Summary pipeline not started")
    return pipeline


def _split_ids(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


# ------------------------------------------------------------------
# SUMMARIES
# ------------------------------------------------------------------
@api_router.post("/summaries/queue", response_model=QueueSummaryResponse)
async def queue_summaries(body: QueueSummaryRequest, pipeline: SummaryPipeline = Depends(get_pipeline)):
    """
    Queue emails for background AI summary generation.

    Returns cached summaries immediately; the rest arrive over Socket.IO
    as "summary_update" events.
    """
    if not body.email_ids:
        return QueueSummaryResponse(summaries={}, queued=0)

    try:
        result = await pipeline.enqueue_batch(body.account_id, body.email_ids)
    except Exception as e:
        logger.error(f"[API] Summary queueing failed for {body.account_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="failed to get summaries")

    return QueueSummaryResponse(summaries=result.cached, queued=result.queued_count)


@api_router.get("/summaries", response_model=CachedSummaryResponse)
async def get_cached_summaries(
    account_id: str = Query(..., min_length=1),
    email_ids: str = Query("", description="Comma-separated email ids"),
    pipeline: SummaryPipeline = Depends(get_pipeline),
):
    ids = _split_ids(email_ids)
    if not ids:
        return CachedSummaryResponse(summaries={})

    try:
        summaries = await pipeline.intake.get_cached(account_id, ids)
    except Exception as e:
        logger.error(f"[API] Summary fetch failed for {account_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail="failed to get summaries")

    return CachedSummaryResponse(summaries=summaries)


# ------------------------------------------------------------------
# RUNTIME PROVIDER SETTINGS
# ------------------------------------------------------------------
@api_router.get("/settings/ollama", response_model=OllamaSettings)
async def get_ollama_settings(pipeline: SummaryPipeline = Depends(get_pipeline)):
    return OllamaSettings(**pipeline.runtime_settings.as_dict())


@api_router.put("/settings/ollama", response_model=OllamaSettings)
async def update_ollama_settings(body: OllamaSettings, pipeline: SummaryPipeline = Depends(get_pipeline)):
    pipeline.runtime_settings.update(body.ollama_base_url, body.ollama_model or "")
    return OllamaSettings(**pipeline.runtime_settings.as_dict())


# ------------------------------------------------------------------
# ON-DEMAND AI OPERATIONS
# ------------------------------------------------------------------
@api_router.post("/ai/tasks", response_model=ExtractTasksResponse)
async def extract_tasks(body: ExtractTasksRequest, pipeline: SummaryPipeline = Depends(get_pipeline)):
    try:
        tasks = await pipeline.router.extract_tasks(body.text)
    except ProviderError as e:
        logger.error(f"[API] Task extraction failed: {e}")
        raise HTTPException(status_code=503, detail="AI providers unavailable")
    return ExtractTasksResponse(tasks=tasks)


@api_router.get("/ai/related-terms", response_model=RelatedTermsResponse)
async def related_terms(term: str = Query(..., min_length=1), pipeline: SummaryPipeline = Depends(get_pipeline)):
    try:
        terms = await pipeline.router.suggest_related_terms(term)
    except ProviderError as e:
        logger.error(f"[API] Related terms failed for '{term}': {e}")
        raise HTTPException(status_code=503, detail="AI providers unavailable")
    return RelatedTermsResponse(term=term, terms=terms)


# ------------------------------------------------------------------
# APP FACTORY
# ------------------------------------------------------------------
def create_app(pipeline: Optional[SummaryPipeline] = None) -> FastAPI:
    """
    Build the FastAPI app. With no pipeline given, the lifespan validates
    the environment and builds one from Config.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = pipeline
        if active is None:
            # Fail fast before any worker starts
            Config.validate()
            active = SummaryPipeline.from_config(sio)

        app.state.pipeline = active
        active.start()
        logger.info("[API] Startup complete. Summary pipeline running.")
        try:
            yield
        finally:
            await active.shutdown(Config.SHUTDOWN_GRACE_SECONDS)
            logger.info("[API] Shutdown complete.")

    app = FastAPI(title="mailbrief", lifespan=lifespan)

    allowed_origins = [Config.FRONTEND_URL] if Config.FRONTEND_URL else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        active = getattr(request.app.state, "pipeline", None)
        if active is None:
            return {"status": "starting"}
        return {
            "status": "ok",
            "providers_configured": active.router.configured,
            "pipeline": active.pool.stats(),
        }

    app.include_router(api_router)
    return app


app = create_app()

# ------------------------------------------------------------------
# FINAL ASGI WRAP (Must be last)
# ------------------------------------------------------------------
sio_app = socketio.ASGIApp(
    sio,
    other_asgi_app=app,
    socketio_path="/socket.io",
)
