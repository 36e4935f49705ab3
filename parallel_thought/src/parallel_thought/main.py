import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Dict, List, Literal, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import EngineConfig, provider_env_hints
from .delegation import CostSaver
from .errors import ThoughtError
from .manager import ParallelThoughtManager, new_session_id
from .types import session_as_dict, task_result_as_dict


@asynccontextmanager
async def lifespan(app: FastAPI):
    global manager
    logger.info("Parallel thought service starting up...")
    owned = manager is None
    if owned:
        manager = ParallelThoughtManager.from_env(EngineConfig())
    providers = manager.configured_providers()
    if providers:
        logger.info("Available AI providers: %s", ", ".join(providers))
    else:
        logger.warning("No AI providers configured; set one of: %s", ", ".join(provider_env_hints()))
    try:
        yield
    finally:
        if owned and manager is not None:
            await manager.aclose()
            manager = None
        logger.info("Parallel thought service shut down.")


app = FastAPI(title="Parallel AI Thought", lifespan=lifespan)
manager: Optional[ParallelThoughtManager] = None
logger = logging.getLogger("parallel_thought")


def _manager() -> ParallelThoughtManager:
    if manager is None:
        raise HTTPException(status_code=503, detail="Service not initialised")
    return manager


@app.exception_handler(ThoughtError)
async def thought_error_handler(request: Request, exc: ThoughtError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "type": exc.__class__.__name__})


class ThinkRequest(BaseModel):
    prompt: str
    providers: Optional[List[str]] = None
    session_id: Optional[str] = None
    variants: Optional[List[str]] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    # upper bound is MAX_TOKENS_CEILING, checked by the engine
    max_tokens: Optional[int] = Field(default=None, ge=1)
    custom_models: Optional[Dict[str, str]] = None


class SynthesisRequest(BaseModel):
    provider: Optional[str] = None


class DelegateRequest(BaseModel):
    task: str
    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: float = Field(default=0.3, ge=0, le=2)
    max_tokens: int = Field(default=1000, ge=1, le=2000)


class DraftRefineRequest(BaseModel):
    task: str
    cheap_provider: Optional[str] = None
    refine_provider: Optional[str] = None
    draft_max_tokens: int = Field(default=1000, ge=1, le=2000)
    refine_max_tokens: int = Field(default=800, ge=1, le=1500)


class EfficientSummaryRequest(BaseModel):
    text: str
    summary_length: Literal["short", "medium", "detailed"] = "medium"
    provider: Optional[str] = None
    focus: Optional[str] = None


class BatchRequest(BaseModel):
    tasks: List[str]
    provider: Optional[str] = None
    max_tokens_per_task: int = Field(default=200, ge=50, le=500)


@app.get("/health")
async def health():
    providers = _manager().configured_providers()
    return {"status": "ok" if providers else "degraded", "providers": list(providers)}


@app.get("/v1/providers")
async def list_providers(tier: Optional[str] = None):
    providers = _manager().configured_providers(tier)
    return {"available_providers": list(providers), "total_count": len(providers), "timestamp": time.time()}


@app.post("/v1/think")
async def think(body: ThinkRequest):
    mgr = _manager()
    providers = mgr.resolve_providers(body.providers or None)
    session = await mgr.execute_parallel(
        body.session_id or new_session_id(),
        body.prompt,
        providers,
        variants=body.variants or None,
        temperature=body.temperature,
        max_tokens=body.max_tokens,
        model_overrides=body.custom_models,
    )
    return {
        "session_id": session.session_id,
        "prompt": body.prompt,
        "providers": providers,
        "responses": [task_result_as_dict(r) for r in session.results],
        "total_duration_ms": session.total_duration_ms,
        "timestamp": session.timestamp,
    }


@app.get("/v1/sessions")
async def list_sessions():
    overviews = await _manager().list_sessions()
    return {"sessions": [asdict(o) for o in overviews], "total_sessions": len(overviews), "timestamp": time.time()}


@app.get("/v1/sessions/{session_id}")
async def get_session(session_id: str):
    return session_as_dict(await _manager().get_session(session_id))


@app.post("/v1/sessions/{session_id}/summary")
async def summarize_session(session_id: str, body: Optional[SynthesisRequest] = None):
    mgr = _manager()
    summary = await mgr.summarize(session_id, body.provider if body else None)
    session = await mgr.get_session(session_id)
    return {
        "session_id": session_id,
        "summary": summary,
        "original_responses": len(session.results),
        "timestamp": time.time(),
    }


@app.post("/v1/sessions/{session_id}/consensus")
async def session_consensus(session_id: str, body: Optional[SynthesisRequest] = None):
    mgr = _manager()
    consensus = await mgr.consensus(session_id, body.provider if body else None)
    session = await mgr.get_session(session_id)
    return {
        "session_id": session_id,
        "consensus": consensus,
        "original_responses": len(session.results),
        "timestamp": time.time(),
    }


@app.post("/v1/delegate")
async def delegate(body: DelegateRequest):
    out = await CostSaver(_manager()).delegate(
        body.task, provider=body.provider, model=body.model, temperature=body.temperature, max_tokens=body.max_tokens
    )
    return {
        "task": out.task,
        "delegated_to": out.provider,
        "model": out.result.model,
        "result": out.result.response,
        "token_usage": asdict(out.result.usage) if out.result.usage else None,
        "duration_ms": out.result.duration_ms,
        "timestamp": out.result.timestamp,
    }


@app.post("/v1/draft-and-refine")
async def draft_and_refine(body: DraftRefineRequest):
    out = await CostSaver(_manager()).draft_and_refine(
        body.task,
        cheap_provider=body.cheap_provider,
        refine_provider=body.refine_provider,
        draft_max_tokens=body.draft_max_tokens,
        refine_max_tokens=body.refine_max_tokens,
    )
    return {
        "task": out.task,
        "draft_phase": _phase(out.draft_provider, out.draft),
        "refine_phase": _phase(out.refine_provider, out.refined),
        "draft": out.draft.response,
        "final_result": out.refined.response,
        "total_duration_ms": out.total_duration_ms,
    }


@app.post("/v1/summarize-for-efficiency")
async def summarize_for_efficiency(body: EfficientSummaryRequest):
    out = await CostSaver(_manager()).summarize_for_efficiency(
        body.text, length=body.summary_length, provider=body.provider, focus=body.focus
    )
    return {
        "original_length": out.original_length,
        "summary_length": out.summary_length,
        "compression_percent": out.compression_percent,
        "summary": out.result.response,
        "provider": out.provider,
        "token_usage": asdict(out.result.usage) if out.result.usage else None,
        "duration_ms": out.result.duration_ms,
    }


@app.post("/v1/batch")
async def batch(body: BatchRequest):
    out = await CostSaver(_manager()).batch(body.tasks, provider=body.provider, max_tokens_per_task=body.max_tokens_per_task)
    return {
        "tasks_count": out.tasks_count,
        "batch_result": out.result.response,
        "provider": out.provider,
        "model": out.result.model,
        "token_usage": asdict(out.result.usage) if out.result.usage else None,
        "duration_ms": out.result.duration_ms,
    }


def _phase(provider, result):
    return {
        "provider": provider,
        "model": result.model,
        "tokens": asdict(result.usage) if result.usage else None,
        "duration_ms": result.duration_ms,
    }


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 8080)))


if __name__ == "__main__":
    run()
