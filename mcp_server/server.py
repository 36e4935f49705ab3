import asyncio
import json
import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from parallel_thought.config import CHEAP_PROVIDERS, PREMIUM_PROVIDERS, PROVIDER_NAMES, EngineConfig, provider_env_hints
from parallel_thought.delegation import CostSaver
from parallel_thought.manager import ParallelThoughtManager, new_session_id
from parallel_thought.types import session_as_dict

logger = logging.getLogger("parallel_thought.mcp")

server = Server("parallel-ai-thought")
manager: Optional[ParallelThoughtManager] = None


def _get_manager() -> ParallelThoughtManager:
    global manager
    if manager is None:
        manager = ParallelThoughtManager.from_env(EngineConfig())
    return manager


def _text(payload: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, ensure_ascii=False))]


def _usage(result) -> Optional[Dict[str, Any]]:
    return asdict(result.usage) if result.usage else None


_ANY_PROVIDER = {"type": "string", "enum": list(PROVIDER_NAMES)}
_CHEAP = {"type": "string", "enum": list(CHEAP_PROVIDERS)}
_PREMIUM = {"type": "string", "enum": list(PREMIUM_PROVIDERS)}


@server.list_tools()
async def list_tools() -> List[Tool]:
    ceiling = _get_manager().config.max_tokens_ceiling
    return [
        Tool(
            name="parallel-ai-think",
            description="Send the same prompt to several AI providers in parallel and collect their answers",
            inputSchema={
                "type": "object",
                "required": ["prompt"],
                "properties": {
                    "prompt": {"type": "string", "description": "Question or prompt for the AIs"},
                    "providers": {"type": "array", "items": _ANY_PROVIDER, "description": "Providers to use (default: all available)"},
                    "sessionId": {"type": "string", "description": "Session id (generated when omitted)"},
                    "variants": {"type": "array", "items": {"type": "string"}, "description": "Prompt variations asking from different angles"},
                    "temperature": {"type": "number", "minimum": 0, "maximum": 2, "description": "Creativity, 0-2 (default 0.7)"},
                    "maxTokens": {"type": "integer", "minimum": 1, "maximum": ceiling, "description": "Max tokens (default 2000)"},
                    "customModels": {"type": "object", "additionalProperties": {"type": "string"}, "description": "Model override per provider"},
                },
            },
        ),
        Tool(
            name="summarize-thoughts",
            description="Analyse and summarise the answers of a parallel thinking session",
            inputSchema={
                "type": "object",
                "required": ["sessionId"],
                "properties": {"sessionId": {"type": "string"}, "summaryProvider": _ANY_PROVIDER},
            },
        ),
        Tool(
            name="find-consensus",
            description="Derive the conclusion the answers of a session agree on",
            inputSchema={
                "type": "object",
                "required": ["sessionId"],
                "properties": {"sessionId": {"type": "string"}, "consensusProvider": _ANY_PROVIDER},
            },
        ),
        Tool(
            name="get-session-info",
            description="Full details of one session",
            inputSchema={"type": "object", "required": ["sessionId"], "properties": {"sessionId": {"type": "string"}}},
        ),
        Tool(name="list-providers", description="AI providers currently available", inputSchema={"type": "object", "properties": {}}),
        Tool(name="list-sessions", description="All sessions run so far", inputSchema={"type": "object", "properties": {}}),
        Tool(
            name="delegate-to-cheap-llm",
            description="Hand a simple task to a low-cost LLM (DeepSeek, Ollama) to save tokens",
            inputSchema={
                "type": "object",
                "required": ["task"],
                "properties": {
                    "task": {"type": "string"},
                    "provider": _CHEAP,
                    "model": {"type": "string"},
                    "temperature": {"type": "number", "minimum": 0, "maximum": 2, "default": 0.3},
                    "maxTokens": {"type": "integer", "minimum": 1, "maximum": 2000, "default": 1000},
                },
            },
        ),
        Tool(
            name="draft-and-refine",
            description="Draft with a low-cost LLM, then refine with a premium one",
            inputSchema={
                "type": "object",
                "required": ["task"],
                "properties": {
                    "task": {"type": "string"},
                    "cheapProvider": _CHEAP,
                    "refineProvider": _PREMIUM,
                    "draftMaxTokens": {"type": "integer", "minimum": 1, "maximum": 2000, "default": 1000},
                    "refineMaxTokens": {"type": "integer", "minimum": 1, "maximum": 1500, "default": 800},
                },
            },
        ),
        Tool(
            name="summarize-for-efficiency",
            description="Summarise long text with a low-cost LLM before handing it to the main model",
            inputSchema={
                "type": "object",
                "required": ["text"],
                "properties": {
                    "text": {"type": "string"},
                    "summaryLength": {"type": "string", "enum": ["short", "medium", "detailed"], "default": "medium"},
                    "provider": _CHEAP,
                    "focus": {"type": "string"},
                },
            },
        ),
        Tool(
            name="batch-process-cheap",
            description="Process several simple tasks in one low-cost LLM call",
            inputSchema={
                "type": "object",
                "required": ["tasks"],
                "properties": {
                    "tasks": {"type": "array", "items": {"type": "string"}},
                    "provider": _CHEAP,
                    "maxTokensPerTask": {"type": "integer", "minimum": 50, "maximum": 500, "default": 200},
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
    params: Dict[str, Any] = arguments or {}
    mgr = _get_manager()

    if name == "parallel-ai-think":
        providers = mgr.resolve_providers(params.get("providers") or None)
        session = await mgr.execute_parallel(
            params.get("sessionId") or new_session_id(),
            params.get("prompt"),
            providers,
            variants=params.get("variants") or None,
            temperature=params.get("temperature"),
            max_tokens=params.get("maxTokens"),
            model_overrides=params.get("customModels"),
        )
        return _text(
            {
                "session_id": session.session_id,
                "prompt": params.get("prompt"),
                "providers": providers,
                "responses": [
                    {
                        "provider": r.provider,
                        "model": r.model,
                        "response": r.response,
                        "duration_ms": r.duration_ms,
                        "usage": _usage(r),
                    }
                    for r in session.results
                ],
                "total_duration_ms": session.total_duration_ms,
                "timestamp": session.timestamp,
            }
        )

    if name == "summarize-thoughts":
        session_id = params.get("sessionId")
        summary = await mgr.summarize(session_id, params.get("summaryProvider"))
        session = await mgr.get_session(session_id)
        return _text(
            {"session_id": session_id, "summary": summary, "original_responses": len(session.results), "timestamp": time.time()}
        )

    if name == "find-consensus":
        session_id = params.get("sessionId")
        consensus = await mgr.consensus(session_id, params.get("consensusProvider"))
        session = await mgr.get_session(session_id)
        return _text(
            {"session_id": session_id, "consensus": consensus, "original_responses": len(session.results), "timestamp": time.time()}
        )

    if name == "get-session-info":
        return _text(session_as_dict(await mgr.get_session(params.get("sessionId"))))

    if name == "list-providers":
        providers = mgr.configured_providers()
        return _text({"available_providers": list(providers), "total_count": len(providers), "timestamp": time.time()})

    if name == "list-sessions":
        overviews = await mgr.list_sessions()
        return _text({"sessions": [asdict(o) for o in overviews], "total_sessions": len(overviews), "timestamp": time.time()})

    saver = CostSaver(mgr)

    if name == "delegate-to-cheap-llm":
        out = await saver.delegate(
            params.get("task"),
            provider=params.get("provider"),
            model=params.get("model"),
            temperature=params.get("temperature", 0.3),
            max_tokens=params.get("maxTokens", 1000),
        )
        return _text(
            {
                "task": out.task,
                "delegated_to": out.provider,
                "model": out.result.model,
                "result": out.result.response,
                "token_usage": _usage(out.result),
                "duration_ms": out.result.duration_ms,
                "timestamp": out.result.timestamp,
            }
        )

    if name == "draft-and-refine":
        out = await saver.draft_and_refine(
            params.get("task"),
            cheap_provider=params.get("cheapProvider"),
            refine_provider=params.get("refineProvider"),
            draft_max_tokens=params.get("draftMaxTokens", 1000),
            refine_max_tokens=params.get("refineMaxTokens", 800),
        )
        return _text(
            {
                "task": out.task,
                "draft_phase": {"provider": out.draft_provider, **_brief(out.draft)},
                "refine_phase": {"provider": out.refine_provider, **_brief(out.refined)},
                "draft": out.draft.response,
                "final_result": out.refined.response,
                "total_duration_ms": out.total_duration_ms,
            }
        )

    if name == "summarize-for-efficiency":
        out = await saver.summarize_for_efficiency(
            params.get("text"),
            length=params.get("summaryLength", "medium"),
            provider=params.get("provider"),
            focus=params.get("focus"),
        )
        return _text(
            {
                "original_length": out.original_length,
                "summary_length": out.summary_length,
                "compression_percent": out.compression_percent,
                "summary": out.result.response,
                "provider": out.provider,
                "token_usage": _usage(out.result),
                "duration_ms": out.result.duration_ms,
            }
        )

    if name == "batch-process-cheap":
        out = await saver.batch(
            params.get("tasks") or [],
            provider=params.get("provider"),
            max_tokens_per_task=params.get("maxTokensPerTask", 200),
        )
        return _text(
            {
                "tasks_count": out.tasks_count,
                "batch_result": out.result.response,
                "provider": out.provider,
                "model": out.result.model,
                "token_usage": _usage(out.result),
                "duration_ms": out.result.duration_ms,
            }
        )

    return _text({"error": f"unknown tool {name}"})


def _brief(result) -> Dict[str, Any]:
    return {"model": result.model, "tokens": _usage(result), "duration_ms": result.duration_ms}


async def _serve() -> None:
    providers = _get_manager().configured_providers()
    if providers:
        logger.info("Available AI providers: %s", ", ".join(providers))
    else:
        logger.warning("No AI providers available; set one of: %s", ", ".join(provider_env_hints()))
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await _get_manager().aclose()


def main() -> None:
    # stdio transport; logs go to stderr
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
