from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from .config import CHEAP_PROVIDERS, PREMIUM_PROVIDERS, EngineConfig
from .errors import ConfigurationError, NotFoundError, ValidationError
from .executor import TaskExecutor
from .registry import ProviderRegistry
from .request_validation import (
    check_model_overrides,
    check_providers,
    check_temperature,
    check_token_budget,
    check_variants,
    require_text,
)
from .session_store import InMemorySessionStore, SessionStore, create_session_store
from .types import Session, SessionOverview, Task, TaskResult

logger = logging.getLogger(__name__)

SUMMARY_TEMPERATURE = 0.3
CONSENSUS_TEMPERATURE = 0.1

_SUMMARY_INSTRUCTION = "\n".join(
    [
        "Below are several AI answers to the same question.",
        "Analyse them and summarise what they have in common, where they differ, and what the overall insight is.",
    ]
)
_SUMMARY_FORMAT = "\n".join(
    [
        "Answer in the following format:",
        "1. Shared views",
        "2. Differing perspectives",
        "3. Overall conclusion",
    ]
)
_CONSENSUS_INSTRUCTION = "\n".join(
    [
        "Below are several AI answers to the same question.",
        "Derive the single most reasonable and defensible conclusion they support.",
    ]
)
_CONSENSUS_FORMAT = "State the conclusion they can agree on, concisely:"


def new_session_id() -> str:
    return f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def variant_prompt(base_prompt: str, variant: str) -> str:
    return f"{base_prompt}\n\n{variant}" if variant else base_prompt


def _responses_block(session: Session, separator: str) -> str:
    return separator.join(f"**{r.provider} ({r.model})**:\n{r.response}" for r in session.results)


class ParallelThoughtManager:
    """Fans prompts out to providers and keeps the aggregated sessions.

    The manager is the only writer of the session store. Writes to one session
    id are serialized so a concurrent summarize and consensus cannot lose each
    other's update.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        executor: Optional[TaskExecutor] = None,
        store: Optional[SessionStore] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._registry = registry
        self._executor = executor or TaskExecutor(registry, self._config)
        self._store = store if store is not None else InMemorySessionStore()
        self._locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_env(cls, config: Optional[EngineConfig] = None) -> "ParallelThoughtManager":
        config = config or EngineConfig()
        registry = ProviderRegistry.from_env()
        return cls(registry, store=create_session_store(config), config=config)

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def aclose(self) -> None:
        await self._executor.aclose()
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()

    def _lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def configured_providers(self, tier: Optional[str] = None) -> Tuple[str, ...]:
        configured = self._registry.configured_providers()
        if tier is None:
            return configured
        if tier == "cheap":
            members = CHEAP_PROVIDERS
        elif tier == "premium":
            members = PREMIUM_PROVIDERS
        else:
            raise ValidationError(f"Unknown provider tier: {tier}")
        return tuple(p for p in configured if p in members)

    def resolve_providers(self, requested: Optional[Sequence[str]]) -> List[str]:
        """Return the providers for a batch, failing if any is unusable.

        ``None`` means every configured provider; an empty list is rejected.
        """
        configured = self._registry.configured_providers()
        if not configured:
            raise ConfigurationError("No AI providers are available; set provider API keys in the environment")
        if requested is None:
            return list(configured)
        providers = check_providers(requested)
        missing = [p for p in providers if p not in configured]
        if missing:
            raise ConfigurationError(f"Providers not configured: {', '.join(missing)}")
        return providers

    async def execute_task(self, task: Task) -> TaskResult:
        return await self._executor.run(task)

    async def execute_parallel(
        self,
        session_id: str,
        base_prompt: str,
        providers: Optional[Sequence[str]],
        variants: Optional[Sequence[str]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model_overrides: Optional[Dict[str, str]] = None,
    ) -> Session:
        require_text(session_id, "session_id")
        require_text(base_prompt, "prompt")
        variant_list = check_variants(variants)
        temperature = check_temperature(temperature)
        max_tokens = check_token_budget(max_tokens, self._config.max_tokens_ceiling)
        overrides = check_model_overrides(model_overrides)
        provider_list = self.resolve_providers(providers)

        tasks = [
            Task(
                id=f"{provider}-{i}",
                prompt=variant_prompt(base_prompt, variant),
                provider=provider,
                model=overrides.get(provider),
                temperature=temperature,
                max_tokens=max_tokens,
                metadata={"variant_index": i, "variant": variant},
            )
            for provider in provider_list
            for i, variant in enumerate(variant_list)
        ]

        logger.info(
            "[session=%s] Dispatching %d tasks to %s", session_id, len(tasks), ", ".join(provider_list)
        )
        started = time.perf_counter()
        results = await self._executor.run_all(tasks)
        session = Session(
            session_id=session_id,
            tasks=tasks,
            results=results,
            total_duration_ms=(time.perf_counter() - started) * 1000.0,
            timestamp=time.time(),
        )
        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning("[session=%s] %d of %d tasks failed", session_id, failed, len(tasks))

        async with self._lock(session_id):
            await self._store.put(session)
        return session

    async def get_session(self, session_id: str) -> Session:
        session = await self._store.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def list_sessions(self) -> List[SessionOverview]:
        return [SessionOverview.of(s) for s in await self._store.list()]

    async def summarize(self, session_id: str, provider: Optional[str] = None) -> str:
        # unknown ids must not leave a lock behind
        await self.get_session(session_id)
        async with self._lock(session_id):
            session = await self.get_session(session_id)
            prompt = "\n\n".join(
                [_SUMMARY_INSTRUCTION, _responses_block(session, "\n\n---\n\n"), _SUMMARY_FORMAT]
            )
            result = await self._executor.run(
                Task(
                    id=f"summary-{session_id}",
                    prompt=prompt,
                    provider=provider or self._config.synthesis_provider,
                    temperature=SUMMARY_TEMPERATURE,
                )
            )
            session.summary = result.response
            await self._store.put(session)
        return result.response

    async def consensus(self, session_id: str, provider: Optional[str] = None) -> str:
        await self.get_session(session_id)
        async with self._lock(session_id):
            session = await self.get_session(session_id)
            prompt = "\n\n".join(
                [_CONSENSUS_INSTRUCTION, _responses_block(session, "\n\n"), _CONSENSUS_FORMAT]
            )
            result = await self._executor.run(
                Task(
                    id=f"consensus-{session_id}",
                    prompt=prompt,
                    provider=provider or self._config.synthesis_provider,
                    temperature=CONSENSUS_TEMPERATURE,
                )
            )
            session.consensus = result.response
            await self._store.put(session)
        return result.response
