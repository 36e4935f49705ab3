"""Single-task execution with failures folded into results."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence

import httpx

from .config import EngineConfig
from .providers import CompletionRequest
from .registry import ProviderRegistry
from .types import Task, TaskResult

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "


class TaskExecutor:
    """Runs tasks against their provider adapters.

    ``run`` never raises: an unconfigured provider, a transport fault, a bad
    status code or a malformed body all come back as a degraded
    ``TaskResult`` whose response starts with ``ERROR_PREFIX`` and which
    carries no usage.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: Optional[EngineConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._registry = registry
        self._config = config or EngineConfig()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self._config.request_timeout_secs))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def run(self, task: Task) -> TaskResult:
        started = time.perf_counter()
        binding = self._registry.get(task.provider)
        if binding is None:
            return self._degraded(task, task.model or "unknown", f"Provider {task.provider} is not configured", started)

        model = task.model or binding.config.default_model or "unknown"
        request = CompletionRequest(
            model=model,
            prompt=task.prompt,
            temperature=task.temperature if task.temperature is not None else self._config.default_temperature,
            max_tokens=task.max_tokens if task.max_tokens is not None else self._config.default_max_tokens,
        )
        try:
            completion = await binding.adapter.complete(self._http, binding.config, request)
        except Exception as e:
            logger.warning("Task %s with %s failed: %s", task.id, task.provider, e)
            return self._degraded(task, model, str(e) or e.__class__.__name__, started)

        return TaskResult(
            task_id=task.id,
            provider=task.provider,
            model=model,
            response=completion.content,
            usage=completion.usage,
            timestamp=time.time(),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )

    async def run_all(self, tasks: Sequence[Task]) -> List[TaskResult]:
        """Run every task concurrently and wait for all of them.

        Results are returned in task order, whatever order the calls finish in.
        """
        if not tasks:
            return []
        return list(await asyncio.gather(*(self.run(t) for t in tasks)))

    def _degraded(self, task: Task, model: str, error: str, started: float) -> TaskResult:
        return TaskResult(
            task_id=task.id,
            provider=task.provider,
            model=model,
            response=f"{ERROR_PREFIX}{error}",
            usage=None,
            error=error,
            timestamp=time.time(),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
