"""Test doubles shared by the parallel thought tests."""

import asyncio
import json

from parallel_thought.config import EngineConfig, ProviderConfig
from parallel_thought.errors import ProviderCallError
from parallel_thought.executor import TaskExecutor
from parallel_thought.manager import ParallelThoughtManager
from parallel_thought.providers import Completion
from parallel_thought.registry import ProviderRegistry
from parallel_thought.session_store import InMemorySessionStore
from parallel_thought.types import Usage


DEFAULT_MODELS = {
    "openai": "gpt-4",
    "anthropic": "claude-3-5-sonnet-20241022",
    "gemini": "gemini-pro",
    "deepseek": "deepseek-chat",
    "ollama": "llama3.2",
}


class FakeAdapter:
    """Adapter that records every request and answers from a script.

    reply: text returned (``{prompt}`` is substituted), or a callable(request)
    fail: exception raised instead of answering
    latency_ms: delay before answering
    """

    def __init__(self, label, reply="{label} says hi", fail=None, latency_ms=0, usage=True):
        self.label = label
        self.reply = reply
        self.fail = fail
        self.latency_ms = latency_ms
        self.usage = usage
        self.requests = []

    async def complete(self, http, config, request):
        self.requests.append(request)
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000.0)
        if self.fail is not None:
            raise self.fail
        if callable(self.reply):
            text = self.reply(request)
        else:
            text = self.reply.format(label=self.label, prompt=request.prompt)
        usage = Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15) if self.usage else None
        return Completion(content=text, usage=usage)


def provider_config(name):
    return ProviderConfig(
        name=name,
        api_key="not-needed" if name == "ollama" else f"{name}-key",
        base_url=f"http://{name}.test",
        default_model=DEFAULT_MODELS[name],
    )


def make_registry(adapters):
    configs = {name: provider_config(name) for name in adapters}
    return ProviderRegistry.from_configs(configs, adapters=adapters)


def make_manager(adapters, store=None, config=None):
    config = config or EngineConfig()
    registry = make_registry(adapters)
    executor = TaskExecutor(registry, config, http_client=FakeHTTPClient({}))
    return ParallelThoughtManager(registry, executor=executor, store=store or InMemorySessionStore(), config=config)


def failing(label, message="boom"):
    return FakeAdapter(label, fail=ProviderCallError(f"{label} API error: 500 {message}"))


class FakeResponse:
    def __init__(self, body, status_code=200, reason_phrase="OK"):
        self._body = body
        self.status_code = status_code
        self.reason_phrase = reason_phrase

    @property
    def text(self):
        return self._body if isinstance(self._body, str) else json.dumps(self._body)

    def json(self):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


class FakeHTTPClient:
    """Fake async HTTP client keyed by URL.

    behavior: url -> {"response": body, "status": int, "reason": str, "error": Exception}
    """

    def __init__(self, behavior):
        self.behavior = behavior
        self.calls = []

    async def post(self, url, json=None, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "params": params})
        cfg = self.behavior.get(url, {"response": {}, "status": 200})
        if cfg.get("error"):
            raise cfg["error"]
        return FakeResponse(cfg.get("response", {}), status_code=cfg.get("status", 200), reason_phrase=cfg.get("reason", "OK"))

    async def aclose(self):
        return True


class FakeRedis:
    def __init__(self):
        self.kv = {}
        self.sets = {}
        self.closed = False

    async def get(self, key):
        return self.kv.get(key)

    async def set(self, key, val):
        self.kv[key] = val

    async def sadd(self, key, val):
        s = self.sets.setdefault(key, set())
        before = len(s)
        s.add(val)
        return 1 if len(s) > before else 0

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def close(self):
        self.closed = True
        return True
