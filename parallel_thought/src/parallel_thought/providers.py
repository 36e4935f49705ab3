"""Provider-specific adapters for LLM HTTP APIs.

Each adapter handles, for one provider:
- Authentication headers
- Request body shaping (prompt, model, temperature, token budget)
- Response parsing into normalized text plus optional usage counters

Adapters share no base class; they only satisfy the ``ProviderAdapter``
capability. Any failure is raised as ``ProviderCallError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from .config import ProviderConfig
from .errors import ProviderCallError
from .types import Usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    prompt: str
    temperature: float
    max_tokens: int


@dataclass
class Completion:
    content: str
    usage: Optional[Usage] = None


class ProviderAdapter(Protocol):
    """Capability every provider adapter satisfies."""

    label: str

    async def complete(
        self,
        http: httpx.AsyncClient,
        config: ProviderConfig,
        request: CompletionRequest,
    ) -> Completion:
        """Perform one request/response cycle.

        Args:
            http: Shared async HTTP client
            config: Credentials, endpoint and default model for the provider
            request: Resolved model, prompt and sampling knobs

        Returns:
            Normalized text and usage counters when the provider reports them

        Raises:
            ProviderCallError: On transport faults, non-2xx status or a body
                that cannot be parsed
        """
        ...


async def _post_json(
    http: httpx.AsyncClient,
    label: str,
    url: str,
    body: Dict[str, Any],
    headers: Dict[str, str],
    params: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    try:
        resp = await http.post(url, json=body, headers=headers, params=params)
    except httpx.HTTPError as exc:
        raise ProviderCallError(f"{label} request failed: {exc}") from exc

    if resp.status_code < 200 or resp.status_code >= 300:
        raise ProviderCallError(f"{label} API error: {resp.status_code} {resp.reason_phrase}")

    try:
        data = resp.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise ProviderCallError(f"{label} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise ProviderCallError(f"{label} returned an unexpected body: {type(data).__name__}")
    return data


def _json_headers() -> Dict[str, str]:
    return {"Content-Type": "application/json", "Accept": "application/json"}


class OpenAIAdapter:
    """OpenAI and OpenAI-compatible chat completion APIs (DeepSeek uses this shape)."""

    def __init__(self, label: str = "OpenAI") -> None:
        self.label = label

    def get_headers(self, api_key: str) -> Dict[str, str]:
        headers = _json_headers()
        headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def transform_request(self, request: CompletionRequest) -> Dict[str, Any]:
        return {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }

    def parse_response(self, data: Dict[str, Any]) -> Completion:
        choices = data.get("choices")
        if not isinstance(choices, list):
            raise ProviderCallError(f"{self.label} response has no 'choices'")
        message = (choices[0].get("message") or {}) if choices else {}
        usage = data.get("usage")
        return Completion(
            content=message.get("content") or "",
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens"),
                completion_tokens=usage.get("completion_tokens"),
                total_tokens=usage.get("total_tokens"),
            )
            if usage
            else None,
        )

    async def complete(self, http: httpx.AsyncClient, config: ProviderConfig, request: CompletionRequest) -> Completion:
        data = await _post_json(
            http,
            self.label,
            f"{config.base_url}/chat/completions",
            self.transform_request(request),
            self.get_headers(config.api_key),
        )
        return self.parse_response(data)


class AnthropicAdapter:
    """Anthropic Messages API."""

    label = "Anthropic"

    def get_headers(self, api_key: str) -> Dict[str, str]:
        headers = _json_headers()
        headers["x-api-key"] = api_key
        headers["anthropic-version"] = "2023-06-01"
        return headers

    def transform_request(self, request: CompletionRequest) -> Dict[str, Any]:
        return {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }

    def parse_response(self, data: Dict[str, Any]) -> Completion:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise ProviderCallError("Anthropic response has no 'content'")
        text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type", "text") == "text")

        usage = data.get("usage")
        if not usage:
            return Completion(content=text)
        input_tokens = usage.get("input_tokens")
        output_tokens = usage.get("output_tokens")
        return Completion(
            content=text,
            usage=Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=None
                if input_tokens is None and output_tokens is None
                else (input_tokens or 0) + (output_tokens or 0),
            ),
        )

    async def complete(self, http: httpx.AsyncClient, config: ProviderConfig, request: CompletionRequest) -> Completion:
        data = await _post_json(
            http,
            self.label,
            f"{config.base_url}/v1/messages",
            self.transform_request(request),
            self.get_headers(config.api_key),
        )
        return self.parse_response(data)


class GeminiAdapter:
    """Google Generative Language ``generateContent`` API.

    The key travels as a query parameter rather than a header.
    """

    label = "Gemini"

    def transform_request(self, request: CompletionRequest) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }

    def parse_response(self, data: Dict[str, Any]) -> Completion:
        candidates = data.get("candidates")
        if not isinstance(candidates, list):
            raise ProviderCallError("Gemini response has no 'candidates'")
        text = ""
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            if parts:
                text = parts[0].get("text") or ""
        meta = data.get("usageMetadata")
        return Completion(
            content=text,
            usage=Usage(
                prompt_tokens=meta.get("promptTokenCount"),
                completion_tokens=meta.get("candidatesTokenCount"),
                total_tokens=meta.get("totalTokenCount"),
            )
            if meta
            else None,
        )

    async def complete(self, http: httpx.AsyncClient, config: ProviderConfig, request: CompletionRequest) -> Completion:
        data = await _post_json(
            http,
            self.label,
            f"{config.base_url}/v1/models/{request.model}:generateContent",
            self.transform_request(request),
            _json_headers(),
            params={"key": config.api_key},
        )
        return self.parse_response(data)


class OllamaAdapter:
    """Ollama ``/api/generate`` (non-streaming). Reports no usage counters."""

    label = "Ollama"

    def transform_request(self, request: CompletionRequest) -> Dict[str, Any]:
        return {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_tokens,
            },
        }

    def parse_response(self, data: Dict[str, Any]) -> Completion:
        if "response" not in data:
            raise ProviderCallError("Ollama response has no 'response'")
        return Completion(content=data.get("response") or "")

    async def complete(self, http: httpx.AsyncClient, config: ProviderConfig, request: CompletionRequest) -> Completion:
        data = await _post_json(
            http,
            self.label,
            f"{config.base_url}/api/generate",
            self.transform_request(request),
            _json_headers(),
        )
        return self.parse_response(data)


def default_adapters() -> Dict[str, ProviderAdapter]:
    return {
        "openai": OpenAIAdapter(),
        "anthropic": AnthropicAdapter(),
        "gemini": GeminiAdapter(),
        "deepseek": OpenAIAdapter(label="DeepSeek"),
        "ollama": OllamaAdapter(),
    }
