from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value is not None else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


# Canonical provider order; listings and "all providers" requests follow it.
PROVIDER_NAMES: Tuple[str, ...] = ("openai", "anthropic", "gemini", "deepseek", "ollama")

CHEAP_PROVIDERS: Tuple[str, ...] = ("deepseek", "ollama")
PREMIUM_PROVIDERS: Tuple[str, ...] = ("openai", "anthropic", "gemini")

TEMPERATURE_MIN = 0.0
TEMPERATURE_MAX = 2.0


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_key: str
    base_url: str
    default_model: str


@dataclass(frozen=True)
class _ProviderEnv:
    name: str
    key_var: Optional[str]
    base_var: str
    default_base: str
    model_var: str
    default_model: str


# Ollama has no credential; it is enabled by its base URL alone.
_PROVIDER_ENV: Tuple[_ProviderEnv, ...] = (
    _ProviderEnv("openai", "OPENAI_API_KEY", "OPENAI_BASE_URL", "https://api.openai.com/v1", "OPENAI_MODEL", "gpt-4"),
    _ProviderEnv(
        "anthropic",
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_BASE_URL",
        "https://api.anthropic.com",
        "ANTHROPIC_MODEL",
        "claude-3-5-sonnet-20241022",
    ),
    _ProviderEnv(
        "gemini",
        "GEMINI_API_KEY",
        "GEMINI_BASE_URL",
        "https://generativelanguage.googleapis.com",
        "GEMINI_MODEL",
        "gemini-pro",
    ),
    _ProviderEnv("deepseek", "DEEPSEEK_API_KEY", "DEEPSEEK_BASE_URL", "https://api.deepseek.com", "DEEPSEEK_MODEL", "deepseek-chat"),
    _ProviderEnv("ollama", None, "OLLAMA_BASE_URL", "http://localhost:11434", "OLLAMA_MODEL", "llama3.2"),
)


def load_provider_configs(environ: Optional[Mapping[str, str]] = None) -> Dict[str, ProviderConfig]:
    """Scan the environment for provider credentials.

    Returns only the providers whose credential (or, for Ollama, endpoint) is
    present, keyed by name in canonical order.
    """
    env = os.environ if environ is None else environ
    configs: Dict[str, ProviderConfig] = {}
    for spec in _PROVIDER_ENV:
        if spec.key_var is None:
            base_url = (env.get(spec.base_var) or "").strip()
            if not base_url:
                continue
            api_key = "not-needed"
        else:
            api_key = (env.get(spec.key_var) or "").strip()
            if not api_key:
                continue
            base_url = (env.get(spec.base_var) or "").strip() or spec.default_base
        model = (env.get(spec.model_var) or "").strip() or spec.default_model
        configs[spec.name] = ProviderConfig(
            name=spec.name,
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            default_model=model,
        )
    return configs


def provider_env_hints() -> Tuple[str, ...]:
    """Environment variables that enable a provider, for startup warnings."""
    return tuple(spec.key_var or spec.base_var for spec in _PROVIDER_ENV)


@dataclass(frozen=True)
class EngineConfig:
    request_timeout_secs: float = _env_float("REQUEST_TIMEOUT_SECS", 120.0)
    default_temperature: float = _env_float("DEFAULT_TEMPERATURE", 0.7)
    default_max_tokens: int = _env_int("DEFAULT_MAX_TOKENS", 2000)
    max_tokens_ceiling: int = _env_int("MAX_TOKENS_CEILING", 4000)
    synthesis_provider: str = _env_str("SYNTHESIS_PROVIDER", "anthropic")
    session_backend: str = _env_str("SESSION_BACKEND", "memory")
    redis_host: str = _env_str("REDIS_HOST", "localhost")
    redis_port: int = _env_int("REDIS_PORT", 6379)
    session_key_prefix: str = _env_str("SESSION_KEY_PREFIX", "thought")
