"""Parallel fan-out of one prompt to several LLM providers, with synthesis."""

from .config import EngineConfig, ProviderConfig, load_provider_configs
from .delegation import CostSaver
from .errors import ConfigurationError, NotFoundError, ProviderCallError, ThoughtError, ValidationError
from .executor import TaskExecutor
from .manager import ParallelThoughtManager
from .registry import ProviderRegistry
from .session_store import InMemorySessionStore, RedisSessionStore
from .types import Session, SessionOverview, Task, TaskResult, Usage

__all__ = [
    "EngineConfig",
    "ProviderConfig",
    "load_provider_configs",
    "CostSaver",
    "ThoughtError",
    "ConfigurationError",
    "NotFoundError",
    "ValidationError",
    "ProviderCallError",
    "TaskExecutor",
    "ParallelThoughtManager",
    "ProviderRegistry",
    "InMemorySessionStore",
    "RedisSessionStore",
    "Task",
    "TaskResult",
    "Usage",
    "Session",
    "SessionOverview",
]
