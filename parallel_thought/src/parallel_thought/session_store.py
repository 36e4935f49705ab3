"""Session storage behind a small get/put/list interface."""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Protocol

import redis.asyncio as redis

from .config import EngineConfig
from .errors import ConfigurationError
from .types import Session, session_as_dict, session_from_dict

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def get(self, session_id: str) -> Optional[Session]:
        ...

    async def put(self, session: Session) -> None:
        ...

    async def list(self) -> List[Session]:
        ...


class InMemorySessionStore:
    """Process-lifetime dict of sessions. No eviction."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    async def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def put(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    async def list(self) -> List[Session]:
        return list(self._sessions.values())


class RedisSessionStore:
    """Sessions as JSON documents in Redis.

    Keys: ``<prefix>:session:<id>`` holds the document and
    ``<prefix>:sessions`` is the set of known ids. No TTL is applied.
    """

    def __init__(self, client: "redis.Redis", prefix: str = "thought") -> None:
        self._r = client
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:session:{session_id}"

    @property
    def _index(self) -> str:
        return f"{self._prefix}:sessions"

    async def get(self, session_id: str) -> Optional[Session]:
        raw = await self._r.get(self._key(session_id))
        if not raw:
            return None
        return session_from_dict(json.loads(raw))

    async def put(self, session: Session) -> None:
        await self._r.set(self._key(session.session_id), json.dumps(session_as_dict(session)))
        await self._r.sadd(self._index, session.session_id)

    async def list(self) -> List[Session]:
        sessions: List[Session] = []
        for session_id in await self._r.smembers(self._index):
            session = await self.get(session_id)
            if session is None:
                logger.warning("Session index lists '%s' but no document exists", session_id)
                continue
            sessions.append(session)
        sessions.sort(key=lambda s: s.timestamp)
        return sessions

    async def close(self) -> None:
        await self._r.close()


def create_session_store(config: EngineConfig) -> SessionStore:
    backend = (config.session_backend or "memory").strip().lower()
    if backend == "redis":
        logger.info("Using Redis session store at %s:%s", config.redis_host, config.redis_port)
        client = redis.Redis(host=config.redis_host, port=config.redis_port, decode_responses=True)
        return RedisSessionStore(client, prefix=config.session_key_prefix)
    if backend != "memory":
        raise ConfigurationError(f"Unsupported session backend: {config.session_backend}")
    return InMemorySessionStore()
