from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Task:
    id: str
    prompt: str
    provider: str
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Usage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass
class TaskResult:
    task_id: str
    provider: str
    model: str
    response: str
    timestamp: float
    duration_ms: float
    usage: Optional[Usage] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class Session:
    session_id: str
    tasks: List[Task]
    results: List[TaskResult]
    total_duration_ms: float
    timestamp: float
    summary: Optional[str] = None
    consensus: Optional[str] = None


@dataclass
class SessionOverview:
    session_id: str
    response_count: int
    total_duration_ms: float
    timestamp: float
    has_summary: bool
    has_consensus: bool

    @classmethod
    def of(cls, session: Session) -> "SessionOverview":
        return cls(
            session_id=session.session_id,
            response_count=len(session.results),
            total_duration_ms=session.total_duration_ms,
            timestamp=session.timestamp,
            has_summary=bool(session.summary),
            has_consensus=bool(session.consensus),
        )


def task_result_as_dict(result: TaskResult) -> Dict[str, Any]:
    return asdict(result)


def session_as_dict(session: Session) -> Dict[str, Any]:
    return asdict(session)


def _task_from_dict(raw: Dict[str, Any]) -> Task:
    return Task(
        id=raw["id"],
        prompt=raw["prompt"],
        provider=raw["provider"],
        model=raw.get("model"),
        temperature=raw.get("temperature"),
        max_tokens=raw.get("max_tokens"),
        metadata=dict(raw.get("metadata") or {}),
    )


def _result_from_dict(raw: Dict[str, Any]) -> TaskResult:
    usage = raw.get("usage")
    return TaskResult(
        task_id=raw["task_id"],
        provider=raw["provider"],
        model=raw["model"],
        response=raw["response"],
        timestamp=raw["timestamp"],
        duration_ms=raw["duration_ms"],
        usage=Usage(**usage) if usage is not None else None,
        error=raw.get("error"),
    )


def session_from_dict(raw: Dict[str, Any]) -> Session:
    return Session(
        session_id=raw["session_id"],
        tasks=[_task_from_dict(t) for t in raw.get("tasks", [])],
        results=[_result_from_dict(r) for r in raw.get("results", [])],
        total_duration_ms=raw["total_duration_ms"],
        timestamp=raw["timestamp"],
        summary=raw.get("summary"),
        consensus=raw.get("consensus"),
    )
