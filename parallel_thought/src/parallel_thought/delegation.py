"""Token-saving helpers built on the task executor.

None of these create sessions. Each is one or two single tasks shaped by a
cost profile; the batch helper returns the combined answer unsplit.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import ValidationError
from .manager import ParallelThoughtManager
from .profiles import (
    BATCH,
    BATCH_PER_TASK_MAX,
    BATCH_PER_TASK_MIN,
    DELEGATE,
    DRAFT,
    EFFICIENT_SUMMARY,
    REFINE,
    SUMMARY_LENGTHS,
)
from .request_validation import check_temperature, check_token_budget, require_text
from .types import Task, TaskResult

logger = logging.getLogger(__name__)


def _stamp() -> int:
    return int(time.time() * 1000)


@dataclass
class DelegationResult:
    task: str
    provider: str
    result: TaskResult


@dataclass
class DraftRefineResult:
    task: str
    draft_provider: str
    refine_provider: str
    draft: TaskResult
    refined: TaskResult

    @property
    def total_duration_ms(self) -> float:
        return self.draft.duration_ms + self.refined.duration_ms


@dataclass
class EfficientSummary:
    provider: str
    original_length: int
    result: TaskResult

    @property
    def summary_length(self) -> int:
        return len(self.result.response)

    @property
    def compression_percent(self) -> int:
        return round((1 - self.summary_length / self.original_length) * 100)


@dataclass
class BatchResult:
    tasks_count: int
    provider: str
    result: TaskResult


def batch_prompt(tasks: Sequence[str]) -> str:
    numbered = "\n".join(f"{i}. {t}" for i, t in enumerate(tasks, start=1))
    return "\n".join(
        [
            f"Process the following {len(tasks)} tasks in order. Keep each answer brief and practical:",
            "",
            numbered,
            "",
            "Give each answer in this format:",
            "[Task 1 answer]",
            "(answer)",
            "",
            "[Task 2 answer]",
            "(answer)",
            "",
            "...",
        ]
    )


class CostSaver:
    """Cheap-tier delegation, draft-then-refine, pre-summarization and batching."""

    def __init__(self, manager: ParallelThoughtManager) -> None:
        self._manager = manager

    def _configured(self):
        return self._manager.configured_providers()

    async def delegate(
        self,
        task: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> DelegationResult:
        require_text(task, "task")
        temperature = check_temperature(temperature)
        max_tokens = check_token_budget(max_tokens, DELEGATE.max_tokens_ceiling)
        target = DELEGATE.select_provider(self._configured(), provider)

        prompt = f"Carry out the following task efficiently. Keep the answer concise and practical:\n\n{task}"
        result = await self._manager.execute_task(
            Task(
                id=f"delegate-{_stamp()}",
                prompt=prompt,
                provider=target,
                model=model,
                temperature=DELEGATE.temperature if temperature is None else temperature,
                max_tokens=DELEGATE.max_tokens if max_tokens is None else max_tokens,
            )
        )
        logger.info("Delegated task to %s in %.0f ms", target, result.duration_ms)
        return DelegationResult(task=task, provider=target, result=result)

    async def draft_and_refine(
        self,
        task: str,
        cheap_provider: Optional[str] = None,
        refine_provider: Optional[str] = None,
        draft_max_tokens: Optional[int] = None,
        refine_max_tokens: Optional[int] = None,
    ) -> DraftRefineResult:
        require_text(task, "task")
        draft_max_tokens = check_token_budget(draft_max_tokens, DRAFT.max_tokens_ceiling, field="draft_max_tokens")
        refine_max_tokens = check_token_budget(refine_max_tokens, REFINE.max_tokens_ceiling, field="refine_max_tokens")
        configured = self._configured()
        drafter = DRAFT.select_provider(configured, cheap_provider)
        refiner = REFINE.select_provider(configured, refine_provider)

        draft = await self._manager.execute_task(
            Task(
                id=f"draft-{_stamp()}",
                prompt=(
                    "Write a draft for the request below. It does not need to be perfect; "
                    f"provide the basic structure and content first:\n\n{task}"
                ),
                provider=drafter,
                temperature=DRAFT.temperature,
                max_tokens=DRAFT.max_tokens if draft_max_tokens is None else draft_max_tokens,
            )
        )
        refine_prompt = "\n".join(
            [
                "Improve the draft below. Raise its accuracy, polish the wording and tighten the structure.",
                "",
                "[Original request]",
                task,
                "",
                "[Draft]",
                draft.response,
                "",
                "Provide the improved final version:",
            ]
        )
        refined = await self._manager.execute_task(
            Task(
                id=f"refine-{_stamp()}",
                prompt=refine_prompt,
                provider=refiner,
                temperature=REFINE.temperature,
                max_tokens=REFINE.max_tokens if refine_max_tokens is None else refine_max_tokens,
            )
        )
        return DraftRefineResult(
            task=task,
            draft_provider=drafter,
            refine_provider=refiner,
            draft=draft,
            refined=refined,
        )

    async def summarize_for_efficiency(
        self,
        text: str,
        length: str = "medium",
        provider: Optional[str] = None,
        focus: Optional[str] = None,
    ) -> EfficientSummary:
        require_text(text, "text")
        if length not in SUMMARY_LENGTHS:
            raise ValidationError(f"'summary_length' must be one of {', '.join(SUMMARY_LENGTHS)}")
        instruction, budget = SUMMARY_LENGTHS[length]
        target = EFFICIENT_SUMMARY.select_provider(self._configured(), provider)

        lead = f"Summarize the following text {instruction}."
        if focus:
            lead += f' Pay particular attention to "{focus}".'
        prompt = f"{lead}\n\n[Text to summarize]\n{text}\n\nSummary:"
        result = await self._manager.execute_task(
            Task(
                id=f"summary-{_stamp()}",
                prompt=prompt,
                provider=target,
                temperature=EFFICIENT_SUMMARY.temperature,
                max_tokens=budget,
            )
        )
        return EfficientSummary(provider=target, original_length=len(text), result=result)

    async def batch(
        self,
        tasks: Sequence[str],
        provider: Optional[str] = None,
        max_tokens_per_task: Optional[int] = None,
    ) -> BatchResult:
        if not tasks:
            raise ValidationError("'tasks' must contain at least one task")
        items: List[str] = [require_text(t, "tasks") for t in tasks]
        per_task = check_token_budget(
            max_tokens_per_task, BATCH_PER_TASK_MAX, field="max_tokens_per_task", floor=BATCH_PER_TASK_MIN
        )
        per_task = BATCH.max_tokens if per_task is None else per_task
        target = BATCH.select_provider(self._configured(), provider)

        result = await self._manager.execute_task(
            Task(
                id=f"batch-{_stamp()}",
                prompt=batch_prompt(items),
                provider=target,
                temperature=BATCH.temperature,
                max_tokens=min(len(items) * per_task, BATCH.max_tokens_ceiling),
            )
        )
        return BatchResult(tasks_count=len(items), provider=target, result=result)
