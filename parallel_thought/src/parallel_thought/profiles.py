"""Cost profiles: provider tier, sampling defaults and token ceilings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .config import CHEAP_PROVIDERS, PREMIUM_PROVIDERS
from .errors import ConfigurationError


@dataclass(frozen=True)
class CostProfile:
    name: str
    providers: Tuple[str, ...]
    temperature: float
    max_tokens: int
    max_tokens_ceiling: int

    def select_provider(self, configured: Sequence[str], requested: Optional[str] = None) -> str:
        """Pick the provider for this profile.

        A requested provider must belong to the tier and be configured;
        otherwise the first configured member of the tier is used.
        """
        available = [p for p in self.providers if p in configured]
        if not available:
            raise ConfigurationError(
                f"No {self.tier_label} providers available ({', '.join(self.providers)}); configure one in the environment"
            )
        if requested is None:
            return available[0]
        if requested not in available:
            raise ConfigurationError(
                f"Provider '{requested}' is not an available {self.tier_label} provider (available: {', '.join(available)})"
            )
        return requested

    @property
    def tier_label(self) -> str:
        return "premium" if self.providers == PREMIUM_PROVIDERS else "low-cost"


DELEGATE = CostProfile("delegate", CHEAP_PROVIDERS, temperature=0.3, max_tokens=1000, max_tokens_ceiling=2000)
DRAFT = CostProfile("draft", CHEAP_PROVIDERS, temperature=0.7, max_tokens=1000, max_tokens_ceiling=2000)
REFINE = CostProfile("refine", PREMIUM_PROVIDERS, temperature=0.3, max_tokens=800, max_tokens_ceiling=1500)
EFFICIENT_SUMMARY = CostProfile("efficient-summary", CHEAP_PROVIDERS, temperature=0.1, max_tokens=400, max_tokens_ceiling=600)
# max_tokens here is per sub-task; the combined call is capped by the ceiling.
BATCH = CostProfile("batch", CHEAP_PROVIDERS, temperature=0.3, max_tokens=200, max_tokens_ceiling=2000)
BATCH_PER_TASK_MIN = 50
BATCH_PER_TASK_MAX = 500

# length -> (instruction, token budget)
SUMMARY_LENGTHS: Dict[str, Tuple[str, int]] = {
    "short": ("concisely, in 3-5 sentences", 200),
    "medium": ("in 1-2 paragraphs with moderate detail", 400),
    "detailed": ("in 3-4 detailed paragraphs", 600),
}
