"""Input checks applied before any task is built."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .config import TEMPERATURE_MAX, TEMPERATURE_MIN
from .errors import ValidationError


def require_text(value: Any, field: str) -> str:
    """Return a non-blank string or raise."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field}' must be a non-empty string")
    return value


def check_temperature(value: Optional[float], field: str = "temperature") -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{field}' must be a number")
    if not TEMPERATURE_MIN <= value <= TEMPERATURE_MAX:
        raise ValidationError(f"'{field}' must be between {TEMPERATURE_MIN:g} and {TEMPERATURE_MAX:g}, got {value}")
    return float(value)


def check_token_budget(value: Optional[int], ceiling: int, field: str = "max_tokens", floor: int = 1) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{field}' must be an integer")
    if not floor <= value <= ceiling:
        raise ValidationError(f"'{field}' must be between {floor} and {ceiling}, got {value}")
    return value


def check_providers(providers: Sequence[str]) -> List[str]:
    if not providers:
        raise ValidationError("at least one provider is required")
    out: List[str] = []
    for p in providers:
        name = require_text(p, "providers").strip()
        if name in out:
            raise ValidationError(f"provider '{name}' listed more than once")
        out.append(name)
    return out


def check_variants(variants: Optional[Sequence[str]]) -> List[str]:
    """An omitted variant list means one empty variant (the base prompt as-is)."""
    if variants is None:
        return [""]
    if not variants:
        raise ValidationError("'variants' must not be empty when given")
    for v in variants:
        if not isinstance(v, str):
            raise ValidationError("'variants' must contain strings")
    return list(variants)


def check_model_overrides(overrides: Optional[Dict[str, str]]) -> Dict[str, str]:
    if overrides is None:
        return {}
    if not isinstance(overrides, dict):
        raise ValidationError("'custom_models' must map provider names to model names")
    clean: Dict[str, str] = {}
    for provider, model in overrides.items():
        if not isinstance(model, str) or not model.strip():
            raise ValidationError(f"model override for '{provider}' must be a non-empty string")
        clean[provider] = model.strip()
    return clean
