from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from .config import PROVIDER_NAMES, ProviderConfig, load_provider_configs
from .providers import ProviderAdapter, default_adapters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderBinding:
    config: ProviderConfig
    adapter: ProviderAdapter


class ProviderRegistry:
    """Usable providers, fixed at construction.

    A provider is present only if its credentials were configured and an
    adapter exists for it. Nothing is added or removed afterwards.
    """

    def __init__(self, bindings: Mapping[str, ProviderBinding]) -> None:
        ordered = sorted(bindings, key=lambda n: PROVIDER_NAMES.index(n) if n in PROVIDER_NAMES else len(PROVIDER_NAMES))
        self._bindings: Dict[str, ProviderBinding] = {name: bindings[name] for name in ordered}

    @classmethod
    def from_configs(
        cls,
        configs: Mapping[str, ProviderConfig],
        adapters: Optional[Mapping[str, ProviderAdapter]] = None,
    ) -> "ProviderRegistry":
        available = dict(adapters) if adapters is not None else default_adapters()
        bindings: Dict[str, ProviderBinding] = {}
        for name, cfg in configs.items():
            adapter = available.get(name)
            if adapter is None:
                logger.warning("No adapter for configured provider '%s'; ignoring it", name)
                continue
            bindings[name] = ProviderBinding(config=cfg, adapter=adapter)
        return cls(bindings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderRegistry":
        return cls.from_configs(load_provider_configs(environ))

    def configured_providers(self) -> Tuple[str, ...]:
        return tuple(self._bindings)

    def is_configured(self, name: str) -> bool:
        return name in self._bindings

    def get(self, name: str) -> Optional[ProviderBinding]:
        return self._bindings.get(name)
