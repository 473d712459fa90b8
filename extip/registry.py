"""Explicit provider registry.

Maps a provider name to a factory (usually the provider class). Adding a web
service means writing a ``Provider`` subclass and registering it; the resolver
never needs to know concrete types.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from extip.http_providers import BUILTIN_PROVIDERS
from extip.provider import Provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., Provider]


class ProviderRegistry:
    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Register ``factory`` under ``name``.

        Raises ``ValueError`` if the name is already taken.
        """
        if name in self._factories:
            raise ValueError(f"Provider '{name}' is already registered")
        self._factories[name] = factory
        logger.debug("Registered provider: %s", name)

    @property
    def names(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str, **kwargs: Any) -> Provider:
        try:
            factory = self._factories[name]
        except KeyError:
            raise KeyError(f"Unknown provider '{name}'. Available: {self.names}") from None
        return factory(**kwargs)

    def create_all(self, names: Iterable[str] | None = None, **kwargs: Any) -> list[Provider]:
        """Instantiate the named providers (all of them by default), in order."""
        selected = list(names) if names is not None else self.names
        return [self.create(name, **kwargs) for name in selected]


def default_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    for provider_cls in BUILTIN_PROVIDERS:
        registry.register(provider_cls.name, provider_cls)
    return registry
