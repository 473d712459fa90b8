"""Resolves the external IP address of this host.

Public web services that echo the caller's address are asked one at a time
until one of them answers. A successful answer is cached; failures are not.
When the cache has expired and every service fails, the expired value is
returned anyway, so callers only see ``None`` if nothing ever succeeded.

Services are tried in random order to spread load, except that services that
failed before are tried after those that have not. Failed services stay
demoted for the lifetime of the resolver.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from datetime import timedelta
from typing import Callable, Iterable

import requests

from extip.http_providers import DEFAULT_TIMEOUT_SECONDS
from extip.provider import Address, Provider, attempt
from extip.registry import ProviderRegistry, default_registry

DEFAULT_MAX_CACHE_AGE = timedelta(days=1)


def _to_seconds(max_cache_age: timedelta | float) -> float:
    if isinstance(max_cache_age, timedelta):
        return max_cache_age.total_seconds()
    return float(max_cache_age)


class ResolverService:
    def __init__(
        self,
        providers: Iterable[Provider],
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._providers = tuple(providers)
        self._clock = clock
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._cache: Address | None = None
        self._last_success: float | None = None
        self._failed: set[Provider] = set()
        self._owned_session: requests.Session | None = None

    @classmethod
    def from_registry(
        cls,
        registry: ProviderRegistry | None = None,
        names: Iterable[str] | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        **kwargs,
    ) -> "ResolverService":
        registry = registry or default_registry()
        owned = session is None
        session = session or requests.Session()
        providers = registry.create_all(names, session=session, timeout_seconds=timeout_seconds)
        service = cls(providers, **kwargs)
        if owned:
            service._owned_session = session
        return service

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._providers

    @property
    def cached_address(self) -> Address | None:
        with self._lock:
            return self._cache

    @property
    def failed_providers(self) -> frozenset[Provider]:
        with self._lock:
            return frozenset(self._failed)

    def resolve(self, max_cache_age: timedelta | float = DEFAULT_MAX_CACHE_AGE) -> Address | None:
        """Return this host's external address, or None if it cannot be determined.

        A cached answer younger than ``max_cache_age`` is returned without any
        network traffic. Zero or negative ages force a refresh.
        """
        max_age = _to_seconds(max_cache_age)
        with self._lock:
            if max_age > 0 and self._cache is not None and self._last_success is not None:
                if self._clock() - self._last_success < max_age:
                    self._logger.debug("Returning from cache: %s", self._cache)
                    return self._cache

        for provider in self._attempt_order():
            self._logger.debug("Provider '%s' is about to be invoked.", provider.name)
            outcome = attempt(provider)
            if outcome.ok:
                self._logger.debug("Provider '%s' resolved %s", provider.name, outcome.address)
                with self._lock:
                    self._cache = outcome.address
                    self._last_success = self._clock()
                return outcome.address

            self._logger.warning(
                "Provider '%s' failed (%s): %s", provider.name, outcome.kind.value, outcome.error
            )
            with self._lock:
                self._failed.add(provider)

        with self._lock:
            cached = self._cache
        if not self._providers:
            self._logger.error("Unable to resolve external address: no providers registered.")
        elif cached is None:
            self._logger.error("Unable to resolve external address: all %d providers failed.", len(self._providers))
        else:
            self._logger.warning("All providers failed, returning stale cached address %s", cached)
        return cached

    # TODO: rank the healthy partition by average_duration instead of pure shuffle.
    def _attempt_order(self) -> list[Provider]:
        order = list(self._providers)
        self._rng.shuffle(order)
        with self._lock:
            failed = set(self._failed)
        return [p for p in order if p not in failed] + [p for p in order if p in failed]

    def close(self) -> None:
        if self._owned_session is not None:
            self._owned_session.close()
            self._owned_session = None
