"""Provider contract and the bookkeeping shared by all providers.

A provider asks one external source for the address of this host.
``attempt()`` turns the two recoverable failure modes into an explicit
``ProviderOutcome`` so the resolver can iterate without try/except.
"""

from __future__ import annotations

import enum
import ipaddress
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Union

from extip.errors import CommunicationError, ParseError, ResolutionError

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DURATION_WINDOW = 10


class ExecutionStats:
    """Thread-safe success counter plus a rolling window of durations (ms)."""

    def __init__(self, window: int = DURATION_WINDOW) -> None:
        self._lock = threading.Lock()
        self._successes = 0
        self._durations: deque[int] = deque(maxlen=window)

    def record_success(self, duration_ms: int) -> None:
        with self._lock:
            self._durations.append(max(0, int(duration_ms)))
            self._successes += 1

    @property
    def successful_execution_count(self) -> int:
        with self._lock:
            return self._successes

    @property
    def recent_durations(self) -> list[int]:
        with self._lock:
            return list(self._durations)

    @property
    def average_duration(self) -> int:
        with self._lock:
            if not self._durations:
                return 0
            return sum(self._durations) // len(self._durations)


class Provider(ABC):
    name: str = ""

    def __init__(self) -> None:
        self.stats = ExecutionStats()

    @abstractmethod
    def resolve_address(self) -> Address:
        """Return the address reported by the external source.

        Raises ``CommunicationError`` when talking to the source fails and
        ``ParseError`` when its answer is not an IP address. Never returns None.
        """

    @property
    def successful_execution_count(self) -> int:
        return self.stats.successful_execution_count

    @property
    def average_duration(self) -> int:
        return self.stats.average_duration

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    COMMUNICATION_ERROR = "communication_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class ProviderOutcome:
    provider: Provider
    kind: OutcomeKind
    address: Address | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def attempt(provider: Provider) -> ProviderOutcome:
    try:
        address = provider.resolve_address()
    except CommunicationError as exc:
        return ProviderOutcome(provider=provider, kind=OutcomeKind.COMMUNICATION_ERROR, error=exc)
    except ParseError as exc:
        return ProviderOutcome(provider=provider, kind=OutcomeKind.PARSE_ERROR, error=exc)

    if address is None:
        # Contract violation; treat like an unparseable answer.
        return ProviderOutcome(
            provider=provider,
            kind=OutcomeKind.PARSE_ERROR,
            error=ParseError(f"{provider.name or type(provider).__name__} returned no address"),
        )
    return ProviderOutcome(provider=provider, kind=OutcomeKind.SUCCESS, address=address)
