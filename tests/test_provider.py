import ipaddress

from extip.errors import CommunicationError
from extip.provider import ExecutionStats, OutcomeKind, attempt
from fakes import FakeProvider, failing, garbled


def test_stats_start_empty() -> None:
    stats = ExecutionStats()
    assert stats.successful_execution_count == 0
    assert stats.average_duration == 0
    assert stats.recent_durations == []


def test_rolling_window_keeps_last_ten_durations() -> None:
    stats = ExecutionStats()
    for duration in range(1, 16):
        stats.record_success(duration)

    assert stats.successful_execution_count == 15
    assert stats.recent_durations == list(range(6, 16))
    # mean of 6..15
    assert stats.average_duration == 10


def test_attempt_success_carries_address() -> None:
    provider = FakeProvider("p", "203.0.113.5")
    outcome = attempt(provider)
    assert outcome.ok
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.address == ipaddress.ip_address("203.0.113.5")
    assert provider.successful_execution_count == 1


def test_attempt_maps_failures_to_kinds() -> None:
    down = attempt(failing("down"))
    assert down.kind is OutcomeKind.COMMUNICATION_ERROR
    assert isinstance(down.error, CommunicationError)
    assert down.address is None

    bad = attempt(garbled("bad"))
    assert bad.kind is OutcomeKind.PARSE_ERROR
    assert not bad.ok


def test_failures_do_not_touch_counters() -> None:
    provider = failing("down")
    attempt(provider)
    attempt(provider)
    assert provider.successful_execution_count == 0
    assert provider.average_duration == 0
