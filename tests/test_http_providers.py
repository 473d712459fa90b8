import ipaddress

import pytest
import requests

from extip.errors import CommunicationError, ParseError, ProviderConfigurationError
from extip.http_providers import (
    MAX_ADDRESS_LENGTH,
    AmazonProvider,
    CloudflareTraceProvider,
    HTTPProvider,
)
from fakes import FakeResponse, FakeSession


def test_plain_text_answer_is_parsed() -> None:
    session = FakeSession(FakeResponse(b"203.0.113.10\n"))
    provider = AmazonProvider(session=session, timeout_seconds=3)  # type: ignore[arg-type]

    assert provider.resolve_address() == ipaddress.ip_address("203.0.113.10")
    assert provider.successful_execution_count == 1
    request = session.requests[0]
    assert request["url"] == "https://checkip.amazonaws.com"
    assert request["timeout"] == 3
    assert request["stream"] is True


def test_longest_ipv6_fits_the_read_bound() -> None:
    text = b"ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff\r\n"
    assert len(text) == MAX_ADDRESS_LENGTH
    provider = AmazonProvider(session=FakeSession(FakeResponse(text)))  # type: ignore[arg-type]
    assert provider.resolve_address().version == 6


def test_oversized_body_is_rejected_without_reading_it_all() -> None:
    response = FakeResponse(b"x" * 10_000)
    provider = AmazonProvider(session=FakeSession(response))  # type: ignore[arg-type]

    with pytest.raises(ParseError):
        provider.resolve_address()
    assert response.bytes_read <= MAX_ADDRESS_LENGTH + 1
    assert response.closed
    assert provider.successful_execution_count == 0


def test_transport_failure_is_communication_error() -> None:
    provider = AmazonProvider(session=FakeSession(requests.ConnectionError("refused")))  # type: ignore[arg-type]
    with pytest.raises(CommunicationError):
        provider.resolve_address()
    assert provider.successful_execution_count == 0


def test_http_error_status_is_communication_error() -> None:
    provider = AmazonProvider(session=FakeSession(FakeResponse(b"", status_code=503)))  # type: ignore[arg-type]
    with pytest.raises(CommunicationError):
        provider.resolve_address()


@pytest.mark.parametrize("body", [b"not-an-ip", b"", b"\xff\xfe"])
def test_unparseable_body_is_parse_error(body: bytes) -> None:
    provider = AmazonProvider(session=FakeSession(FakeResponse(body)))  # type: ignore[arg-type]
    with pytest.raises(ParseError):
        provider.resolve_address()
    assert provider.average_duration == 0


def test_cloudflare_trace_reads_ip_line() -> None:
    body = b"fl=123\nh=1.1.1.1\nip=198.51.100.7\nts=1700000000.1\nvisit_scheme=https\n"
    provider = CloudflareTraceProvider(session=FakeSession(FakeResponse(body)))  # type: ignore[arg-type]
    assert provider.resolve_address() == ipaddress.ip_address("198.51.100.7")


def test_cloudflare_trace_without_ip_line() -> None:
    provider = CloudflareTraceProvider(session=FakeSession(FakeResponse(b"fl=123\nh=x\n")))  # type: ignore[arg-type]
    with pytest.raises(ParseError):
        provider.resolve_address()


@pytest.mark.parametrize("url", ["", "checkip.example.com", "ftp://example.com", "http://"])
def test_malformed_hardcoded_url_fails_at_construction(url: str) -> None:
    class BrokenProvider(HTTPProvider):
        name = "broken"

    BrokenProvider.url = url
    with pytest.raises(ProviderConfigurationError):
        BrokenProvider(session=FakeSession(FakeResponse(b"")))  # type: ignore[arg-type]
