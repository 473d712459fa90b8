from __future__ import annotations

import ipaddress
import logging
import time
from urllib.parse import urlsplit

import requests
from requests.models import PreparedRequest

from extip.errors import CommunicationError, ParseError, ProviderConfigurationError
from extip.provider import Address, Provider

DEFAULT_TIMEOUT_SECONDS = 10
USER_AGENT = "extip/1.0"

# Longest textual IPv6 address (8 groups of 4 hex digits, 7 colons) plus CRLF.
MAX_ADDRESS_LENGTH = 39 + 2


def parse_plain_address(content: str) -> Address:
    value = content.strip()
    try:
        return ipaddress.ip_address(value)
    except ValueError as exc:
        raise ParseError(f"Not an IP address: {value[:64]!r}") from exc


class HTTPProvider(Provider):
    """Fetches a fixed URL and hands the (bounded) body to ``parse()``.

    Subclasses set ``name`` and ``url``. Services that answer with anything
    other than a bare address override ``parse()`` and ``max_content_length``.
    """

    url: str = ""
    max_content_length: int = MAX_ADDRESS_LENGTH

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__()
        _validate_url(self.url, type(self).__name__)
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger(__name__)

    def parse(self, content: str) -> Address:
        return parse_plain_address(content)

    def resolve_address(self) -> Address:
        start = time.monotonic()
        content = self._fetch()
        address = self.parse(content)
        duration_ms = int((time.monotonic() - start) * 1000)

        self.stats.record_success(duration_ms)
        self._logger.debug("%s answered %s in %dms", self.name, address, duration_ms)
        return address

    def _fetch(self) -> str:
        limit = self.max_content_length
        try:
            with self._session.get(
                self.url,
                timeout=self._timeout_seconds,
                stream=True,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_content(chunk_size=limit + 1):
                    body.extend(chunk)
                    if len(body) > limit:
                        raise ParseError(f"Response from {self.url} exceeds {limit} bytes")
        except requests.RequestException as exc:
            raise CommunicationError(f"{self.url}: {exc}") from exc

        try:
            return bytes(body).decode("ascii")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Response from {self.url} is not ASCII text") from exc


def _validate_url(url: str, owner: str) -> None:
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ProviderConfigurationError(f"{owner} has an invalid service URL: {url!r}")
    try:
        PreparedRequest().prepare_url(url, None)
    except requests.RequestException as exc:
        raise ProviderConfigurationError(f"{owner} has an invalid service URL: {url!r}") from exc


class AmazonProvider(HTTPProvider):
    name = "amazon"
    url = "https://checkip.amazonaws.com"


class IpifyProvider(HTTPProvider):
    name = "ipify"
    url = "https://api64.ipify.org"


class IcanhazipProvider(HTTPProvider):
    name = "icanhazip"
    url = "https://icanhazip.com"


class IfconfigMeProvider(HTTPProvider):
    name = "ifconfig"
    url = "https://ifconfig.me/ip"


class IdentMeProvider(HTTPProvider):
    name = "ident"
    url = "https://ident.me"


class IpinfoProvider(HTTPProvider):
    name = "ipinfo"
    url = "https://ipinfo.io/ip"


class CloudflareTraceProvider(HTTPProvider):
    """Cloudflare's trace endpoint answers with ``key=value`` lines, one being ``ip=``."""

    name = "cloudflare"
    url = "https://1.1.1.1/cdn-cgi/trace"
    max_content_length = 512

    def parse(self, content: str) -> Address:
        for line in content.splitlines():
            key, sep, value = line.partition("=")
            if sep and key.strip() == "ip":
                return parse_plain_address(value)
        raise ParseError("No ip= line in trace response")


BUILTIN_PROVIDERS: tuple[type[HTTPProvider], ...] = (
    AmazonProvider,
    IpifyProvider,
    IcanhazipProvider,
    IfconfigMeProvider,
    IdentMeProvider,
    IpinfoProvider,
    CloudflareTraceProvider,
)
