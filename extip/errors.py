from __future__ import annotations


class ResolutionError(RuntimeError):
    pass


class CommunicationError(ResolutionError):
    """The provider's endpoint could not be reached or read."""


class ParseError(ResolutionError):
    """The provider responded, but not with something that is an IP address."""


class ProviderConfigurationError(Exception):
    """A provider is broken by construction, e.g. its hardcoded URL does not parse."""
