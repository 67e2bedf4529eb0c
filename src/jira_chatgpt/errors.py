from __future__ import annotations


class GatewayError(Exception):
    """Base error for gateway failures."""


class InvalidRequestError(GatewayError):
    def __init__(self, message: str = "Missing required parameters"):
        super().__init__(message)


class ProviderFailure(GatewayError):
    """Any failure raised while talking to the completion provider."""


class AuthenticationError(ProviderFailure):
    pass


class RateLimitError(ProviderFailure):
    """Upstream quota or rate limit exhausted."""


class UpstreamProtocolError(ProviderFailure):
    """Unexpected upstream response shape / contract mismatch."""


class ProcessingFailure(GatewayError):
    """Uniform failure surfaced to HTTP callers; carries the underlying message."""
