"""Error taxonomy for the analysis engine.

Provider errors are raised inside adapters and converted into failed
``ProviderResult`` values at the adapter boundary; they never reach the
dispatcher's caller. Only ``ValidationError`` is meant to propagate.
"""

from __future__ import annotations


class CitescopeError(Exception):
    """Base class for all citescope errors."""


class ProviderError(CitescopeError):
    """A provider call could not produce a usable result."""


class ProviderTimeoutError(ProviderError):
    """The per-provider timeout elapsed before the provider answered."""

    def __init__(self, message: str = "timeout") -> None:
        super().__init__(message)


class ProviderTransportError(ProviderError):
    """Network failure or non-2xx response from the provider API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderParseError(ProviderError):
    """The response body did not match the provider's expected shape."""


class CitationUnresolvableError(CitescopeError):
    """A grounding chunk's destination domain could not be resolved."""


class ValidationError(CitescopeError, ValueError):
    """Malformed input rejected before dispatch begins."""
