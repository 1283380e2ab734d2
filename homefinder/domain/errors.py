# homefinder/domain/errors.py
from __future__ import annotations


class GeocodeError(RuntimeError):
    """Provider returned zero results for an anchor address."""

    def __init__(self, address: str) -> None:
        super().__init__(f"No results found for this address: {address!r}")
        self.address = address


class RateLimitError(RuntimeError):
    """Upstream throttled us. `retry_after` is in seconds when the provider sent one."""

    def __init__(self, message: str = "rate limit exceeded", retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ProviderConfigError(RuntimeError):
    """A provider client was used without credentials."""
