"""
Error taxonomy shared by the zone resolver and the catalog jobs.

Provider-specific errors (Trefle rate limits, OpenFarm failures, rejected
catalog records) live next to the client or function that raises them.
"""
from typing import Optional


class ConfigurationError(Exception):
    """A required credential or setting is missing. Raised before any outbound call."""


class AddressNotFound(Exception):
    """The geocoding provider returned zero results for the address."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Address not found: {address}")


class UpstreamUnavailable(Exception):
    """An external provider call failed (timeout, transport error, bad status or payload)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None) -> None:
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")
