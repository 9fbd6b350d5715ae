from __future__ import annotations

"""
Error kinds surfaced through the failure variant of a Result.

None of these are retried; callers decide what to show.
"""


class VirtualTouristError(Exception):
    """Base class for every recoverable failure in the fetch/query pipeline."""


class TransportError(VirtualTouristError):
    """Network/connection failure, timeout, or HTTP error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(VirtualTouristError):
    """The photo search response was not the expected document."""


class DecodeError(VirtualTouristError):
    """Downloaded bytes are not a valid image."""


class PersistenceError(VirtualTouristError):
    """Saving the persistence session failed."""
