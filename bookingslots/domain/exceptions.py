"""
Domain-specific exception hierarchy for the booking slot engine.
"""


class BookingSlotsError(Exception):
    """Base class for all application-level errors."""


class ProviderError(BookingSlotsError):
    """Raised when the scheduling provider cannot deliver worker or busy data."""


class ProviderUnavailable(ProviderError):
    """Raised when a bulk fetch fails after the bounded retry."""


class ProviderTimeout(ProviderError):
    """Raised when a bulk fetch or the request deadline times out."""


class InvalidServiceParameters(BookingSlotsError, ValueError):
    """Raised when service booking parameters are out of range."""
