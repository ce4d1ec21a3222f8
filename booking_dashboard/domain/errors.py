from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base class for booking dashboard domain errors."""


class BookingValidationError(DomainError):
    """Draft rejected by the booking rules; carries every violation."""

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class ResourceValidationError(DomainError):
    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class BookingNotFoundError(DomainError):
    pass


class ResourceNotFoundError(DomainError):
    pass


class BookingCancelledError(DomainError):
    pass


class UpstreamError(DomainError):
    """Booking API could not be reached or answered with garbage."""


class UpstreamUnavailableError(UpstreamError):
    pass


class UpstreamPayloadError(UpstreamError):
    pass
