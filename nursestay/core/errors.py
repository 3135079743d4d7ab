from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from nursestay.core.models import AvailabilityBlock


class AvailabilityError(Exception):
    """Base class for calendar and availability failures."""


class InvalidRangeError(AvailabilityError, ValueError):
    """Date range is empty, inverted or unparsable."""


class RangeConflictError(AvailabilityError):
    def __init__(self, message: str, conflicts: Sequence[AvailabilityBlock] = ()) -> None:
        super().__init__(message)
        self.conflicts = list(conflicts)


class ImmutableBookedRangeError(AvailabilityError):
    """Booked ranges are only released by cancelling the booking."""


class BlockNotFoundError(AvailabilityError, LookupError):
    pass


class NotListingOwnerError(AvailabilityError, PermissionError):
    pass
