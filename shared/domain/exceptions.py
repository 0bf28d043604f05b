"""
Domain Error Taxonomy

Every failure the booking engine reports to its callers is one of these.
The ``kind`` attribute lets callers decide between fixing the request,
retrying with other parameters, retrying later or escalating to operators:

- validation: bad input, rejected before any write
- conflict: capacity taken, wrong source state, lost a concurrent race
- external: the payment provider failed or timed out
- data_integrity: stored source data cannot produce a valid quote
- not_found / permission: lookup and authorization failures
"""


class DomainError(Exception):
    """Base class for all booking engine errors"""

    kind = 'domain'

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        data = {'kind': self.kind, 'error': self.__class__.__name__, 'message': self.message}
        if self.details:
            data['details'] = self.details
        return data


# ===== Validation =====

class BookingValidationError(DomainError, ValueError):
    kind = 'validation'


class InvalidWindow(BookingValidationError):
    """Start/end missing, unparseable, or end not after start"""


class BookingDurationOutOfRange(InvalidWindow):
    """Duration falls outside the warehouse's minimum/maximum terms"""


class InvalidQuantity(BookingValidationError):
    """Requested quantity is missing, not a number or not positive"""


class InvalidRateCard(BookingValidationError):
    """Base rate or fee rate cannot produce a quote"""


class ResourceNotBookable(BookingValidationError):
    """Warehouse is not active, not verified or hidden"""


class PaymentVerificationFailed(BookingValidationError):
    """The provider did not confirm the payment signature"""


class CancellationNotAllowed(BookingValidationError):
    """Booking is outside the cancellation window"""


# ===== Conflict =====

class BookingConflictError(DomainError):
    kind = 'conflict'


class CapacityUnavailable(BookingConflictError):
    """Remaining capacity for the window is below the requested quantity"""


class InvalidTransition(BookingConflictError):
    """Transition invoked against a booking in the wrong source state"""


class ConcurrentModification(BookingConflictError):
    """Another writer changed the booking first"""


# ===== External dependencies =====

class ExternalDependencyError(DomainError):
    kind = 'external'


class PaymentProviderError(ExternalDependencyError):
    """Payment provider call failed, timed out or returned garbage"""


# ===== Data integrity =====

class DataIntegrityError(DomainError):
    kind = 'data_integrity'


class RateCardIntegrityError(DataIntegrityError):
    """A stored warehouse rate card is invalid, so a booking cannot be repriced"""


# ===== Lookup / authorization =====

class NotFound(DomainError):
    kind = 'not_found'


class PermissionDenied(DomainError):
    kind = 'permission'
