"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class DomainValidationError(DomainException):
    """Input rejected at the write boundary, before any simulation runs"""

    pass


class InvalidRecurrenceError(DomainValidationError):
    """Recurrence definition is malformed (e.g. custom cadence without interval/unit)"""

    pass


class InvalidLiabilityError(DomainValidationError):
    """Card or loan fields are out of range or inconsistent"""

    pass


class LedgerError(DomainValidationError):
    """Journal entry violates a bookkeeping rule"""

    pass


class ImbalancedEntryError(LedgerError):
    """Fewer than two lines, or debits and credits do not match to the cent"""

    pass


class InvalidLineAmountError(LedgerError):
    """A line amount is zero, negative, or not a finite number"""

    pass


class EntityNotFoundError(DomainException):
    """Referenced record does not exist for this user"""

    pass


class CycleRunInProgressError(DomainException):
    """Another run currently holds the idempotency key"""

    pass
