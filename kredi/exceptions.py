"""Custom exception hierarchy for kredi."""


class KrediError(Exception):
    """Base exception for all kredi errors."""


class EntityNotFoundError(KrediError):
    """Raised when a referenced entity does not exist."""


class LoanNotFoundError(EntityNotFoundError):
    """Raised when a loan id is not present in the loan book."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class ValidationError(KrediError):
    """Raised when a loan record or payment is missing required data."""


class InconsistentScheduleError(ValidationError):
    """Raised when an installment schedule disagrees with its loan."""


class InvalidEntityStateError(KrediError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(KrediError):
    """Raised when configuration is invalid or missing."""


class SinkError(KrediError):
    """Raised when a sink operation fails."""


class DestructiveRegenerationWarning(UserWarning):
    """Issued when regenerating a schedule discards paid installments."""
