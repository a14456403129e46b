"""Domain models for the loan book."""

from kredi.models.audit import DeletionRecord
from kredi.models.base import Address, Event
from kredi.models.enums import (
    DeletionAction,
    Direction,
    EntityType,
    InstallmentStatus,
    LoanModality,
    LoanStatus,
    LoanView,
    PaymentType,
)
from kredi.models.loan import (
    DueDateChange,
    Installment,
    InterestPayment,
    Loan,
    LoanTerms,
    PromiseRecord,
)
from kredi.models.party import Account, Client
from kredi.models.transaction import TransactionIntent

__all__ = [
    "Account",
    "Address",
    "Client",
    "DeletionAction",
    "DeletionRecord",
    "Direction",
    "DueDateChange",
    "EntityType",
    "Event",
    "Installment",
    "InstallmentStatus",
    "InterestPayment",
    "Loan",
    "LoanModality",
    "LoanStatus",
    "LoanTerms",
    "LoanView",
    "PaymentType",
    "PromiseRecord",
    "TransactionIntent",
]
