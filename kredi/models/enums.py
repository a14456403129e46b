"""Enumeration types for loan-book entities."""

from enum import Enum


class LoanModality(str, Enum):
    """Repayment structure of a loan."""

    SINGLE_PAYMENT = "SINGLE_PAYMENT"
    MONTHLY_INTEREST = "MONTHLY_INTEREST"
    INSTALLMENT = "INSTALLMENT"

    @property
    def label(self) -> str:
        """Display label used on statements and reports."""
        return _MODALITY_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "LoanModality":
        """Resolve either an enum value or a display label."""
        for modality, modality_label in _MODALITY_LABELS.items():
            if label in (modality.value, modality_label):
                return modality
        raise ValueError(f"Unknown loan modality: {label!r}")


_MODALITY_LABELS = {
    LoanModality.SINGLE_PAYMENT: "Pagamento Único (Principal + Juros)",
    LoanModality.MONTHLY_INTEREST: "Juros Mensal (+ Principal no final)",
    LoanModality.INSTALLMENT: "Parcelado (Principal + Juros em X vezes)",
}


class LoanStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class PaymentType(str, Enum):
    """Payment options for monthly-interest loans."""

    INTEREST_ONLY = "interest_only"
    FULL = "full"


class Direction(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class DeletionAction(str, Enum):
    ARCHIVED = "archived"
    DELETED = "deleted"


class EntityType(str, Enum):
    LOAN = "loan"
    CLIENT = "client"
    ACCOUNT = "account"


class LoanView(str, Enum):
    """Loan list filters offered by the dashboard."""

    OPEN = "open"
    PAID = "paid"
    ARCHIVED = "archived"
    PENDING = "pending"
    OVERDUE = "overdue"
