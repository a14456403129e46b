"""Loan models.

Loans and their sub-records are frozen: mutations build a new snapshot with
:func:`dataclasses.replace` and history logs only ever grow.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from kredi.models.enums import InstallmentStatus, LoanModality, LoanStatus


@dataclass(frozen=True)
class Installment:
    """One entry of an installment schedule (parcela)."""

    installment_number: int  # 1-based, stable within the loan
    amount: Decimal
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    payment_date: date | None = None
    amount_paid: Decimal | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass(frozen=True)
class PromiseRecord:
    """A client's promise to pay by ``promised_due_date``."""

    date: datetime
    note: str
    promised_due_date: date | None = None


@dataclass(frozen=True)
class DueDateChange:
    old_due_date: date
    new_due_date: date
    change_date: datetime


@dataclass(frozen=True)
class InterestPayment:
    date: date
    amount_paid: Decimal


@dataclass(frozen=True)
class LoanTerms:
    """Candidate loan assembled by a caller before creation."""

    client_id: str
    account_id: str
    amount_borrowed: Decimal
    due_date: date | None
    origination_date: date
    modality: LoanModality = LoanModality.SINGLE_PAYMENT
    interest_rate: Decimal = Decimal("10")
    daily_late_fee_amount: Decimal = Decimal("1")
    installments: int | None = None
    installments_details: tuple[Installment, ...] = ()
    amount_to_receive: Decimal = Decimal("0.00")
    status: LoanStatus = LoanStatus.PENDING
    is_in_negotiation: bool = False
    observation: str = ""


@dataclass(frozen=True)
class Loan:
    """Loan contract with its derived fields and history logs."""

    loan_id: str
    client_id: str
    account_id: str
    amount_borrowed: Decimal  # Principal
    amount_to_receive: Decimal  # Meaning depends on modality
    interest_rate: Decimal  # Percent (10 = 10%)
    daily_late_fee_amount: Decimal
    modality: LoanModality
    origination_date: date
    due_date: date
    status: LoanStatus = LoanStatus.PENDING
    payment_date: date | None = None
    installments: int | None = None
    installments_details: tuple[Installment, ...] = ()
    promise_history: tuple[PromiseRecord, ...] = ()
    due_date_history: tuple[DueDateChange, ...] = ()
    interest_payments_history: tuple[InterestPayment, ...] = ()
    is_in_negotiation: bool = False
    is_archived: bool = False
    observation: str = ""

    @property
    def is_installment(self) -> bool:
        return self.modality == LoanModality.INSTALLMENT

    def get_installment(self, installment_number: int) -> Installment | None:
        """Find an installment by its number."""
        for installment in self.installments_details:
            if installment.installment_number == installment_number:
                return installment
        return None
