"""Effective loan status derived from dates and installment states.

The stored ``status`` is only a hint. It is authoritative for the terminal
``paid`` state; ``overdue`` versus ``pending`` is re-derived on every read.
"""

from kredi.dates import DateLike, days_until, resolve_reference
from kredi.engine.balance import next_due_date
from kredi.models import Loan, LoanModality, LoanStatus


def is_fully_paid(loan: Loan) -> bool:
    """Whether nothing remains to be paid on ``loan``."""
    if loan.modality == LoanModality.INSTALLMENT and loan.installments_details:
        return all(i.is_paid for i in loan.installments_details)
    return loan.status == LoanStatus.PAID


def effective_status(loan: Loan, reference_date: DateLike | None = None) -> LoanStatus:
    """Derive pending / overdue / paid for ``loan`` at ``reference_date``."""
    if loan.status == LoanStatus.PAID:
        return LoanStatus.PAID

    reference = resolve_reference(reference_date)

    if loan.modality == LoanModality.INSTALLMENT and loan.installments_details:
        if all(i.is_paid for i in loan.installments_details):
            return LoanStatus.PAID
        if any(not i.is_paid and i.due_date < reference for i in loan.installments_details):
            return LoanStatus.OVERDUE
        return LoanStatus.PENDING

    if loan.due_date < reference:
        return LoanStatus.OVERDUE
    return LoanStatus.PENDING


def is_urgent(
    loan: Loan,
    reference_date: DateLike | None = None,
    window_days: int = 3,
) -> bool:
    """Open, not overdue, and next due within ``window_days``."""
    reference = resolve_reference(reference_date)
    if effective_status(loan, reference) != LoanStatus.PENDING:
        return False
    return 0 <= days_until(next_due_date(loan), reference) <= window_days
