"""Outstanding balance and late-fee calculator.

Late fees are never stored. They are recomputed on every read as
``daily_late_fee_amount x days overdue``, always using the loan's own daily
fee even when applied to a single installment.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from kredi.dates import DateLike, days_overdue, resolve_reference
from kredi.exceptions import ValidationError
from kredi.models import Installment, Loan, LoanModality, LoanStatus, PaymentType
from kredi.money import ZERO, MoneyLike, to_decimal, to_money


@dataclass(frozen=True)
class InstallmentDue:
    """What is owed on one installment at a reference date."""

    total_due: Decimal
    late_fee: Decimal
    days_overdue: int


@dataclass(frozen=True)
class BalanceBreakdown:
    """Outstanding balance split into its owed amount and accrued late fee."""

    principal_and_interest: Decimal
    late_fee: Decimal

    @property
    def total(self) -> Decimal:
        return self.principal_and_interest + self.late_fee


def late_fee(
    due_date: DateLike,
    daily_late_fee_amount: MoneyLike,
    reference_date: DateLike | None = None,
) -> Decimal:
    """Late fee accrued on ``due_date`` by ``reference_date``."""
    days = days_overdue(due_date, reference_date)
    return to_money(days * to_decimal(daily_late_fee_amount))


def installment_due_info(
    installment: Installment,
    loan: Loan,
    reference_date: DateLike | None = None,
) -> InstallmentDue:
    """Amount due on ``installment``, including its late fee.

    Paid installments owe nothing.
    """
    if installment.is_paid:
        return InstallmentDue(total_due=ZERO, late_fee=ZERO, days_overdue=0)

    reference = resolve_reference(reference_date)
    days = days_overdue(installment.due_date, reference)
    fee = late_fee(installment.due_date, loan.daily_late_fee_amount, reference)
    return InstallmentDue(total_due=installment.amount + fee, late_fee=fee, days_overdue=days)


def balance_breakdown(loan: Loan, reference_date: DateLike | None = None) -> BalanceBreakdown:
    """Break down what ``loan`` owes at ``reference_date``.

    Parameters
    ----------
    loan : Loan
        Loan snapshot.
    reference_date : date | str | None
        Day to evaluate at; defaults to today in Brasília.

    Returns
    -------
    BalanceBreakdown
        Zero for paid or archived loans. Otherwise, per modality:

        - single payment: ``amount_to_receive`` plus the late fee;
        - monthly interest: principal still held plus the current period's
          interest plus the late fee;
        - installment: every unpaid installment plus its own late fee.
    """
    if loan.status == LoanStatus.PAID or loan.is_archived:
        return BalanceBreakdown(principal_and_interest=ZERO, late_fee=ZERO)

    reference = resolve_reference(reference_date)

    if loan.modality == LoanModality.INSTALLMENT and loan.installments_details:
        owed = ZERO
        fees = ZERO
        for installment in loan.installments_details:
            if installment.is_paid:
                continue
            owed += installment.amount
            fees += installment_due_info(installment, loan, reference).late_fee
        return BalanceBreakdown(principal_and_interest=owed, late_fee=fees)

    fee = late_fee(loan.due_date, loan.daily_late_fee_amount, reference)

    if loan.modality == LoanModality.MONTHLY_INTEREST:
        return BalanceBreakdown(
            principal_and_interest=loan.amount_borrowed + loan.amount_to_receive,
            late_fee=fee,
        )

    return BalanceBreakdown(principal_and_interest=loan.amount_to_receive, late_fee=fee)


def outstanding_balance(loan: Loan, reference_date: DateLike | None = None) -> Decimal:
    """Total currently owed on ``loan``, late fees included."""
    return balance_breakdown(loan, reference_date).total


def next_pending_installment(loan: Loan) -> Installment | None:
    """Earliest-numbered unpaid installment, if any."""
    pending = [i for i in loan.installments_details if not i.is_paid]
    if not pending:
        return None
    return min(pending, key=lambda i: i.installment_number)


def amount_due_now(
    loan: Loan,
    reference_date: DateLike | None = None,
    payment_type: PaymentType | str | None = None,
    installment_number: int | None = None,
) -> Decimal:
    """Amount a payment form should propose for ``loan``.

    Monthly-interest loans propose the period's interest for an interest-only
    payment and principal plus interest for a full settlement; installment
    loans propose the selected (or next pending) installment with its late
    fee; single-payment loans propose the full outstanding balance.
    """
    if loan.status == LoanStatus.PAID or loan.is_archived:
        return ZERO

    if loan.modality == LoanModality.MONTHLY_INTEREST:
        try:
            kind = PaymentType(payment_type) if payment_type is not None else PaymentType.INTEREST_ONLY
        except ValueError as exc:
            raise ValidationError(f"Unknown payment type: {payment_type!r}") from exc
        if kind == PaymentType.INTEREST_ONLY:
            return loan.amount_to_receive
        return loan.amount_borrowed + loan.amount_to_receive

    if loan.modality == LoanModality.INSTALLMENT and loan.installments_details:
        if installment_number is not None:
            installment = loan.get_installment(installment_number)
        else:
            installment = next_pending_installment(loan)
        if installment is None:
            return ZERO
        return installment_due_info(installment, loan, reference_date).total_due

    return outstanding_balance(loan, reference_date)


def interest_value(loan: Loan) -> Decimal:
    """Interest component of ``amount_to_receive``."""
    if loan.modality == LoanModality.MONTHLY_INTEREST:
        return loan.amount_to_receive
    return loan.amount_to_receive - loan.amount_borrowed


def next_due_date(loan: Loan) -> date:
    """Next date money is expected: the earliest pending installment or the loan due date."""
    installment = next_pending_installment(loan) if loan.is_installment else None
    if installment is not None:
        return installment.due_date
    return loan.due_date
