"""Installment schedule generation and manual per-installment edits."""

import logging
import warnings
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import TypeVar

from kredi.dates import DateLike, add_months, parse_date, parse_optional_date, resolve_reference
from kredi.exceptions import DestructiveRegenerationWarning, InconsistentScheduleError, ValidationError
from kredi.models import Installment, InstallmentStatus, Loan, LoanModality, LoanStatus, LoanTerms
from kredi.money import ZERO, MoneyLike, to_decimal, to_money, truncate_cents

logger = logging.getLogger(__name__)

ScheduleRecord = TypeVar("ScheduleRecord", Loan, LoanTerms)


def compute_amount_to_receive(
    amount_borrowed: MoneyLike,
    interest_rate: MoneyLike,
    modality: LoanModality | str,
) -> Decimal:
    """Amount expected back for the given terms.

    Monthly-interest loans only carry the current period's interest; the other
    modalities carry principal plus interest.
    """
    principal = to_decimal(amount_borrowed)
    rate = to_decimal(interest_rate) / 100
    if LoanModality(modality) == LoanModality.MONTHLY_INTEREST:
        return to_money(principal * rate)
    return to_money(principal * (1 + rate))


def generate_schedule(
    amount_to_receive: MoneyLike,
    installments: int | None,
    first_due_date: DateLike | None,
) -> tuple[Installment, ...]:
    """Split ``amount_to_receive`` into monthly installments.

    Parameters
    ----------
    amount_to_receive : Decimal
        Total to collect across the schedule.
    installments : int
        Number of installments, at least 1.
    first_due_date : date | str
        Due date of installment 1. Each following installment falls one
        calendar month later, clamped to the end of shorter months.

    Returns
    -------
    tuple[Installment, ...]
        Pending installments numbered from 1. Every amount but the last is
        ``amount_to_receive / installments`` truncated to the cent; the last
        absorbs the remainder so the sum is exact.

    Raises
    ------
    ValidationError
        If the count, total or first due date is missing or invalid.
    """
    if installments is None or installments < 1:
        raise ValidationError(f"Installment count must be at least 1, got {installments!r}")
    if first_due_date is None or first_due_date == "":
        raise ValidationError("A first due date is required to generate installments")

    total = to_money(amount_to_receive)
    if total <= ZERO:
        raise ValidationError(f"Amount to receive must be positive, got {total}")

    first = parse_date(first_due_date)
    standard = truncate_cents(total / installments)

    schedule = []
    allocated = ZERO
    for index in range(installments):
        if index == installments - 1:
            amount = total - allocated
        else:
            amount = standard
            allocated += amount
        schedule.append(
            Installment(
                installment_number=index + 1,
                amount=amount,
                due_date=add_months(first, index),
            )
        )
    return tuple(schedule)


def requires_regeneration_confirmation(record: Loan | LoanTerms) -> bool:
    """Whether regenerating would discard installments already paid."""
    return any(i.is_paid for i in record.installments_details)


def apply_schedule(
    record: ScheduleRecord,
    confirmed: bool = False,
    first_due_date: DateLike | None = None,
) -> ScheduleRecord:
    """Regenerate the installment schedule of ``record`` from its terms.

    The existing schedule is always overwritten. When that discards paid
    installments and ``confirmed`` is false a
    :class:`DestructiveRegenerationWarning` is issued so the caller can ask
    for confirmation.

    The first due date defaults to the current first installment's date, or
    the record's due date when it has no schedule yet.
    """
    if record.modality != LoanModality.INSTALLMENT:
        raise ValidationError("Only installment loans have an installment schedule")

    discarded = [i.installment_number for i in record.installments_details if i.is_paid]
    if discarded:
        logger.warning("Regenerating schedule discards paid installments %s", discarded)
        if not confirmed:
            warnings.warn(
                f"Regenerating the schedule discards paid installments {discarded}",
                DestructiveRegenerationWarning,
                stacklevel=2,
            )

    if first_due_date is None:
        if record.installments_details:
            first_due_date = min(i.due_date for i in record.installments_details)
        else:
            first_due_date = record.due_date

    amount_to_receive = compute_amount_to_receive(
        record.amount_borrowed, record.interest_rate, record.modality
    )
    schedule = generate_schedule(amount_to_receive, record.installments, first_due_date)

    changes = {
        "installments_details": schedule,
        "installments": len(schedule),
        "amount_to_receive": amount_to_receive,
        "due_date": schedule[-1].due_date,
        "status": LoanStatus.PENDING,
    }
    if isinstance(record, Loan):
        changes["payment_date"] = None
    return replace(record, **changes)


def sync_aggregate(record: ScheduleRecord, reference_date: DateLike | None = None) -> ScheduleRecord:
    """Make the loan-level fields follow its installment schedule.

    ``amount_to_receive`` becomes the sum of the installments and ``due_date``
    the latest installment date. With every installment paid the loan is paid
    on the latest installment payment date; otherwise the payment date is
    cleared and the status set from the installment dates.
    """
    details = record.installments_details
    if not details:
        return record

    changes = {
        "amount_to_receive": sum((i.amount for i in details), ZERO),
        "due_date": max(i.due_date for i in details),
        "installments": len(details),
    }

    if all(i.is_paid for i in details):
        changes["status"] = LoanStatus.PAID
        payment_date = max((i.payment_date for i in details if i.payment_date), default=None)
    else:
        reference = resolve_reference(reference_date)
        overdue = any(not i.is_paid and i.due_date < reference for i in details)
        changes["status"] = LoanStatus.OVERDUE if overdue else LoanStatus.PENDING
        payment_date = None

    if isinstance(record, Loan):
        changes["payment_date"] = payment_date
    return replace(record, **changes)


def update_installment(
    record: ScheduleRecord,
    installment_number: int,
    *,
    amount: MoneyLike | None = None,
    due_date: DateLike | None = None,
    status: InstallmentStatus | str | None = None,
    payment_date: DateLike | None = None,
    amount_paid: MoneyLike | None = None,
    reference_date: DateLike | None = None,
) -> ScheduleRecord:
    """Edit one installment by hand and let the loan aggregate follow."""
    if not any(i.installment_number == installment_number for i in record.installments_details):
        raise ValidationError(f"Installment {installment_number} does not exist")

    changes = {}
    if amount is not None:
        changes["amount"] = to_money(amount)
        if changes["amount"] < ZERO:
            raise ValidationError("Installment amount cannot be negative")
    if due_date is not None:
        changes["due_date"] = parse_date(due_date)
    if status is not None:
        try:
            changes["status"] = InstallmentStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown installment status: {status!r}") from exc
        if changes["status"] == InstallmentStatus.PENDING:
            changes["payment_date"] = None
            changes["amount_paid"] = None
    if payment_date is not None:
        changes["payment_date"] = parse_optional_date(payment_date)
    if amount_paid is not None:
        changes["amount_paid"] = to_money(amount_paid)

    details = tuple(
        replace(i, **changes) if i.installment_number == installment_number else i
        for i in record.installments_details
    )
    updated = sync_aggregate(replace(record, installments_details=details), reference_date)
    logger.debug("Installment %s updated: %s", installment_number, sorted(changes))
    return updated


def check_schedule(record: Loan | LoanTerms) -> None:
    """Raise :class:`InconsistentScheduleError` if the schedule and aggregate disagree."""
    if record.modality != LoanModality.INSTALLMENT:
        return

    details = record.installments_details
    if not details:
        raise InconsistentScheduleError("Installment loan has no installment schedule")

    numbers = sorted(i.installment_number for i in details)
    if numbers != list(range(1, len(details) + 1)):
        raise InconsistentScheduleError(f"Installment numbers must run 1..{len(details)}, got {numbers}")

    total = sum((i.amount for i in details), ZERO)
    if total != record.amount_to_receive:
        raise InconsistentScheduleError(
            f"Installments sum to {total} but amount to receive is {record.amount_to_receive}"
        )

    last: date = max(i.due_date for i in details)
    if record.due_date != last:
        raise InconsistentScheduleError(
            f"Due date {record.due_date} is not the last installment date {last}"
        )
