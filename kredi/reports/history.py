"""Per-loan activity timeline."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from kredi.dates import format_display_date, parse_date
from kredi.models import Loan
from kredi.money import format_currency


class TimelineEntryType(str, Enum):
    OBSERVATION = "observation"
    PROMISE = "promise"
    INTEREST_PAYMENT = "interest_payment"
    PAYMENT = "payment"
    DATE_CHANGE = "date_change"


@dataclass(frozen=True)
class TimelineEntry:
    entry_type: TimelineEntryType
    date: date | datetime
    content: str


def has_history(loan: Loan) -> bool:
    """Whether the loan has anything to show in its timeline."""
    return bool(
        loan.observation
        or loan.promise_history
        or loan.due_date_history
        or loan.interest_payments_history
        or any(i.is_paid for i in loan.installments_details)
    )


def loan_timeline(loan: Loan) -> list[TimelineEntry]:
    """Build the loan's activity history, newest first.

    Entries come from the observation (dated at origination), promises,
    interest payments, paid installments and due-date changes. Ordering is by
    calendar day; entries on the same day keep that order.
    """
    entries = []

    if loan.observation:
        entries.append(
            TimelineEntry(
                TimelineEntryType.OBSERVATION,
                loan.origination_date,
                f"Observação: {loan.observation}",
            )
        )

    for promise in loan.promise_history:
        content = f"Promessa: {promise.note}"
        if promise.promised_due_date:
            content += f" (Novo Venc: {format_display_date(promise.promised_due_date)})"
        entries.append(TimelineEntry(TimelineEntryType.PROMISE, promise.date, content))

    for payment in loan.interest_payments_history:
        entries.append(
            TimelineEntry(
                TimelineEntryType.INTEREST_PAYMENT,
                payment.date,
                f"Pagamento de juros recebido: {format_currency(payment.amount_paid)}",
            )
        )

    for installment in loan.installments_details:
        if installment.is_paid and installment.payment_date:
            paid = installment.amount_paid if installment.amount_paid is not None else installment.amount
            entries.append(
                TimelineEntry(
                    TimelineEntryType.PAYMENT,
                    installment.payment_date,
                    f"Pagamento da Parcela {installment.installment_number} recebido: "
                    f"{format_currency(paid)}",
                )
            )

    for change in loan.due_date_history:
        entries.append(
            TimelineEntry(
                TimelineEntryType.DATE_CHANGE,
                change.change_date,
                f"Vencimento alterado de {format_display_date(change.old_due_date)} "
                f"para {format_display_date(change.new_due_date)}.",
            )
        )

    return sorted(entries, key=lambda entry: parse_date(entry.date), reverse=True)
