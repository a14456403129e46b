"""Loan mutation engine.

Every operation takes a loan snapshot and returns a :class:`MutationResult`
holding the new snapshot plus the side effects the caller must apply:
account transactions and audit records. Inputs are never modified and
validation happens before anything is built.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Callable, Protocol
from uuid import uuid4

from kredi.config import BRASILIA_TIMEZONE
from kredi.dates import DateLike, add_months, now, parse_date
from kredi.engine.schedule import (
    apply_schedule,
    compute_amount_to_receive,
    sync_aggregate,
    update_installment,
)
from kredi.engine.status import effective_status, is_fully_paid
from kredi.exceptions import InconsistentScheduleError, InvalidEntityStateError, ValidationError
from kredi.logging import loan_extra
from kredi.models import (
    DeletionAction,
    DeletionRecord,
    Direction,
    DueDateChange,
    EntityType,
    InstallmentStatus,
    InterestPayment,
    Loan,
    LoanModality,
    LoanStatus,
    LoanTerms,
    PaymentType,
    PromiseRecord,
    TransactionIntent,
)
from kredi.money import ZERO, MoneyLike, to_decimal, to_money

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Cliente Desconhecido"

EDITABLE_FIELDS = frozenset(
    {
        "client_id",
        "account_id",
        "amount_borrowed",
        "interest_rate",
        "daily_late_fee_amount",
        "modality",
        "origination_date",
        "due_date",
        "installments",
        "installments_details",
        "is_in_negotiation",
        "observation",
    }
)

# Changing any of these recomputes amount_to_receive
TERM_FIELDS = ("amount_borrowed", "interest_rate", "modality")


class ClientDirectory(Protocol):
    def display_name(self, client_id: str) -> str: ...


class AccountDirectory(Protocol):
    def account_exists(self, account_id: str) -> bool: ...


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a loan mutation.

    ``loan`` is None only for a permanent deletion, in which case
    ``removed_loan_id`` names the loan to drop.
    """

    loan: Loan | None
    transactions: tuple[TransactionIntent, ...] = ()
    audit: tuple[DeletionRecord, ...] = ()
    removed_loan_id: str | None = None


class LoanEngine:
    """Applies loan mutations against client and account directories.

    Parameters
    ----------
    clients : ClientDirectory
        Resolves client display names for transaction descriptions.
    accounts : AccountDirectory
        Confirms that funding and receiving accounts exist.
    timezone : str
        Civil timezone for "today" and audit timestamps.
    clock : callable, optional
        Returns the current aware datetime; injectable for tests.
    id_factory : callable, optional
        Produces new loan ids.
    """

    def __init__(
        self,
        clients: ClientDirectory,
        accounts: AccountDirectory,
        timezone: str = BRASILIA_TIMEZONE,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._clients = clients
        self._accounts = accounts
        self._clock = clock or (lambda: now(timezone))
        self._id_factory = id_factory or (lambda: f"loan-{uuid4()}")

    def today(self) -> date:
        return self._clock().date()

    # Operations

    def create(self, terms: LoanTerms) -> MutationResult:
        """Originate a loan from ``terms``.

        Installment loans must carry a generated schedule; the loan aggregate
        is taken from it. A debit of the principal is emitted against the
        funding account, dated at origination.
        """
        values = self._normalize(
            {
                "client_id": terms.client_id,
                "account_id": terms.account_id,
                "amount_borrowed": terms.amount_borrowed,
                "interest_rate": terms.interest_rate,
                "daily_late_fee_amount": terms.daily_late_fee_amount,
                "modality": terms.modality,
                "origination_date": terms.origination_date,
                "due_date": terms.due_date,
                "installments": terms.installments,
                "installments_details": terms.installments_details,
                "is_in_negotiation": terms.is_in_negotiation,
                "observation": terms.observation,
            }
        )
        self._validate(values)

        if values["modality"] == LoanModality.INSTALLMENT:
            details = values["installments_details"]
            values["amount_to_receive"] = sum((i.amount for i in details), ZERO)
            values["due_date"] = max(i.due_date for i in details)
            values["installments"] = len(details)
        else:
            values["installments"] = None
            values["installments_details"] = ()
            values["amount_to_receive"] = compute_amount_to_receive(
                values["amount_borrowed"], values["interest_rate"], values["modality"]
            )

        loan = Loan(loan_id=self._id_factory(), **values)
        loan = self._refresh(loan)

        name = self._client_name(loan.client_id)
        debit = TransactionIntent(
            account_id=loan.account_id,
            description=f"Empréstimo: {name}",
            amount=loan.amount_borrowed,
            direction=Direction.DEBIT,
            date=loan.origination_date,
            loan_id=loan.loan_id,
        )
        logger.info(
            "Created loan %s for %s: %s %s",
            loan.loan_id,
            name,
            loan.modality.value,
            loan.amount_borrowed,
            **loan_extra(loan.loan_id, account_id=loan.account_id, client_id=loan.client_id),
        )
        return MutationResult(loan=loan, transactions=(debit,))

    def edit(self, loan: Loan, **changes: Any) -> MutationResult:
        """Apply field edits to ``loan``.

        Changing principal, rate or modality recomputes ``amount_to_receive``.
        An installment loan whose terms change must be given a new schedule in
        the same edit (see :meth:`regenerate_schedule`). The same holds for a new
        installment count. A date-only due date change on other modalities is
        logged in ``due_date_history``.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}")

        normalized = self._normalize(changes)
        values = {name: getattr(loan, name) for name in EDITABLE_FIELDS}
        values.update(normalized)

        if values["modality"] != LoanModality.INSTALLMENT:
            values["installments"] = None
            values["installments_details"] = ()
        self._validate(values)

        terms_changed = any(
            name in normalized and normalized[name] != getattr(loan, name) for name in TERM_FIELDS
        )
        updated = replace(loan, **values)

        if updated.modality == LoanModality.INSTALLMENT:
            count = normalized.get("installments")
            new_schedule = "installments_details" in normalized
            if count is not None and count != len(updated.installments_details) and not new_schedule:
                raise ValidationError(
                    f"Changing the installment count to {count} needs a new schedule; use regenerate_schedule"
                )
            if terms_changed and not new_schedule:
                expected = compute_amount_to_receive(
                    updated.amount_borrowed, updated.interest_rate, updated.modality
                )
                if expected != loan.amount_to_receive:
                    raise InconsistentScheduleError(
                        "Loan terms changed; regenerate the installment schedule before saving"
                    )
        else:
            if terms_changed:
                updated = replace(
                    updated,
                    amount_to_receive=compute_amount_to_receive(
                        updated.amount_borrowed, updated.interest_rate, updated.modality
                    ),
                )
            if updated.due_date != loan.due_date:
                change = DueDateChange(
                    old_due_date=loan.due_date,
                    new_due_date=updated.due_date,
                    change_date=self._clock(),
                )
                updated = replace(updated, due_date_history=loan.due_date_history + (change,))

        updated = self._refresh(updated)
        logger.info("Edited loan %s: %s", loan.loan_id, sorted(normalized))
        return MutationResult(loan=updated)

    def regenerate_schedule(
        self,
        loan: Loan,
        installments: int | None = None,
        first_due_date: DateLike | None = None,
        confirmed: bool = False,
    ) -> MutationResult:
        """Rebuild the installment schedule of ``loan`` from its current terms."""
        if installments is not None:
            loan = replace(loan, installments=installments)
        updated = apply_schedule(loan, confirmed=confirmed, first_due_date=first_due_date)
        logger.info(
            "Regenerated %s installments for loan %s", updated.installments, updated.loan_id
        )
        return MutationResult(loan=updated)

    def edit_installment(self, loan: Loan, installment_number: int, **fields: Any) -> MutationResult:
        """Edit a single installment; the loan aggregate follows the schedule."""
        if not loan.is_installment:
            raise ValidationError("Only installment loans have installments to edit")
        updated = update_installment(loan, installment_number, reference_date=self.today(), **fields)
        logger.info("Edited installment %s of loan %s", installment_number, loan.loan_id)
        return MutationResult(loan=updated)

    def record_payment(
        self,
        loan: Loan,
        payment_date: DateLike,
        amount_paid: MoneyLike,
        account_id: str,
        installment_number: int | None = None,
        payment_type: PaymentType | str | None = None,
    ) -> MutationResult:
        """Record a payment received on ``loan``.

        Parameters
        ----------
        loan : Loan
            Loan being paid.
        payment_date : date | str
            Day the money was received.
        amount_paid : Decimal
            Amount received, positive.
        account_id : str
            Existing account credited with the payment.
        installment_number : int, optional
            Required for installment loans; the pending installment paid.
        payment_type : PaymentType, optional
            Monthly-interest loans only. ``interest_only`` rolls the due date
            one calendar month forward; ``full`` (the default) settles the loan.

        Returns
        -------
        MutationResult
            The updated loan and one credit transaction.
        """
        if not account_id:
            raise ValidationError("An account is required to record a payment")
        if not self._accounts.account_exists(account_id):
            raise ValidationError(f"Account {account_id} not found")

        paid_on = parse_date(payment_date)
        amount = to_money(amount_paid)
        if amount <= ZERO:
            raise ValidationError(f"Payment amount must be positive, got {amount}")

        if loan.is_archived:
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is archived")
        if is_fully_paid(loan):
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is already paid")

        try:
            kind = PaymentType(payment_type) if payment_type else None
        except ValueError as exc:
            raise ValidationError(f"Unknown payment type: {payment_type!r}") from exc
        if kind == PaymentType.INTEREST_ONLY and loan.modality != LoanModality.MONTHLY_INTEREST:
            raise ValidationError("Interest-only payments apply to monthly-interest loans only")
        if installment_number is not None and not loan.is_installment:
            raise ValidationError("Installment number given for a loan without installments")

        suffix = ""
        if loan.is_installment:
            updated = self._pay_installment(loan, installment_number, paid_on, amount)
            suffix = f" (Parc. {installment_number})"
        elif kind == PaymentType.INTEREST_ONLY:
            updated = self._roll_over(loan, paid_on, amount)
            suffix = " (Juros)"
        else:
            updated = replace(loan, status=LoanStatus.PAID, payment_date=paid_on)

        name = self._client_name(loan.client_id)
        credit = TransactionIntent(
            account_id=account_id,
            description=f"Recebimento: {name}{suffix}",
            amount=amount,
            direction=Direction.CREDIT,
            date=paid_on,
            loan_id=loan.loan_id,
        )
        logger.info(
            "Payment of %s on loan %s%s; status now %s",
            amount,
            loan.loan_id,
            suffix,
            updated.status.value,
            **loan_extra(loan.loan_id, account_id=account_id, installment_number=installment_number),
        )
        return MutationResult(loan=updated, transactions=(credit,))

    def add_promise(self, loan: Loan, promise_date: DateLike, note: str) -> MutationResult:
        """Log a client's promise to pay.

        On non-installment loans the promised date becomes the new due date
        without a ``due_date_history`` entry. Installment loans only log it.
        """
        if promise_date is None or promise_date == "":
            raise ValidationError("A promise date is required")
        if not note or not note.strip():
            raise ValidationError("A promise note is required")
        promised = parse_date(promise_date)

        if loan.is_archived:
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is archived")
        if is_fully_paid(loan):
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is already paid")

        promise = PromiseRecord(date=self._clock(), note=note.strip(), promised_due_date=promised)
        updated = replace(loan, promise_history=loan.promise_history + (promise,))
        if not loan.is_installment:
            updated = replace(updated, due_date=promised)

        updated = self._refresh(updated)
        logger.info("Promise logged on loan %s for %s", loan.loan_id, promised.isoformat())
        return MutationResult(loan=updated)

    def archive(self, loan: Loan) -> MutationResult:
        if loan.is_archived:
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is already archived")
        updated = replace(loan, is_archived=True)
        record = self._deletion_record(loan, DeletionAction.ARCHIVED)
        logger.info("Archived loan %s", loan.loan_id)
        return MutationResult(loan=updated, audit=(record,))

    def restore(self, loan: Loan) -> MutationResult:
        if not loan.is_archived:
            raise InvalidEntityStateError(f"Loan {loan.loan_id} is not archived")
        updated = self._refresh(replace(loan, is_archived=False))
        logger.info("Restored loan %s", loan.loan_id)
        return MutationResult(loan=updated)

    def permanent_delete(self, loan: Loan) -> MutationResult:
        record = self._deletion_record(loan, DeletionAction.DELETED)
        logger.info("Deleted loan %s", loan.loan_id, **loan_extra(loan.loan_id))
        return MutationResult(loan=None, audit=(record,), removed_loan_id=loan.loan_id)

    # Helpers

    def _pay_installment(
        self, loan: Loan, installment_number: int | None, paid_on: date, amount
    ) -> Loan:
        if installment_number is None:
            raise ValidationError("Installment loans require an installment number")
        installment = loan.get_installment(installment_number)
        if installment is None:
            raise ValidationError(f"Installment {installment_number} does not exist")
        if installment.is_paid:
            raise ValidationError(f"Installment {installment_number} is already paid")

        details = tuple(
            replace(i, status=InstallmentStatus.PAID, payment_date=paid_on, amount_paid=amount)
            if i.installment_number == installment_number
            else i
            for i in loan.installments_details
        )
        updated = replace(loan, installments_details=details)
        if all(i.is_paid for i in details):
            latest = max(i.payment_date for i in details if i.payment_date)
            return replace(updated, status=LoanStatus.PAID, payment_date=latest)
        return replace(updated, status=effective_status(updated, self.today()))

    def _roll_over(self, loan: Loan, paid_on: date, amount) -> Loan:
        payment = InterestPayment(date=paid_on, amount_paid=amount)
        updated = replace(
            loan,
            interest_payments_history=loan.interest_payments_history + (payment,),
            due_date=add_months(loan.due_date, 1),
        )
        return replace(updated, status=effective_status(updated, self.today()))

    def _refresh(self, loan: Loan) -> Loan:
        """Bring the stored status hint up to date."""
        if loan.is_installment and loan.installments_details:
            return sync_aggregate(loan, self.today())
        if loan.status == LoanStatus.PAID:
            return loan
        return replace(loan, status=effective_status(loan, self.today()))

    def _deletion_record(self, loan: Loan, action: DeletionAction) -> DeletionRecord:
        return DeletionRecord(
            entity_type=EntityType.LOAN,
            action=action,
            name=self._client_name(loan.client_id),
            date=self._clock(),
        )

    def _client_name(self, client_id: str) -> str:
        return self._clients.display_name(client_id) or UNKNOWN_CLIENT

    def _normalize(self, values: dict[str, Any]) -> dict[str, Any]:
        """Coerce boundary values (strings, floats, datetimes) to model types."""
        normalized = dict(values)
        for name in ("amount_borrowed", "daily_late_fee_amount"):
            if name in normalized and normalized[name] is not None:
                normalized[name] = to_money(normalized[name])
        if normalized.get("interest_rate") is not None:
            normalized["interest_rate"] = to_decimal(normalized["interest_rate"])
        if normalized.get("modality") is not None:
            try:
                normalized["modality"] = LoanModality.from_label(normalized["modality"])
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        for name in ("origination_date", "due_date"):
            if name in normalized and normalized[name] not in (None, ""):
                normalized[name] = parse_date(normalized[name])
            elif name in normalized:
                normalized[name] = None
        if "installments_details" in normalized:
            normalized["installments_details"] = tuple(normalized["installments_details"] or ())
        if "observation" in normalized:
            normalized["observation"] = normalized["observation"] or ""
        return normalized

    def _validate(self, values: dict[str, Any]) -> None:
        if not values.get("client_id"):
            raise ValidationError("A client is required")
        if not values.get("account_id"):
            raise ValidationError("A funding account is required")
        if not self._accounts.account_exists(values["account_id"]):
            raise ValidationError(f"Account {values['account_id']} not found")
        if values.get("amount_borrowed") is None or values["amount_borrowed"] <= ZERO:
            raise ValidationError("Amount borrowed must be positive")
        if values.get("origination_date") is None:
            raise ValidationError("An origination date is required")
        if values.get("interest_rate") is None or values["interest_rate"] < 0:
            raise ValidationError("Interest rate cannot be negative")
        if values.get("daily_late_fee_amount") is None or values["daily_late_fee_amount"] < 0:
            raise ValidationError("Daily late fee cannot be negative")
        if values["modality"] == LoanModality.INSTALLMENT:
            if not values.get("installments_details"):
                raise ValidationError("Generate the installment schedule before saving")
            numbers = sorted(i.installment_number for i in values["installments_details"])
            if numbers != list(range(1, len(numbers) + 1)):
                raise InconsistentScheduleError(f"Installment numbers must run 1..{len(numbers)}")
        elif values.get("due_date") is None:
            raise ValidationError("A due date is required")
