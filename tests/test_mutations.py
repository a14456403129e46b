"""Tests for the loan mutation engine."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from kredi.engine.schedule import apply_schedule, check_schedule
from kredi.exceptions import InconsistentScheduleError, InvalidEntityStateError, ValidationError
from kredi.models import (
    DeletionAction,
    Direction,
    EntityType,
    LoanModality,
    LoanStatus,
    LoanTerms,
    PaymentType,
)


@pytest.fixture
def single_terms() -> LoanTerms:
    """1000 at 50% due in June."""
    return LoanTerms(
        client_id="client-001",
        account_id="acct-001",
        amount_borrowed=Decimal("1000.00"),
        due_date=date(2024, 6, 1),
        origination_date=date(2024, 5, 1),
        interest_rate=Decimal("50"),
        daily_late_fee_amount=Decimal("10.00"),
    )


@pytest.fixture
def monthly_terms(single_terms: LoanTerms) -> LoanTerms:
    """1000 at 10% a month, due Jan 31."""
    return replace(
        single_terms,
        modality=LoanModality.MONTHLY_INTEREST,
        interest_rate=Decimal("10"),
        origination_date=date(2023, 12, 31),
        due_date=date(2024, 1, 31),
    )


@pytest.fixture
def installment_terms(single_terms: LoanTerms) -> LoanTerms:
    """1000 at 20% in 3 installments starting Jun 10, schedule generated."""
    return apply_schedule(
        replace(
            single_terms,
            modality=LoanModality.INSTALLMENT,
            interest_rate=Decimal("20"),
            installments=3,
            due_date=date(2024, 6, 10),
        )
    )


class TestCreate:
    """Tests for LoanEngine.create."""

    def test_single_payment(self, engine, single_terms) -> None:
        """Computes the amount to receive and debits the account."""
        result = engine.create(single_terms)
        loan = result.loan

        assert loan.loan_id == "loan-001"
        assert loan.amount_to_receive == Decimal("1500.00")
        assert loan.status == LoanStatus.PENDING
        assert loan.installments_details == ()

        (debit,) = result.transactions
        assert debit.direction == Direction.DEBIT
        assert debit.amount == Decimal("1000.00")
        assert debit.description == "Empréstimo: Maria Silva"
        assert debit.date == date(2024, 5, 1)
        assert debit.account_id == "acct-001"
        assert debit.loan_id == "loan-001"

    def test_boundary_values_are_normalized(self, engine, single_terms) -> None:
        """Floats, strings and ISO timestamps are accepted."""
        terms = replace(
            single_terms,
            amount_borrowed=1000.1,
            interest_rate="10",
            due_date="2024-06-01T00:00:00.000Z",
            origination_date="2024-05-01T03:00:00.000Z",
        )

        loan = engine.create(terms).loan

        assert loan.amount_borrowed == Decimal("1000.10")
        assert loan.amount_to_receive == Decimal("1100.11")
        assert loan.due_date == date(2024, 6, 1)
        assert loan.origination_date == date(2024, 5, 1)

    def test_modality_label_accepted(self, engine, single_terms) -> None:
        """Display labels resolve to modalities."""
        loan = engine.create(replace(single_terms, modality="Juros Mensal (+ Principal no final)")).loan

        assert loan.modality == LoanModality.MONTHLY_INTEREST
        assert loan.amount_to_receive == Decimal("500.00")

    def test_unknown_modality(self, engine, single_terms) -> None:
        """An unrecognised modality is a validation error."""
        with pytest.raises(ValidationError, match="weekly"):
            engine.create(replace(single_terms, modality="weekly"))

    def test_overdue_on_creation(self, engine, single_terms) -> None:
        """A back-dated loan is stored overdue."""
        loan = engine.create(replace(single_terms, due_date=date(2024, 5, 1))).loan

        assert loan.status == LoanStatus.OVERDUE

    def test_installment_takes_aggregate_from_schedule(self, engine, installment_terms) -> None:
        """Installment loans use the schedule as the source of truth."""
        loan = engine.create(installment_terms).loan

        assert loan.amount_to_receive == Decimal("1200.00")
        assert loan.installments == 3
        assert loan.due_date == date(2024, 8, 10)
        check_schedule(loan)

    def test_installment_requires_schedule(self, engine, single_terms) -> None:
        """Saving an installment loan without a schedule is rejected."""
        terms = replace(single_terms, modality=LoanModality.INSTALLMENT, installments=3)

        with pytest.raises(ValidationError):
            engine.create(terms)

    @pytest.mark.parametrize(
        "changes",
        [
            {"client_id": ""},
            {"account_id": ""},
            {"account_id": "acct-missing"},
            {"amount_borrowed": Decimal("0")},
            {"amount_borrowed": Decimal("-5")},
            {"due_date": None},
            {"interest_rate": Decimal("-1")},
        ],
    )
    def test_validation(self, engine, single_terms, changes) -> None:
        """Invalid terms raise before anything is built."""
        with pytest.raises(ValidationError):
            engine.create(replace(single_terms, **changes))

    def test_unknown_client_name(self, engine, single_terms) -> None:
        """Descriptions fall back to a placeholder name."""
        result = engine.create(replace(single_terms, client_id="client-ghost"))

        assert result.transactions[0].description == "Empréstimo: Cliente Desconhecido"


class TestEdit:
    """Tests for LoanEngine.edit."""

    def test_rate_change_recomputes(self, engine, single_terms) -> None:
        """Changing the rate recomputes amount_to_receive."""
        loan = engine.create(single_terms).loan

        edited = engine.edit(loan, interest_rate="20").loan

        assert edited.amount_to_receive == Decimal("1200.00")
        assert loan.amount_to_receive == Decimal("1500.00")

    def test_due_date_change_is_logged(self, engine, single_terms) -> None:
        """A new due date appends a history entry."""
        loan = engine.create(single_terms).loan

        edited = engine.edit(loan, due_date="2024-06-15").loan

        (change,) = edited.due_date_history
        assert change.old_due_date == date(2024, 6, 1)
        assert change.new_due_date == date(2024, 6, 15)
        assert change.change_date.date() == date(2024, 5, 10)

    def test_same_day_due_date_is_not_logged(self, engine, single_terms) -> None:
        """A time-only difference is not a change."""
        loan = engine.create(single_terms).loan

        edited = engine.edit(loan, due_date="2024-06-01T15:30:00.000Z").loan

        assert edited.due_date_history == ()

    def test_leaving_installment_drops_schedule(self, engine, installment_terms) -> None:
        """Switching modality clears the schedule."""
        loan = engine.create(installment_terms).loan

        edited = engine.edit(loan, modality=LoanModality.SINGLE_PAYMENT).loan

        assert edited.installments is None
        assert edited.installments_details == ()
        assert edited.amount_to_receive == Decimal("1200.00")

    def test_installment_terms_change_needs_new_schedule(self, engine, installment_terms) -> None:
        """Principal changes on an installment loan require regeneration."""
        loan = engine.create(installment_terms).loan

        with pytest.raises(InconsistentScheduleError):
            engine.edit(loan, amount_borrowed="2000")

    def test_installment_count_change_needs_new_schedule(self, engine, installment_terms) -> None:
        """A new count without a schedule is rejected instead of being dropped."""
        loan = engine.create(installment_terms).loan

        with pytest.raises(ValidationError, match="regenerate_schedule"):
            engine.edit(loan, installments=5)

        assert engine.edit(loan, installments=3).loan.installments == 3

    def test_entering_installment_needs_schedule(self, engine, single_terms) -> None:
        with pytest.raises(ValidationError):
            engine.edit(engine.create(single_terms).loan, modality=LoanModality.INSTALLMENT)

    def test_unknown_field(self, engine, single_terms) -> None:
        """Only editable fields may be changed."""
        loan = engine.create(single_terms).loan

        with pytest.raises(ValidationError):
            engine.edit(loan, status=LoanStatus.PAID)

    def test_regenerate_schedule(self, engine, installment_terms) -> None:
        """Regeneration follows the current terms."""
        loan = engine.create(installment_terms).loan

        regenerated = engine.regenerate_schedule(loan, installments=4).loan

        assert len(regenerated.installments_details) == 4
        assert regenerated.installments_details[0].due_date == date(2024, 6, 10)
        check_schedule(regenerated)

    def test_edit_installment(self, engine, installment_terms) -> None:
        """Manual installment edits move the aggregate."""
        loan = engine.create(installment_terms).loan

        edited = engine.edit_installment(loan, 1, amount="500").loan

        assert edited.amount_to_receive == Decimal("1300.00")


class TestRecordPayment:
    """Tests for LoanEngine.record_payment."""

    def test_single_payment_settles(self, engine, single_terms) -> None:
        """Any recorded payment settles a single-payment loan."""
        loan = engine.create(single_terms).loan

        result = engine.record_payment(loan, "2024-05-09", Decimal("1500"), "acct-001")

        assert result.loan.status == LoanStatus.PAID
        assert result.loan.payment_date == date(2024, 5, 9)
        (credit,) = result.transactions
        assert credit.direction == Direction.CREDIT
        assert credit.amount == Decimal("1500.00")
        assert credit.description == "Recebimento: Maria Silva"

    def test_interest_only_rolls_over(self, engine, monthly_terms) -> None:
        """Interest-only payment on a Jan 31 loan moves it to Feb 29."""
        loan = engine.create(monthly_terms).loan

        result = engine.record_payment(
            loan, "2024-01-31", "100", "acct-001", payment_type=PaymentType.INTEREST_ONLY
        )
        rolled = result.loan

        assert rolled.due_date == date(2024, 2, 29)
        assert len(rolled.interest_payments_history) == 1
        assert rolled.interest_payments_history[0].amount_paid == Decimal("100.00")
        assert rolled.amount_borrowed == loan.amount_borrowed
        assert rolled.amount_to_receive == loan.amount_to_receive
        assert rolled.status != LoanStatus.PAID
        assert result.transactions[0].description == "Recebimento: Maria Silva (Juros)"

    def test_rollover_keeps_negotiation_flag(self, engine, monthly_terms) -> None:
        loan = engine.create(replace(monthly_terms, is_in_negotiation=True)).loan

        rolled = engine.record_payment(loan, "2024-01-31", "100", "acct-001", payment_type="interest_only").loan

        assert rolled.is_in_negotiation is True

    def test_monthly_full_payment(self, engine, monthly_terms) -> None:
        """Full payment settles a monthly-interest loan."""
        loan = engine.create(monthly_terms).loan

        paid = engine.record_payment(loan, "2024-02-01", "1100", "acct-001", payment_type="full").loan

        assert paid.status == LoanStatus.PAID
        assert paid.due_date == date(2024, 1, 31)

    def test_installment_settlement(self, engine, installment_terms) -> None:
        """Paying the last pending installment settles the loan."""
        loan = engine.create(installment_terms).loan
        loan = engine.record_payment(loan, "2024-06-10", "400", "acct-001", installment_number=1).loan
        loan = engine.record_payment(loan, "2024-07-10", "400", "acct-001", installment_number=2).loan
        assert loan.status != LoanStatus.PAID

        result = engine.record_payment(loan, "2024-08-12", "400", "acct-001", installment_number=3)

        assert result.loan.status == LoanStatus.PAID
        assert result.loan.payment_date == date(2024, 8, 12)
        assert result.loan.get_installment(3).amount_paid == Decimal("400.00")
        assert result.transactions[0].description == "Recebimento: Maria Silva (Parc. 3)"

    def test_partial_installment_payment_keeps_loan_open(self, engine, installment_terms) -> None:
        loan = engine.create(installment_terms).loan

        loan = engine.record_payment(loan, "2024-05-10", "400", "acct-001", installment_number=2).loan

        assert loan.get_installment(2).is_paid
        assert loan.status == LoanStatus.PENDING
        assert loan.payment_date is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"installment_number": None},
            {"installment_number": 7},
        ],
    )
    def test_installment_number_required(self, engine, installment_terms, kwargs) -> None:
        loan = engine.create(installment_terms).loan

        with pytest.raises(ValidationError):
            engine.record_payment(loan, "2024-05-10", "400", "acct-001", **kwargs)

    def test_installment_already_paid(self, engine, installment_terms) -> None:
        loan = engine.create(installment_terms).loan
        loan = engine.record_payment(loan, "2024-05-10", "400", "acct-001", installment_number=1).loan

        with pytest.raises(ValidationError):
            engine.record_payment(loan, "2024-05-10", "400", "acct-001", installment_number=1)

    def test_interest_only_on_single_payment(self, engine, single_terms) -> None:
        loan = engine.create(single_terms).loan

        with pytest.raises(ValidationError):
            engine.record_payment(loan, "2024-05-10", "100", "acct-001", payment_type="interest_only")

    @pytest.mark.parametrize(
        "amount, account_id",
        [
            ("0", "acct-001"),
            ("-10", "acct-001"),
            ("NaN", "acct-001"),
            ("Infinity", "acct-001"),
            ("100", ""),
            ("100", "acct-missing"),
        ],
    )
    def test_invalid_payment(self, engine, single_terms, amount, account_id) -> None:
        """Non-positive or non-finite amounts and unknown accounts are rejected."""
        loan = engine.create(single_terms).loan

        with pytest.raises(ValidationError):
            engine.record_payment(loan, "2024-05-10", amount, account_id)

    def test_unknown_payment_type(self, engine, monthly_terms) -> None:
        loan = engine.create(monthly_terms).loan

        with pytest.raises(ValidationError, match="partial"):
            engine.record_payment(loan, "2024-01-31", "100", "acct-001", payment_type="partial")

    def test_already_paid(self, engine, single_terms) -> None:
        loan = engine.create(single_terms).loan
        loan = engine.record_payment(loan, "2024-05-10", "1500", "acct-001").loan

        with pytest.raises(InvalidEntityStateError):
            engine.record_payment(loan, "2024-05-10", "1500", "acct-001")

    def test_input_snapshot_unchanged(self, engine, single_terms) -> None:
        """The engine never mutates its input."""
        loan = engine.create(single_terms).loan

        engine.record_payment(loan, "2024-05-10", "1500", "acct-001")

        assert loan.status == LoanStatus.PENDING
        assert loan.payment_date is None


class TestAddPromise:
    """Tests for LoanEngine.add_promise."""

    def test_overwrites_due_date_without_history(self, engine, single_terms) -> None:
        """The promised date becomes the due date."""
        loan = engine.create(replace(single_terms, due_date=date(2024, 5, 1))).loan
        assert loan.status == LoanStatus.OVERDUE

        promised = engine.add_promise(loan, "2024-05-20", "  Paga na sexta  ").loan

        assert promised.due_date == date(2024, 5, 20)
        assert promised.due_date_history == ()
        assert promised.status == LoanStatus.PENDING
        (promise,) = promised.promise_history
        assert promise.note == "Paga na sexta"
        assert promise.promised_due_date == date(2024, 5, 20)

    def test_installment_loan_only_logs(self, engine, installment_terms) -> None:
        """Installment due dates are not moved by promises."""
        loan = engine.create(installment_terms).loan

        promised = engine.add_promise(loan, "2024-09-01", "Renegociação").loan

        assert promised.due_date == loan.due_date
        assert len(promised.promise_history) == 1

    @pytest.mark.parametrize("promise_date, note", [("", "nota"), (None, "nota"), ("2024-05-20", "  ")])
    def test_requires_date_and_note(self, engine, single_terms, promise_date, note) -> None:
        loan = engine.create(single_terms).loan

        with pytest.raises(ValidationError):
            engine.add_promise(loan, promise_date, note)


class TestArchiveAndDelete:
    """Tests for archive, restore and permanent delete."""

    def test_archive(self, engine, single_terms) -> None:
        """Archiving flags the loan and records an audit entry."""
        loan = engine.create(single_terms).loan

        result = engine.archive(loan)

        assert result.loan.is_archived
        (record,) = result.audit
        assert record.entity_type == EntityType.LOAN
        assert record.action == DeletionAction.ARCHIVED
        assert record.name == "Maria Silva"

    def test_archive_twice(self, engine, single_terms) -> None:
        loan = engine.archive(engine.create(single_terms).loan).loan

        with pytest.raises(InvalidEntityStateError):
            engine.archive(loan)

    def test_restore(self, engine, single_terms) -> None:
        """Restoring clears the flag without an audit entry."""
        archived = engine.archive(engine.create(single_terms).loan).loan

        result = engine.restore(archived)

        assert not result.loan.is_archived
        assert result.audit == ()

    def test_permanent_delete(self, engine, single_terms) -> None:
        """Deletion returns the id to remove and a deleted record."""
        loan = engine.create(single_terms).loan

        result = engine.permanent_delete(loan)

        assert result.loan is None
        assert result.removed_loan_id == loan.loan_id
        assert result.audit[0].action == DeletionAction.DELETED
