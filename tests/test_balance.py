"""Tests for the outstanding balance and late-fee calculator."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from kredi.engine.balance import (
    amount_due_now,
    balance_breakdown,
    installment_due_info,
    interest_value,
    late_fee,
    next_due_date,
    outstanding_balance,
)
from kredi.engine.schedule import generate_schedule
from kredi.exceptions import ValidationError
from kredi.models import Installment, InstallmentStatus, LoanModality, LoanStatus, PaymentType


class TestLateFee:
    """Tests for late_fee."""

    def test_accrues_per_day(self) -> None:
        """Fee is daily amount times days overdue."""
        assert late_fee(date(2024, 5, 1), Decimal("10"), date(2024, 5, 10)) == Decimal("90.00")

    def test_not_overdue(self) -> None:
        """No fee on or before the due date."""
        assert late_fee(date(2024, 5, 10), Decimal("10"), date(2024, 5, 10)) == Decimal("0.00")
        assert late_fee(date(2024, 6, 1), Decimal("10"), date(2024, 5, 10)) == Decimal("0.00")

    def test_monotonic_in_reference_date(self, make_loan) -> None:
        """The balance never decreases as the reference date advances."""
        loan = make_loan(due_date=date(2024, 5, 1))
        start = date(2024, 4, 20)
        balances = [outstanding_balance(loan, start + timedelta(days=n)) for n in range(40)]

        assert balances == sorted(balances)
        for earlier, later in zip(balances, balances[1:]):
            assert later - earlier in (Decimal("0.00"), Decimal("10.00"))


class TestSinglePayment:
    """Balances for single-payment loans."""

    def test_overdue_scenario(self, make_loan) -> None:
        """1000 at 50% due 2024-05-01 with fee 10/day owes 1590 on 2024-05-10."""
        loan = make_loan()

        breakdown = balance_breakdown(loan, date(2024, 5, 10))

        assert breakdown.principal_and_interest == Decimal("1500.00")
        assert breakdown.late_fee == Decimal("90.00")
        assert breakdown.total == Decimal("1590.00")

    def test_thirty_days_late(self, make_loan) -> None:
        """Thirty days past due adds 300 in fees."""
        loan = make_loan(due_date=date(2024, 4, 10))

        assert outstanding_balance(loan, date(2024, 5, 10)) == Decimal("1800.00")

    def test_iso_string_reference(self, make_loan) -> None:
        """Reference dates may arrive as ISO strings."""
        loan = make_loan()

        assert outstanding_balance(loan, "2024-05-10T02:00:00.000Z") == Decimal("1590.00")


class TestMonthlyInterest:
    """Balances for monthly-interest loans."""

    def test_principal_plus_period_interest(self, make_loan) -> None:
        """Owes principal, current interest and fee."""
        loan = make_loan(
            modality=LoanModality.MONTHLY_INTEREST,
            amount_borrowed=Decimal("1000.00"),
            amount_to_receive=Decimal("100.00"),
            interest_rate=Decimal("10"),
            daily_late_fee_amount=Decimal("2.00"),
            due_date=date(2024, 5, 5),
        )

        assert outstanding_balance(loan, date(2024, 5, 10)) == Decimal("1110.00")


class TestInstallment:
    """Balances for installment loans."""

    @pytest.fixture
    def installment_loan(self, make_loan):
        schedule = (
            Installment(1, Decimal("400.00"), date(2024, 3, 1), InstallmentStatus.PAID,
                        payment_date=date(2024, 3, 1), amount_paid=Decimal("400.00")),
            Installment(2, Decimal("400.00"), date(2024, 4, 1)),
            Installment(3, Decimal("400.00"), date(2024, 5, 1)),
            Installment(4, Decimal("400.00"), date(2024, 6, 1)),
        )
        return make_loan(
            modality=LoanModality.INSTALLMENT,
            amount_to_receive=Decimal("1600.00"),
            installments=4,
            installments_details=schedule,
            due_date=date(2024, 6, 1),
            daily_late_fee_amount=Decimal("1.00"),
        )

    def test_sums_unpaid_installments_with_own_fees(self, installment_loan) -> None:
        """Each unpaid installment accrues its own fee at the loan's rate."""
        breakdown = balance_breakdown(installment_loan, date(2024, 5, 10))

        assert breakdown.principal_and_interest == Decimal("1200.00")
        # 39 days on installment 2, 9 days on installment 3
        assert breakdown.late_fee == Decimal("48.00")
        assert breakdown.total == Decimal("1248.00")

    def test_installment_due_info(self, installment_loan) -> None:
        """Per-installment total due."""
        info = installment_due_info(installment_loan.get_installment(3), installment_loan, date(2024, 5, 10))

        assert info.days_overdue == 9
        assert info.late_fee == Decimal("9.00")
        assert info.total_due == Decimal("409.00")

    def test_paid_installment_owes_nothing(self, installment_loan) -> None:
        """Paid installments have zero due."""
        info = installment_due_info(installment_loan.get_installment(1), installment_loan, date(2024, 5, 10))

        assert info.total_due == Decimal("0.00")

    def test_amount_due_now_defaults_to_next_pending(self, installment_loan) -> None:
        """The form proposes the earliest pending installment."""
        assert amount_due_now(installment_loan, date(2024, 5, 10)) == Decimal("439.00")
        assert amount_due_now(installment_loan, date(2024, 5, 10), installment_number=4) == Decimal("400.00")

    def test_next_due_date(self, installment_loan) -> None:
        """Next due date is the earliest pending installment."""
        assert next_due_date(installment_loan) == date(2024, 4, 1)


class TestZeroBalance:
    """Paid and archived loans owe nothing."""

    @pytest.mark.parametrize("modality", list(LoanModality))
    def test_paid(self, make_loan, modality) -> None:
        """Stored paid status zeroes the balance."""
        details = generate_schedule(Decimal("1500"), 3, date(2024, 1, 1)) if modality == LoanModality.INSTALLMENT else ()
        loan = make_loan(modality=modality, status=LoanStatus.PAID, installments_details=details)

        for offset in (0, 30, 365):
            assert outstanding_balance(loan, date(2024, 5, 10) + timedelta(days=offset)) == Decimal("0.00")

    def test_archived(self, make_loan) -> None:
        """Archived loans are excluded from balances."""
        loan = make_loan(is_archived=True)

        assert outstanding_balance(loan, date(2024, 12, 31)) == Decimal("0.00")
        assert amount_due_now(loan, date(2024, 12, 31)) == Decimal("0.00")


class TestAmountDueNow:
    """Tests for the payment form proposal."""

    def test_monthly_interest_options(self, make_loan) -> None:
        """Interest only proposes the interest; full adds the principal."""
        loan = make_loan(
            modality=LoanModality.MONTHLY_INTEREST,
            amount_to_receive=Decimal("100.00"),
            due_date=date(2024, 6, 1),
        )

        assert amount_due_now(loan, date(2024, 5, 10), PaymentType.INTEREST_ONLY) == Decimal("100.00")
        assert amount_due_now(loan, date(2024, 5, 10), "full") == Decimal("1100.00")
        with pytest.raises(ValidationError):
            amount_due_now(loan, date(2024, 5, 10), "partial")

    def test_single_payment_includes_fee(self, make_loan) -> None:
        """Single payment proposes the whole balance."""
        assert amount_due_now(make_loan(), date(2024, 5, 10)) == Decimal("1590.00")


class TestInterestValue:
    """Tests for interest_value."""

    def test_single(self, make_loan) -> None:
        assert interest_value(make_loan()) == Decimal("500.00")

    def test_monthly(self, make_loan) -> None:
        loan = make_loan(modality=LoanModality.MONTHLY_INTEREST, amount_to_receive=Decimal("100.00"))
        assert interest_value(loan) == Decimal("100.00")
