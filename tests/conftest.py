"""Pytest configuration and fixtures."""

import itertools
from datetime import date, datetime
from decimal import Decimal
from typing import Callable
from zoneinfo import ZoneInfo

import pytest

from kredi.engine import LoanEngine
from kredi.models import Account, Client, Loan, LoanModality, LoanStatus
from kredi.store import LoanBook

REFERENCE_DATE = date(2024, 5, 10)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def reference_date() -> date:
    """Day every engine test is evaluated at."""
    return REFERENCE_DATE


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at noon of the reference date in Brasília."""
    moment = datetime(2024, 5, 10, 12, 0, tzinfo=ZoneInfo("America/Sao_Paulo"))
    return lambda: moment


@pytest.fixture
def sample_client() -> Client:
    """Sample client."""
    return Client(client_id="client-001", name="Maria Silva", phone="+5511999999999")


@pytest.fixture
def sample_account() -> Account:
    """Sample funding account."""
    return Account(
        account_id="acct-001",
        name="Conta Principal",
        bank="Nubank",
        initial_balance=Decimal("10000.00"),
    )


@pytest.fixture
def book(clock, sample_client: Client, sample_account: Account) -> LoanBook:
    """Loan book with one client and one account."""
    counter = itertools.count(1)
    book = LoanBook(clock=clock, id_factory=lambda: f"loan-{next(counter):03d}")
    book.add_client(sample_client)
    book.add_account(sample_account)
    return book


@pytest.fixture
def engine(book: LoanBook) -> LoanEngine:
    """Engine wired to the sample book."""
    return book.engine


@pytest.fixture
def make_loan() -> Callable[..., Loan]:
    """Factory for loan snapshots with sensible defaults."""

    def _make(**overrides) -> Loan:
        values = {
            "loan_id": "loan-test-001",
            "client_id": "client-001",
            "account_id": "acct-001",
            "amount_borrowed": Decimal("1000.00"),
            "amount_to_receive": Decimal("1500.00"),
            "interest_rate": Decimal("50"),
            "daily_late_fee_amount": Decimal("10.00"),
            "modality": LoanModality.SINGLE_PAYMENT,
            "origination_date": date(2024, 4, 1),
            "due_date": date(2024, 5, 1),
            "status": LoanStatus.PENDING,
        }
        values.update(overrides)
        return Loan(**values)

    return _make
