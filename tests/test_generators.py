"""Tests for demo data generators."""

from datetime import date
from decimal import Decimal

import pytest

from kredi.engine.schedule import check_schedule
from kredi.generators import AccountGenerator, ClientGenerator, DemoPortfolioGenerator
from kredi.models import Direction, LoanModality


class TestClientGenerator:
    """Tests for ClientGenerator."""

    def test_generate_client(self, seed: int) -> None:
        client = ClientGenerator(seed=seed).generate()

        assert client.client_id.startswith("client-")
        assert client.name
        assert client.phone
        assert client.address is not None
        assert len(client.address.state) == 2

    def test_generate_batch_unique_ids(self, seed: int) -> None:
        clients = list(ClientGenerator(seed=seed).generate_batch(5))

        assert len(clients) == 5
        assert len({c.client_id for c in clients}) == 5

    def test_reproducible(self, seed: int) -> None:
        """Same seed, same clients."""
        first = [c.name for c in ClientGenerator(seed=seed).generate_batch(3)]
        second = [c.name for c in ClientGenerator(seed=seed).generate_batch(3)]

        assert first == second


class TestAccountGenerator:
    """Tests for AccountGenerator."""

    def test_generate_account(self, seed: int) -> None:
        account = AccountGenerator(seed=seed).generate()

        assert account.account_id.startswith("account-")
        assert account.bank in AccountGenerator.BANKS
        assert account.initial_balance > 0
        assert account.initial_balance == account.initial_balance.quantize(Decimal("0.01"))

    def test_custom_name(self, seed: int) -> None:
        assert AccountGenerator(seed=seed).generate(name="Caixa da Loja").name == "Caixa da Loja"


class TestDemoPortfolioGenerator:
    """Tests for DemoPortfolioGenerator."""

    @pytest.fixture
    def book(self, seed: int):
        generator = DemoPortfolioGenerator(seed=seed, num_clients=8, loans_per_client=(1, 3))
        return generator.generate(reference_date=date(2024, 5, 10))

    def test_counts(self, book) -> None:
        summary = book.summary()

        assert summary["clients"] == 8
        assert summary["accounts"] == 2
        assert 8 <= summary["loans"] <= 24
        assert summary["events"] >= summary["transactions"]

    def test_loans_are_consistent(self, book) -> None:
        """Generated installment schedules agree with their loans."""
        for loan in book.loans.values():
            check_schedule(loan)
            assert loan.client_id in book.clients
            assert loan.account_id in book.accounts

    def test_every_loan_has_an_origination_debit(self, book) -> None:
        debits = {t.loan_id for t in book.transactions if t.direction == Direction.DEBIT}

        assert set(book.loans) <= debits

    def test_origination_before_reference(self, book) -> None:
        for loan in book.loans.values():
            assert loan.origination_date < date(2024, 5, 10)

    def test_monthly_rollovers_follow_interest_payments(self, book) -> None:
        """Each interest payment pushed the due date one month."""
        for loan in book.loans.values():
            if loan.modality != LoanModality.MONTHLY_INTEREST:
                continue
            credits = [
                t for t in book.transactions
                if t.loan_id == loan.loan_id and t.direction == Direction.CREDIT
            ]
            assert len(credits) == len(loan.interest_payments_history)

    def test_reproducible(self, seed: int) -> None:
        """Same seed, same portfolio."""
        first = DemoPortfolioGenerator(seed=seed, num_clients=3).generate("2024-05-10")
        second = DemoPortfolioGenerator(seed=seed, num_clients=3).generate("2024-05-10")

        assert list(first.loans) == list(second.loans)
        assert first.summary() == second.summary()


class TestBaseGenerator:
    def test_money_is_round(self, seed: int) -> None:
        ClientGenerator(seed=seed)

        amounts = [ClientGenerator.money(500, 10_000) for _ in range(20)]

        assert all(Decimal("500") <= a <= Decimal("10000") for a in amounts)
        assert all(a % 100 == 0 for a in amounts)
        assert all(a == a.quantize(Decimal("0.01")) for a in amounts)
