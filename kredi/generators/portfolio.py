"""Demo loan portfolio generator.

Loans are originated and serviced through :class:`~kredi.store.LoanBook`, so
every generated record obeys the same rules as production mutations.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from kredi.config import BRASILIA_TIMEZONE
from kredi.dates import DateLike, add_months, resolve_reference
from kredi.engine.schedule import apply_schedule
from kredi.generators.base import BaseGenerator
from kredi.generators.parties import AccountGenerator, ClientGenerator
from kredi.models import Client, Loan, LoanModality, LoanStatus, LoanTerms, PaymentType
from kredi.store import LoanBook

logger = logging.getLogger(__name__)


class DemoPortfolioGenerator(BaseGenerator):
    """Generate a loan book with clients, accounts and serviced loans.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    num_clients : int
        Number of borrowers.
    loans_per_client : tuple[int, int]
        Min and max loans originated per client.
    num_accounts : int
        Number of funding accounts.
    timezone : str
        Civil timezone of the book's clock.
    """

    MODALITIES = list(LoanModality)
    MODALITY_WEIGHTS = [0.45, 0.25, 0.30]

    INTEREST_RATES = [Decimal("5"), Decimal("10"), Decimal("15"), Decimal("20")]
    DAILY_LATE_FEES = [Decimal("1"), Decimal("2"), Decimal("5")]

    PAYMENT_PROBABILITY = 0.7
    PROMISE_PROBABILITY = 0.25
    ARCHIVE_PROBABILITY = 0.05

    PROMISE_NOTES = [
        "Cliente pediu mais alguns dias",
        "Vai pagar quando receber o salário",
        "Combinado por telefone",
        "Prometeu transferir via PIX",
    ]

    def __init__(
        self,
        seed: int | None = None,
        num_clients: int = 10,
        loans_per_client: tuple[int, int] = (1, 3),
        num_accounts: int = 2,
        timezone: str = BRASILIA_TIMEZONE,
    ) -> None:
        self.client_generator = ClientGenerator(seed)
        self.account_generator = AccountGenerator(seed + 1 if seed is not None else None)
        super().__init__(seed)
        self.num_clients = num_clients
        self.loans_per_client = loans_per_client
        self.num_accounts = num_accounts
        self.timezone = timezone

    def generate(self, reference_date: DateLike | None = None) -> LoanBook:
        """Generate the portfolio as of ``reference_date``.

        Returns
        -------
        LoanBook
            Book with clients, accounts, loans, transactions and events.
        """
        reference = resolve_reference(reference_date, self.timezone)
        moment = datetime.combine(reference, time(12), tzinfo=ZoneInfo(self.timezone))
        book = LoanBook(
            timezone=self.timezone,
            clock=lambda: moment,
            id_factory=lambda: f"loan-{self.fake.uuid4()}",
        )

        for _ in range(self.num_accounts):
            book.add_account(self.account_generator.generate())
        for client in self.client_generator.generate_batch(self.num_clients):
            book.add_client(client)

        for client in list(book.clients.values()):
            for _ in range(random.randint(*self.loans_per_client)):
                self._originate(book, client, reference)

        logger.info("Generated demo portfolio: %s", book.summary())
        return book

    def _originate(self, book: LoanBook, client: Client, reference) -> Loan:
        modality = random.choices(self.MODALITIES, weights=self.MODALITY_WEIGHTS, k=1)[0]
        origination = reference - timedelta(days=random.randint(5, 150))
        account_id = random.choice(list(book.accounts))

        terms = LoanTerms(
            client_id=client.client_id,
            account_id=account_id,
            amount_borrowed=self.money(500, 10_000),
            due_date=origination + timedelta(days=30)
            if modality == LoanModality.SINGLE_PAYMENT
            else add_months(origination, 1),
            origination_date=origination,
            modality=modality,
            interest_rate=random.choice(self.INTEREST_RATES),
            daily_late_fee_amount=random.choice(self.DAILY_LATE_FEES),
            installments=random.randint(3, 12) if modality == LoanModality.INSTALLMENT else None,
        )
        if modality == LoanModality.INSTALLMENT:
            terms = apply_schedule(terms)

        loan = book.create_loan(terms)
        loan = self._service(book, loan, reference)

        if loan.status == LoanStatus.OVERDUE and random.random() < self.PROMISE_PROBABILITY:
            loan = book.add_promise(
                loan.loan_id,
                reference + timedelta(days=random.randint(1, 10)),
                random.choice(self.PROMISE_NOTES),
            )
        if random.random() < self.ARCHIVE_PROBABILITY:
            loan = book.archive_loan(loan.loan_id)
        return loan

    def _service(self, book: LoanBook, loan: Loan, reference) -> Loan:
        """Record the payments a typical borrower would have made by ``reference``."""
        if loan.modality == LoanModality.INSTALLMENT:
            for installment in loan.installments_details:
                if installment.due_date > reference or random.random() > self.PAYMENT_PROBABILITY:
                    break
                loan = book.record_payment(
                    loan.loan_id,
                    installment.due_date,
                    installment.amount,
                    loan.account_id,
                    installment_number=installment.installment_number,
                )
            return loan

        if loan.modality == LoanModality.MONTHLY_INTEREST:
            while loan.due_date <= reference and random.random() < self.PAYMENT_PROBABILITY:
                loan = book.record_payment(
                    loan.loan_id,
                    loan.due_date,
                    loan.amount_to_receive,
                    loan.account_id,
                    payment_type=PaymentType.INTEREST_ONLY,
                )
            return loan

        if loan.due_date <= reference and random.random() < self.PAYMENT_PROBABILITY:
            loan = book.record_payment(
                loan.loan_id, loan.due_date, loan.amount_to_receive, loan.account_id
            )
        return loan
