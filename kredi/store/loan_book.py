"""In-memory loan book with referential integrity and per-loan locking."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from kredi.config import BRASILIA_TIMEZONE
from kredi.dates import now
from kredi.engine.mutations import UNKNOWN_CLIENT, LoanEngine, MutationResult
from kredi.engine.schedule import check_schedule
from kredi.exceptions import KrediError, LoanNotFoundError, ReferentialIntegrityError
from kredi.logging import loan_extra
from kredi.models import (
    Account,
    Client,
    DeletionRecord,
    Event,
    Loan,
    LoanTerms,
    TransactionIntent,
)
from kredi.sinks.serialization import to_dict

logger = logging.getLogger(__name__)

EVENT_SOURCE = "kredi.loan-book"


@dataclass
class LoanBook:
    """Caller-owned collection of loans and their collaborators.

    The book resolves client names and account existence for the engine,
    applies every :class:`MutationResult` (storing the new snapshot, appending
    transactions and audit records) and keeps an outbox of events for sinks.
    Mutations of the same loan are serialized with a per-loan lock; writes to
    the shared ledgers (transactions, audit, outbox, indexes) hold the book lock.
    """

    clients: dict[str, Client] = field(default_factory=dict)
    accounts: dict[str, Account] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)
    transactions: list[TransactionIntent] = field(default_factory=list)
    deletion_history: list[DeletionRecord] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    timezone: str = BRASILIA_TIMEZONE
    clock: Callable[[], datetime] | None = None
    id_factory: Callable[[], str] | None = None

    # Relationship indexes
    _client_loans: dict[str, list[str]] = field(default_factory=dict)
    _account_transactions: dict[str, list[int]] = field(default_factory=dict)

    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock)
    _book_lock: Any = field(default_factory=threading.RLock)
    _engine: LoanEngine | None = None

    @property
    def engine(self) -> LoanEngine:
        if self._engine is None:
            self._engine = LoanEngine(
                clients=self,
                accounts=self,
                timezone=self.timezone,
                clock=self.clock,
                id_factory=self.id_factory,
            )
        return self._engine

    # Directories consumed by the engine

    def display_name(self, client_id: str) -> str:
        client = self.clients.get(client_id)
        return client.name if client else UNKNOWN_CLIENT

    def account_exists(self, account_id: str) -> bool:
        return account_id in self.accounts

    def client_names(self) -> dict[str, str]:
        """Map of client id to display name, for reports."""
        return {client_id: client.name for client_id, client in self.clients.items()}

    # Loading

    def add_client(self, client: Client) -> None:
        """Add a client to the book."""
        self.clients[client.client_id] = client
        self._client_loans.setdefault(client.client_id, [])

    def add_account(self, account: Account) -> None:
        """Add an account to the book."""
        self.accounts[account.account_id] = account
        self._account_transactions.setdefault(account.account_id, [])

    def add_loan(self, loan: Loan) -> None:
        """Import an existing loan snapshot.

        Raises
        ------
        ReferentialIntegrityError
            If the client or account is unknown.
        InconsistentScheduleError
            If an installment loan's schedule disagrees with its aggregate.
        """
        if loan.client_id not in self.clients:
            raise ReferentialIntegrityError(f"Client {loan.client_id} not found")
        if loan.account_id not in self.accounts:
            raise ReferentialIntegrityError(f"Account {loan.account_id} not found")
        check_schedule(loan)

        with self._book_lock:
            self._store_loan(loan)

    def add_transaction(self, transaction: TransactionIntent) -> None:
        """Append a transaction to its account's ledger."""
        if transaction.account_id not in self.accounts:
            raise ReferentialIntegrityError(f"Account {transaction.account_id} not found")

        with self._book_lock:
            idx = len(self.transactions)
            self.transactions.append(transaction)
            self._account_transactions[transaction.account_id].append(idx)

    # Mutations

    def create_loan(self, terms: LoanTerms) -> Loan:
        """Originate a loan and debit its funding account."""
        if terms.client_id and terms.client_id not in self.clients:
            raise ReferentialIntegrityError(f"Client {terms.client_id} not found")
        result = self.engine.create(terms)
        with self._lock_for(result.loan.loan_id):
            self._apply(result, "created")
        return result.loan

    def edit_loan(self, loan_id: str, **changes: Any) -> Loan:
        if changes.get("client_id") and changes["client_id"] not in self.clients:
            raise ReferentialIntegrityError(f"Client {changes['client_id']} not found")
        return self._mutate(loan_id, "updated", lambda loan: self.engine.edit(loan, **changes))

    def regenerate_schedule(
        self,
        loan_id: str,
        installments: int | None = None,
        first_due_date: Any = None,
        confirmed: bool = False,
    ) -> Loan:
        return self._mutate(
            loan_id,
            "schedule_regenerated",
            lambda loan: self.engine.regenerate_schedule(
                loan, installments=installments, first_due_date=first_due_date, confirmed=confirmed
            ),
        )

    def edit_installment(self, loan_id: str, installment_number: int, **fields: Any) -> Loan:
        return self._mutate(
            loan_id,
            "installment_updated",
            lambda loan: self.engine.edit_installment(loan, installment_number, **fields),
        )

    def record_payment(
        self,
        loan_id: str,
        payment_date: Any,
        amount_paid: Any,
        account_id: str,
        installment_number: int | None = None,
        payment_type: Any = None,
    ) -> Loan:
        """Record a payment and credit the receiving account."""
        return self._mutate(
            loan_id,
            "payment_received",
            lambda loan: self.engine.record_payment(
                loan,
                payment_date,
                amount_paid,
                account_id,
                installment_number=installment_number,
                payment_type=payment_type,
            ),
        )

    def add_promise(self, loan_id: str, promise_date: Any, note: str) -> Loan:
        return self._mutate(
            loan_id, "promise_added", lambda loan: self.engine.add_promise(loan, promise_date, note)
        )

    def archive_loan(self, loan_id: str) -> Loan:
        return self._mutate(loan_id, "archived", self.engine.archive)

    def restore_loan(self, loan_id: str) -> Loan:
        return self._mutate(loan_id, "restored", self.engine.restore)

    def delete_loan(self, loan_id: str) -> None:
        """Remove a loan permanently, keeping an audit record."""
        self._mutate(loan_id, "deleted", self.engine.permanent_delete)

    # Query methods

    def get_loan(self, loan_id: str) -> Loan:
        try:
            return self.loans[loan_id]
        except KeyError:
            raise LoanNotFoundError(f"Loan {loan_id} not found") from None

    def get_client_loans(self, client_id: str) -> list[Loan]:
        """Get all loans for a client."""
        loan_ids = self._client_loans.get(client_id, [])
        return [self.loans[lid] for lid in loan_ids if lid in self.loans]

    def get_account_transactions(self, account_id: str) -> list[TransactionIntent]:
        """Get all transactions for an account."""
        indices = self._account_transactions.get(account_id, [])
        return [self.transactions[i] for i in indices]

    def account_balance(self, account_id: str) -> Decimal:
        """Initial balance plus credits minus debits."""
        if account_id not in self.accounts:
            raise ReferentialIntegrityError(f"Account {account_id} not found")
        balance = self.accounts[account_id].initial_balance
        for transaction in self.get_account_transactions(account_id):
            balance += transaction.signed_amount
        return balance

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "clients": len(self.clients),
            "accounts": len(self.accounts),
            "loans": len(self.loans),
            "archived_loans": sum(1 for loan in self.loans.values() if loan.is_archived),
            "transactions": len(self.transactions),
            "deletion_history": len(self.deletion_history),
            "events": len(self.events),
        }

    def export(self, sinks: list[Any]) -> None:
        """Export the book and its event outbox to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        for sink in sinks:
            sink.write_batch("clients", list(self.clients.values()))
            sink.write_batch("accounts", list(self.accounts.values()))
            sink.write_batch("loans", list(self.loans.values()))
            sink.write_batch("transactions", self.transactions)
            sink.write_batch("deletion_history", self.deletion_history)
            sink.write_batch("events", self.events)

        logger.info("Exported loan book to %d sinks", len(sinks))

    # Internals

    def _lock_for(self, loan_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(loan_id, threading.Lock())

    def _mutate(
        self, loan_id: str, action: str, operation: Callable[[Loan], MutationResult]
    ) -> Loan | None:
        with self._lock_for(loan_id):
            loan = self.get_loan(loan_id)
            try:
                result = operation(loan)
            except KrediError as exc:
                logger.warning("Loan %s %s rejected: %s", loan_id, action, exc, **loan_extra(loan_id))
                raise
            self._apply(result, action)
        return result.loan

    def _apply(self, result: MutationResult, action: str) -> None:
        with self._book_lock:
            self._apply_locked(result, action)

    def _apply_locked(self, result: MutationResult, action: str) -> None:
        for transaction in result.transactions:
            self.add_transaction(transaction)
            self._emit("transaction.created", transaction.account_id, transaction)

        self.deletion_history.extend(result.audit)

        if result.removed_loan_id is not None:
            removed = self.loans.pop(result.removed_loan_id)
            self._client_loans.get(removed.client_id, []).remove(removed.loan_id)
            with self._locks_guard:
                self._locks.pop(removed.loan_id, None)
            self._emit(f"loan.{action}", removed.loan_id, {"loan_id": removed.loan_id})
            return

        if result.loan is not None:
            self._store_loan(result.loan)
            self._emit(f"loan.{action}", result.loan.loan_id, result.loan)

    def _store_loan(self, loan: Loan) -> None:
        previous = self.loans.get(loan.loan_id)
        if previous is not None and previous.client_id != loan.client_id:
            self._client_loans[previous.client_id].remove(loan.loan_id)
        if previous is None or previous.client_id != loan.client_id:
            self._client_loans.setdefault(loan.client_id, []).append(loan.loan_id)
        self.loans[loan.loan_id] = loan

    def _emit(self, event_type: str, subject: str, payload: Any) -> None:
        data = payload if isinstance(payload, dict) else to_dict(payload)
        clock = self.clock or (lambda: now(self.timezone))
        self.events.append(Event.record(event_type, subject, data, clock(), EVENT_SOURCE))
