"""Account movements emitted by loan mutations."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import uuid4

from kredi.models.enums import Direction


@dataclass(frozen=True)
class TransactionIntent:
    """Request to append a credit or debit to an account."""

    account_id: str
    description: str
    amount: Decimal
    direction: Direction
    date: date
    transaction_id: str = field(default_factory=lambda: f"txn-{uuid4()}")
    loan_id: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with debits negated, as it affects the account balance."""
        return self.amount if self.direction == Direction.CREDIT else -self.amount
