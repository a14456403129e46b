"""Client and account models."""

from dataclasses import dataclass
from decimal import Decimal

from kredi.models.base import Address


@dataclass
class Client:
    """Borrower."""

    client_id: str
    name: str
    phone: str = ""
    email: str = ""
    address: Address | None = None


@dataclass
class Account:
    """Bank account that funds loans and receives payments."""

    account_id: str
    name: str
    bank: str = "other"
    initial_balance: Decimal = Decimal("0.00")
    is_archived: bool = False
