"""Address and event envelope shared by loan-book entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4


@dataclass
class Address:
    """Brazilian postal address of a client.

    - neighborhood: bairro
    - state: two-letter UF abbreviation
    - postal_code: CEP in ``00000-000`` format
    """

    street: str
    number: str
    neighborhood: str
    city: str
    state: str
    postal_code: str
    complement: str = ""


@dataclass(frozen=True)
class Event:
    """Outbox envelope for a loan-book change.

    ``event_type`` is ``<entity>.<action>`` (``loan.payment_received``,
    ``transaction.created``); ``subject`` is the id sinks partition by.
    """

    event_id: str
    event_type: str
    event_time: datetime
    source: str
    subject: str
    data: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def record(
        cls,
        event_type: str,
        subject: str,
        data: dict[str, Any],
        event_time: datetime,
        source: str,
    ) -> "Event":
        """New event with a random id."""
        return cls(
            event_id=str(uuid4()),
            event_type=event_type,
            event_time=event_time,
            source=source,
            subject=subject,
            data=data,
        )
