"""Audit records for archived and deleted entities."""

from dataclasses import dataclass
from datetime import datetime

from kredi.models.enums import DeletionAction, EntityType


@dataclass(frozen=True)
class DeletionRecord:
    entity_type: EntityType
    action: DeletionAction
    name: str
    date: datetime
