"""Plain records handed out by every store implementation.

ORM rows never leave a store; callers only ever see these frozen values.
"""
from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass
from typing import Optional


class ExchangeStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"


@dataclass(frozen=True)
class ExchangeRecord:
    id: int
    name: str
    gift_budget: str
    created_by: int
    assignments_generated: bool = False
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    assigned_at: Optional[datetime.datetime] = None

    @property
    def status(self) -> ExchangeStatus:
        if self.assignments_generated:
            return ExchangeStatus.ASSIGNED
        return ExchangeStatus.OPEN


@dataclass(frozen=True)
class ParticipantRecord:
    exchange_id: int
    user_id: int
    joined_at: Optional[datetime.datetime] = None


@dataclass(frozen=True)
class PendingRequestRecord:
    exchange_id: int
    user_id: int
    requested_at: Optional[datetime.datetime] = None


@dataclass(frozen=True)
class AssignmentRecord:
    id: int
    exchange_id: int
    giver_id: int
    recipient_id: int
    created_at: Optional[datetime.datetime] = None
