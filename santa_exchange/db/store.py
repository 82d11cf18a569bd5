"""Persistence contract for exchanges, rosters and assignments.

Every method is its own unit of work. Implementations must make each call
atomic; the lifecycle and generator services rely on that instead of holding
transactions of their own.
"""
from __future__ import annotations

import abc
from typing import List, Optional, Sequence, Tuple

from santa_exchange.db.records import (
    AssignmentRecord,
    ExchangeRecord,
    ParticipantRecord,
    PendingRequestRecord,
)


class StoreConflict(RuntimeError):
    """A write collided with a uniqueness constraint."""


class RosterChanged(StoreConflict):
    """The participant list moved between reading it and committing assignments."""


class ExchangeStore(abc.ABC):
    @abc.abstractmethod
    def user_exists(self, user_id: int) -> bool:
        ...

    @abc.abstractmethod
    def create_exchange(
        self,
        name: str,
        gift_budget: str,
        created_by: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ExchangeRecord:
        """Insert the exchange together with its creator's participant row."""

    @abc.abstractmethod
    def get_exchange(self, exchange_id: int) -> Optional[ExchangeRecord]:
        ...

    @abc.abstractmethod
    def list_exchanges(self) -> List[ExchangeRecord]:
        ...

    @abc.abstractmethod
    def list_exchanges_for_user(self, user_id: int) -> List[ExchangeRecord]:
        """Exchanges the user created or is a participant of."""

    @abc.abstractmethod
    def update_exchange_details(
        self,
        exchange_id: int,
        name: Optional[str] = None,
        gift_budget: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Optional[ExchangeRecord]:
        """Change display fields; ``None`` leaves a field as it is."""

    @abc.abstractmethod
    def delete_exchange(self, exchange_id: int) -> bool:
        """Delete the exchange with its participants, requests and assignments."""

    @abc.abstractmethod
    def get_participant(self, exchange_id: int, user_id: int) -> Optional[ParticipantRecord]:
        ...

    @abc.abstractmethod
    def list_participants(self, exchange_id: int) -> List[ParticipantRecord]:
        ...

    @abc.abstractmethod
    def remove_participant(self, exchange_id: int, user_id: int) -> bool:
        """Delete the participant row, only while the exchange is still open."""

    @abc.abstractmethod
    def get_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        ...

    @abc.abstractmethod
    def list_pending(self, exchange_id: int) -> List[PendingRequestRecord]:
        ...

    @abc.abstractmethod
    def add_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        """Insert a join request if absent.

        Returns ``None`` when the pair already has a request or the exchange
        is no longer open.
        """

    @abc.abstractmethod
    def approve_pending(self, exchange_id: int, user_id: int) -> bool:
        """Move a request into the roster in one step, only while open.

        Returns ``False`` if there was no request to move or the exchange is
        closed. Raises :class:`StoreConflict` if the user is already on the
        roster; nothing is changed in that case.
        """

    @abc.abstractmethod
    def remove_pending(self, exchange_id: int, user_id: int) -> bool:
        """Delete a join request, only while the exchange is still open."""

    @abc.abstractmethod
    def commit_assignments(
        self, exchange_id: int, pairs: Sequence[Tuple[int, int]]
    ) -> Optional[List[AssignmentRecord]]:
        """Flip ``assignments_generated`` and persist ``pairs`` all at once.

        The flip is a compare-and-swap: ``None`` means another caller already
        set the flag and nothing was written. Raises :class:`RosterChanged`
        (and writes nothing) if the givers in ``pairs`` no longer match the
        participant list.
        """

    @abc.abstractmethod
    def get_assignment_for_giver(
        self, exchange_id: int, giver_id: int
    ) -> Optional[AssignmentRecord]:
        ...

    @abc.abstractmethod
    def list_assignments(self, exchange_id: int) -> List[AssignmentRecord]:
        ...

    @abc.abstractmethod
    def count_assignments(self, exchange_id: int) -> int:
        ...
