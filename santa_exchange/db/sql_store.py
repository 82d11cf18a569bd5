from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from santa_exchange.db import repo
from santa_exchange.db.models import Assignment, Exchange, Participant, PendingParticipant
from santa_exchange.db.records import (
    AssignmentRecord,
    ExchangeRecord,
    ParticipantRecord,
    PendingRequestRecord,
)
from santa_exchange.db.session import session_scope
from santa_exchange.db.store import ExchangeStore, RosterChanged, StoreConflict


def _exchange_record(row: Exchange) -> ExchangeRecord:
    return ExchangeRecord(
        id=row.id,
        name=row.name,
        gift_budget=row.gift_budget,
        created_by=row.created_by,
        assignments_generated=bool(row.assignments_generated),
        start_date=row.start_date,
        end_date=row.end_date,
        created_at=row.created_at,
        assigned_at=row.assigned_at,
    )


def _participant_record(row: Participant) -> ParticipantRecord:
    return ParticipantRecord(exchange_id=row.exchange_id, user_id=row.user_id, joined_at=row.joined_at)


def _pending_record(row: PendingParticipant) -> PendingRequestRecord:
    return PendingRequestRecord(
        exchange_id=row.exchange_id, user_id=row.user_id, requested_at=row.requested_at
    )


def _assignment_record(row: Assignment) -> AssignmentRecord:
    return AssignmentRecord(
        id=row.id,
        exchange_id=row.exchange_id,
        giver_id=row.giver_user_id,
        recipient_id=row.recipient_user_id,
        created_at=row.created_at,
    )


class SqlStore(ExchangeStore):
    """:class:`ExchangeStore` backed by SQLAlchemy; one transaction per call."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _scope(self):
        return session_scope(self._session_factory)

    def add_user(self, name: str, email: str) -> int:
        with self._scope() as session:
            return repo.create_user(session, name, email).id

    def user_exists(self, user_id: int) -> bool:
        with self._scope() as session:
            return repo.get_user_by_id(session, user_id) is not None

    def create_exchange(
        self,
        name: str,
        gift_budget: str,
        created_by: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ExchangeRecord:
        with self._scope() as session:
            exchange = repo.create_exchange(
                session, name, gift_budget, created_by, start_date, end_date
            )
            repo.add_participant(session, exchange.id, created_by)
            return _exchange_record(exchange)

    def get_exchange(self, exchange_id: int) -> Optional[ExchangeRecord]:
        with self._scope() as session:
            exchange = repo.get_exchange_by_id(session, exchange_id)
            return _exchange_record(exchange) if exchange else None

    def list_exchanges(self) -> List[ExchangeRecord]:
        with self._scope() as session:
            return [_exchange_record(row) for row in repo.list_exchanges(session)]

    def list_exchanges_for_user(self, user_id: int) -> List[ExchangeRecord]:
        with self._scope() as session:
            return [_exchange_record(row) for row in repo.list_exchanges_for_user(session, user_id)]

    def update_exchange_details(
        self,
        exchange_id: int,
        name: Optional[str] = None,
        gift_budget: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Optional[ExchangeRecord]:
        with self._scope() as session:
            exchange = repo.get_exchange_by_id(session, exchange_id)
            if not exchange:
                return None
            repo.update_exchange_details(session, exchange, name, gift_budget, start_date, end_date)
            session.flush()
            return _exchange_record(exchange)

    def delete_exchange(self, exchange_id: int) -> bool:
        with self._scope() as session:
            exchange = repo.get_exchange_by_id(session, exchange_id)
            if not exchange:
                return False
            repo.delete_exchange(session, exchange)
            return True

    def get_participant(self, exchange_id: int, user_id: int) -> Optional[ParticipantRecord]:
        with self._scope() as session:
            participant = repo.get_participant(session, exchange_id, user_id)
            return _participant_record(participant) if participant else None

    def list_participants(self, exchange_id: int) -> List[ParticipantRecord]:
        with self._scope() as session:
            return [_participant_record(row) for row in repo.list_participants(session, exchange_id)]

    def _lock_open(self, session, exchange_id: int) -> bool:
        exchange = repo.lock_exchange(session, exchange_id)
        return exchange is not None and not exchange.assignments_generated

    def remove_participant(self, exchange_id: int, user_id: int) -> bool:
        with self._scope() as session:
            if not self._lock_open(session, exchange_id):
                return False
            return repo.delete_participant_if_open(session, exchange_id, user_id)

    def get_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        with self._scope() as session:
            pending = repo.get_pending(session, exchange_id, user_id)
            return _pending_record(pending) if pending else None

    def list_pending(self, exchange_id: int) -> List[PendingRequestRecord]:
        with self._scope() as session:
            return [_pending_record(row) for row in repo.list_pending(session, exchange_id)]

    def add_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        try:
            with self._scope() as session:
                if not self._lock_open(session, exchange_id):
                    return None
                return _pending_record(repo.add_pending(session, exchange_id, user_id))
        except IntegrityError:
            return None

    def approve_pending(self, exchange_id: int, user_id: int) -> bool:
        try:
            with self._scope() as session:
                if not self._lock_open(session, exchange_id):
                    return False
                if not repo.delete_pending_if_open(session, exchange_id, user_id):
                    return False
                repo.add_participant(session, exchange_id, user_id)
                return True
        except IntegrityError as exc:
            raise StoreConflict(
                f"User {user_id} is already a participant of exchange {exchange_id}"
            ) from exc

    def remove_pending(self, exchange_id: int, user_id: int) -> bool:
        with self._scope() as session:
            if not self._lock_open(session, exchange_id):
                return False
            return repo.delete_pending_if_open(session, exchange_id, user_id)

    def commit_assignments(
        self, exchange_id: int, pairs: Sequence[Tuple[int, int]]
    ) -> Optional[List[AssignmentRecord]]:
        try:
            with self._scope() as session:
                # roster writers hold the same row lock, so the roster read below is settled
                if not self._lock_open(session, exchange_id):
                    return None
                if not repo.mark_assignments_generated(session, exchange_id):
                    return None
                roster = {row.user_id for row in repo.list_participants(session, exchange_id)}
                givers = [giver_id for giver_id, _ in pairs]
                if roster != set(givers) or len(givers) != len(roster):
                    raise RosterChanged(
                        f"Participants of exchange {exchange_id} changed during generation"
                    )
                rows = repo.create_assignments(session, exchange_id, pairs)
                return [_assignment_record(row) for row in rows]
        except IntegrityError as exc:
            raise StoreConflict(f"Assignments for exchange {exchange_id} conflict") from exc

    def get_assignment_for_giver(
        self, exchange_id: int, giver_id: int
    ) -> Optional[AssignmentRecord]:
        with self._scope() as session:
            assignment = repo.get_assignment_for_giver(session, exchange_id, giver_id)
            return _assignment_record(assignment) if assignment else None

    def list_assignments(self, exchange_id: int) -> List[AssignmentRecord]:
        with self._scope() as session:
            return [_assignment_record(row) for row in repo.list_assignments(session, exchange_id)]

    def count_assignments(self, exchange_id: int) -> int:
        with self._scope() as session:
            return repo.count_assignments(session, exchange_id)
