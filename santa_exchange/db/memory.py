from __future__ import annotations

import dataclasses
import datetime
import itertools
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from santa_exchange.db.records import (
    AssignmentRecord,
    ExchangeRecord,
    ParticipantRecord,
    PendingRequestRecord,
)
from santa_exchange.db.store import ExchangeStore, RosterChanged, StoreConflict


def _now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.timezone.utc)


class MemoryStore(ExchangeStore):
    """In-process :class:`ExchangeStore`.

    Everything lives in dictionaries guarded by a single re-entrant lock, so
    each public call is atomic with respect to every other call on the same
    instance. Nothing survives the process.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: Dict[int, Tuple[str, str]] = {}
        self._exchanges: Dict[int, ExchangeRecord] = {}
        self._participants: Dict[int, Dict[int, ParticipantRecord]] = {}
        self._pending: Dict[int, Dict[int, PendingRequestRecord]] = {}
        self._assignments: Dict[int, List[AssignmentRecord]] = {}
        self._user_ids = itertools.count(1)
        self._exchange_ids = itertools.count(1)
        self._assignment_ids = itertools.count(1)

    def add_user(self, name: str, email: str) -> int:
        with self._lock:
            user_id = next(self._user_ids)
            self._users[user_id] = (name, email)
            return user_id

    def user_exists(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._users

    def _is_open(self, exchange_id: int) -> bool:
        exchange = self._exchanges.get(exchange_id)
        return exchange is not None and not exchange.assignments_generated

    def create_exchange(
        self,
        name: str,
        gift_budget: str,
        created_by: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ExchangeRecord:
        with self._lock:
            now = _now()
            exchange = ExchangeRecord(
                id=next(self._exchange_ids),
                name=name,
                gift_budget=gift_budget,
                created_by=created_by,
                start_date=start_date,
                end_date=end_date,
                created_at=now,
            )
            self._exchanges[exchange.id] = exchange
            self._participants[exchange.id] = {
                created_by: ParticipantRecord(exchange.id, created_by, now)
            }
            self._pending[exchange.id] = {}
            self._assignments[exchange.id] = []
            return exchange

    def get_exchange(self, exchange_id: int) -> Optional[ExchangeRecord]:
        with self._lock:
            return self._exchanges.get(exchange_id)

    def list_exchanges(self) -> List[ExchangeRecord]:
        with self._lock:
            return [self._exchanges[key] for key in sorted(self._exchanges)]

    def list_exchanges_for_user(self, user_id: int) -> List[ExchangeRecord]:
        with self._lock:
            return [
                exchange
                for exchange in self.list_exchanges()
                if exchange.created_by == user_id or user_id in self._participants[exchange.id]
            ]

    def update_exchange_details(
        self,
        exchange_id: int,
        name: Optional[str] = None,
        gift_budget: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Optional[ExchangeRecord]:
        with self._lock:
            exchange = self._exchanges.get(exchange_id)
            if exchange is None:
                return None
            changes = {
                "name": name,
                "gift_budget": gift_budget,
                "start_date": start_date,
                "end_date": end_date,
            }
            exchange = dataclasses.replace(
                exchange, **{key: value for key, value in changes.items() if value is not None}
            )
            self._exchanges[exchange_id] = exchange
            return exchange

    def delete_exchange(self, exchange_id: int) -> bool:
        with self._lock:
            if self._exchanges.pop(exchange_id, None) is None:
                return False
            self._participants.pop(exchange_id, None)
            self._pending.pop(exchange_id, None)
            self._assignments.pop(exchange_id, None)
            return True

    def get_participant(self, exchange_id: int, user_id: int) -> Optional[ParticipantRecord]:
        with self._lock:
            return self._participants.get(exchange_id, {}).get(user_id)

    def list_participants(self, exchange_id: int) -> List[ParticipantRecord]:
        with self._lock:
            return list(self._participants.get(exchange_id, {}).values())

    def remove_participant(self, exchange_id: int, user_id: int) -> bool:
        with self._lock:
            if not self._is_open(exchange_id):
                return False
            return self._participants[exchange_id].pop(user_id, None) is not None

    def get_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        with self._lock:
            return self._pending.get(exchange_id, {}).get(user_id)

    def list_pending(self, exchange_id: int) -> List[PendingRequestRecord]:
        with self._lock:
            return list(self._pending.get(exchange_id, {}).values())

    def add_pending(self, exchange_id: int, user_id: int) -> Optional[PendingRequestRecord]:
        with self._lock:
            if not self._is_open(exchange_id) or user_id in self._pending[exchange_id]:
                return None
            pending = PendingRequestRecord(exchange_id, user_id, _now())
            self._pending[exchange_id][user_id] = pending
            return pending

    def approve_pending(self, exchange_id: int, user_id: int) -> bool:
        with self._lock:
            if not self._is_open(exchange_id) or user_id not in self._pending[exchange_id]:
                return False
            if user_id in self._participants[exchange_id]:
                raise StoreConflict(
                    f"User {user_id} is already a participant of exchange {exchange_id}"
                )
            del self._pending[exchange_id][user_id]
            self._participants[exchange_id][user_id] = ParticipantRecord(
                exchange_id, user_id, _now()
            )
            return True

    def remove_pending(self, exchange_id: int, user_id: int) -> bool:
        with self._lock:
            if not self._is_open(exchange_id):
                return False
            return self._pending[exchange_id].pop(user_id, None) is not None

    def commit_assignments(
        self, exchange_id: int, pairs: Sequence[Tuple[int, int]]
    ) -> Optional[List[AssignmentRecord]]:
        with self._lock:
            if not self._is_open(exchange_id):
                return None
            givers = [giver_id for giver_id, _ in pairs]
            roster = set(self._participants[exchange_id])
            if roster != set(givers) or len(givers) != len(roster):
                raise RosterChanged(
                    f"Participants of exchange {exchange_id} changed during generation"
                )
            recipients = [recipient_id for _, recipient_id in pairs]
            if len(set(recipients)) != len(recipients) or any(
                giver_id == recipient_id for giver_id, recipient_id in pairs
            ):
                raise StoreConflict(f"Assignments for exchange {exchange_id} conflict")

            now = _now()
            created = [
                AssignmentRecord(next(self._assignment_ids), exchange_id, giver_id, recipient_id, now)
                for giver_id, recipient_id in pairs
            ]
            self._assignments[exchange_id] = created
            self._exchanges[exchange_id] = dataclasses.replace(
                self._exchanges[exchange_id], assignments_generated=True, assigned_at=now
            )
            return list(created)

    def get_assignment_for_giver(
        self, exchange_id: int, giver_id: int
    ) -> Optional[AssignmentRecord]:
        with self._lock:
            for assignment in self._assignments.get(exchange_id, []):
                if assignment.giver_id == giver_id:
                    return assignment
            return None

    def list_assignments(self, exchange_id: int) -> List[AssignmentRecord]:
        with self._lock:
            return list(self._assignments.get(exchange_id, []))

    def count_assignments(self, exchange_id: int) -> int:
        with self._lock:
            return len(self._assignments.get(exchange_id, []))
