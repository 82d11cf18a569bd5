from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from santa_exchange.db import ExchangeRecord, ExchangeStatus, ExchangeStore, PendingRequestRecord
from santa_exchange.db.store import StoreConflict
from santa_exchange.services.assignment import MIN_PARTICIPANTS
from santa_exchange.services.errors import (
    AlreadyParticipant,
    AlreadyPending,
    ExchangeClosed,
    InvalidInput,
    NoPendingRequest,
    NotFound,
)


@dataclass(frozen=True)
class ExchangeSnapshot:
    exchange: ExchangeRecord
    participant_ids: List[int]
    pending: List[PendingRequestRecord]

    @property
    def id(self) -> int:
        return self.exchange.id

    @property
    def status(self) -> ExchangeStatus:
        return self.exchange.status

    @property
    def assignments_generated(self) -> bool:
        return self.exchange.assignments_generated

    @property
    def pending_user_ids(self) -> List[int]:
        return [request.user_id for request in self.pending]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def _date_text(value: object, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string.")
    return value.strip() or None


def _snapshot(store: ExchangeStore, exchange: ExchangeRecord) -> ExchangeSnapshot:
    return ExchangeSnapshot(
        exchange=exchange,
        participant_ids=[participant.user_id for participant in store.list_participants(exchange.id)],
        pending=store.list_pending(exchange.id),
    )


def _require_exchange(store: ExchangeStore, exchange_id: int) -> ExchangeRecord:
    exchange = store.get_exchange(exchange_id)
    if exchange is None:
        raise NotFound(f"Exchange {exchange_id} not found.")
    return exchange


def _require_user(store: ExchangeStore, user_id: int) -> None:
    if not store.user_exists(user_id):
        raise NotFound(f"User {user_id} not found.")


def _require_open(exchange: ExchangeRecord) -> None:
    if exchange.assignments_generated:
        raise ExchangeClosed(
            f"Assignments were already generated for exchange {exchange.id}; "
            "its participants can no longer change."
        )


def create_exchange(
    store: ExchangeStore,
    name: Optional[str],
    gift_budget: Optional[str],
    creator_id: Optional[int],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ExchangeSnapshot:
    name = _clean(name)
    gift_budget = _clean(gift_budget)
    if not name or not gift_budget or creator_id is None:
        raise InvalidInput("Name, budget, and creator are required.")
    start_date = _date_text(start_date, "Start date")
    end_date = _date_text(end_date, "End date")
    _require_user(store, creator_id)

    exchange = store.create_exchange(name, gift_budget, creator_id, start_date, end_date)
    logger.bind(exchange_id=exchange.id, user_id=creator_id).info("Exchange created")
    return _snapshot(store, exchange)


def get_exchange(store: ExchangeStore, exchange_id: int) -> ExchangeSnapshot:
    return _snapshot(store, _require_exchange(store, exchange_id))


def list_exchanges(store: ExchangeStore) -> List[ExchangeSnapshot]:
    return [_snapshot(store, exchange) for exchange in store.list_exchanges()]


def list_exchanges_for_user(store: ExchangeStore, user_id: int) -> List[ExchangeSnapshot]:
    return [_snapshot(store, exchange) for exchange in store.list_exchanges_for_user(user_id)]


def update_exchange(
    store: ExchangeStore,
    exchange_id: int,
    name: Optional[str] = None,
    gift_budget: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ExchangeSnapshot:
    name = _clean(name)
    gift_budget = _clean(gift_budget)
    if name == "" or gift_budget == "":
        raise InvalidInput("Name and budget cannot be blank.")
    start_date = _date_text(start_date, "Start date")
    end_date = _date_text(end_date, "End date")

    exchange = store.update_exchange_details(exchange_id, name, gift_budget, start_date, end_date)
    if exchange is None:
        raise NotFound(f"Exchange {exchange_id} not found.")
    return _snapshot(store, exchange)


def delete_exchange(store: ExchangeStore, exchange_id: int) -> None:
    if not store.delete_exchange(exchange_id):
        raise NotFound(f"Exchange {exchange_id} not found.")
    logger.bind(exchange_id=exchange_id).info("Exchange deleted")


def request_join(store: ExchangeStore, exchange_id: int, user_id: int) -> ExchangeSnapshot:
    exchange = _require_exchange(store, exchange_id)
    _require_user(store, user_id)
    _require_open(exchange)

    if exchange.created_by == user_id or store.get_participant(exchange_id, user_id):
        raise AlreadyParticipant(f"User {user_id} is already a participant.")
    if store.get_pending(exchange_id, user_id):
        raise AlreadyPending(f"User {user_id} already has a pending join request.")

    if store.add_pending(exchange_id, user_id) is None:
        # Lost a race with generation or with a duplicate request.
        _require_open(_require_exchange(store, exchange_id))
        raise AlreadyPending(f"User {user_id} already has a pending join request.")

    logger.bind(exchange_id=exchange_id, user_id=user_id).info("Join requested")
    return get_exchange(store, exchange_id)


def approve_pending(store: ExchangeStore, exchange_id: int, user_id: int) -> ExchangeSnapshot:
    exchange = _require_exchange(store, exchange_id)
    _require_open(exchange)

    try:
        approved = store.approve_pending(exchange_id, user_id)
    except StoreConflict as exc:
        raise AlreadyParticipant(f"User {user_id} is already a participant.") from exc

    if not approved:
        _require_open(_require_exchange(store, exchange_id))
        raise NoPendingRequest(f"No pending request found for user {user_id}.")

    logger.bind(exchange_id=exchange_id, user_id=user_id).info("Join request approved")
    return get_exchange(store, exchange_id)


def decline_pending(store: ExchangeStore, exchange_id: int, user_id: int) -> ExchangeSnapshot:
    exchange = _require_exchange(store, exchange_id)
    _require_open(exchange)

    if not store.remove_pending(exchange_id, user_id):
        _require_open(_require_exchange(store, exchange_id))
        raise NoPendingRequest(f"No pending request found for user {user_id}.")

    logger.bind(exchange_id=exchange_id, user_id=user_id).info("Join request declined")
    return get_exchange(store, exchange_id)


def remove_participant(store: ExchangeStore, exchange_id: int, user_id: int) -> ExchangeSnapshot:
    exchange = _require_exchange(store, exchange_id)
    _require_open(exchange)

    if not store.remove_participant(exchange_id, user_id):
        _require_open(_require_exchange(store, exchange_id))
        raise NotFound(f"User {user_id} is not a participant of exchange {exchange_id}.")

    logger.bind(exchange_id=exchange_id, user_id=user_id).info("Participant removed")
    return get_exchange(store, exchange_id)


def can_generate(store: ExchangeStore, exchange_id: int) -> bool:
    exchange = _require_exchange(store, exchange_id)
    if exchange.status != ExchangeStatus.OPEN:
        return False
    return len(store.list_participants(exchange_id)) >= MIN_PARTICIPANTS
