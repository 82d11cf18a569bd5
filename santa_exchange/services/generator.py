from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from santa_exchange.db import AssignmentRecord, ExchangeStore
from santa_exchange.db.store import RosterChanged, StoreConflict
from santa_exchange.services.assignment import MIN_PARTICIPANTS, generate_assignments
from santa_exchange.services.errors import (
    AccessDenied,
    AlreadyGenerated,
    AssignmentGenerationFailed,
    InsufficientParticipants,
    NotFound,
)


@dataclass(frozen=True)
class AssignmentSummary:
    exchange_id: int
    assignments_generated: bool
    total: int
    own: Optional[AssignmentRecord]


def generate(
    store: ExchangeStore,
    exchange_id: int,
    seed: Optional[int] = None,
) -> List[AssignmentRecord]:
    """Draw the giver -> recipient pairs for an exchange, exactly once.

    The early flag check only saves work; the store's compare-and-swap in
    ``commit_assignments`` is what decides between concurrent callers.
    """
    exchange = store.get_exchange(exchange_id)
    if exchange is None:
        raise NotFound(f"Exchange {exchange_id} not found.")

    participant_ids = [participant.user_id for participant in store.list_participants(exchange_id)]
    if len(participant_ids) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(
            f"At least {MIN_PARTICIPANTS} participants are required to generate assignments."
        )
    if exchange.assignments_generated:
        raise AlreadyGenerated("Assignments already generated for this exchange.")

    pairs = list(generate_assignments(participant_ids, seed=seed).items())

    try:
        created = store.commit_assignments(exchange_id, pairs)
    except RosterChanged as exc:
        raise AssignmentGenerationFailed(
            "Participants changed while assignments were being generated, please retry."
        ) from exc
    except StoreConflict as exc:
        raise AssignmentGenerationFailed("Failed to store assignments, please retry.") from exc

    if created is None:
        raise AlreadyGenerated("Assignments already generated for this exchange.")

    logger.bind(exchange_id=exchange_id, participants=len(created)).info("Assignments generated")
    return created


def assignment_for_giver(
    store: ExchangeStore, exchange_id: int, user_id: int
) -> Optional[AssignmentRecord]:
    if store.get_exchange(exchange_id) is None:
        raise NotFound(f"Exchange {exchange_id} not found.")
    return store.get_assignment_for_giver(exchange_id, user_id)


def assignment_summary(
    store: ExchangeStore, exchange_id: int, requester_id: int
) -> AssignmentSummary:
    """What ``requester_id`` may see of an exchange's assignments.

    Anyone on the roster, and the organizer, learns how many assignments
    exist. Only the requester's own pairing as giver is ever included.
    """
    exchange = store.get_exchange(exchange_id)
    if exchange is None:
        raise NotFound(f"Exchange {exchange_id} not found.")

    is_creator = exchange.created_by == requester_id
    if not is_creator and store.get_participant(exchange_id, requester_id) is None:
        raise AccessDenied("Not authorized to view assignments for this exchange.")

    return AssignmentSummary(
        exchange_id=exchange_id,
        assignments_generated=exchange.assignments_generated,
        total=store.count_assignments(exchange_id),
        own=store.get_assignment_for_giver(exchange_id, requester_id),
    )
