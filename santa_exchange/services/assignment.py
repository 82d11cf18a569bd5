from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, TypeVar

from santa_exchange.services.errors import (
    AssignmentGenerationFailed,
    InsufficientParticipants,
    InvalidInput,
)

MIN_PARTICIPANTS = 3

T = TypeVar("T")


def single_cycle_shuffle(items: Sequence[T], rng: random.Random) -> List[T]:
    """Sattolo's shuffle: the result is one cycle through every position.

    Unlike Fisher-Yates, ``j`` never equals ``i``, so no element can stay
    where it started.
    """
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def find_fixed_points(givers: Sequence[T], recipients: Sequence[T]) -> List[int]:
    return [
        index
        for index, (giver, recipient) in enumerate(zip(givers, recipients))
        if giver == recipient
    ]


def repair_fixed_points(givers: Sequence[T], recipients: List[T]) -> None:
    count = len(recipients)
    for index in range(count):
        if recipients[index] == givers[index]:
            other = (index + 1) % count
            recipients[index], recipients[other] = recipients[other], recipients[index]


def generate_assignments(
    participant_ids: Sequence[int],
    seed: Optional[int] = None,
) -> Dict[int, int]:
    if len(participant_ids) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(
            f"At least {MIN_PARTICIPANTS} participants are required to generate assignments."
        )
    if len(set(participant_ids)) != len(participant_ids):
        raise InvalidInput("Participant ids must be unique.")

    rng = random.Random(seed)
    givers = list(participant_ids)
    recipients = single_cycle_shuffle(givers, rng)
    repair_fixed_points(givers, recipients)

    if find_fixed_points(givers, recipients):
        raise AssignmentGenerationFailed("Failed to generate valid assignments, please retry.")

    return dict(zip(givers, recipients))
