from santa_exchange.services.assignment import MIN_PARTICIPANTS, generate_assignments
from santa_exchange.services.errors import (
    AccessDenied,
    AlreadyGenerated,
    AlreadyParticipant,
    AlreadyPending,
    AssignmentError,
    AssignmentGenerationFailed,
    ExchangeClosed,
    ExchangeError,
    InsufficientParticipants,
    InvalidInput,
    NoPendingRequest,
    NotFound,
)

__all__ = [
    "AccessDenied",
    "AlreadyGenerated",
    "AlreadyParticipant",
    "AlreadyPending",
    "AssignmentError",
    "AssignmentGenerationFailed",
    "ExchangeClosed",
    "ExchangeError",
    "InsufficientParticipants",
    "InvalidInput",
    "MIN_PARTICIPANTS",
    "NoPendingRequest",
    "NotFound",
    "generate_assignments",
]
