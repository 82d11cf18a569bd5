from santa_exchange.db.memory import MemoryStore
from santa_exchange.db.models import (
    Assignment,
    Base,
    Exchange,
    Participant,
    PendingParticipant,
    User,
)
from santa_exchange.db.records import (
    AssignmentRecord,
    ExchangeRecord,
    ExchangeStatus,
    ParticipantRecord,
    PendingRequestRecord,
)
from santa_exchange.db.session import create_session_factory, init_engine, session_scope
from santa_exchange.db.sql_store import SqlStore
from santa_exchange.db.store import ExchangeStore, RosterChanged, StoreConflict

__all__ = [
    "Assignment",
    "AssignmentRecord",
    "Base",
    "Exchange",
    "ExchangeRecord",
    "ExchangeStatus",
    "ExchangeStore",
    "MemoryStore",
    "Participant",
    "ParticipantRecord",
    "PendingParticipant",
    "PendingRequestRecord",
    "RosterChanged",
    "SqlStore",
    "StoreConflict",
    "User",
    "create_session_factory",
    "init_engine",
    "session_scope",
]
