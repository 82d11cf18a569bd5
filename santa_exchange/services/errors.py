"""Errors raised by the exchange services.

Each carries a short ``code`` so outer layers can render or map it without
matching on message text.
"""


class ExchangeError(RuntimeError):
    code = "exchange_error"


class InvalidInput(ExchangeError):
    code = "invalid_input"


class NotFound(ExchangeError):
    code = "not_found"


class AccessDenied(ExchangeError):
    code = "access_denied"


class AlreadyParticipant(ExchangeError):
    code = "already_participant"


class AlreadyPending(ExchangeError):
    code = "already_pending"


class NoPendingRequest(ExchangeError):
    code = "no_pending_request"


class ExchangeClosed(ExchangeError):
    code = "exchange_closed"


class AssignmentError(ExchangeError):
    code = "assignment_error"


class InsufficientParticipants(AssignmentError):
    code = "insufficient_participants"


class AlreadyGenerated(AssignmentError):
    code = "already_generated"


class AssignmentGenerationFailed(AssignmentError):
    code = "assignment_generation_failed"
