from __future__ import annotations

import datetime
import json
from typing import Any, Dict, Optional

from aiohttp import web

from santa_exchange.db import AssignmentRecord, ExchangeStore
from santa_exchange.services import exchange_flow, generator
from santa_exchange.services.errors import AccessDenied, InvalidInput, NotFound
from santa_exchange.services.exchange_flow import ExchangeSnapshot

STORE_KEY = web.AppKey("store", ExchangeStore)

routes = web.RouteTableDef()


def _timestamp(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def exchange_payload(snapshot: ExchangeSnapshot) -> Dict[str, Any]:
    exchange = snapshot.exchange
    return {
        "id": exchange.id,
        "name": exchange.name,
        "giftBudget": exchange.gift_budget,
        "createdBy": exchange.created_by,
        "startDate": exchange.start_date,
        "endDate": exchange.end_date,
        "status": exchange.status.value,
        "assignmentsGenerated": exchange.assignments_generated,
        "createdAt": _timestamp(exchange.created_at),
        "assignedAt": _timestamp(exchange.assigned_at),
        "participants": snapshot.participant_ids,
        "pendingParticipants": [
            {"userId": request.user_id, "requestedAt": _timestamp(request.requested_at)}
            for request in snapshot.pending
        ],
    }


def assignment_payload(assignment: AssignmentRecord) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "exchangeId": assignment.exchange_id,
        "giverId": assignment.giver_id,
        "recipientId": assignment.recipient_id,
        "createdAt": _timestamp(assignment.created_at),
    }


def _as_id(value: Any, field: str) -> int:
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be an integer.") from None


def _path_id(request: web.Request, name: str) -> int:
    try:
        return int(request.match_info[name])
    except ValueError:
        raise NotFound(f"Unknown {name} {request.match_info[name]!r}.") from None


async def _read_json(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput("Request body must be valid JSON.") from None
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object.")
    return body


def _store(request: web.Request) -> ExchangeStore:
    return request.app[STORE_KEY]


@routes.post("/api/exchanges")
async def create_exchange(request: web.Request) -> web.Response:
    body = await _read_json(request)
    created_by = body.get("createdBy")
    snapshot = exchange_flow.create_exchange(
        _store(request),
        body.get("name"),
        body.get("giftBudget"),
        _as_id(created_by, "createdBy") if created_by is not None else None,
        start_date=body.get("startDate"),
        end_date=body.get("endDate"),
    )
    return web.json_response(exchange_payload(snapshot), status=201)


@routes.get("/api/exchanges")
async def list_exchanges(request: web.Request) -> web.Response:
    snapshots = exchange_flow.list_exchanges(_store(request))
    return web.json_response([exchange_payload(snapshot) for snapshot in snapshots])


@routes.get("/api/exchanges/user/{user_id}")
async def list_user_exchanges(request: web.Request) -> web.Response:
    user_id = _path_id(request, "user_id")
    snapshots = exchange_flow.list_exchanges_for_user(_store(request), user_id)
    return web.json_response([exchange_payload(snapshot) for snapshot in snapshots])


@routes.get("/api/exchanges/{exchange_id}")
async def get_exchange(request: web.Request) -> web.Response:
    snapshot = exchange_flow.get_exchange(_store(request), _path_id(request, "exchange_id"))
    return web.json_response(exchange_payload(snapshot))


@routes.patch("/api/exchanges/{exchange_id}")
async def update_exchange(request: web.Request) -> web.Response:
    body = await _read_json(request)
    snapshot = exchange_flow.update_exchange(
        _store(request),
        _path_id(request, "exchange_id"),
        name=body.get("name"),
        gift_budget=body.get("giftBudget"),
        start_date=body.get("startDate"),
        end_date=body.get("endDate"),
    )
    return web.json_response(exchange_payload(snapshot))


@routes.delete("/api/exchanges/{exchange_id}")
async def delete_exchange(request: web.Request) -> web.Response:
    exchange_flow.delete_exchange(_store(request), _path_id(request, "exchange_id"))
    return web.json_response({"message": "Exchange deleted successfully"})


@routes.post("/api/exchanges/{exchange_id}/request-join")
async def request_join(request: web.Request) -> web.Response:
    body = await _read_json(request)
    snapshot = exchange_flow.request_join(
        _store(request), _path_id(request, "exchange_id"), _as_id(body.get("userId"), "userId")
    )
    return web.json_response(exchange_payload(snapshot))


@routes.post("/api/exchanges/{exchange_id}/approve-participant")
async def approve_participant(request: web.Request) -> web.Response:
    body = await _read_json(request)
    snapshot = exchange_flow.approve_pending(
        _store(request), _path_id(request, "exchange_id"), _as_id(body.get("userId"), "userId")
    )
    return web.json_response(exchange_payload(snapshot))


@routes.post("/api/exchanges/{exchange_id}/decline-participant")
async def decline_participant(request: web.Request) -> web.Response:
    body = await _read_json(request)
    snapshot = exchange_flow.decline_pending(
        _store(request), _path_id(request, "exchange_id"), _as_id(body.get("userId"), "userId")
    )
    return web.json_response(exchange_payload(snapshot))


@routes.delete("/api/exchanges/{exchange_id}/participants/{user_id}")
async def remove_participant(request: web.Request) -> web.Response:
    snapshot = exchange_flow.remove_participant(
        _store(request), _path_id(request, "exchange_id"), _path_id(request, "user_id")
    )
    return web.json_response(exchange_payload(snapshot))


@routes.get("/api/exchanges/{exchange_id}/can-generate")
async def can_generate(request: web.Request) -> web.Response:
    allowed = exchange_flow.can_generate(_store(request), _path_id(request, "exchange_id"))
    return web.json_response({"canGenerate": allowed})


@routes.post("/api/exchanges/{exchange_id}/generate-assignments")
async def generate_assignments(request: web.Request) -> web.Response:
    store = _store(request)
    exchange_id = _path_id(request, "exchange_id")
    created = generator.generate(store, exchange_id)
    # The organizer only learns that the draw happened, never who got whom.
    return web.json_response(
        {
            "message": "Assignments generated",
            "exchange": exchange_payload(exchange_flow.get_exchange(store, exchange_id)),
            "assignmentCount": len(created),
        },
        status=201,
    )


@routes.get("/api/exchanges/{exchange_id}/assignments")
async def exchange_assignments(request: web.Request) -> web.Response:
    requester_id = _as_id(request.query.get("requesterId"), "requesterId")
    summary = generator.assignment_summary(
        _store(request), _path_id(request, "exchange_id"), requester_id
    )
    return web.json_response(
        {
            "exchangeId": summary.exchange_id,
            "assignmentsGenerated": summary.assignments_generated,
            "total": summary.total,
            "assignment": assignment_payload(summary.own) if summary.own else None,
        }
    )


@routes.get("/api/assignments/giver/{giver_id}/exchange/{exchange_id}")
async def giver_assignment(request: web.Request) -> web.Response:
    giver_id = _path_id(request, "giver_id")
    requester_id = _as_id(request.query.get("requesterId"), "requesterId")
    if requester_id != giver_id:
        raise AccessDenied("Only the giver may view this assignment.")

    assignment = generator.assignment_for_giver(
        _store(request), _path_id(request, "exchange_id"), giver_id
    )
    if assignment is None:
        raise NotFound("Assignment not found.")
    return web.json_response(assignment_payload(assignment))
