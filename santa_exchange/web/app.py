from __future__ import annotations

from typing import Dict, Type

from aiohttp import web
from loguru import logger

from santa_exchange.db import ExchangeStore
from santa_exchange.services.errors import (
    AccessDenied,
    AlreadyGenerated,
    AlreadyParticipant,
    AlreadyPending,
    AssignmentGenerationFailed,
    ExchangeClosed,
    ExchangeError,
    InsufficientParticipants,
    InvalidInput,
    NoPendingRequest,
    NotFound,
)
from santa_exchange.web.routes import STORE_KEY, routes

ERROR_STATUS: Dict[Type[ExchangeError], int] = {
    InvalidInput: 400,
    InsufficientParticipants: 400,
    AccessDenied: 403,
    NotFound: 404,
    NoPendingRequest: 404,
    AlreadyParticipant: 409,
    AlreadyPending: 409,
    ExchangeClosed: 409,
    AlreadyGenerated: 409,
    AssignmentGenerationFailed: 500,
}


def status_for(error: ExchangeError) -> int:
    for klass in type(error).__mro__:
        if klass in ERROR_STATUS:
            return ERROR_STATUS[klass]
    return 400


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ExchangeError as exc:
        status = status_for(exc)
        logger.bind(path=request.path, method=request.method, code=exc.code).warning(
            "Request rejected: {error}", error=str(exc)
        )
        return web.json_response({"error": str(exc), "code": exc.code}, status=status)
    except Exception as exc:
        logger.bind(path=request.path, method=request.method).exception(
            "Handler error: {error}", error=str(exc)
        )
        return web.json_response(
            {"error": "Something went wrong. Please try again later.", "code": "internal_error"},
            status=500,
        )


def create_app(store: ExchangeStore) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[STORE_KEY] = store
    app.add_routes(routes)
    return app
