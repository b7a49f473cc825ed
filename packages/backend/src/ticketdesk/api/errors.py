"""Exception handlers — TicketDeskError and friends → JSON responses.

Learn: Every error body has the same shape FastAPI uses for HTTPException:
{"detail": "<message>"}. Only the error's user-safe message is sent;
anything else (stack traces, provider error text) stays in the logs.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ticketdesk.errors import AuthenticationError, TicketDeskError

logger = structlog.get_logger()


async def ticketdesk_error_handler(request: Request, exc: TicketDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request.dependency_error",
            path=request.url.path,
            error=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    else:
        logger.info(
            "request.rejected",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("request.invalid_body", path=request.url.path, errors=exc.errors())
    return JSONResponse(status_code=400, content={"detail": "Invalid request body."})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TicketDeskError, ticketdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
