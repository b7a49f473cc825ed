"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: the shared httpx client
behind the Google identity provider and the database engine.
Middleware, CORS, exception handlers and routers all registered here.
"""

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketdesk import __version__
from ticketdesk.api import api_router
from ticketdesk.api.errors import register_error_handlers
from ticketdesk.auth.google import GoogleIdentityProvider
from ticketdesk.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. One httpx client is shared by all requests; its timeout is
    the request-level bound on every call to Google.
    """
    logger.info(
        "ticketdesk.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )
    if not settings.google_client_id:
        logger.warning("ticketdesk.google_client_id_missing")

    async with httpx.AsyncClient(
        timeout=settings.identity_provider_timeout_seconds
    ) as http:
        app.state.identity_provider = GoogleIdentityProvider(
            http,
            certs_url=settings.google_certs_url,
            userinfo_url=settings.google_userinfo_url,
        )

        yield

        logger.info("ticketdesk.shutdown")

    from ticketdesk.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="TicketDesk",
        description="Support tickets behind password and Google sign-in",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette wraps middleware in reverse order of registration, so the
    # error middleware (added first) sits closest to the handlers and its
    # 500s still get request ids and security headers.

    from ticketdesk.middleware.errors import UnhandledErrorMiddleware
    from ticketdesk.middleware.request_id import RequestIdMiddleware
    from ticketdesk.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: ticketdesk.main:app)
app = create_app()
