"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (or on whole
routers) to extract and validate the current identity from the request.
get_current_user trusts the session token's claims; it never touches
the database.
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header, Request

from ticketdesk.auth.google import IdentityProvider
from ticketdesk.auth.session import CurrentIdentity, SessionAuthenticator, SessionIssuer
from ticketdesk.config import settings


def get_session_authenticator() -> SessionAuthenticator:
    return SessionAuthenticator(settings.jwt_secret, settings.jwt_algorithm)


def get_session_issuer() -> SessionIssuer:
    return SessionIssuer(
        settings.jwt_secret,
        settings.jwt_algorithm,
        lifetime=timedelta(hours=settings.session_token_expire_hours),
    )


def get_identity_provider(request: Request) -> IdentityProvider:
    """The Google client built in the app lifespan (see ticketdesk.main)."""
    return request.app.state.identity_provider


async def get_current_user(
    authorization: Optional[str] = Header(None),
    authenticator: SessionAuthenticator = Depends(get_session_authenticator),
) -> CurrentIdentity:
    """Require a valid `Authorization: Bearer <token>` header (401 otherwise)."""
    return authenticator.authenticate(authorization)
