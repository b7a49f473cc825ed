"""Session token issuance and authentication.

Learn: The session token is a plain HS256 JWT. It embeds everything the
ticket routes need (id, email, name) so authenticating a request is a
signature + expiry check with no database round trip. The flip side:
a renamed user keeps the old name in their token until they sign in again.

Tokens live 24 hours and there is no revocation list.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from ticketdesk.db.models import User
from ticketdesk.errors import AuthenticationError

NO_TOKEN_MESSAGE = "Access denied. No token provided."
INVALID_TOKEN_MESSAGE = "Invalid or expired token."

DEFAULT_LIFETIME = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated caller, exactly as the session token describes it."""

    user_id: int
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime


class SessionIssuer:
    """Mints session tokens for resolved users."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = DEFAULT_LIFETIME,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._clock = clock

    def issue(self, user: User) -> str:
        issued_at = self._clock()
        payload = {
            "sub": str(user.id),
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)


class SessionAuthenticator:
    """Validates `Authorization: Bearer <token>` headers."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def authenticate(self, authorization: Optional[str]) -> CurrentIdentity:
        """Return the identity carried by the header's token.

        Raises AuthenticationError when the header is missing or not a
        Bearer credential, and when the token is tampered, malformed or
        expired.
        """
        token = _bearer_token(authorization)
        if not token:
            raise AuthenticationError(NO_TOKEN_MESSAGE)
        return self.decode(token)

    def decode(self, token: str) -> CurrentIdentity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
            return CurrentIdentity(
                user_id=int(payload["id"]),
                email=payload["email"],
                name=payload["name"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            raise AuthenticationError(INVALID_TOKEN_MESSAGE)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
