"""Credential verification — the first step of every sign-in.

Learn: Each path turns a presented credential into either a rejection
(a TicketDeskError) or something the next step can trust:
- register → VerifiedClaim carrying a bcrypt hash (never the password)
- login    → the stored User row whose hash matched
- google   → VerifiedClaim with the Google subject

Google tokens arrive untyped. A token that looks like a JWT (three
dot-separated segments) is tried as an ID token first; if that is
skipped or fails, it is tried as an access token. Only when both
interpretations fail is the caller rejected.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from ticketdesk.auth.google import IdentityProvider, IdentityTokenError
from ticketdesk.auth.password import hash_password_async, verify_password_async
from ticketdesk.auth.repository import DUPLICATE_EMAIL_MESSAGE, UserRepository
from ticketdesk.db.models import User
from ticketdesk.errors import (
    AuthenticationError,
    ConflictError,
    DependencyError,
    ValidationError,
)

logger = structlog.get_logger()

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
# Deliberate exception to the "don't reveal the account exists" rule:
# telling Google users where to go beats a generic failure.
GOOGLE_ONLY_ACCOUNT_MESSAGE = "This account uses Google Sign-In. Please login with Google."
INVALID_GOOGLE_TOKEN_MESSAGE = "Invalid Google token"


@dataclass(frozen=True)
class VerifiedClaim:
    """A verified identity, not yet tied to a user row."""

    email: str
    name: str
    subject: Optional[str] = None
    password_hash: Optional[str] = None


class CredentialVerifier:
    """Verifies passwords and Google tokens.

    The identity provider and the Google client id are fixed at
    construction; nothing here reads global configuration.
    """

    def __init__(
        self,
        users: UserRepository,
        identity_provider: IdentityProvider,
        *,
        google_client_id: str,
        bcrypt_rounds: int = 12,
        min_password_length: int = 6,
    ):
        self.users = users
        self.identity_provider = identity_provider
        self.google_client_id = google_client_id
        self.bcrypt_rounds = bcrypt_rounds
        self.min_password_length = min_password_length

    # ─── Password: register ──────────────────────────────

    async def verify_registration(
        self,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str],
    ) -> VerifiedClaim:
        if not email or not password or not name:
            raise ValidationError("Email, password, and name are required.")
        if len(password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters long."
            )

        if await self.users.find_user_by_email(email):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        password_hash = await hash_password_async(password, self.bcrypt_rounds)
        return VerifiedClaim(email=email, name=name, password_hash=password_hash)

    # ─── Password: login ─────────────────────────────────

    async def verify_login(
        self, email: Optional[str], password: Optional[str]
    ) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required.")

        user = await self.users.find_user_by_email(email)
        if not user:
            logger.info("auth.login_failed", reason="unknown_email")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not user.password_hash:
            logger.info("auth.login_failed", reason="google_only", user_id=user.id)
            raise AuthenticationError(GOOGLE_ONLY_ACCOUNT_MESSAGE)

        if not await verify_password_async(password, user.password_hash):
            logger.info("auth.login_failed", reason="bad_password", user_id=user.id)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        return user

    # ─── Google ──────────────────────────────────────────

    async def verify_google_token(self, token: Optional[str]) -> VerifiedClaim:
        if not token:
            raise ValidationError("Google token is required.")

        if _looks_structured(token):
            try:
                identity = await self.identity_provider.verify_structured_token(
                    token, self.google_client_id
                )
                return VerifiedClaim(
                    email=identity.email,
                    name=identity.name or _name_from_email(identity.email),
                    subject=identity.subject,
                )
            except (IdentityTokenError, DependencyError) as e:
                # Fall through: the same string may still be a valid access token.
                logger.info("auth.google_id_token_rejected", error=str(e))

        try:
            identity = await self.identity_provider.introspect_opaque_token(token)
        except IdentityTokenError as e:
            logger.info("auth.google_access_token_rejected", error=str(e))
            raise AuthenticationError(INVALID_GOOGLE_TOKEN_MESSAGE)

        if not identity.email:
            logger.info("auth.google_token_without_email", subject=identity.subject)
            raise AuthenticationError(INVALID_GOOGLE_TOKEN_MESSAGE)

        return VerifiedClaim(
            email=identity.email,
            name=identity.name or _name_from_email(identity.email),
            subject=identity.subject,
        )


def _looks_structured(token: str) -> bool:
    return token.count(".") == 2


def _name_from_email(email: str) -> str:
    return email.split("@", 1)[0]
