"""Auth service — one sign-in flow per endpoint.

Learn: Every flow has the same three steps:
  verify credential → resolve user row → issue session token
Routes call these methods and only deal with HTTP shapes.
"""

from dataclasses import dataclass

import structlog

from ticketdesk.auth.resolver import IdentityResolver
from ticketdesk.auth.session import SessionIssuer
from ticketdesk.auth.verifier import CredentialVerifier
from ticketdesk.db.models import User

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User


class AuthService:
    def __init__(
        self,
        verifier: CredentialVerifier,
        resolver: IdentityResolver,
        issuer: SessionIssuer,
    ):
        self.verifier = verifier
        self.resolver = resolver
        self.issuer = issuer

    async def register(self, email, password, name) -> AuthResult:
        claim = await self.verifier.verify_registration(email, password, name)
        user = await self.resolver.resolve(claim)
        logger.info("auth.registered", user_id=user.id)
        return AuthResult(token=self.issuer.issue(user), user=user)

    async def login(self, email, password) -> AuthResult:
        user = await self.verifier.verify_login(email, password)
        logger.info("auth.logged_in", user_id=user.id)
        return AuthResult(token=self.issuer.issue(user), user=user)

    async def google_login(self, token) -> AuthResult:
        claim = await self.verifier.verify_google_token(token)
        user = await self.resolver.resolve(claim)
        logger.info("auth.google_logged_in", user_id=user.id)
        return AuthResult(token=self.issuer.issue(user), user=user)
