"""Identity resolution — verified claim → canonical user row.

Learn: One lookup (Google subject OR email), then at most one write:
- not found               → insert a new user
- found, no google_id     → link the Google subject (one way, idempotent)
- found, other google_id  → conflict, logged; never overwritten
- found, registration     → conflict (the email is taken)

There is no lock around read-then-write. Two first sign-ins racing for
the same new email both see "not found"; the unique constraint lets one
insert win and the other gets ConflictError, which clients can retry.
"""

import structlog

from ticketdesk.auth.repository import (
    DUPLICATE_EMAIL_MESSAGE,
    GOOGLE_ACCOUNT_TAKEN_MESSAGE,
    UserRepository,
)
from ticketdesk.auth.verifier import VerifiedClaim
from ticketdesk.db.models import User
from ticketdesk.errors import ConflictError

logger = structlog.get_logger()


class IdentityResolver:
    def __init__(self, users: UserRepository):
        self.users = users

    async def resolve(self, claim: VerifiedClaim) -> User:
        user = await self.users.find_user_by_subject_or_email(claim.subject, claim.email)

        if user is None:
            user = await self.users.insert_user(
                email=claim.email,
                name=claim.name,
                password_hash=claim.password_hash,
                google_id=claim.subject,
            )
            logger.info("auth.user_created", user_id=user.id, google=bool(claim.subject))
            return user

        if claim.password_hash is not None:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        if claim.subject:
            return await self._link(user, claim.subject)
        return user

    async def _link(self, user: User, subject: str) -> User:
        if user.google_id == subject:
            return user

        if user.google_id is not None:
            logger.warning(
                "auth.google_id_mismatch",
                user_id=user.id,
                stored=user.google_id,
                presented=subject,
            )
            raise ConflictError(GOOGLE_ACCOUNT_TAKEN_MESSAGE)

        await self.users.attach_external_identity(user.id, subject)
        linked = await self.users.get_user(user.id)
        if linked is None or linked.google_id != subject:
            # Another request linked a different subject between our read and write.
            logger.warning("auth.google_link_lost", user_id=user.id)
            raise ConflictError(GOOGLE_ACCOUNT_TAKEN_MESSAGE)

        logger.info("auth.google_linked", user_id=user.id)
        return linked
