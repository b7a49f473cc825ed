"""User persistence — the narrow data-access surface the auth core uses.

Learn: Everything the verifier and resolver need from the database is
here, so the auth logic never builds queries itself. Unique-constraint
violations (email, google_id) become ConflictError; connection loss
becomes DependencyError (via storage_guard).
"""

from typing import Optional

import structlog
from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.db.engine import storage_guard
from ticketdesk.db.models import User
from ticketdesk.errors import ConflictError

logger = structlog.get_logger()

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists."
GOOGLE_ACCOUNT_TAKEN_MESSAGE = "This Google account is linked to a different user."


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[User]:
        async with storage_guard():
            result = await self.db.execute(
                select(User)
                .where(User.id == user_id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def find_user_by_email(self, email: str) -> Optional[User]:
        async with storage_guard():
            result = await self.db.execute(select(User).where(User.email == email))
            return result.scalars().first()

    async def find_user_by_subject_or_email(
        self, subject: Optional[str], email: str
    ) -> Optional[User]:
        """One lookup matching either the Google subject or the email.

        Learn: If the subject and the email belong to two different rows
        (the user changed their Google address), the subject match wins.
        """
        query = select(User)
        if subject:
            query = query.where(
                or_(User.google_id == subject, User.email == email)
            ).order_by(case((User.google_id == subject, 0), else_=1))
        else:
            query = query.where(User.email == email)

        async with storage_guard():
            result = await self.db.execute(query)
            return result.scalars().first()

    # ─── Write ───────────────────────────────────────────

    async def insert_user(
        self,
        *,
        email: str,
        name: str,
        password_hash: Optional[str] = None,
        google_id: Optional[str] = None,
    ) -> User:
        """Insert a new user row.

        A concurrent request may have created the same email/subject
        between our lookup and this insert; the unique constraint
        rejects the second writer and we report it as a conflict.
        """
        user = User(
            email=email,
            name=name,
            password_hash=password_hash,
            google_id=google_id,
        )
        self.db.add(user)
        async with storage_guard():
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.info("users.insert_conflict", email=email, error=str(e.orig))
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from e
        return user

    async def attach_external_identity(self, user_id: int, subject: str) -> None:
        """Set google_id on a user that has none. Never overwrites."""
        stmt = (
            update(User)
            .where(User.id == user_id, User.google_id.is_(None))
            .values(google_id=subject)
        )
        async with storage_guard():
            try:
                await self.db.execute(stmt)
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.warning(
                    "users.link_conflict", user_id=user_id, error=str(e.orig)
                )
                raise ConflictError(GOOGLE_ACCOUNT_TAKEN_MESSAGE) from e
