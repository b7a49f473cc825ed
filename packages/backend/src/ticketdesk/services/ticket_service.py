"""Ticket service — business logic for the support ticket board.

Learn: Tickets have a two-state lifecycle:
  open → resolved
Resolving stamps resolved_at; a resolved ticket can't be resolved again.
Every authenticated user sees every ticket (single role).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.db.engine import storage_guard
from ticketdesk.db.models import Ticket, User
from ticketdesk.errors import NotFoundError, ValidationError

OPEN = "open"
RESOLVED = "resolved"


class TicketService:
    """Business logic for ticket CRUD and resolution."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tickets(self) -> list[dict]:
        """All tickets, newest first, with the author's name and email."""
        query = (
            select(Ticket, User.name, User.email)
            .outerjoin(User, Ticket.user_id == User.id)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        )
        async with storage_guard():
            result = await self.db.execute(query)
            rows = result.all()

        return [
            {
                "id": ticket.id,
                "title": ticket.title,
                "description": ticket.description,
                "status": ticket.status,
                "created_at": ticket.created_at,
                "resolved_at": ticket.resolved_at,
                "user_name": user_name,
                "user_email": user_email,
            }
            for ticket, user_name, user_email in rows
        ]

    async def create_ticket(
        self,
        user_id: int,
        title: Optional[str],
        description: Optional[str] = None,
    ) -> Ticket:
        if not title or not title.strip():
            raise ValidationError("Title is required.")
        if len(title) > 255:
            raise ValidationError("Title must be at most 255 characters.")

        ticket = Ticket(
            title=title,
            description=description or "",
            status=OPEN,
            user_id=user_id,
        )
        self.db.add(ticket)
        async with storage_guard():
            await self.db.commit()
        return ticket

    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        async with storage_guard():
            return await self.db.get(Ticket, ticket_id)

    async def resolve_ticket(self, ticket_id: int) -> Ticket:
        ticket = await self.get_ticket(ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found.")
        if ticket.status == RESOLVED:
            raise ValidationError("Ticket is already resolved.")

        ticket.status = RESOLVED
        ticket.resolved_at = datetime.now(timezone.utc)
        async with storage_guard():
            await self.db.commit()
        return ticket
