"""Ticket API routes.

Learn: Every route here is protected at the router level (see
ticketdesk.api). Handlers that need to know who is calling ask for
get_current_user again; FastAPI caches the dependency per request, so
the token is only checked once.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.auth.dependencies import get_current_user
from ticketdesk.auth.session import CurrentIdentity
from ticketdesk.db.engine import get_db
from ticketdesk.schemas.ticket import TicketCreate, TicketList, TicketResponse
from ticketdesk.services.ticket_service import TicketService

router = APIRouter(prefix="/tickets")


def _ticket_svc(db: AsyncSession = Depends(get_db)) -> TicketService:
    return TicketService(db)


@router.get("", response_model=TicketList)
async def list_tickets(svc: TicketService = Depends(_ticket_svc)):
    """List all tickets, newest first."""
    tickets = await svc.list_tickets()
    return {"tickets": tickets, "count": len(tickets)}


@router.post("", response_model=TicketResponse, status_code=201)
async def create_ticket(
    body: TicketCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TicketService = Depends(_ticket_svc),
):
    """Open a ticket on behalf of the caller."""
    ticket = await svc.create_ticket(
        user_id=identity.user_id,
        title=body.title,
        description=body.description,
    )
    return {"message": "Ticket created successfully", "ticket": ticket}


@router.post("/{ticket_id}/resolve", response_model=TicketResponse)
async def resolve_ticket(ticket_id: int, svc: TicketService = Depends(_ticket_svc)):
    """Mark an open ticket as resolved."""
    ticket = await svc.resolve_ticket(ticket_id)
    return {"message": "Ticket resolved successfully", "ticket": ticket}
