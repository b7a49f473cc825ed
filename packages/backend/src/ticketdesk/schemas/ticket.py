"""Pydantic schemas for tickets."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TicketCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class TicketRead(BaseModel):
    id: int
    title: str
    description: str
    status: str
    user_id: Optional[int]
    created_at: datetime
    resolved_at: Optional[datetime]

    model_config = {"from_attributes": True}


class TicketListItem(BaseModel):
    """A ticket joined with its author."""
    id: int
    title: str
    description: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime]
    user_name: Optional[str]
    user_email: Optional[str]


class TicketList(BaseModel):
    tickets: list[TicketListItem]
    count: int


class TicketResponse(BaseModel):
    message: str
    ticket: TicketRead
