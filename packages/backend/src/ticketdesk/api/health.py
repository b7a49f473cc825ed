"""Health check and index endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk import __version__
from ticketdesk.db.engine import get_db

router = APIRouter()

ENDPOINTS = [
    "POST /auth/register",
    "POST /auth/login",
    "POST /auth/google",
    "GET /auth/me (protected)",
    "GET /tickets (protected)",
    "POST /tickets (protected)",
    "POST /tickets/:id/resolve (protected)",
]


@router.get("/")
async def index():
    return {"message": "TicketDesk API is running", "endpoints": ENDPOINTS}


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
