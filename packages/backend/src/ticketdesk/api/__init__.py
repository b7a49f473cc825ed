"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in the tickets router
without modifying individual handlers. Health and auth routers are
open (no auth required); /auth/me asks for the identity itself.
"""

from fastapi import APIRouter, Depends

from ticketdesk.api.auth import router as auth_router
from ticketdesk.api.health import router as health_router
from ticketdesk.api.tickets import router as tickets_router
from ticketdesk.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter()

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid session token
api_router.include_router(tickets_router, tags=["tickets"], dependencies=_auth)
