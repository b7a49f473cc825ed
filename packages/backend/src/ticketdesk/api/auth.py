"""Auth API — registration, password login, Google sign-in.

Learn: Routes for user authentication:
- POST /auth/register → create a password account → session token
- POST /auth/login → email/password → session token
- POST /auth/google → Google ID token or access token → session token
- GET /auth/me → the identity carried by the caller's session token

Errors are raised by the auth service as TicketDeskError subclasses and
mapped to status codes by the app-level handlers (ticketdesk.api.errors).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.auth.dependencies import (
    get_current_user,
    get_identity_provider,
    get_session_issuer,
)
from ticketdesk.auth.google import IdentityProvider
from ticketdesk.auth.repository import UserRepository
from ticketdesk.auth.resolver import IdentityResolver
from ticketdesk.auth.session import CurrentIdentity, SessionIssuer
from ticketdesk.auth.verifier import CredentialVerifier
from ticketdesk.config import settings
from ticketdesk.db.engine import get_db
from ticketdesk.schemas.auth import (
    AuthResponse,
    GoogleAuthRequest,
    IdentityRead,
    LoginRequest,
    RegisterRequest,
    UserRead,
)
from ticketdesk.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _auth_svc(
    db: AsyncSession = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthService:
    users = UserRepository(db)
    verifier = CredentialVerifier(
        users,
        identity_provider,
        google_client_id=settings.google_client_id,
        bcrypt_rounds=settings.bcrypt_rounds,
        min_password_length=settings.min_password_length,
    )
    return AuthService(verifier, IdentityResolver(users), issuer)


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_auth_svc)):
    """Create a password account and sign it in."""
    result = await svc.register(body.email, body.password, body.name)
    return AuthResponse(
        message="User registered successfully",
        token=result.token,
        user=UserRead.model_validate(result.user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_auth_svc)):
    """Login with email and password → session token."""
    result = await svc.login(body.email, body.password)
    return AuthResponse(
        message="Login successful",
        token=result.token,
        user=UserRead.model_validate(result.user),
    )


@router.post("/google", response_model=AuthResponse)
async def google_auth(body: GoogleAuthRequest, svc: AuthService = Depends(_auth_svc)):
    """Sign in (or sign up) with a Google ID token or access token."""
    result = await svc.google_login(body.token)
    return AuthResponse(
        message="Google authentication successful",
        token=result.token,
        user=UserRead.model_validate(result.user),
    )


@router.get("/me", response_model=IdentityRead)
async def get_me(identity: CurrentIdentity = Depends(get_current_user)):
    """The caller's identity as embedded in their session token."""
    return IdentityRead(
        id=identity.user_id,
        email=identity.email,
        name=identity.name,
        issued_at=identity.issued_at,
        expires_at=identity.expires_at,
    )
